"""Configuration classes for the supported datasources."""

from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import Field, field_validator

from pullkit.platform.configs._base import BaseConfig, CommonConfig

DEFAULT_JIRA_ASSET_BASE_URL = "https://api.atlassian.com/jsm/assets"

ApiVersion = Literal["v3", "beta"]


class SourceConfig(CommonConfig):
    """Source config schema."""

    pass


class JiraConfig(SourceConfig):
    """Jira configuration schema."""

    issues_jql_filter: Optional[str] = Field(
        default=None,
        alias="issuesJqlFilter",
        min_length=1,
        max_length=1024,
        description="JQL query appended to Issue requests, e.g. 'project = SGNL'.",
    )
    objects_ql_query: Optional[str] = Field(
        default=None,
        alias="objectsQlQuery",
        min_length=1,
        max_length=1024,
        description="AQL query sent with Object requests.",
    )
    asset_base_url: Optional[str] = Field(
        default=None,
        alias="assetBaseUrl",
        min_length=1,
        max_length=1024,
        description="Base URL of the Jira Assets API.",
    )
    enhanced_issue_search: bool = Field(
        default=False,
        alias="enhancedIssueSearch",
        description="List issues with the token-paginated search/jql endpoint.",
    )

    @property
    def resolved_asset_base_url(self) -> str:
        """Asset base URL, falling back to the Atlassian default."""
        return self.asset_base_url or DEFAULT_JIRA_ASSET_BASE_URL


class PagerDutyConfig(SourceConfig):
    """PagerDuty configuration schema."""

    additional_query_parameters: Dict[str, Dict[str, Union[str, List[str]]]] = Field(
        default_factory=dict,
        alias="additionalQueryParameters",
        description=(
            "Extra query parameters per entity, e.g. "
            "{'users': {'include[]': ['contact_methods', 'teams']}}."
        ),
    )

    @field_validator("additional_query_parameters")
    @classmethod
    def validate_additional_query_parameters(
        cls, value: Dict[str, Dict[str, Union[str, List[str]]]]
    ) -> Dict[str, Dict[str, Union[str, List[str]]]]:
        """Reject empty strings and empty lists."""
        for entity, params in value.items():
            for param, param_value in params.items():
                if isinstance(param_value, str):
                    if not param_value:
                        raise ValueError(
                            f"additionalQueryParameters[{entity}][{param}] is an empty string"
                        )
                    continue
                if not param_value:
                    raise ValueError(
                        f"additionalQueryParameters[{entity}][{param}] is an empty list"
                    )
                for index, item in enumerate(param_value):
                    if not item:
                        raise ValueError(
                            f"additionalQueryParameters[{entity}][{param}][{index}] "
                            "is an empty string"
                        )
        return value

    def query_parameters_for(self, entity: str) -> List[Tuple[str, str]]:
        """Flatten the parameters of one entity into (name, value) pairs."""
        pairs = []
        for param, param_value in self.additional_query_parameters.get(entity, {}).items():
            values = [param_value] if isinstance(param_value, str) else param_value
            pairs.extend((param, value) for value in values)
        return pairs


class IdentityNowEntityConfig(BaseConfig):
    """Per-entity IdentityNow settings."""

    unique_id_attribute: str = Field(..., alias="uniqueIDAttribute", min_length=1)
    filter: Optional[str] = Field(default=None, description="Value of the 'filters' parameter.")
    api_version: Optional[ApiVersion] = Field(
        default=None,
        alias="apiVersion",
        description="Overrides the default API version for this entity.",
    )


class IdentityNowConfig(SourceConfig):
    """IdentityNow configuration schema."""

    api_version: ApiVersion = Field(..., alias="apiVersion")
    entity_config: Dict[str, IdentityNowEntityConfig] = Field(..., alias="entityConfig")

    def api_version_for(self, entity: str) -> str:
        """API version used for an entity."""
        entity_config = self.entity_config.get(entity)
        if entity_config is not None and entity_config.api_version is not None:
            return entity_config.api_version
        return self.api_version
