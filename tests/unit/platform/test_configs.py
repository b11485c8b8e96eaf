"""Unit tests for datasource configs."""

import pytest
from pydantic import ValidationError

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.configs.config import (
    DEFAULT_JIRA_ASSET_BASE_URL,
    IdentityNowConfig,
    JiraConfig,
    PagerDutyConfig,
)
from pullkit.platform.sources.identitynow import IdentityNowDatasource
from pullkit.platform.sources.pagerduty import PagerDutyDatasource


def test_jira_config_from_camel_case():
    config = JiraConfig.model_validate(
        {
            "issuesJqlFilter": "project = SGNL",
            "enhancedIssueSearch": True,
            "requestTimeoutSeconds": 30,
            "unknownKey": "ignored",
        }
    )

    assert config.issues_jql_filter == "project = SGNL"
    assert config.enhanced_issue_search is True
    assert config.request_timeout_seconds == 30
    assert config.resolved_asset_base_url == DEFAULT_JIRA_ASSET_BASE_URL


def test_jira_custom_asset_base_url():
    config = JiraConfig.model_validate({"assetBaseUrl": "https://assets.example.com"})

    assert config.resolved_asset_base_url == "https://assets.example.com"


def test_jira_config_rejects_empty_filter():
    with pytest.raises(ValidationError):
        JiraConfig.model_validate({"issuesJqlFilter": ""})


def test_pagerduty_query_parameters():
    config = PagerDutyConfig.model_validate(
        {
            "additionalQueryParameters": {
                "users": {"include[]": ["contact_methods", "teams"], "query": "ops"},
            }
        }
    )

    assert config.query_parameters_for("users") == [
        ("include[]", "contact_methods"),
        ("include[]", "teams"),
        ("query", "ops"),
    ]
    assert config.query_parameters_for("teams") == []


@pytest.mark.parametrize(
    "params, message",
    [
        ({"query": ""}, "additionalQueryParameters[users][query] is an empty string"),
        ({"include[]": []}, "additionalQueryParameters[users][include[]] is an empty list"),
        (
            {"include[]": ["teams", ""]},
            "additionalQueryParameters[users][include[]][1] is an empty string",
        ),
    ],
)
def test_pagerduty_rejects_empty_query_parameters(params, message):
    with pytest.raises(ValidationError) as exc_info:
        PagerDutyConfig.model_validate({"additionalQueryParameters": {"users": params}})

    assert message in str(exc_info.value)


def test_identitynow_api_version_per_entity():
    config = IdentityNowConfig.model_validate(
        {
            "apiVersion": "v3",
            "entityConfig": {
                "accounts": {"uniqueIDAttribute": "id"},
                "entitlements": {"uniqueIDAttribute": "id", "apiVersion": "beta"},
            },
        }
    )

    assert config.api_version_for("accounts") == "v3"
    assert config.api_version_for("entitlements") == "beta"
    assert config.api_version_for("roles") == "v3"


@pytest.mark.parametrize(
    "raw",
    [
        {"entityConfig": {}},
        {"apiVersion": "v2", "entityConfig": {}},
        {"apiVersion": "v3"},
        {"apiVersion": "v3", "entityConfig": {"accounts": {}}},
    ],
)
def test_identitynow_config_is_validated(raw):
    with pytest.raises(ValidationError):
        IdentityNowConfig.model_validate(raw)


def test_parse_config_reports_invalid_fields():
    with pytest.raises(AdapterError) as exc_info:
        IdentityNowDatasource.parse_config({"apiVersion": "v3"})

    assert exc_info.value.code == ErrorCode.INVALID_DATASOURCE_CONFIG
    assert exc_info.value.message.startswith("IdentityNow config is invalid: entityConfig:")


def test_parse_config_accepts_missing_config():
    config = PagerDutyDatasource.parse_config({})

    assert isinstance(config, PagerDutyConfig)
    assert config.request_timeout_seconds is None
