"""Jira datasource.

Lists users, issues, groups and group members from Jira Cloud, plus workspaces and
objects from Jira Service Management Assets. Cursors are strings: numeric ``startAt``
offsets for most entities, opaque ``nextPageToken`` values for enhanced issue search.

Group members and objects are nested in groups and workspaces; their pages are driven by
the collection advancer, one group (or workspace) at a time.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote, quote_plus

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.configs.config import JiraConfig
from pullkit.platform.decorators import source
from pullkit.platform.entities._base import EntityRegistry, EntitySpec
from pullkit.platform.entities.jira import (
    ENHANCED_ISSUE,
    GROUP_MEMBER,
    ISSUE,
    JIRA_ENTITIES,
    OBJECT,
    WORKSPACE,
)
from pullkit.platform.pagination.collection import CollectionAdvancer
from pullkit.platform.pagination.cursor import CompositeCursor
from pullkit.platform.pagination.validation import validate_composite_cursor
from pullkit.platform.sources._base import BaseDatasource
from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse

FIRST_PAGE = "0"
MAX_PAGE_SIZE = 1000


@source(
    name="Jira",
    short_name="jira",
    cursor_type=str,
    config_class=JiraConfig,
    max_page_size=MAX_PAGE_SIZE,
    auth_method="basic",
    labels=["Project Management", "Issue Tracking"],
)
class JiraDatasource(BaseDatasource[str]):
    """Jira datasource backed by the Jira REST API v3 and the Assets API."""

    def __init__(self, registry: EntityRegistry = JIRA_ENTITIES, http_client_factory=None):
        """Initialize the Jira datasource."""
        super().__init__(registry, http_client_factory)

    async def get_page(self, request: DatasourceRequest[str]) -> DatasourceResponse[str]:
        """Get one page of Jira objects.

        For nested entities this first resolves the group (or workspace) whose members
        to list, which may take one extra call.
        """
        config: JiraConfig = request.config
        entity_external_id = request.entity_external_id
        if entity_external_id == ISSUE and config.enhanced_issue_search:
            entity_external_id = ENHANCED_ISSUE

        log = self.logger.with_context(
            entity_external_id=entity_external_id, page_size=request.page_size
        )
        log.info("Starting datasource request")

        spec = self.registry.get_spec(entity_external_id)
        advancer: Optional[CollectionAdvancer[str]] = None

        if spec.is_nested:
            advancer = CollectionAdvancer(
                self.get_page,
                self.registry.parent_of(spec),
                cursor_type=str,
                start=FIRST_PAGE,
                vendor=self.source_name,
                log=log,
            )
            step = await advancer.advance(request)
            if step.response is not None:
                return step.response
            if step.done:
                return DatasourceResponse()
            cursor = step.cursor
        else:
            validate_composite_cursor(request.cursor, entity_external_id, False)
            cursor = request.cursor
            if cursor is None or cursor.cursor is None:
                cursor = self._cursor(cursor=FIRST_PAGE)

        validate_composite_cursor(cursor, entity_external_id, spec.is_nested)

        url = self.build_url(request, spec, cursor)
        body = {"qlQuery": config.objects_ql_query} if spec.external_id == OBJECT else None
        response = await self._send(request, spec.method, url, json_body=body)
        if response.status_code != 200:
            return self._error_response(response, url)

        parsed = spec.parse_response(self._decode_json(response, spec.external_id))

        if spec.token_paginated:
            next_value = None if parsed.is_last else parsed.next_token
        else:
            next_offset = self._next_offset(parsed, request.page_size, cursor.offset())
            next_value = str(next_offset) if next_offset is not None else None

        objects = parsed.objects
        if spec.external_id == GROUP_MEMBER:
            objects = [self._group_member(member, cursor.collection_id) for member in objects]

        if advancer is not None:
            next_cursor = advancer.compose(cursor, next_value)
        elif next_value is not None:
            next_cursor = self._cursor(cursor=next_value)
        else:
            next_cursor = None

        result = DatasourceResponse(
            status_code=response.status_code,
            retry_after_header=response.headers.get("Retry-After"),
            objects=objects,
            next_cursor=next_cursor,
        )
        self._log_completed(result)
        return result

    def build_url(
        self, request: DatasourceRequest[str], spec: EntitySpec, cursor: CompositeCursor[str]
    ) -> str:
        """Build the listing URL of an entity page."""
        config: JiraConfig = request.config
        position = cursor.cursor if cursor.cursor is not None else FIRST_PAGE

        if spec.external_id == WORKSPACE:
            url = f"{request.base_url}/rest/servicedeskapi/assets/{spec.endpoint}?"
        elif spec.external_id == OBJECT:
            url = (
                f"{config.resolved_asset_base_url}/workspace/{quote(cursor.collection_id, safe='')}"
                "/v1/object/aql?includeAttributes=true&"
            )
        else:
            url = f"{request.base_url}/rest/api/3/{spec.endpoint}?"
            if spec.external_id == GROUP_MEMBER:
                url += f"groupId={quote_plus(cursor.collection_id)}&"
            elif spec.external_id in (ISSUE, ENHANCED_ISSUE) and config.issues_jql_filter:
                url += f"jql={quote_plus(config.issues_jql_filter)}&"

        if spec.token_paginated:
            # The first page of token-paginated search carries no token at all.
            if position != FIRST_PAGE:
                url += f"nextPageToken={quote_plus(position)}&"
            return f"{url}maxResults={request.page_size}&fields=*navigable"

        return f"{url}startAt={position}&maxResults={request.page_size}"

    @staticmethod
    def _group_member(member: Dict[str, Any], group_id: str) -> Dict[str, Any]:
        account_id = member.get("accountId")
        if not isinstance(account_id, str):
            raise AdapterError(
                "Failed to parse accountId field in Jira GroupMember response as string.",
                ErrorCode.INTERNAL,
            )
        member["groupId"] = group_id
        member["id"] = f"{group_id}-{account_id}"
        return member
