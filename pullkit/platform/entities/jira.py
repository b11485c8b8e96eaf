"""Jira entity definitions.

Users, issues and groups come from the Jira Cloud platform API, workspaces from the
Jira Service Management API and objects from the Assets API.

References:
    https://developer.atlassian.com/cloud/jira/platform/rest/v3/intro/
    https://developer.atlassian.com/cloud/assets/rest/api-group-object/
"""

from typing import Any, Dict

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.entities._base import (
    EntityRegistry,
    EntitySpec,
    ParsedPage,
    ResponseParser,
    parse_object_list,
    read_bool_flag,
    read_field,
)

VENDOR = "Jira"

USER = "User"
ISSUE = "Issue"
ENHANCED_ISSUE = "EnhancedIssue"
GROUP = "Group"
GROUP_MEMBER = "GroupMember"
WORKSPACE = "Workspace"
OBJECT = "Object"

# Multi-select custom fields returned as [{"value": ...}] and flattened to their values.
FLATTENED_CUSTOM_FIELDS = ("customfield_10069", "customfield_11605")


def parse_users_response(data: Any) -> ParsedPage:
    """Users come back as a bare list."""
    if not isinstance(data, list):
        raise AdapterError(
            f"Failed to unmarshal Jira users response: expected a list, got {type(data).__name__}.",
            ErrorCode.INTERNAL,
        )
    return ParsedPage(objects=parse_object_list(data, USER, VENDOR))


def parse_issues_response(data: Any) -> ParsedPage:
    """Parse ``{"issues": [...]}`` for offset-paginated issue search."""
    issues = parse_object_list(read_field(data, "issues", "issues", VENDOR), ISSUE, VENDOR)
    return ParsedPage(objects=[_flatten_custom_fields(issue) for issue in issues])


def parse_enhanced_issues_response(data: Any) -> ParsedPage:
    """Parse ``{"issues": [...], "isLast": bool, "nextPageToken": str}``."""
    issues = parse_object_list(read_field(data, "issues", "issues", VENDOR), ISSUE, VENDOR)
    is_last = read_bool_flag(data, "isLast", ISSUE, VENDOR)

    next_token = data.get("nextPageToken")
    if next_token is not None and not isinstance(next_token, str):
        raise AdapterError(
            f"Field nextPageToken exists in Jira {ISSUE} response but field value is not a "
            f"string: {type(next_token).__name__}.",
            ErrorCode.INTERNAL,
        )

    return ParsedPage(
        objects=[_flatten_custom_fields(issue) for issue in issues],
        next_token=next_token,
        is_last=is_last,
    )


def values_parser(entity_external_id: str, last_page_field: str) -> ResponseParser:
    """Parser for ``{"values": [...], <last_page_field>: bool}`` bodies."""

    def parse(data: Any) -> ParsedPage:
        values = read_field(data, "values", entity_external_id, VENDOR)
        return ParsedPage(
            objects=parse_object_list(values, entity_external_id, VENDOR),
            is_last=read_bool_flag(data, last_page_field, entity_external_id, VENDOR),
        )

    return parse


def _flatten_custom_fields(issue: Dict[str, Any]) -> Dict[str, Any]:
    fields = issue.get("fields")
    if fields is None:
        return issue
    if not isinstance(fields, dict):
        raise AdapterError(
            f"Failed to parse fields field in Jira {ISSUE} object as an object.",
            ErrorCode.INTERNAL,
        )

    for custom_field in FLATTENED_CUSTOM_FIELDS:
        options = fields.get(custom_field)
        if options is None:
            continue
        if not isinstance(options, list):
            raise AdapterError(
                f"Failed to parse {custom_field} field in Jira {ISSUE} object as a list.",
                ErrorCode.INTERNAL,
            )
        values = []
        for option in options:
            value = option.get("value") if isinstance(option, dict) else None
            if not isinstance(value, str):
                raise AdapterError(
                    f"Failed to parse value field in Jira {custom_field} object as string: "
                    f"{option}.",
                    ErrorCode.INTERNAL,
                )
            values.append(value)
        fields[custom_field] = values

    return issue


JIRA_ENTITIES = EntityRegistry(
    [
        EntitySpec(USER, "accountId", "users/search", parse_users_response),
        EntitySpec(ISSUE, "id", "search", parse_issues_response),
        EntitySpec(
            ENHANCED_ISSUE,
            "id",
            "search/jql",
            parse_enhanced_issues_response,
            token_paginated=True,
        ),
        EntitySpec(GROUP, "groupId", "group/bulk", values_parser(GROUP, "isLast")),
        # "id" is built from the group ID and the member's account ID.
        EntitySpec(
            GROUP_MEMBER,
            "id",
            "group/member",
            values_parser(GROUP_MEMBER, "isLast"),
            parent=GROUP,
        ),
        EntitySpec(WORKSPACE, "workspaceId", "workspace", values_parser(WORKSPACE, "isLastPage")),
        # globalId already combines the workspace and object IDs.
        EntitySpec(
            OBJECT,
            "globalId",
            "object/aql",
            values_parser(OBJECT, "isLast"),
            parent=WORKSPACE,
            method="POST",
        ),
    ]
)
