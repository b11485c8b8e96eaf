"""Unit tests for entity specs, registries and response parsers."""

import pytest

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.entities._base import EntityRegistry, EntitySpec, ParsedPage
from pullkit.platform.entities.identitynow import IDENTITYNOW_ENTITIES, concatenate_memberships
from pullkit.platform.entities.jira import (
    JIRA_ENTITIES,
    parse_enhanced_issues_response,
    parse_users_response,
    values_parser,
)
from pullkit.platform.entities.pagerduty import PAGERDUTY_ENTITIES, more_parser


def _spec(external_id: str, parent=None) -> EntitySpec:
    return EntitySpec(external_id, "id", external_id.lower(), lambda data: ParsedPage(), parent)


def test_registry_lookup():
    registry = EntityRegistry([_spec("Group"), _spec("GroupMember", parent="Group")])

    member = registry.get_spec("GroupMember")

    assert member.is_nested
    assert registry.parent_of(member).external_id == "Group"
    assert registry.parent_of(registry["Group"]) is None
    assert set(registry) == {"Group", "GroupMember"}
    assert len(registry) == 2


def test_registry_rejects_unknown_parent():
    with pytest.raises(ValueError):
        EntityRegistry([_spec("GroupMember", parent="Group")])


def test_registry_is_read_only():
    registry = EntityRegistry([_spec("Group")])

    with pytest.raises(TypeError):
        registry["User"] = _spec("User")


def test_unknown_entity():
    with pytest.raises(AdapterError) as exc_info:
        JIRA_ENTITIES.get_spec("Sprint")

    assert exc_info.value.code == ErrorCode.INVALID_ENTITY_CONFIG
    assert exc_info.value.message == "Provided entity external ID is invalid: Sprint."


def test_builtin_registries():
    assert JIRA_ENTITIES["GroupMember"].parent == "Group"
    assert JIRA_ENTITIES["Object"].parent == "Workspace"
    assert JIRA_ENTITIES["Object"].method == "POST"
    assert JIRA_ENTITIES["EnhancedIssue"].token_paginated
    assert PAGERDUTY_ENTITIES["members"].parent == "teams"
    assert not IDENTITYNOW_ENTITIES["accountEntitlements"].is_nested


def test_jira_users_must_be_a_list():
    with pytest.raises(AdapterError) as exc_info:
        parse_users_response({"values": []})

    assert exc_info.value.code == ErrorCode.INTERNAL


def test_values_parser_reads_last_page_flag():
    parsed = values_parser("Workspace", "isLastPage")(
        {"values": [{"workspaceId": "w1"}], "isLastPage": True}
    )

    assert parsed.objects == [{"workspaceId": "w1"}]
    assert parsed.is_last is True


def test_values_parser_rejects_non_bool_flag():
    with pytest.raises(AdapterError) as exc_info:
        values_parser("Group", "isLast")({"values": [], "isLast": "false"})

    assert exc_info.value.message == (
        "Field isLast exists in Jira Group response but field value is not a bool: str."
    )


def test_values_parser_rejects_non_object_items():
    with pytest.raises(AdapterError) as exc_info:
        values_parser("Group", "isLast")({"values": ["admins"]})

    assert exc_info.value.message == (
        "An object in Entity: Group could not be parsed. Expected: object. Got: str."
    )


def test_enhanced_issue_parser():
    parsed = parse_enhanced_issues_response(
        {"issues": [{"id": "1"}], "nextPageToken": "abc", "isLast": False}
    )

    assert parsed.next_token == "abc"
    assert parsed.is_last is False


def test_custom_field_options_must_have_values():
    with pytest.raises(AdapterError):
        parse_enhanced_issues_response(
            {"issues": [{"id": "1", "fields": {"customfield_11605": [{"id": "7"}]}}]}
        )


def test_pagerduty_more_flag():
    assert more_parser("users")({"users": [], "more": False}).is_last is True
    assert more_parser("users")({"users": [], "more": True}).is_last is False
    assert more_parser("users")({"users": []}).is_last is None


def test_concatenate_memberships():
    record = concatenate_memberships(
        {"id": "a1", "attributes": {"groups": ["g1", "g2"], "Groups": [], "memberOf": [1]}}
    )

    assert record["groupsMembership"] == "g1 | g2"
    assert record["GroupsMembership"] == ""
    assert "memberOfMembership" not in record


def test_concatenate_memberships_without_attributes():
    assert concatenate_memberships({"id": "a1"}) == {"id": "a1"}
