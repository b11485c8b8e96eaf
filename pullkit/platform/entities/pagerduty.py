"""PagerDuty entity definitions.

Every listing endpoint answers ``{"<entity>": [...], "more": bool, ...}``.

References:
    https://developer.pagerduty.com/api-reference/
"""

from typing import Any

from pullkit.platform.entities._base import (
    EntityRegistry,
    EntitySpec,
    ParsedPage,
    ResponseParser,
    parse_object_list,
    read_bool_flag,
    read_field,
)

VENDOR = "PagerDuty"

USERS = "users"
TEAMS = "teams"
MEMBERS = "members"
ONCALLS = "oncalls"


def more_parser(entity_external_id: str) -> ResponseParser:
    """Parser for bodies keyed by the entity name with a ``more`` flag."""

    def parse(data: Any) -> ParsedPage:
        values = read_field(data, entity_external_id, entity_external_id, VENDOR)
        more = read_bool_flag(data, "more", entity_external_id, VENDOR)
        return ParsedPage(
            objects=parse_object_list(values, entity_external_id, VENDOR),
            is_last=None if more is None else not more,
        )

    return parse


PAGERDUTY_ENTITIES = EntityRegistry(
    [
        EntitySpec(USERS, "id", USERS, more_parser(USERS)),
        EntitySpec(TEAMS, "id", TEAMS, more_parser(TEAMS)),
        # "id" is built from the team ID and the user ID.
        EntitySpec(MEMBERS, "id", MEMBERS, more_parser(MEMBERS), parent=TEAMS),
        # "id" is built from the escalation policy, user and shift bounds.
        EntitySpec(ONCALLS, "id", ONCALLS, more_parser(ONCALLS)),
    ]
)
