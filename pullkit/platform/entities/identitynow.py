"""IdentityNow entity definitions.

Any collection of the IdentityNow API (``accounts``, ``entitlements``, ``identities``,
...) can be listed as a flat entity; its unique ID attribute comes from the entity
config. ``accountEntitlements`` is synthesised from the entitlements of every account.

References:
    https://developer.sailpoint.com/docs/api/v3/
"""

from typing import Any, Dict, List, Optional

from pullkit.platform.entities._base import (
    EntityRegistry,
    EntitySpec,
    ParsedPage,
    ResponseParser,
    parse_object_list,
)

VENDOR = "IdentityNow"

ACCOUNTS = "accounts"
ENTITLEMENTS = "entitlements"
ACCOUNT_ENTITLEMENTS = "accountEntitlements"

DEFAULT_ACCOUNT_SORTER = "id"
MEMBERSHIP_DELIMITER = " | "
# List attributes of accounts joined into a single "<name>Membership" attribute.
ATTRIBUTES_TO_CONCATENATE = ("groups", "Groups", "memberOf")


def collection_parser(entity_external_id: str) -> ResponseParser:
    """Parser for bodies that are a bare list of objects."""

    def parse(data: Any) -> ParsedPage:
        return ParsedPage(objects=parse_object_list(data, entity_external_id, VENDOR))

    return parse


def flat_entity(entity_external_id: str, unique_id_attribute: str) -> EntitySpec:
    """Spec for a flat collection at ``/{apiVersion}/{entity}``."""
    return EntitySpec(
        entity_external_id,
        unique_id_attribute,
        entity_external_id,
        collection_parser(entity_external_id),
    )


def concatenate_memberships(record: Dict[str, Any]) -> Dict[str, Any]:
    """Add ``<name>Membership`` string attributes for list-valued membership attributes.

    Lists holding anything but strings are left alone.
    """
    attributes = record.get("attributes")
    if not isinstance(attributes, dict):
        return record

    for name in ATTRIBUTES_TO_CONCATENATE:
        values: Optional[List[Any]] = attributes.get(name)
        if not isinstance(values, list):
            continue
        if all(isinstance(value, str) for value in values):
            record[f"{name}Membership"] = MEMBERSHIP_DELIMITER.join(values)

    return record


IDENTITYNOW_ENTITIES = EntityRegistry(
    [
        flat_entity(ACCOUNTS, "id"),
        flat_entity(ENTITLEMENTS, "id"),
        EntitySpec(
            ACCOUNT_ENTITLEMENTS,
            "id",
            "accounts/{account_id}/entitlements",
            collection_parser(ACCOUNT_ENTITLEMENTS),
        ),
    ]
)
