"""Entity specs and the registry datasources look them up in."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from pullkit.core.exceptions import AdapterError, ErrorCode


@dataclass(frozen=True)
class ParsedPage:
    """Objects read from one vendor response body, plus its pagination markers.

    Attributes:
        objects: The records in the body, in vendor order.
        next_token: Opaque token for the next page, for token-paginated endpoints.
        is_last: Explicit last-page flag, when the vendor sends one.
    """

    objects: List[Dict[str, Any]] = field(default_factory=list)
    next_token: Optional[str] = None
    is_last: Optional[bool] = None


ResponseParser = Callable[[Any], ParsedPage]


@dataclass(frozen=True)
class EntitySpec:
    """How to list one entity of a datasource.

    Attributes:
        external_id: Entity name used in page requests, e.g. ``GroupMember``.
        unique_id_attribute: Attribute holding the unique ID of each object.
        endpoint: Vendor path of the listing endpoint, relative to the API root.
        parse_response: Turns the decoded JSON body into a ParsedPage.
        parent: External ID of the parent collection entity, for nested members.
        method: HTTP method of the listing call.
        token_paginated: Whether pages are chained by an opaque vendor token rather
            than by offset.
    """

    external_id: str
    unique_id_attribute: str
    endpoint: str
    parse_response: ResponseParser
    parent: Optional[str] = None
    method: str = "GET"
    token_paginated: bool = False

    @property
    def is_nested(self) -> bool:
        """Whether objects of this entity live inside a parent collection."""
        return self.parent is not None


class EntityRegistry(Mapping[str, EntitySpec]):
    """Read-only lookup of entity specs by external ID."""

    def __init__(self, specs: Iterable[EntitySpec]):
        """Build the registry. Parents of nested specs must be registered too."""
        table = {spec.external_id: spec for spec in specs}
        for spec in table.values():
            if spec.parent is not None and spec.parent not in table:
                raise ValueError(
                    f"Entity '{spec.external_id}' refers to unknown parent '{spec.parent}'"
                )
        self._specs = MappingProxyType(table)

    def __getitem__(self, external_id: str) -> EntitySpec:
        return self._specs[external_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def get_spec(self, external_id: str) -> EntitySpec:
        """Return the spec of an entity.

        Raises:
            AdapterError: INVALID_ENTITY_CONFIG for an unknown entity.
        """
        spec = self._specs.get(external_id)
        if spec is None:
            raise AdapterError(
                f"Provided entity external ID is invalid: {external_id}.",
                ErrorCode.INVALID_ENTITY_CONFIG,
            )
        return spec

    def parent_of(self, spec: EntitySpec) -> Optional[EntitySpec]:
        """Return the parent spec of a nested entity, None for a flat one."""
        if spec.parent is None:
            return None
        return self._specs[spec.parent]


def parse_object_list(values: Any, entity_external_id: str, vendor: str) -> List[Dict[str, Any]]:
    """Check that every item of a vendor list is a JSON object.

    Raises:
        AdapterError: INTERNAL if ``values`` is not a list of objects.
    """
    if not isinstance(values, list):
        raise AdapterError(
            f"Entity field exists in {vendor} {entity_external_id} response but field value "
            f"is not a list of objects: {type(values).__name__}.",
            ErrorCode.INTERNAL,
        )
    for value in values:
        if not isinstance(value, dict):
            raise AdapterError(
                f"An object in Entity: {entity_external_id} could not be parsed. "
                f"Expected: object. Got: {type(value).__name__}.",
                ErrorCode.INTERNAL,
            )
    return values


def read_field(data: Any, field_name: str, entity_external_id: str, vendor: str) -> Any:
    """Read a required top-level field of a vendor response body."""
    if not isinstance(data, dict):
        raise AdapterError(
            f"Failed to unmarshal {vendor} {entity_external_id} response: expected an object, "
            f"got {type(data).__name__}.",
            ErrorCode.INTERNAL,
        )
    if field_name not in data:
        raise AdapterError(
            f"Field missing in {vendor} {entity_external_id} response: {field_name}.",
            ErrorCode.INTERNAL,
        )
    return data[field_name]


def read_bool_flag(
    data: Dict[str, Any], field_name: str, entity_external_id: str, vendor: str
) -> Optional[bool]:
    """Read an optional boolean paging flag such as ``isLast`` or ``more``."""
    if field_name not in data:
        return None
    value = data[field_name]
    if not isinstance(value, bool):
        raise AdapterError(
            f"Field {field_name} exists in {vendor} {entity_external_id} response but field "
            f"value is not a bool: {type(value).__name__}.",
            ErrorCode.INTERNAL,
        )
    return value
