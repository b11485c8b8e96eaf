"""Typed request and response passed between an adapter and its datasource."""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Tuple

from pullkit.platform.pagination.cursor import CompositeCursor, T


@dataclass(frozen=True)
class DatasourceRequest(Generic[T]):
    """A decoded page request for one datasource call."""

    entity_external_id: str
    page_size: int
    base_url: str
    config: Any
    unique_id_attribute: str = "id"
    cursor: Optional[CompositeCursor[T]] = None
    authorization: Optional[str] = None
    basic_auth: Optional[Tuple[str, str]] = None
    request_timeout_seconds: float = 120
    attributes: Tuple[str, ...] = ()


@dataclass
class DatasourceResponse(Generic[T]):
    """A datasource page.

    Responses with a non-200 status carry only the status and ``Retry-After`` value.
    """

    status_code: int = 200
    retry_after_header: Optional[str] = None
    objects: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[CompositeCursor[T]] = None

    @classmethod
    def from_error_status(
        cls, status_code: int, retry_after_header: Optional[str] = None
    ) -> "DatasourceResponse[T]":
        """Build a response for a vendor error status."""
        return cls(status_code=status_code, retry_after_header=retry_after_header)
