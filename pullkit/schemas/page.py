"""Page request and response schemas.

These are the caller-facing shapes of a single ``get_page`` call. Cursors are opaque
strings at this layer.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BasicAuth(BaseModel):
    """Username and password for HTTP basic auth."""

    username: str = Field(..., description="Basic auth username, e.g. the account email.")
    password: str = Field(..., description="Basic auth password or API token.")


class PageRequestAuth(BaseModel):
    """Credentials for a page request. Which one is used depends on the datasource."""

    http_authorization: Optional[str] = Field(
        default=None,
        description="Value of the Authorization header, e.g. 'Bearer <token>'.",
    )
    basic: Optional[BasicAuth] = Field(default=None, description="Basic auth credentials.")


class PageRequest(BaseModel):
    """Request for one page of objects of one entity."""

    entity_id: str = Field(..., description="External ID of the entity to list.")
    page_size: int = Field(..., description="Maximum number of objects to return.")
    cursor: str = Field(
        default="",
        description="Opaque cursor returned by the previous page. Empty for the first page.",
    )
    auth: PageRequestAuth = Field(default_factory=PageRequestAuth)
    address: str = Field(..., description="Base address of the datasource.")
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Datasource-specific configuration, keyed by its camelCase names.",
    )
    attributes: List[str] = Field(
        default_factory=list,
        description="External IDs of the attributes requested for each object.",
    )
    ordered: bool = Field(default=False, description="Whether results must be ordered.")


class PageResponse(BaseModel):
    """One page of objects.

    ``next_cursor`` is empty once the full entity set has been returned. A non-2xx
    ``status_code`` is the datasource's own status, passed through untouched.
    """

    status_code: int = 200
    retry_after_header: Optional[str] = None
    objects: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: str = ""

    @property
    def success(self) -> bool:
        """Whether the datasource answered with a 2xx status."""
        return 200 <= self.status_code < 300
