"""Schemas for pullkit."""

from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse
from pullkit.schemas.page import BasicAuth, PageRequest, PageRequestAuth, PageResponse

__all__ = [
    "BasicAuth",
    "DatasourceRequest",
    "DatasourceResponse",
    "PageRequest",
    "PageRequestAuth",
    "PageResponse",
]
