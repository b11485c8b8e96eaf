"""Base datasource class."""

import json
from abc import abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Callable, ClassVar, Dict, Generic, Optional, Type

import httpx
from pydantic import BaseModel, ValidationError

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.core.logging import ContextualLogger, logger
from pullkit.platform.entities._base import EntityRegistry, ParsedPage
from pullkit.platform.pagination.cursor import CompositeCursor, T
from pullkit.platform.pagination.offset import next_cursor_from_page_size
from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse
from pullkit.schemas.page import PageRequest

_MAX_LOGGED_BODY_CHARS = 2048


class BaseDatasource(Generic[T]):
    """Base class for all datasources.

    A datasource turns a typed DatasourceRequest into vendor HTTP calls and returns a
    typed DatasourceResponse. Calls are made one after another. Nothing is kept between
    page requests; the cursor carries all continuation state.
    """

    source_name: ClassVar[str]
    short_name: ClassVar[str]
    cursor_type: ClassVar[type]
    config_class: ClassVar[Type[BaseModel]]
    max_page_size: ClassVar[int]
    auth_method: ClassVar[str]

    def __init__(
        self,
        registry: EntityRegistry,
        http_client_factory: Optional[Callable[..., httpx.AsyncClient]] = None,
    ):
        """Initialize the datasource.

        Args:
            registry: Entities this datasource can list.
            http_client_factory: Callable that creates HTTP clients, or None for vanilla httpx.
        """
        self.registry = registry
        self._http_client_factory = http_client_factory
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self) -> ContextualLogger:
        """Get the logger for this datasource, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return logger.with_context(datasource=self.short_name)

    def set_logger(self, contextual_logger: ContextualLogger) -> None:
        """Set a contextual logger for this datasource."""
        self._logger = contextual_logger

    @asynccontextmanager
    async def http_client(self, **kwargs):
        """Get HTTP client with proper lifecycle management.

        Usage:
            async with self.http_client(timeout=10) as client:
                response = await client.get(url)
        """
        if self._http_client_factory:
            async with self._http_client_factory(**kwargs) as client:
                yield client
        else:
            async with httpx.AsyncClient(**kwargs) as client:
                yield client

    @classmethod
    def parse_config(cls, raw_config: Dict[str, Any]) -> BaseModel:
        """Parse the request config into the datasource's config model.

        Raises:
            AdapterError: INVALID_DATASOURCE_CONFIG if the config does not validate.
        """
        try:
            return cls.config_class.model_validate(raw_config or {})
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise AdapterError(
                f"{cls.source_name} config is invalid: {details}.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            ) from e

    def unique_id_attribute(self, entity_external_id: str, config: BaseModel) -> str:
        """Return the unique ID attribute of an entity.

        Raises:
            AdapterError: INVALID_ENTITY_CONFIG for an unknown entity.
        """
        if entity_external_id not in self.registry:
            raise AdapterError(
                f"{self.source_name} entity external ID is invalid.",
                ErrorCode.INVALID_ENTITY_CONFIG,
            )
        return self.registry[entity_external_id].unique_id_attribute

    def validate_page_request(self, request: PageRequest, config: BaseModel) -> None:
        """Datasource-specific checks on a page request. Raises AdapterError."""
        return None

    @abstractmethod
    async def get_page(self, request: DatasourceRequest[T]) -> DatasourceResponse[T]:
        """Get one page of objects."""
        pass

    async def _send(
        self,
        request: DatasourceRequest[T],
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make one authenticated call to the vendor.

        Raises:
            AdapterError: INTERNAL for transport failures. Timeouts and connection errors
                are flagged retryable.
        """
        headers = {"Accept": "application/json"}
        if request.authorization:
            headers["Authorization"] = request.authorization
        if json_body is not None:
            headers["Content-Type"] = "application/json"
        auth = httpx.BasicAuth(*request.basic_auth) if request.basic_auth else None

        self.logger.info("Sending request to datasource", extra={"request_url": url})

        try:
            async with self.http_client(timeout=request.request_timeout_seconds) as client:
                return await client.request(method, url, headers=headers, auth=auth, json=json_body)
        except httpx.TimeoutException as e:
            self.logger.error(
                f"Request to datasource timed out: {e!r}", extra={"request_url": url}
            )
            raise AdapterError(
                f"Failed to execute {self.source_name} request: {e!r}. Request exceeded the "
                f"configured timeout of {request.request_timeout_seconds} seconds.",
                ErrorCode.INTERNAL,
                retryable=True,
            ) from e
        except httpx.RequestError as e:
            self.logger.error(f"Request to datasource failed: {e!r}", extra={"request_url": url})
            raise AdapterError(
                f"Failed to execute {self.source_name} request: {e!r}.",
                ErrorCode.INTERNAL,
                retryable=isinstance(e, httpx.TransportError),
            ) from e

    def _error_response(self, response: httpx.Response, url: str) -> DatasourceResponse[T]:
        retry_after = response.headers.get("Retry-After")
        self.logger.error(
            "Datasource responded with an error",
            extra={
                "request_url": url,
                "status_code": response.status_code,
                "retry_after": retry_after,
                "response_body": response.text[:_MAX_LOGGED_BODY_CHARS],
            },
        )
        return DatasourceResponse.from_error_status(response.status_code, retry_after)

    def _decode_json(self, response: httpx.Response, entity_external_id: str) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise AdapterError(
                f"Failed to unmarshal {self.source_name} {entity_external_id} response: {e}.",
                ErrorCode.INTERNAL,
            ) from e

    def _next_offset(self, parsed: ParsedPage, page_size: int, offset: int) -> Optional[int]:
        if parsed.is_last:
            return None
        return next_cursor_from_page_size(len(parsed.objects), page_size, offset)

    def _log_completed(self, response: DatasourceResponse[T]) -> None:
        self.logger.info(
            "Datasource request completed successfully",
            extra={
                "status_code": response.status_code,
                "object_count": len(response.objects),
                "has_next_cursor": response.next_cursor is not None,
            },
        )

    def _cursor(self, **fields: Any) -> CompositeCursor[T]:
        return CompositeCursor[self.cursor_type](**fields)
