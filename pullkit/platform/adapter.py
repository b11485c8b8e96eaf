"""Adapter: the caller-facing page interface of a datasource.

An adapter validates a PageRequest, decodes its opaque cursor, calls the datasource and
encodes the next cursor. Vendor error statuses are passed through in the response, for
the caller to retry or give up on.
"""

from typing import Generic

from pydantic import BaseModel

from pullkit.core.config import settings
from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.pagination.cursor import CompositeCursor, T, decode_cursor, encode_cursor
from pullkit.platform.sources._base import BaseDatasource
from pullkit.schemas.datasource import DatasourceRequest
from pullkit.schemas.page import PageRequest, PageResponse


class Adapter(Generic[T]):
    """Serves page requests for one datasource.

    Usage:
        adapter = Adapter(JiraDatasource())
        page = await adapter.get_page(request)
        while page.next_cursor:
            page = await adapter.get_page(request.model_copy(update={"cursor": page.next_cursor}))
    """

    def __init__(self, datasource: BaseDatasource[T]):
        """Initialize the adapter for a datasource instance."""
        self.datasource = datasource

    async def get_page(self, request: PageRequest) -> PageResponse:
        """Get one page of objects.

        Raises:
            AdapterError: For invalid requests and local failures. Vendor error
                statuses are returned, not raised.
        """
        config = self.datasource.parse_config(request.config)
        unique_id_attribute = self.validate_page_request(request, config)
        cursor = decode_cursor(request.cursor, self.datasource.cursor_type)

        response = await self.datasource.get_page(
            self._datasource_request(request, config, unique_id_attribute, cursor)
        )

        if not 200 <= response.status_code < 300:
            self.datasource.logger.warning(
                f"{self.datasource.source_name} responded with status {response.status_code}",
                extra={"entity_external_id": request.entity_id},
            )
            return PageResponse(
                status_code=response.status_code,
                retry_after_header=response.retry_after_header,
            )

        return PageResponse(
            status_code=response.status_code,
            retry_after_header=response.retry_after_header,
            objects=response.objects,
            next_cursor=encode_cursor(response.next_cursor),
        )

    def validate_page_request(self, request: PageRequest, config: BaseModel) -> str:
        """Check a page request before any call is made.

        Returns:
            The unique ID attribute of the requested entity.

        Raises:
            AdapterError: On the first failed check.
        """
        vendor = self.datasource.source_name

        if request.address.strip().lower().startswith("http://"):
            raise AdapterError(
                "The provided HTTP protocol is not supported.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )

        if self.datasource.auth_method == "basic" and request.auth.basic is None:
            raise AdapterError(
                f"{vendor} auth is missing required basic credentials.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )

        if request.page_size < 1:
            raise AdapterError(
                f"{vendor} provided page size ({request.page_size}) must be greater than 0.",
                ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
            )
        if request.page_size > self.datasource.max_page_size:
            raise AdapterError(
                f"{vendor} provided page size ({request.page_size}) exceeds the maximum "
                f"({self.datasource.max_page_size}).",
                ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
            )

        if request.ordered:
            raise AdapterError(
                f"{vendor} Ordered property must be false.",
                ErrorCode.INVALID_ENTITY_CONFIG,
            )

        unique_id_attribute = self.datasource.unique_id_attribute(request.entity_id, config)
        if unique_id_attribute not in request.attributes:
            raise AdapterError(
                f"{vendor} requested entity attributes are missing a unique ID attribute: "
                f"{unique_id_attribute}.",
                ErrorCode.INVALID_ENTITY_CONFIG,
            )

        self.datasource.validate_page_request(request, config)
        return unique_id_attribute

    def _datasource_request(
        self,
        request: PageRequest,
        config: BaseModel,
        unique_id_attribute: str,
        cursor: CompositeCursor[T],
    ) -> DatasourceRequest[T]:
        timeout = getattr(config, "request_timeout_seconds", None)
        basic = request.auth.basic
        return DatasourceRequest(
            entity_external_id=request.entity_id,
            page_size=request.page_size,
            base_url=normalize_address(request.address),
            config=config,
            unique_id_attribute=unique_id_attribute,
            cursor=cursor,
            authorization=request.auth.http_authorization,
            basic_auth=(basic.username, basic.password) if basic is not None else None,
            request_timeout_seconds=timeout or settings.DEFAULT_REQUEST_TIMEOUT_SECONDS,
            attributes=tuple(request.attributes),
        )


def normalize_address(address: str) -> str:
    """Trim an address, default its scheme to https and drop trailing slashes."""
    address = address.strip()
    if not address.lower().startswith("https://"):
        address = f"https://{address}"
    return address.rstrip("/")
