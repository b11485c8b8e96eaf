"""IdentityNow datasource.

Flat collections are offset-paginated with ``limit``/``offset``. Account entitlements
are listed per account and packed into pages by the batch entitlement filler.
"""

from typing import Optional
from urllib.parse import quote

from pullkit.core.config import settings
from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.configs.config import IdentityNowConfig
from pullkit.platform.decorators import source
from pullkit.platform.entities._base import EntityRegistry, EntitySpec
from pullkit.platform.entities.identitynow import (
    ACCOUNT_ENTITLEMENTS,
    ACCOUNTS,
    DEFAULT_ACCOUNT_SORTER,
    IDENTITYNOW_ENTITIES,
    concatenate_memberships,
    flat_entity,
)
from pullkit.platform.pagination.batch import BatchEntitlementFiller
from pullkit.platform.pagination.validation import validate_composite_cursor
from pullkit.platform.sources._base import BaseDatasource
from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse
from pullkit.schemas.page import PageRequest

MAX_PAGE_SIZE = 250


@source(
    name="IdentityNow",
    short_name="identitynow",
    cursor_type=int,
    config_class=IdentityNowConfig,
    max_page_size=MAX_PAGE_SIZE,
    labels=["Identity Governance"],
)
class IdentityNowDatasource(BaseDatasource[int]):
    """IdentityNow datasource backed by the SailPoint v3 and beta APIs."""

    def __init__(
        self,
        registry: EntityRegistry = IDENTITYNOW_ENTITIES,
        http_client_factory=None,
        account_batch_size: Optional[int] = None,
    ):
        """Initialize the IdentityNow datasource.

        Args:
            registry: Known entities. Other entities are listed as flat collections.
            http_client_factory: Callable that creates HTTP clients, or None for vanilla httpx.
            account_batch_size: Accounts fetched per account entitlements page request.
                Defaults to IDENTITYNOW_ACCOUNT_COLLECTION_PAGE_SIZE.
        """
        super().__init__(registry, http_client_factory)
        self.account_batch_size = (
            account_batch_size or settings.IDENTITYNOW_ACCOUNT_COLLECTION_PAGE_SIZE
        )

    def unique_id_attribute(self, entity_external_id: str, config: IdentityNowConfig) -> str:
        """The unique ID attribute is configured per entity."""
        entity_config = config.entity_config.get(entity_external_id)
        if entity_config is None:
            raise AdapterError(
                f"Entity with external ID {entity_external_id} must be present in the "
                "Adapter Config for this SoR.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )
        return entity_config.unique_id_attribute

    def validate_page_request(self, request: PageRequest, config: IdentityNowConfig) -> None:
        """IdentityNow needs a bearer token."""
        token = request.auth.http_authorization
        if not token:
            raise AdapterError(
                "Provided datasource auth is missing required http authorization credentials.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )
        if not token.startswith("Bearer "):
            raise AdapterError(
                'Provided auth token is missing required "Bearer " prefix.',
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )

    async def get_page(self, request: DatasourceRequest[int]) -> DatasourceResponse[int]:
        """Get one page of IdentityNow objects."""
        if request.entity_external_id == ACCOUNT_ENTITLEMENTS:
            filler = BatchEntitlementFiller(
                fetch_parents=self._fetch_accounts,
                fetch_children=self._fetch_account_entitlements,
                parent_batch_size=self.account_batch_size,
                vendor=self.source_name,
                log=self.logger.with_context(
                    entity_external_id=ACCOUNT_ENTITLEMENTS, page_size=request.page_size
                ),
            )
            result = await filler.fill(request)
            self._log_completed(result)
            return result

        validate_composite_cursor(request.cursor, request.entity_external_id, False)

        spec = self.registry.get(request.entity_external_id) or flat_entity(
            request.entity_external_id, request.unique_id_attribute
        )
        result = await self._fetch(request, spec, spec.endpoint, filters=self._filter(request))
        if result.status_code == 200:
            result.objects = [concatenate_memberships(record) for record in result.objects]
        self._log_completed(result)
        return result

    async def _fetch_accounts(self, request: DatasourceRequest[int]) -> DatasourceResponse[int]:
        spec = self.registry.get_spec(ACCOUNTS)
        return await self._fetch(
            request,
            spec,
            spec.endpoint,
            sorters=DEFAULT_ACCOUNT_SORTER,
            filters=self._filter(request),
        )

    async def _fetch_account_entitlements(
        self, request: DatasourceRequest[int], account_id: str
    ) -> DatasourceResponse[int]:
        spec = self.registry.get_spec(ACCOUNT_ENTITLEMENTS)
        path = spec.endpoint.format(account_id=quote(account_id, safe=""))
        return await self._fetch(request, spec, path)

    async def _fetch(
        self,
        request: DatasourceRequest[int],
        spec: EntitySpec,
        path: str,
        sorters: Optional[str] = None,
        filters: Optional[str] = None,
    ) -> DatasourceResponse[int]:
        """List one page of a collection at ``path``."""
        self.logger.with_context(
            entity_external_id=spec.external_id, page_size=request.page_size
        ).info("Starting datasource request")

        offset = request.cursor.offset() if request.cursor is not None else 0
        url = self.build_url(request, path, offset, sorters=sorters, filters=filters)

        response = await self._send(request, spec.method, url)
        if response.status_code != 200:
            return self._error_response(response, url)

        parsed = spec.parse_response(self._decode_json(response, spec.external_id))
        next_offset = self._next_offset(parsed, request.page_size, offset)

        return DatasourceResponse(
            status_code=response.status_code,
            retry_after_header=response.headers.get("Retry-After"),
            objects=parsed.objects,
            next_cursor=self._cursor(cursor=next_offset) if next_offset is not None else None,
        )

    def build_url(
        self,
        request: DatasourceRequest[int],
        path: str,
        offset: int,
        sorters: Optional[str] = None,
        filters: Optional[str] = None,
    ) -> str:
        """Build ``{base}/{apiVersion}/{path}?limit=..&offset=..[&sorters=..][&filters=..]``."""
        config: IdentityNowConfig = request.config
        api_version = config.api_version_for(request.entity_external_id)

        url = f"{request.base_url}/{api_version}/{path}?limit={request.page_size}&offset={offset}"
        if sorters is not None:
            url += f"&sorters={sorters}"
        if filters is not None:
            # Spaces must be sent as %20, not "+".
            url += f"&filters={quote(filters, safe='')}"
        return url

    @staticmethod
    def _filter(request: DatasourceRequest[int]) -> Optional[str]:
        config: IdentityNowConfig = request.config
        entity_config = config.entity_config.get(request.entity_external_id)
        return entity_config.filter if entity_config is not None else None

