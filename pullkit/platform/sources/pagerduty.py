"""PagerDuty datasource.

Offset-paginated (``offset``/``limit``) listing of users, teams, team members and
on-call shifts. Team members are nested in teams and listed one team at a time.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode, urlsplit

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.configs.config import PagerDutyConfig
from pullkit.platform.decorators import source
from pullkit.platform.entities._base import EntityRegistry, EntitySpec
from pullkit.platform.entities.pagerduty import MEMBERS, ONCALLS, PAGERDUTY_ENTITIES, TEAMS
from pullkit.platform.pagination.collection import CollectionAdvancer
from pullkit.platform.pagination.cursor import CompositeCursor
from pullkit.platform.pagination.validation import validate_composite_cursor
from pullkit.platform.sources._base import BaseDatasource
from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse
from pullkit.schemas.page import PageRequest

PAGERDUTY_HOST = "api.pagerduty.com"
AUTH_PREFIXES = ("Token token=", "Bearer ")
MAX_PAGE_SIZE = 100


@source(
    name="PagerDuty",
    short_name="pagerduty",
    cursor_type=int,
    config_class=PagerDutyConfig,
    max_page_size=MAX_PAGE_SIZE,
    labels=["Incident Management"],
)
class PagerDutyDatasource(BaseDatasource[int]):
    """PagerDuty datasource backed by the PagerDuty REST API v2."""

    def __init__(self, registry: EntityRegistry = PAGERDUTY_ENTITIES, http_client_factory=None):
        """Initialize the PagerDuty datasource."""
        super().__init__(registry, http_client_factory)

    def validate_page_request(self, request: PageRequest, config: PagerDutyConfig) -> None:
        """Check the token prefix and the API host."""
        token = request.auth.http_authorization
        if not token:
            raise AdapterError(
                "PagerDuty auth is missing required token.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )
        if not token.startswith(AUTH_PREFIXES):
            raise AdapterError(
                'PagerDuty auth is missing required "Token token=" or "Bearer " prefix.',
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )

        address = request.address.strip()
        if "://" not in address:
            address = f"https://{address}"
        if urlsplit(address).hostname != PAGERDUTY_HOST:
            raise AdapterError(
                f"Invalid PagerDuty address. Must be {PAGERDUTY_HOST}.",
                ErrorCode.INVALID_DATASOURCE_CONFIG,
            )

    async def get_page(self, request: DatasourceRequest[int]) -> DatasourceResponse[int]:
        """Get one page of PagerDuty objects."""
        log = self.logger.with_context(
            entity_external_id=request.entity_external_id, page_size=request.page_size
        )
        log.info("Starting datasource request")

        spec = self.registry.get_spec(request.entity_external_id)
        advancer: Optional[CollectionAdvancer[int]] = None

        if spec.is_nested:
            advancer = CollectionAdvancer(
                self.get_page,
                self.registry.parent_of(spec),
                cursor_type=int,
                start=0,
                vendor=self.source_name,
                log=log,
            )
            step = await advancer.advance(request)
            if step.response is not None:
                return step.response
            if step.done:
                return DatasourceResponse()
            cursor = step.cursor
        else:
            validate_composite_cursor(request.cursor, spec.external_id, False)
            cursor = request.cursor
            if cursor is None or cursor.cursor is None:
                cursor = self._cursor(cursor=0)

        validate_composite_cursor(cursor, spec.external_id, spec.is_nested)

        url = self.build_url(request, spec, cursor)
        response = await self._send(request, spec.method, url)
        if response.status_code != 200:
            return self._error_response(response, url)

        parsed = spec.parse_response(self._decode_json(response, spec.external_id))
        next_offset = self._next_offset(parsed, request.page_size, cursor.offset())

        objects = parsed.objects
        if spec.external_id == MEMBERS:
            objects = [self._team_member(member, cursor.collection_id) for member in objects]
        elif spec.external_id == ONCALLS:
            objects = [self._oncall(oncall) for oncall in objects]

        if advancer is not None:
            next_cursor = advancer.compose(cursor, next_offset)
        elif next_offset is not None:
            next_cursor = self._cursor(cursor=next_offset)
        else:
            next_cursor = None

        result = DatasourceResponse(
            status_code=response.status_code,
            retry_after_header=response.headers.get("Retry-After"),
            objects=objects,
            next_cursor=next_cursor,
        )
        self._log_completed(result)
        return result

    def build_url(
        self, request: DatasourceRequest[int], spec: EntitySpec, cursor: CompositeCursor[int]
    ) -> str:
        """Build ``{base}/{resource}?offset=..&limit=..`` plus configured parameters."""
        config: PagerDutyConfig = request.config

        if spec.external_id == MEMBERS:
            resource = f"{TEAMS}/{quote(cursor.collection_id, safe='')}/{MEMBERS}"
        else:
            resource = spec.endpoint

        url = f"{request.base_url}/{resource}?offset={cursor.offset()}&limit={request.page_size}"

        extra = config.query_parameters_for(spec.external_id)
        if extra:
            url += f"&{urlencode(extra)}"
        return url

    @staticmethod
    def _team_member(member: Dict[str, Any], team_id: str) -> Dict[str, Any]:
        user = member.get("user")
        if not isinstance(user, dict):
            raise AdapterError(
                "Failed to parse user field in PagerDuty team members response as an object.",
                ErrorCode.INTERNAL,
            )
        user_id = user.get("id")
        if not isinstance(user_id, str):
            raise AdapterError(
                "Failed to parse id field in PagerDuty team members object as string.",
                ErrorCode.INTERNAL,
            )

        team_member = {"id": f"{team_id}-{user_id}", "userId": user_id, "teamId": team_id}
        if member.get("role") is not None:
            team_member["role"] = member["role"]
        return team_member

    @staticmethod
    def _oncall(oncall: Dict[str, Any]) -> Dict[str, Any]:
        parts = []
        for field_name in ("escalation_policy", "user"):
            reference = oncall.get(field_name)
            if not isinstance(reference, dict):
                raise AdapterError(
                    f"Failed to parse a PagerDuty OnCall object's {field_name} field as an object.",
                    ErrorCode.INTERNAL,
                )
            reference_id = reference.get("id")
            if not isinstance(reference_id, str):
                raise AdapterError(
                    f"Failed to parse a field in a PagerDuty OnCall object's {field_name} "
                    "object as string: id.",
                    ErrorCode.INTERNAL,
                )
            parts.append(reference_id)

        for field_name in ("start", "end"):
            value = oncall.get(field_name)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise AdapterError(
                    f"Failed to parse a PagerDuty OnCall object's {field_name} field as "
                    f"string: {value}.",
                    ErrorCode.INTERNAL,
                )
            parts.append(value)

        oncall["id"] = "-".join(parts)
        return oncall
