"""Platform decorators."""

from typing import Callable, Optional, Type

from pydantic import BaseModel


def source(
    name: str,
    short_name: str,
    cursor_type: type,
    config_class: Type[BaseModel],
    max_page_size: int,
    auth_method: str = "token",
    labels: Optional[list] = None,
) -> Callable[[type], type]:
    """Register datasource metadata on a datasource class.

    Args:
        name: Display name, also used in error messages (e.g. "Jira").
        short_name: Unique identifier of the datasource (e.g. "jira").
        cursor_type: ``int`` for offset cursors, ``str`` for token cursors.
        config_class: Pydantic model parsed from the request config.
        max_page_size: Largest page size the vendor accepts.
        auth_method: "basic" for username/password, "token" for an Authorization header.
        labels: Tags for categorization.

    Example:
        @source(
            name="PagerDuty",
            short_name="pagerduty",
            cursor_type=int,
            config_class=PagerDutyConfig,
            max_page_size=100,
        )
        class PagerDutyDatasource(BaseDatasource[int]):
            ...
    """
    if cursor_type not in (int, str):
        raise ValueError(f"Datasource '{short_name}' has unsupported cursor type {cursor_type!r}")
    if auth_method not in ("basic", "token"):
        raise ValueError(f"Datasource '{short_name}' has unsupported auth method '{auth_method}'")

    def decorator(cls: type) -> type:
        cls.is_source = True
        cls.source_name = name
        cls.short_name = short_name
        cls.cursor_type = cursor_type
        cls.config_class = config_class
        cls.max_page_size = max_page_size
        cls.auth_method = auth_method
        cls.labels = labels or []
        return cls

    return decorator
