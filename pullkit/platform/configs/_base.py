"""Base configuration class."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseConfig(BaseModel):
    """Base class for datasource configs.

    Configs arrive as the camelCase JSON the caller stores; fields are declared with
    snake_case names and camelCase aliases. Unknown keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CommonConfig(BaseConfig):
    """Settings shared by every datasource."""

    request_timeout_seconds: Optional[int] = Field(
        default=None,
        alias="requestTimeoutSeconds",
        ge=1,
        description="Timeout of a single datasource call. Defaults to the global setting.",
    )
