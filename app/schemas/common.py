"""Schema base class and the service health payload."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and serializes as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"] = "ok"
    app: str
    env: str
    database: Literal["ok", "unavailable"]
    payments: Literal["enabled", "disabled"]
