"""Pydantic v2 schemas for the site configuration endpoints."""

from datetime import datetime
from typing import Any

from pydantic import Field

from foxshrine_api.schemas.common import CamelModel

DEFAULT_CATEGORY = "general"


class ConfigUpdateRequest(CamelModel):
    """Body of ``PUT /config/{key}``.

    ``value`` may be ``null`` but must be present; check ``value_provided``.
    """

    value: Any = None
    category: str | None = Field(default=None, max_length=50)
    description: str | None = Field(default=None, max_length=500)

    @property
    def value_provided(self) -> bool:
        return "value" in self.model_fields_set


class BulkConfigItem(ConfigUpdateRequest):
    """One entry of a bulk update; entries without key or value are skipped."""

    key: str | None = Field(default=None, max_length=100)

    @property
    def is_applicable(self) -> bool:
        return bool(self.key) and self.value_provided


class BulkConfigRequest(CamelModel):
    """Body of ``PUT /config``."""

    configs: list[BulkConfigItem]


class ConfigEntryResponse(CamelModel):
    """A persisted configuration row."""

    id: int
    key: str
    value: str | None = None
    category: str
    description: str | None = None
    is_active: bool
    updated_by: str | None = None
    updated_at: datetime | None = None


class DeletedConfigResponse(CamelModel):
    """Snapshot of a configuration row taken before it was soft-deleted."""

    key: str
    value: str | None = None
    category: str


class ConfigReadResponse(CamelModel):
    success: bool = True
    data: dict[str, Any]
    timestamp: str
    count: int
    user: dict[str, str] | None = None


class ConfigCategoryResponse(CamelModel):
    success: bool = True
    data: dict[str, Any]
    category: str
    timestamp: str
    count: int


class ConfigWriteResponse(CamelModel):
    success: bool = True
    data: ConfigEntryResponse
    message: str
    timestamp: str


class BulkConfigWriteResponse(CamelModel):
    success: bool = True
    data: list[ConfigEntryResponse]
    message: str
    count: int
    timestamp: str


class ConfigDeleteResponse(CamelModel):
    success: bool = True
    data: DeletedConfigResponse
    message: str
    timestamp: str


class StreamStatus(CamelModel):
    """Live stream fields surfaced from the ``stream`` category."""

    is_live: bool = False
    title: str | None = None
    category: str | None = None
    next_stream: str | None = None
    notification: str | None = None


class StreamStatusUpdateRequest(CamelModel):
    """Partial stream status update; omitted fields are left alone."""

    is_live: bool | None = None
    title: str | None = None
    category: str | None = None
    next_stream: str | None = None
    notification: str | None = None


class StreamStatusResponse(CamelModel):
    success: bool = True
    data: StreamStatus
    timestamp: str


class StreamStatusWriteResponse(CamelModel):
    success: bool = True
    data: list[ConfigEntryResponse]
    message: str
    timestamp: str
