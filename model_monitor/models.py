from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


# --- Status Models ---


class ModelState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


class ModelStatus(_WireModel):
    model: str
    status: ModelState
    last_checked: str
    response: str | None = None
    error: str | None = None

    @classmethod
    def online(cls, model: str, response: str) -> "ModelStatus":
        return cls(model=model, status=ModelState.ONLINE, last_checked=utc_now_iso(), response=response)

    @classmethod
    def offline(cls, model: str, error: str) -> "ModelStatus":
        return cls(model=model, status=ModelState.OFFLINE, last_checked=utc_now_iso(), error=error)

    @classmethod
    def failed(cls, model: str, error: str) -> "ModelStatus":
        return cls(model=model, status=ModelState.ERROR, last_checked=utc_now_iso(), error=error)


# --- Cache Models ---


class CacheInfo(_WireModel):
    last_update: str
    next_update: str
    is_stale: bool
    cache_age: int


class ModelStats(_WireModel):
    total: int
    online: int
    offline: int
    uptime: str


class CachedResponse(_WireModel):
    data: dict[str, ModelStatus]
    cache: CacheInfo
    stats: ModelStats


# --- Route Models ---


class RefreshResponse(_WireModel):
    success: bool
    models: list[str]
    count: int
    message: str


class ModelsInfo(_WireModel):
    model_count: int
    monitoring_active: bool
    last_updated: str
