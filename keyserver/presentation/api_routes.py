from typing import Annotated, Any, Final

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from ..application.history_service import activation_stats, global_history
from ..application.key_service import KeyService
from ..infrastructure.storage.models import (
    HistoryEventModel,
    KeyRecordModel,
    NotificationConfigModel,
)

api_router: Final = APIRouter(
    responses={
        400: {"description": "Bad Request - Invalid input data"},
        404: {"description": "Not Found - Key does not exist"},
    },
)


def get_key_service(request: Request) -> KeyService:
    """The registry created at startup."""
    return request.app.state.key_service


KeyServiceDep = Annotated[KeyService, Depends(get_key_service)]
KeyPath = Annotated[
    str,
    Path(
        description="Key string, e.g. AAAAA-BBBBB-CCCCC-DDDDD-EEEEE",
        examples=["AAAAA-BBBBB-CCCCC-DDDDD-EEEEE"],
    ),
]


# Request Models
class KeyCreate(BaseModel):
    """Either a single ``key`` or a list of ``keys``. ``keys`` wins if both."""

    key: Any = Field(
        None,
        description="A single key string",
        examples=["AAAAA-BBBBB-CCCCC-DDDDD-EEEEE"],
    )
    keys: Any = Field(
        None,
        description="Several key strings; invalid or duplicate ones are skipped",
        examples=[["AAAAA-BBBBB-CCCCC-DDDDD-EEEEE", "FFFFF-GGGGG-HHHHH-IIIII-JJJJJ"]],
    )

    def candidates(self) -> list[Any] | str | None:
        if isinstance(self.keys, list):
            return self.keys
        if isinstance(self.key, str):
            return self.key
        return None


class AssignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assigned_to: str | None = Field(
        None, alias="assignedTo", description="Who the key is assigned to"
    )


class NotificationSettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thresholds: list[int] | None = Field(
        None, description="Free-key counts that trigger a warning", examples=[[20, 10]]
    )
    message_template: str | None = Field(
        None,
        alias="messageTemplate",
        description="Message text; {free} is replaced by the free-key count",
    )


# Response Models
class GlobalHistoryEntryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="Id of the key the event belongs to")
    key: str = Field(description="Key string the event belongs to")
    action: str = Field(description="free, inuse or release")
    timestamp: str = Field(description="ISO-8601 time of the event")
    assigned_to: str | None = Field(None, alias="assignedTo")


class StatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    per_day: dict[str, int] = Field(alias="perDay", description="Activations per day")
    per_week: dict[str, int] = Field(
        alias="perWeek", description="Activations per ISO week"
    )


class DeleteResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    status: str
    keys: int
    free: int


def _records(records) -> list[KeyRecordModel]:
    return [KeyRecordModel.from_domain(r) for r in records]


@api_router.get(
    "/keys",
    response_model=list[KeyRecordModel],
    tags=["keys"],
    summary="List keys",
)
async def list_keys(
    service: KeyServiceDep,
    in_use: Annotated[
        str | None,
        Query(alias="inUse", description="'true' for keys in use, anything else not"),
    ] = None,
    assigned_to: Annotated[str | None, Query(alias="assignedTo")] = None,
) -> list[KeyRecordModel]:
    """All keys matching every given filter."""
    in_use_filter = None if in_use is None else in_use.lower() == "true"
    return _records(service.list_keys(in_use=in_use_filter, assigned_to=assigned_to))


@api_router.post(
    "/keys",
    response_model=list[KeyRecordModel],
    status_code=status.HTTP_201_CREATED,
    tags=["keys"],
    summary="Create one or many keys",
    description="""
    Add a single key (`{"key": ...}`) or a batch (`{"keys": [...]}`).

    Keys must look like `XXXXX-XXXXX-XXXXX-XXXXX-XXXXX` (uppercase letters and
    digits). Invalid and already known keys are skipped; the call only fails
    when no key at all was accepted.
    """,
)
async def create_keys(
    service: KeyServiceDep, payload: Annotated[KeyCreate | None, Body()] = None
) -> list[KeyRecordModel]:
    candidates = payload.candidates() if payload else None
    return _records(service.create_keys(candidates))


@api_router.get(
    "/keys/free",
    response_class=PlainTextResponse,
    tags=["keys"],
    summary="Hand out a free key",
    description="""
    Returns the oldest key that is neither in use nor invalid, as plain text,
    and logs the hand-out in its history. The key is **not** reserved; mark it
    in use to claim it.
    """,
    responses={404: {"description": "No free key available"}},
)
async def acquire_free_key(service: KeyServiceDep) -> PlainTextResponse:
    record = service.acquire_free()
    return PlainTextResponse(record.key)


@api_router.get(
    "/keys/free/list",
    response_model=list[KeyRecordModel],
    tags=["keys"],
    summary="List free keys",
)
async def list_free_keys(service: KeyServiceDep) -> list[KeyRecordModel]:
    return _records(service.list_free())


@api_router.get(
    "/keys/active/list",
    response_model=list[KeyRecordModel],
    tags=["keys"],
    summary="List keys in use",
)
async def list_active_keys(service: KeyServiceDep) -> list[KeyRecordModel]:
    return _records(service.list_active())


@api_router.put(
    "/keys/{key}/inuse",
    response_model=KeyRecordModel,
    tags=["keys"],
    summary="Mark a key in use",
)
async def mark_key_in_use(
    service: KeyServiceDep,
    key: KeyPath,
    payload: Annotated[AssignRequest | None, Body()] = None,
) -> KeyRecordModel:
    assigned_to = payload.assigned_to if payload else None
    return KeyRecordModel.from_domain(service.mark_in_use(key, assigned_to))


@api_router.put(
    "/keys/{key}/release",
    response_model=KeyRecordModel,
    tags=["keys"],
    summary="Release a key",
)
async def release_key(service: KeyServiceDep, key: KeyPath) -> KeyRecordModel:
    return KeyRecordModel.from_domain(service.release(key))


@api_router.put(
    "/keys/{key}/invalidate",
    response_model=KeyRecordModel,
    tags=["keys"],
    summary="Invalidate a key",
    description="Permanently exclude a key from being handed out.",
)
async def invalidate_key(service: KeyServiceDep, key: KeyPath) -> KeyRecordModel:
    return KeyRecordModel.from_domain(service.invalidate(key))


@api_router.delete(
    "/keys/{key}",
    response_model=DeleteResponse,
    tags=["keys"],
    summary="Delete a key",
)
async def delete_key(service: KeyServiceDep, key: KeyPath) -> DeleteResponse:
    service.delete(key)
    return DeleteResponse(success=True)


@api_router.get(
    "/keys/{key}/history",
    response_model=list[HistoryEventModel],
    tags=["keys"],
    summary="History of one key",
)
async def key_history(service: KeyServiceDep, key: KeyPath) -> list[HistoryEventModel]:
    return [HistoryEventModel.from_domain(e) for e in service.get_history(key)]


@api_router.get(
    "/history",
    response_model=list[GlobalHistoryEntryModel],
    tags=["history"],
    summary="History of all keys, oldest first",
)
async def all_history(service: KeyServiceDep) -> list[GlobalHistoryEntryModel]:
    return [
        GlobalHistoryEntryModel(
            id=entry.id,
            key=entry.key,
            action=str(entry.event.action),
            timestamp=entry.event.timestamp,
            assigned_to=entry.event.assigned_to,
        )
        for entry in global_history(service.all_records())
    ]


@api_router.get(
    "/stats",
    response_model=StatsResponse,
    tags=["history"],
    summary="Activations per day and ISO week",
)
async def stats(service: KeyServiceDep) -> StatsResponse:
    return StatsResponse.model_validate(activation_stats(service.all_records()))


@api_router.get(
    "/telegram/settings",
    response_model=NotificationConfigModel,
    tags=["notifications"],
    summary="Current low-stock notification settings",
)
async def get_notification_settings(service: KeyServiceDep) -> NotificationConfigModel:
    return NotificationConfigModel.from_domain(service.get_notification_config())


@api_router.put(
    "/telegram/settings",
    response_model=NotificationConfigModel,
    tags=["notifications"],
    summary="Change low-stock notification settings",
)
async def update_notification_settings(
    service: KeyServiceDep, payload: NotificationSettingsUpdate
) -> NotificationConfigModel:
    config = service.update_notification_config(
        thresholds=payload.thresholds, message_template=payload.message_template
    )
    return NotificationConfigModel.from_domain(config)


@api_router.get(
    "/health",
    response_model=HealthResponse,
    tags=["system"],
    summary="Liveness and key counts",
)
async def health(service: KeyServiceDep) -> HealthResponse:
    return HealthResponse(
        status="ok", keys=len(service.all_records()), free=service.free_count()
    )
