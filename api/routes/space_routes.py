"""
Space routes: the whole space collection under one key, rewritten on every change.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from api.bootstrap import get_space_store
from api.models.models import QuizHistoryEntry
from api.schemas.chat_schemas import SuccessResponse
from api.schemas.space_schemas import CreateSpaceRequest, SyncSpacesRequest
from api.services.space_store import SpaceRecordStore
from api.utils.errors import ValidationError

space_routes = APIRouter()


@space_routes.get("")
async def list_spaces(store: SpaceRecordStore = Depends(get_space_store)) -> List[dict]:
    return [s.to_json_dict() for s in await store.list_all()]


@space_routes.post("")
async def create_space(body: CreateSpaceRequest, store: SpaceRecordStore = Depends(get_space_store)) -> dict:
    space = body.to_space()
    if not space.name:
        raise ValidationError("name is required")
    created = await store.create(space)
    return created.to_json_dict()


# Declared before /{space_id} so "sync" is never taken for an id.
@space_routes.post("/sync", response_model=SuccessResponse)
async def sync_spaces(body: SyncSpacesRequest, store: SpaceRecordStore = Depends(get_space_store)) -> SuccessResponse:
    await store.sync(body.spaces)
    return SuccessResponse(success=True)


@space_routes.patch("/{space_id}", response_model=SuccessResponse)
async def update_space(
    space_id: str,
    fields: Dict[str, Any] = Body(...),
    store: SpaceRecordStore = Depends(get_space_store),
) -> SuccessResponse:
    # Unknown ids are a no-op; the caller only learns that the request was accepted.
    await store.update(space_id, fields)
    return SuccessResponse(success=True)


@space_routes.delete("/{space_id}", response_model=SuccessResponse)
async def delete_space(space_id: str, store: SpaceRecordStore = Depends(get_space_store)) -> SuccessResponse:
    await store.delete(space_id)
    return SuccessResponse(success=True)


@space_routes.post("/{space_id}/quizzes")
async def add_quiz(
    space_id: str,
    entry: QuizHistoryEntry,
    store: SpaceRecordStore = Depends(get_space_store),
) -> dict:
    recorded = await store.append_quiz(space_id, entry)
    return recorded.to_json_dict()
