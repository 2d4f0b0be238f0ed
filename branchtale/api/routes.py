from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, cast
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from branchtale.actions import PlayActionName, dispatch_play_action
from branchtale.api.deps import get_redis
from branchtale.api.models import (
    START_NODE_ID,
    ChoicePatch,
    ConditionPatch,
    ExportBundle,
    HistoryResponse,
    Node,
    NodeIdResponse,
    NodeListResponse,
    NodePatch,
    PlaybackView,
    SaveSlot,
    SaveSlotListResponse,
    StoryGraph,
    StoryIdResponse,
    StoryListResponse,
    VariableCategory,
    VariableCreateRequest,
    VariableDefinitionPatch,
    VariableDefinitionSet,
    VariableOperationPatch,
)
from branchtale.core.defaults import new_variable_definition
from branchtale.lock import story_lock
from branchtale.session import StorySession, open_session
from branchtale.story_store import create_story, list_stories
from branchtale.websocket_hub import hub

router = APIRouter()


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e


@contextmanager
def _editing(r: redis.Redis, story_id: UUID) -> Iterator[StorySession]:
    """Open a story for a locked read-modify-write; maps failures to HTTP errors."""

    sid = str(story_id)
    with _http_errors(), story_lock(r=r, story_id=sid):
        yield open_session(kv=r, story_id=sid)


def _reading(r: redis.Redis, story_id: UUID) -> StorySession:
    with _http_errors():
        return open_session(kv=r, story_id=str(story_id))


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def _require_node(session: StorySession, node_id: str) -> Node:
    node = session.editor.get_node(node_id)
    if node is None:
        raise _not_found("Node not found")
    return node


@router.websocket("/ws/stories/{story_id}")
async def story_updates_ws(websocket: WebSocket, story_id: UUID) -> None:
    sid = str(story_id)
    await hub.connect(sid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(sid, websocket)
    except Exception:
        await hub.disconnect(sid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---------- Stories ----------


@router.post("/stories", response_model=StoryIdResponse, status_code=status.HTTP_201_CREATED)
async def create_story_route(r: redis.Redis = Depends(get_redis)) -> StoryIdResponse:
    return StoryIdResponse(story_id=create_story(kv=r))


@router.get("/stories", response_model=StoryListResponse)
async def list_stories_route(r: redis.Redis = Depends(get_redis)) -> StoryListResponse:
    return StoryListResponse(stories=list_stories(kv=r))


@router.get("/stories/{story_id}/graph", response_model=StoryGraph)
async def get_graph_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> StoryGraph:
    return _reading(r, story_id).editor.graph


@router.get("/stories/{story_id}/export", response_model=ExportBundle)
async def export_story_route(story_id: UUID, response: Response, r: redis.Redis = Depends(get_redis)) -> ExportBundle:
    bundle = _reading(r, story_id).editor.export_graph()
    filename = f"story_{int(time.time() * 1000)}.json"
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return bundle


@router.post("/stories/{story_id}/import", response_model=StoryGraph)
async def import_story_route(story_id: UUID, body: dict[str, Any], r: redis.Redis = Depends(get_redis)) -> StoryGraph:
    with _editing(r, story_id) as session:
        if not session.editor.import_graph(body):
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid story data")
        session.reload_playback()
        session.autosave()
        graph = session.editor.graph

    await hub.story_updated(str(story_id))
    return graph


@router.post("/stories/{story_id}/demo", response_model=StoryGraph)
async def load_demo_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> StoryGraph:
    with _editing(r, story_id) as session:
        if not session.editor.load_demo():
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Demo story is invalid")
        session.reload_playback()
        session.autosave()
        graph = session.editor.graph

    await hub.story_updated(str(story_id))
    return graph


# ---------- Nodes ----------


@router.get("/stories/{story_id}/nodes", response_model=NodeListResponse)
async def list_nodes_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> NodeListResponse:
    return NodeListResponse(nodes=_reading(r, story_id).editor.list_nodes())


@router.post("/stories/{story_id}/nodes", response_model=NodeIdResponse, status_code=status.HTTP_201_CREATED)
async def create_node_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> NodeIdResponse:
    with _editing(r, story_id) as session:
        node_id = session.editor.create_node()

    await hub.story_updated(str(story_id))
    return NodeIdResponse(node_id=node_id)


@router.get("/stories/{story_id}/nodes/{node_id}", response_model=Node)
async def get_node_route(story_id: UUID, node_id: str, r: redis.Redis = Depends(get_redis)) -> Node:
    return _require_node(_reading(r, story_id), node_id)


@router.patch("/stories/{story_id}/nodes/{node_id}", response_model=Node)
async def update_node_route(
    story_id: UUID,
    node_id: str,
    payload: NodePatch,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.update_node(node_id, payload):
            raise _not_found("Node not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


@router.delete("/stories/{story_id}/nodes/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node_route(story_id: UUID, node_id: str, r: redis.Redis = Depends(get_redis)) -> Response:
    with _editing(r, story_id) as session:
        if not session.editor.delete_node(node_id):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"The '{START_NODE_ID}' node cannot be deleted",
            )

    await hub.story_updated(str(story_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Choices ----------


@router.post("/stories/{story_id}/nodes/{node_id}/choices", response_model=Node, status_code=status.HTTP_201_CREATED)
async def add_choice_route(story_id: UUID, node_id: str, r: redis.Redis = Depends(get_redis)) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.add_choice(node_id):
            raise _not_found("Node not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


@router.patch("/stories/{story_id}/nodes/{node_id}/choices/{choice_index}", response_model=Node)
async def update_choice_route(
    story_id: UUID,
    node_id: str,
    choice_index: int,
    payload: ChoicePatch,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.update_choice(node_id, choice_index, payload):
            raise _not_found("Choice not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


@router.delete("/stories/{story_id}/nodes/{node_id}/choices/{choice_index}", response_model=Node)
async def delete_choice_route(
    story_id: UUID,
    node_id: str,
    choice_index: int,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.delete_choice(node_id, choice_index):
            raise _not_found("Choice not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


@router.patch("/stories/{story_id}/nodes/{node_id}/choices/{choice_index}/condition", response_model=Node)
async def update_condition_route(
    story_id: UUID,
    node_id: str,
    choice_index: int,
    payload: ConditionPatch,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.update_condition(node_id, choice_index, payload):
            raise _not_found("Choice not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


# ---------- Variable operations ----------


@router.post(
    "/stories/{story_id}/nodes/{node_id}/choices/{choice_index}/operations",
    response_model=Node,
    status_code=status.HTTP_201_CREATED,
)
async def add_operation_route(
    story_id: UUID,
    node_id: str,
    choice_index: int,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.add_variable_operation(node_id, choice_index):
            raise _not_found("Choice not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


@router.patch("/stories/{story_id}/nodes/{node_id}/choices/{choice_index}/operations/{op_index}", response_model=Node)
async def update_operation_route(
    story_id: UUID,
    node_id: str,
    choice_index: int,
    op_index: int,
    payload: VariableOperationPatch,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.update_variable_operation(node_id, choice_index, op_index, payload):
            raise _not_found("Variable operation not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


@router.delete("/stories/{story_id}/nodes/{node_id}/choices/{choice_index}/operations/{op_index}", response_model=Node)
async def delete_operation_route(
    story_id: UUID,
    node_id: str,
    choice_index: int,
    op_index: int,
    r: redis.Redis = Depends(get_redis),
) -> Node:
    with _editing(r, story_id) as session:
        if not session.editor.delete_variable_operation(node_id, choice_index, op_index):
            raise _not_found("Variable operation not found")
        node = _require_node(session, node_id)

    await hub.story_updated(str(story_id))
    return node


# ---------- Variable definitions ----------


@router.get("/stories/{story_id}/variables", response_model=VariableDefinitionSet)
async def get_variables_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> VariableDefinitionSet:
    return _reading(r, story_id).store.definitions


@router.post(
    "/stories/{story_id}/variables/{category}",
    response_model=VariableDefinitionSet,
    status_code=status.HTTP_201_CREATED,
)
async def add_variable_route(
    story_id: UUID,
    category: VariableCategory,
    payload: VariableCreateRequest,
    r: redis.Redis = Depends(get_redis),
) -> VariableDefinitionSet:
    definition = new_variable_definition(payload.id, payload.name)
    if payload.initial is not None:
        definition.initial = payload.initial
    if payload.min is not None:
        definition.min = payload.min
    if payload.max is not None:
        definition.max = payload.max

    with _editing(r, story_id) as session:
        if not session.editor.add_variable(category, definition):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Variable '{payload.id}' already exists in {category.value}",
            )
        session.autosave()
        definitions = session.store.definitions

    await hub.story_updated(str(story_id))
    return definitions


@router.patch("/stories/{story_id}/variables/{category}/{var_id}", response_model=VariableDefinitionSet)
async def update_variable_route(
    story_id: UUID,
    category: VariableCategory,
    var_id: str,
    payload: VariableDefinitionPatch,
    r: redis.Redis = Depends(get_redis),
) -> VariableDefinitionSet:
    with _editing(r, story_id) as session:
        if session.store.definition(category, var_id) is None:
            raise _not_found("Variable not found")
        if not session.editor.update_variable(category, var_id, payload):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Variable '{payload.id}' already exists in {category.value}",
            )
        session.autosave()
        definitions = session.store.definitions

    await hub.story_updated(str(story_id))
    return definitions


@router.delete("/stories/{story_id}/variables/{category}/{var_id}", response_model=VariableDefinitionSet)
async def delete_variable_route(
    story_id: UUID,
    category: VariableCategory,
    var_id: str,
    r: redis.Redis = Depends(get_redis),
) -> VariableDefinitionSet:
    with _editing(r, story_id) as session:
        if not session.editor.delete_variable(category, var_id):
            raise _not_found("Variable not found")
        session.autosave()
        definitions = session.store.definitions

    await hub.story_updated(str(story_id))
    return definitions


# ---------- Playback ----------


@router.get("/stories/{story_id}/play", response_model=PlaybackView)
async def get_playback_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> PlaybackView:
    return _reading(r, story_id).engine.view()


@router.get("/stories/{story_id}/play/history", response_model=HistoryResponse)
async def get_history_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> HistoryResponse:
    return HistoryResponse(history=_reading(r, story_id).engine.get_history())


@router.get("/stories/{story_id}/play/saves", response_model=SaveSlotListResponse)
async def list_saves_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> SaveSlotListResponse:
    return SaveSlotListResponse(slots=_reading(r, story_id).repo.list_slots())


async def _play(r: redis.Redis, story_id: UUID, action: PlayActionName, payload: dict[str, Any]) -> PlaybackView:
    with _http_errors():
        result = dispatch_play_action(r=r, story_id=story_id, action=action, payload=payload)

    await hub.story_updated(str(story_id))
    return result.view


@router.post("/stories/{story_id}/play/actions/{action}", response_model=PlaybackView)
async def generic_play_action_route(
    story_id: UUID,
    action: str,
    body: dict[str, Any],
    r: redis.Redis = Depends(get_redis),
) -> PlaybackView:
    act: PlayActionName = action  # type: ignore[assignment]
    return await _play(r, story_id, act, body)


@router.post("/stories/{story_id}/play/choices/{choice_index}", response_model=PlaybackView)
async def choose_route(story_id: UUID, choice_index: int, r: redis.Redis = Depends(get_redis)) -> PlaybackView:
    return await _play(r, story_id, "choose", {"index": choice_index})


@router.post("/stories/{story_id}/play/restart", response_model=PlaybackView)
async def restart_route(story_id: UUID, r: redis.Redis = Depends(get_redis)) -> PlaybackView:
    return await _play(r, story_id, "restart", {})


@router.post("/stories/{story_id}/play/history/{index}/jump", response_model=PlaybackView)
async def jump_route(story_id: UUID, index: int, r: redis.Redis = Depends(get_redis)) -> PlaybackView:
    return await _play(r, story_id, "jump", {"index": index})


@router.post("/stories/{story_id}/play/saves/{slot}", response_model=SaveSlot, status_code=status.HTTP_201_CREATED)
async def save_game_route(story_id: UUID, slot: str, r: redis.Redis = Depends(get_redis)) -> SaveSlot:
    with _http_errors():
        result = dispatch_play_action(r=r, story_id=story_id, action="save", payload={"slot": slot})

    await hub.story_updated(str(story_id))
    return cast(SaveSlot, result.saved)


@router.post("/stories/{story_id}/play/saves/{slot}/load", response_model=PlaybackView)
async def load_game_route(story_id: UUID, slot: str, r: redis.Redis = Depends(get_redis)) -> PlaybackView:
    return await _play(r, story_id, "load", {"slot": slot})
