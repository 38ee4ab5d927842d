"""
Realtime socket endpoint.

Clients send ``{"event": ..., "data": {...}}`` frames over ``/ws``. Each
conversation turn runs in the thread pool with its own database session and
is answered with a single frame holding both persisted messages. Typing
signals are relayed to the other sockets in the conversation room; joining
a room requires read access to its conversation.
"""

import json
import logging
import uuid
from collections import defaultdict
from typing import Any, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from rai.db.connection import db_session
from rai.exceptions import RaiError, ValidationError
from rai.gateway import AIGateway
from rai.models.db import MessageType, SharePermission
from rai.models.exchange import ExchangeResult
from rai.services import ConversationOrchestrator
from rai.services.access import load_active_user, load_conversation

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Tracks open sockets and the conversation rooms they joined."""

    def __init__(self) -> None:
        self.active: set[WebSocket] = set()
        self.rooms: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active.add(websocket)
        logger.debug(f"Socket connected ({len(self.active)} open)")

    def disconnect(self, websocket: WebSocket) -> None:
        self.active.discard(websocket)
        for room_id in list(self.rooms):
            members = self.rooms[room_id]
            members.discard(websocket)
            if not members:
                del self.rooms[room_id]
        logger.debug(f"Socket disconnected ({len(self.active)} open)")

    def join(self, websocket: WebSocket, conversation_id: str) -> None:
        self.rooms[str(conversation_id)].add(websocket)

    def room_members(self, conversation_id: str) -> set[WebSocket]:
        return set(self.rooms.get(str(conversation_id), ()))

    async def broadcast(
        self,
        conversation_id: str,
        frame: dict[str, Any],
        exclude: Optional[WebSocket] = None,
    ) -> None:
        """Send a frame to every socket in the room except ``exclude``."""
        for member in self.room_members(conversation_id):
            if member is exclude:
                continue
            try:
                await member.send_json(frame)
            except (RuntimeError, WebSocketDisconnect) as e:
                logger.warning(f"Dropping socket from room {conversation_id}: {e}")
                self.disconnect(member)


manager = ConnectionManager()


def _frame(event: str, data: dict[str, Any]) -> dict[str, Any]:
    return {"event": event, "data": data}


def _parse_uuid(
    data: dict[str, Any], key: str, required: bool = True
) -> Optional[uuid.UUID]:
    value = data.get(key)
    if value in (None, ""):
        if required:
            raise ValidationError(f"{key} is required")
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {key}: {value}")


def _run_turn(
    gateway: AIGateway,
    user_id: uuid.UUID,
    message: str,
    conversation_id: Optional[uuid.UUID],
    message_type: str,
) -> ExchangeResult:
    with db_session() as session:
        return ConversationOrchestrator(session, gateway).handle_turn(
            user_id,
            message,
            conversation_id=conversation_id,
            message_type=message_type,
        )


def _run_voice_turn(
    gateway: AIGateway,
    user_id: uuid.UUID,
    audio_data: str,
    conversation_id: Optional[uuid.UUID],
) -> ExchangeResult:
    with db_session() as session:
        return ConversationOrchestrator(session, gateway).handle_voice_turn(
            user_id, audio_data, conversation_id=conversation_id
        )


async def _handle_send_message(
    websocket: WebSocket, gateway: AIGateway, data: dict[str, Any]
) -> None:
    user_id = _parse_uuid(data, "userId")
    conversation_id = _parse_uuid(data, "conversationId", required=False)
    message = data.get("message")
    if not isinstance(message, str):
        raise ValidationError("message must be a string")

    result = await run_in_threadpool(
        _run_turn,
        gateway,
        user_id,
        message,
        conversation_id,
        data.get("messageType") or MessageType.TEXT.value,
    )
    manager.join(websocket, str(result.conversation_id))
    await websocket.send_json(_frame("message_response", result.to_wire()))


async def _handle_voice_message(
    websocket: WebSocket, gateway: AIGateway, data: dict[str, Any]
) -> None:
    user_id = _parse_uuid(data, "userId")
    conversation_id = _parse_uuid(data, "conversationId", required=False)
    audio_data = data.get("audioData")
    if not audio_data:
        raise ValidationError("audioData is required")

    result = await run_in_threadpool(
        _run_voice_turn, gateway, user_id, audio_data, conversation_id
    )
    manager.join(websocket, str(result.conversation_id))
    await websocket.send_json(_frame("voice_response", result.to_wire()))


def _check_room_access(user_id: uuid.UUID, conversation_id: uuid.UUID) -> None:
    with db_session() as session:
        load_active_user(session, user_id)
        load_conversation(session, conversation_id, user_id, SharePermission.READ)


async def _join_room(
    websocket: WebSocket, data: dict[str, Any]
) -> tuple[uuid.UUID, uuid.UUID]:
    """Join the conversation room after checking the user may read it."""
    user_id = _parse_uuid(data, "userId")
    conversation_id = _parse_uuid(data, "conversationId")
    await run_in_threadpool(_check_room_access, user_id, conversation_id)
    manager.join(websocket, str(conversation_id))
    return user_id, conversation_id


async def _handle_typing(websocket: WebSocket, data: dict[str, Any]) -> None:
    user_id, conversation_id = await _join_room(websocket, data)
    await manager.broadcast(
        str(conversation_id),
        _frame(
            "user_typing",
            {"userId": str(user_id), "isTyping": bool(data.get("isTyping"))},
        ),
        exclude=websocket,
    )


async def _dispatch_event(
    websocket: WebSocket, gateway: Optional[AIGateway], raw: str
) -> None:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Frame is not valid JSON")
    if not isinstance(frame, dict):
        raise ValidationError("Frame must be an object")

    event = frame.get("event")
    data = frame.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Frame data must be an object")

    if event in ("send_message", "voice_message") and gateway is None:
        raise RaiError("AI gateway is not initialized")

    if event == "send_message":
        await _handle_send_message(websocket, gateway, data)
    elif event == "voice_message":
        await _handle_voice_message(websocket, gateway, data)
    elif event == "typing":
        await _handle_typing(websocket, data)
    elif event == "join":
        await _join_room(websocket, data)
    else:
        raise ValidationError(f"Unknown event: {event}")


@router.websocket("/ws")
async def realtime(websocket: WebSocket) -> None:
    """Conversation socket: one frame in, at most one frame back per turn."""
    await manager.connect(websocket)
    gateway = getattr(websocket.app.state, "gateway", None)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                await _dispatch_event(websocket, gateway, raw)
            except RaiError as e:
                logger.info(f"Socket request rejected: {e}")
                await websocket.send_json(_frame("error", {"message": str(e)}))
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Socket handler failed: {e}", exc_info=True)
                await websocket.send_json(
                    _frame("error", {"message": "Internal server error"})
                )
    except WebSocketDisconnect:
        logger.debug("Client closed socket")
    finally:
        manager.disconnect(websocket)
