import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from starlette.websockets import WebSocketDisconnect

from servicehub.auth.auth_service import create_access_token
from servicehub.common.database.database import get_session_factory
from servicehub.common.realtime.hub import RealtimeHub, get_realtime_hub
from servicehub.main import app
from servicehub.models.models import Base
from servicehub.modules.notifications.notifier import get_notifier

from conftest import RecordingNotifier, database_url, seed_marketplace, seed_pending_booking


@pytest.fixture
def chat(tmp_path):
    """App wired to a fresh database; the socket runs on the test client's own event loop."""
    engine = create_async_engine(database_url(tmp_path), poolclass=NullPool)
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    notifier = RecordingNotifier()

    async def setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with session_factory() as session:
            marketplace = await seed_marketplace(session)
            booking = await seed_pending_booking(session, marketplace)
        return marketplace, booking

    marketplace, booking = asyncio.run(setup())

    hub = RealtimeHub()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_realtime_hub] = lambda: hub
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield SimpleNamespace(
        client=TestClient(app),
        marketplace=marketplace,
        booking=booking,
        notifier=notifier,
    )
    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def _token(profile) -> str:
    return create_access_token({"sub": str(profile.id)})


def _receive_until(ws, frame_type: str) -> list:
    frames = []
    while True:
        frame = ws.receive_json()
        frames.append(frame)
        if frame["type"] == frame_type:
            return frames


def test_rejects_missing_or_invalid_token(chat):
    for url in ("/chat/ws", "/chat/ws?token=not-a-token"):
        with pytest.raises(WebSocketDisconnect) as exc:
            with chat.client.websocket_connect(url):
                pass
        assert exc.value.code == 1008


def test_open_and_send_over_socket(chat):
    booking_id = str(chat.booking.id)

    with chat.client.websocket_connect(f"/chat/ws?token={_token(chat.marketplace.client)}") as ws:
        initial = ws.receive_json()
        assert initial == {"type": "conversations", "conversations": []}

        ws.send_json({"action": "open", "booking_id": booking_id})
        opened = _receive_until(ws, "messages")[-1]
        assert opened == {"type": "messages", "messages": [], "booking_id": booking_id}

        ws.send_json({"action": "send", "booking_id": booking_id, "content": "When can you arrive?"})
        frames = _receive_until(ws, "sent")
        sent = frames[-1]["message"]
        assert sent["content"] == "When can you arrive?"
        assert sent["recipient_id"] == str(chat.marketplace.provider_user.id)

        shown = [f for f in frames if f["type"] == "messages"]
        assert [m["id"] for m in shown[-1]["messages"]] == [sent["id"]]

        if not any(f["type"] == "conversations" for f in frames):
            frames += _receive_until(ws, "conversations")
        conversations = [f for f in frames if f["type"] == "conversations"][-1]["conversations"]
        assert [c["booking_id"] for c in conversations] == [booking_id]


def test_bad_frames_get_error_replies(chat):
    with chat.client.websocket_connect(f"/chat/ws?token={_token(chat.marketplace.client)}") as ws:
        ws.receive_json()

        ws.send_text("not json")
        assert ws.receive_json()["error_code"] == "validation_error"

        ws.send_json({"action": "dance"})
        assert ws.receive_json()["error_code"] == "validation_error"

        ws.send_json({"action": "open", "booking_id": "nope"})
        assert ws.receive_json()["error_code"] == "validation_error"

        ws.send_json({"action": "send", "booking_id": str(chat.booking.id), "content": "   "})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["error_code"] == "validation_error"


def test_outsider_cannot_open_booking(chat):
    with chat.client.websocket_connect(f"/chat/ws?token={_token(chat.marketplace.outsider)}") as ws:
        ws.receive_json()

        ws.send_json({"action": "open", "booking_id": str(chat.booking.id)})
        frames = _receive_until(ws, "error")

        assert frames[-1]["error_code"] == "not_found"
