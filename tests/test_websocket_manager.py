import json
from unittest.mock import AsyncMock, MagicMock

from transconnect.config import settings
from transconnect.websocket_manager import ConnectionManager
from tests.utils import FakeSocket


def test_register_reports_first_socket():
    manager = ConnectionManager()
    first, second = FakeSocket(), FakeSocket()

    assert manager.register(1, first) is True
    assert manager.register(1, second) is False
    assert manager.register(1, second) is False
    assert manager.active_connections[1] == [first, second]


def test_unregister_reports_last_socket():
    manager = ConnectionManager()
    first, second = FakeSocket(), FakeSocket()
    manager.register(1, first)
    manager.register(1, second)

    assert manager.unregister(1, first) is False
    assert manager.is_user_online(1)
    assert manager.unregister(1, second) is True
    assert not manager.is_user_online(1)
    assert manager.unregister(1, second) is False


async def test_deliver_local_reaches_every_socket_of_user():
    manager = ConnectionManager()
    tabs = [FakeSocket(), FakeSocket()]
    other = FakeSocket()
    for tab in tabs:
        manager.register(1, tab)
    manager.register(2, other)

    delivered = await manager.deliver_local(1, {"type": "pong"})

    assert delivered == 2
    assert all(tab.sent == [{"type": "pong"}] for tab in tabs)
    assert other.sent == []


async def test_deliver_local_skips_failed_socket():
    manager = ConnectionManager()
    broken, healthy = FakeSocket(fail=True), FakeSocket()
    manager.register(1, broken)
    manager.register(1, healthy)

    assert await manager.deliver_local(1, {"type": "pong"}) == 1
    assert healthy.sent == [{"type": "pong"}]
    assert manager.active_connections[1] == [broken, healthy]


async def test_send_to_offline_user_is_a_no_op():
    manager = ConnectionManager()
    await manager.send(42, {"type": "new_message"})
    assert await manager.deliver_local(42, {"type": "new_message"}) == 0


async def test_send_publishes_when_redis_is_attached():
    manager = ConnectionManager()
    socket = FakeSocket()
    manager.register(1, socket)
    manager.redis_client = MagicMock()
    manager.redis_client.publish = AsyncMock()

    await manager.send(1, {"type": "pong"})

    manager.redis_client.publish.assert_awaited_once()
    channel, data = manager.redis_client.publish.await_args.args
    assert channel == settings.REALTIME_CHANNEL
    assert json.loads(data) == {"userId": 1, "payload": {"type": "pong"}}
    # local delivery happens when the event comes back from the channel
    assert socket.sent == []


async def test_pubsub_event_is_delivered_locally():
    manager = ConnectionManager()
    socket = FakeSocket()
    manager.register(7, socket)

    await manager.handle_pubsub_event(json.dumps({"userId": 7, "payload": {"type": "typing_indicator"}}))

    assert socket.sent == [{"type": "typing_indicator"}]


async def test_malformed_pubsub_event_is_dropped():
    manager = ConnectionManager()
    socket = FakeSocket()
    manager.register(7, socket)

    await manager.handle_pubsub_event("not json")
    await manager.handle_pubsub_event(json.dumps({"payload": {}}))

    assert socket.sent == []


async def test_stop_closes_redis_client():
    manager = ConnectionManager()
    redis_client = MagicMock()
    redis_client.aclose = AsyncMock()
    manager.redis_client = redis_client

    await manager.stop()

    redis_client.aclose.assert_awaited_once()
    assert manager.redis_client is None


async def test_start_without_redis_stays_local():
    manager = ConnectionManager()
    await manager.start(None)
    assert manager.redis_client is None
    assert manager._listener is None
