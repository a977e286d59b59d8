import json
import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import WebSocket

from transconnect.config import settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Live ``user_id -> sockets`` map for the realtime gateway.

    A user may hold several sockets (one per tab); :meth:`send` delivers to
    every one of them. The map is only mutated from handlers running on the
    event loop, so it needs no locking.

    With a redis client attached (``REALTIME_PUBSUB``), :meth:`send` publishes
    on a shared channel instead and every process delivers to its own local
    sockets. Without it, delivery only reaches sockets held by this process.

    Delivery is best effort: a user with no open socket simply misses the
    event and catches up through the REST history endpoints.
    """

    def __init__(self):
        self.active_connections: Dict[int, List[WebSocket]] = {}
        self.redis_client = None
        self._listener: Optional[asyncio.Task] = None

    async def start(self, redis_client=None):
        if redis_client is None:
            return
        self.redis_client = redis_client
        pubsub = self.redis_client.pubsub()
        await pubsub.subscribe(settings.REALTIME_CHANNEL)
        self._listener = asyncio.create_task(self._listen(pubsub))
        logger.info(f"Realtime fan-out via redis channel {settings.REALTIME_CHANNEL}")

    async def stop(self):
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None

    def register(self, user_id: int, websocket: WebSocket) -> bool:
        """Bind a socket to a user. Returns True if the user had no socket before."""
        connections = self.active_connections.setdefault(user_id, [])
        first = not connections
        if websocket not in connections:
            connections.append(websocket)
        logger.info(f"[WebSocket] User {user_id} bound, sockets: {len(connections)}")
        return first

    def unregister(self, user_id: int, websocket: WebSocket) -> bool:
        """Drop a socket. Returns True if that was the user's last one."""
        connections = self.active_connections.get(user_id)
        if connections is None:
            return False

        if websocket in connections:
            connections.remove(websocket)
        logger.info(f"[WebSocket] User {user_id} unbound, sockets: {len(connections)}")

        if not connections:
            del self.active_connections[user_id]
            return True
        return False

    async def send(self, user_id: int, payload: dict):
        if self.redis_client is not None:
            await self.redis_client.publish(
                settings.REALTIME_CHANNEL,
                json.dumps({"userId": user_id, "payload": payload}),
            )
            return
        await self.deliver_local(user_id, payload)

    async def deliver_local(self, user_id: int, payload: dict) -> int:
        # A failed socket stays bound until its own handler sees the close
        delivered = 0
        for connection in list(self.active_connections.get(user_id, [])):
            try:
                await connection.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"[WebSocket] Send to user {user_id} failed: {e}")
        return delivered

    async def _listen(self, pubsub):
        async for event in pubsub.listen():
            if event.get("type") != "message":
                continue
            await self.handle_pubsub_event(event["data"])

    async def handle_pubsub_event(self, data: str):
        try:
            envelope = json.loads(data)
            user_id = int(envelope["userId"])
            payload = envelope["payload"]
        except (ValueError, KeyError, TypeError):
            logger.warning(f"[WebSocket] Dropping malformed pubsub event: {data!r}")
            return
        await self.deliver_local(user_id, payload)

    def get_connected_users(self) -> List[int]:
        return list(self.active_connections.keys())

    def is_user_online(self, user_id: int) -> bool:
        return user_id in self.active_connections

manager = ConnectionManager()
