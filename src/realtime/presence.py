"""The presence channel: who is online, in a game, or gone. Every authenticated connection is subscribed to it."""

from typing import Optional

from loguru import logger

from src.core.shared_types import PresenceStatus
from src.realtime.connection import Connection
from src.realtime.protocol import OutboundEvent, UserStatusData, UserStatusEvent


class PresenceRegistry:
    def __init__(self) -> None:
        self._connections: dict[str, dict[str, Connection]] = {}
        self._status: dict[str, PresenceStatus] = {}

    def connect(self, connection: Connection) -> None:
        """Subscribe an authenticated connection. The first connection of an identity brings it online."""
        identity = self._identity(connection)
        connections = self._connections.setdefault(identity, {})
        first = not connections
        connections[connection.connection_id] = connection
        if first:
            logger.info(f"{identity} is online")
            self.set_status(identity, PresenceStatus.ONLINE, excluding=connection)

    def disconnect(self, connection: Connection) -> None:
        """Unsubscribe. When the identity's last connection goes, it is announced offline."""
        identity = connection.identity
        if identity is None or identity not in self._connections:
            return
        connections = self._connections[identity]
        connections.pop(connection.connection_id, None)
        if not connections:
            del self._connections[identity]
            logger.info(f"{identity} went offline")
            self.set_status(identity, PresenceStatus.OFFLINE)

    def set_status(
        self,
        identity: str,
        status: PresenceStatus,
        excluding: Optional[Connection] = None,
    ) -> None:
        """Record the new status and announce it, only when it actually changed."""
        if self._status.get(identity, PresenceStatus.OFFLINE) == status:
            return
        if status == PresenceStatus.OFFLINE:
            self._status.pop(identity, None)
        else:
            self._status[identity] = status
        self.broadcast(
            UserStatusEvent(data=UserStatusData(identity=identity, status=status)),
            excluding=excluding,
        )

    def status_of(self, identity: str) -> PresenceStatus:
        return self._status.get(identity, PresenceStatus.OFFLINE)

    def is_connected(self, identity: str) -> bool:
        return identity in self._connections

    def online_users(self) -> list[UserStatusData]:
        return [
            UserStatusData(identity=identity, status=status)
            for identity, status in sorted(self._status.items())
        ]

    def broadcast(self, event: OutboundEvent, excluding: Optional[Connection] = None) -> None:
        recipients = [
            connection
            for connections in self._connections.values()
            for connection in connections.values()
        ]
        for connection in recipients:
            if connection is not excluding:
                connection.send(event)

    def send_to(self, identity: str, event: OutboundEvent) -> bool:
        """Deliver to every connection of one identity. False if that user is not connected."""
        connections = list(self._connections.get(identity, {}).values())
        for connection in connections:
            connection.send(event)
        return bool(connections)

    def _identity(self, connection: Connection) -> str:
        if connection.identity is None:
            raise ValueError(f"{connection!r} must be authenticated before joining the presence channel.")
        return connection.identity
