"""Unit tests for src/realtime/presence.py"""

import pytest

from src.core.shared_types import PresenceStatus
from src.realtime.connection import Connection
from src.realtime.presence import PresenceRegistry
from src.realtime.protocol import PongEvent


def authenticated(identity: str) -> Connection:
    connection = Connection()
    connection.identity = identity
    return connection


def statuses(connection: Connection) -> list[tuple[str, str]]:
    return [
        (event.data.identity, event.data.status)
        for event in connection.pending()
        if event.type == "USER_STATUS"
    ]


def test_first_connection_goes_online() -> None:
    presence = PresenceRegistry()
    alice = authenticated("alice")
    presence.connect(alice)
    bob = authenticated("bob")
    presence.connect(bob)

    assert presence.status_of("alice") == PresenceStatus.ONLINE
    assert statuses(alice) == [("bob", PresenceStatus.ONLINE)]
    # the joining connection is not told about itself
    assert statuses(bob) == []


def test_second_connection_is_not_announced() -> None:
    presence = PresenceRegistry()
    watcher = authenticated("watcher")
    presence.connect(watcher)
    presence.connect(authenticated("alice"))
    presence.connect(authenticated("alice"))
    assert statuses(watcher) == [("alice", PresenceStatus.ONLINE)]


def test_offline_after_last_connection_leaves() -> None:
    presence = PresenceRegistry()
    watcher = authenticated("watcher")
    presence.connect(watcher)
    first, second = authenticated("alice"), authenticated("alice")
    presence.connect(first)
    presence.connect(second)
    watcher.pending()

    presence.disconnect(first)
    assert presence.status_of("alice") == PresenceStatus.ONLINE
    assert statuses(watcher) == []

    presence.disconnect(second)
    assert presence.status_of("alice") == PresenceStatus.OFFLINE
    assert not presence.is_connected("alice")
    assert statuses(watcher) == [("alice", PresenceStatus.OFFLINE)]


def test_set_status_only_announces_changes() -> None:
    presence = PresenceRegistry()
    watcher = authenticated("watcher")
    presence.connect(watcher)
    presence.set_status("watcher", PresenceStatus.IN_GAME)
    presence.set_status("watcher", PresenceStatus.IN_GAME)
    assert statuses(watcher) == [("watcher", PresenceStatus.IN_GAME)]


def test_online_users_is_sorted() -> None:
    presence = PresenceRegistry()
    for identity in ("carol", "alice", "bob"):
        presence.connect(authenticated(identity))
    presence.set_status("bob", PresenceStatus.IN_GAME)
    assert [(user.identity, user.status) for user in presence.online_users()] == [
        ("alice", PresenceStatus.ONLINE),
        ("bob", PresenceStatus.IN_GAME),
        ("carol", PresenceStatus.ONLINE),
    ]


def test_send_to_reaches_every_connection_of_a_user() -> None:
    presence = PresenceRegistry()
    first, second = authenticated("alice"), authenticated("alice")
    presence.connect(first)
    presence.connect(second)
    assert presence.send_to("alice", PongEvent())
    assert [event.type for event in first.pending()] == ["PONG"]
    assert [event.type for event in second.pending()] == ["PONG"]
    assert not presence.send_to("nobody", PongEvent())


def test_unauthenticated_connection_cannot_subscribe() -> None:
    with pytest.raises(ValueError):
        PresenceRegistry().connect(Connection())


def test_disconnect_of_unknown_connection_is_ignored() -> None:
    presence = PresenceRegistry()
    presence.disconnect(Connection())
    presence.disconnect(authenticated("ghost"))
    assert presence.online_users() == []
