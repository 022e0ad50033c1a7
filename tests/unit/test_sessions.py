"""Unit tests for session bookkeeping."""

import threading

import pytest

from xpost_mcp.core.exceptions import SessionNotFoundError
from xpost_mcp.mcp.sessions import SessionManager, SessionState


def test_open_and_get():
    manager = SessionManager()
    session = manager.open()

    assert manager.get(session.id) is session
    assert session.state == SessionState.OPEN
    assert session.id in manager
    assert len(manager) == 1


def test_unknown_id_rejected_without_mutation():
    manager = SessionManager()
    manager.open()

    with pytest.raises(SessionNotFoundError, match="No transport found"):
        manager.get("does-not-exist")
    with pytest.raises(SessionNotFoundError):
        manager.get(None)

    assert len(manager) == 1


def test_close_rejects_later_lookups():
    manager = SessionManager()
    session = manager.open()

    assert manager.close(session.id) is True
    assert session.state == SessionState.CLOSED
    assert session.outbound.get_nowait() is None

    with pytest.raises(SessionNotFoundError):
        manager.get(session.id)
    assert manager.close(session.id) is False


def test_send_after_close_is_dropped():
    manager = SessionManager()
    session = manager.open()
    assert session.send("first") is True

    manager.close(session.id)

    assert session.send("late") is False
    assert session.outbound.get_nowait() == "first"
    assert session.outbound.get_nowait() is None


def test_open_close_counts():
    manager = SessionManager()
    sessions = [manager.open() for _ in range(10)]
    for session in sessions[:4]:
        manager.close(session.id)

    assert len(manager) == 6
    assert set(manager.ids()) == {s.id for s in sessions[4:]}


def test_ids_never_reused():
    manager = SessionManager()
    seen = set()
    for _ in range(200):
        session = manager.open()
        assert session.id not in seen
        seen.add(session.id)
        manager.close(session.id)

    assert len(manager) == 0


def test_closed_sessions_leave_no_state():
    manager = SessionManager()
    for _ in range(1000):
        manager.close(manager.open().id)

    assert manager.ids() == []
    assert manager._sessions == {}
    assert set(vars(manager)) == {"_sessions", "_lock"}


def test_concurrent_open_and_close():
    manager = SessionManager()
    opened = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            session = manager.open()
            with lock:
                opened.append(session.id)
            manager.close(session.id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(opened) == 400
    assert len(set(opened)) == 400
    assert len(manager) == 0
