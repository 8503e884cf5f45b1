"""
Tests for the in-memory session store.

Coverage:
  - absolute expiration via an injected clock (no sweep needed)
  - sweeping, idempotent delete, id collision retry
  - per-session serialization and cross-session independence
  - a session dropped while a caller waits for its lock is gone
"""

import anyio
import pytest

from ddc.app.core.errors import SessionNotFoundError
from ddc.app.sessions.store import SessionKind, SessionStore

pytestmark = pytest.mark.anyio


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl_seconds=60, clock=clock)


# ---------------------------------------------------------------------------
# Map operations
# ---------------------------------------------------------------------------

def test_create_and_get(store):
    session_id = store.create(SessionKind.BUILDER, {"value": 1})

    record = store.get(session_id)
    assert record.kind is SessionKind.BUILDER
    assert record.state == {"value": 1}
    assert len(store) == 1


def test_unknown_id_is_not_found(store):
    with pytest.raises(SessionNotFoundError) as exc_info:
        store.get("does-not-exist")

    assert str(exc_info.value) == "unknown id"


def test_ids_are_unique(store):
    ids = {store.create(SessionKind.EXTRACTOR, object()) for _ in range(100)}
    assert len(ids) == 100


def test_id_collision_is_retried(clock):
    issued = iter(["a", "a", "b"])
    store = SessionStore(ttl_seconds=60, clock=clock, id_factory=lambda: next(issued))

    assert store.create(SessionKind.BUILDER, 1) == "a"
    assert store.create(SessionKind.BUILDER, 2) == "b"
    assert store.get("a").state == 1


def test_delete_is_idempotent(store):
    session_id = store.create(SessionKind.BUILDER, None)

    store.delete(session_id)
    store.delete(session_id)
    store.delete("never-existed")

    with pytest.raises(SessionNotFoundError):
        store.get(session_id)


# ---------------------------------------------------------------------------
# Expiration
# ---------------------------------------------------------------------------

def test_expired_session_is_not_found_before_sweep(store, clock):
    session_id = store.create(SessionKind.BUILDER, None)

    clock.now += 59
    store.get(session_id)

    clock.now += 1
    with pytest.raises(SessionNotFoundError):
        store.get(session_id)

    # Still physically present until swept
    assert len(store) == 1


def test_access_does_not_extend_lifetime(store, clock):
    session_id = store.create(SessionKind.BUILDER, None)

    for _ in range(5):
        clock.now += 11
        store.get(session_id)

    clock.now += 5
    with pytest.raises(SessionNotFoundError):
        store.get(session_id)


def test_sweep_removes_only_expired(store, clock):
    old = store.create(SessionKind.BUILDER, None)
    clock.now += 30
    young = store.create(SessionKind.EXTRACTOR, None)
    clock.now += 30

    assert store.sweep() == 1
    assert len(store) == 1
    store.get(young)
    with pytest.raises(SessionNotFoundError):
        store.get(old)


async def test_background_sweeper(clock):
    store = SessionStore(ttl_seconds=60, sweep_interval_seconds=0.01, clock=clock)
    store.create(SessionKind.BUILDER, None)
    store.start()
    try:
        clock.now += 120
        with anyio.fail_after(2):
            while len(store):
                await anyio.sleep(0.01)
    finally:
        await store.stop()

    assert len(store) == 0


async def test_stop_clears_sessions(store):
    store.create(SessionKind.BUILDER, None)
    store.start()

    await store.stop()

    assert len(store) == 0


# ---------------------------------------------------------------------------
# Exclusive access
# ---------------------------------------------------------------------------

async def test_session_yields_state(store):
    session_id = store.create(SessionKind.EXTRACTOR, ["state"])

    async with store.session(session_id, SessionKind.EXTRACTOR) as state:
        assert state == ["state"]


async def test_wrong_family_is_not_found(store):
    session_id = store.create(SessionKind.BUILDER, None)

    with pytest.raises(SessionNotFoundError):
        async with store.session(session_id, SessionKind.EXTRACTOR):
            pass


async def test_expired_session_cannot_be_entered(store, clock):
    session_id = store.create(SessionKind.BUILDER, None)
    clock.now += 60

    with pytest.raises(SessionNotFoundError):
        async with store.session(session_id, SessionKind.BUILDER):
            pass


async def test_same_session_is_serialized(store):
    session_id = store.create(SessionKind.BUILDER, None)
    events = []
    holding = anyio.Event()
    release = anyio.Event()

    async def first():
        async with store.session(session_id, SessionKind.BUILDER):
            events.append("first-in")
            holding.set()
            await release.wait()
            events.append("first-out")

    async def second():
        await holding.wait()
        async with store.session(session_id, SessionKind.BUILDER):
            events.append("second-in")

    with anyio.fail_after(2):
        async with anyio.create_task_group() as tg:
            tg.start_soon(first)
            tg.start_soon(second)
            await holding.wait()
            await anyio.sleep(0.05)
            assert events == ["first-in"]
            release.set()

    assert events == ["first-in", "first-out", "second-in"]


async def test_other_sessions_are_not_blocked(store):
    busy = store.create(SessionKind.BUILDER, "busy")
    free = store.create(SessionKind.BUILDER, "free")
    holding = anyio.Event()
    release = anyio.Event()

    async def hold():
        async with store.session(busy, SessionKind.BUILDER):
            holding.set()
            await release.wait()

    with anyio.fail_after(2):
        async with anyio.create_task_group() as tg:
            tg.start_soon(hold)
            await holding.wait()

            async with store.session(free, SessionKind.BUILDER) as state:
                assert state == "free"

            release.set()


async def test_session_dropped_while_waiting_is_not_found(store):
    session_id = store.create(SessionKind.BUILDER, None)
    holding = anyio.Event()
    outcome = []

    async def holder():
        async with store.session(session_id, SessionKind.BUILDER):
            holding.set()
            await anyio.sleep(0.05)
            store.delete(session_id)

    async def waiter():
        await holding.wait()
        try:
            async with store.session(session_id, SessionKind.BUILDER):
                outcome.append("entered")
        except SessionNotFoundError:
            outcome.append("not-found")

    with anyio.fail_after(2):
        async with anyio.create_task_group() as tg:
            tg.start_soon(holder)
            tg.start_soon(waiter)

    assert outcome == ["not-found"]
