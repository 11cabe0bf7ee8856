"""Tests for the expired refresh-token reaper"""
import asyncio
from datetime import timedelta

from sessionguard.core.reaper import TokenReaper
from sessionguard.core.store import CredentialStore
from sessionguard.models import RefreshToken


def _seed(store: CredentialStore, clock):
    user = store.create_user("ada@example.com", "hash", "Ada")
    store.insert_refresh_token(user.id, "expired", clock() - timedelta(hours=1))
    store.insert_refresh_token(user.id, "live", clock() + timedelta(days=1))
    return user


def test_run_once_deletes_expired_rows(db, session_factory, store, codec, clock):
    _seed(store, clock)
    reaper = TokenReaper(session_factory, codec=codec, clock=clock)

    assert reaper.run_once() == 1
    assert [row.token for row in db.query(RefreshToken).all()] == ["live"]
    assert reaper.run_once() == 0


def test_start_and_stop(db, session_factory, codec, clock):
    reaper = TokenReaper(session_factory, interval_seconds=3600, codec=codec, clock=clock)

    async def scenario():
        reaper.start()
        assert reaper.running
        await reaper.stop()

    asyncio.run(scenario())
    assert not reaper.running


def test_loop_sweeps_on_interval(db, session_factory, store, codec, clock):
    _seed(store, clock)
    reaper = TokenReaper(session_factory, interval_seconds=0.05, codec=codec, clock=clock)

    async def scenario():
        reaper.start()
        await asyncio.sleep(0.3)
        await reaper.stop()

    asyncio.run(scenario())

    db.expire_all()
    assert [row.token for row in db.query(RefreshToken).all()] == ["live"]


def test_loop_survives_failed_sweep(db, session_factory, codec, clock, monkeypatch):
    reaper = TokenReaper(session_factory, interval_seconds=0.02, codec=codec, clock=clock)
    calls = []

    def failing_sweep():
        calls.append(1)
        raise RuntimeError("database is locked")

    monkeypatch.setattr(reaper, "run_once", failing_sweep)

    async def scenario():
        reaper.start()
        await asyncio.sleep(0.2)
        assert reaper.running
        await reaper.stop()

    asyncio.run(scenario())
    assert len(calls) >= 2
