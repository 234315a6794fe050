"""Unit tests for the in-process coaching session store."""

from app.repcoach.session import SessionStore
from app.repcoach.variety import CoachCopy


class TestSessionStore:

    def test_get_creates_once(self):
        store = SessionStore()
        first = store.get("a")
        first.copy_history.push(CoachCopy(message="hello there"))
        assert store.get("a") is first
        assert len(store) == 1
        assert "a" in store

    def test_sessions_are_isolated(self):
        store = SessionStore()
        store.get("a").copy_history.push(CoachCopy(message="hello there"))
        assert len(store.get("b").copy_history) == 0

    def test_ledger_uses_store_clock(self):
        store = SessionStore(clock=lambda: 123.0)
        ledger = store.get("a").whatif_ledger
        ledger.record("walk")
        assert ledger.shown[0].shown_at == 123.0

    def test_drop(self):
        store = SessionStore()
        store.get("a")
        assert store.drop("a") is True
        assert store.drop("a") is False
        assert "a" not in store


class TestIdleEviction:

    def _make_store(self, idle_hours=48.0):
        now = {"t": 1_000_000.0}
        store = SessionStore(clock=lambda: now["t"], idle_hours=idle_hours)
        return store, now

    def test_idle_session_evicted_on_next_get(self):
        store, now = self._make_store()
        store.get("a")
        now["t"] += 49 * 3600.0
        store.get("b")
        assert "a" not in store
        assert len(store) == 1

    def test_active_session_kept(self):
        store, now = self._make_store()
        first = store.get("a")
        for _ in range(5):
            now["t"] += 24 * 3600.0
            assert store.get("a") is first
        assert len(store) == 1

    def test_store_stays_bounded(self):
        store, now = self._make_store(idle_hours=1.0)
        for i in range(500):
            store.get(f"lifter-{i}")
            now["t"] += 2 * 3600.0
        assert len(store) == 1
