"""Tests for database session management."""

import pytest

from kb_core.config import get_settings
from kb_core.db import KnowledgeEntry, get_engine, init_db, reset_engine, session_scope


@pytest.fixture()
def default_engine(monkeypatch):
    """Point the module-level engine at in-memory SQLite."""
    monkeypatch.setenv('DATABASE_URL', 'sqlite://')
    get_settings.cache_clear()
    reset_engine()
    yield
    reset_engine()
    get_settings.cache_clear()


def make_entry(**overrides) -> KnowledgeEntry:
    values = {
        'title': "Scoped",
        'source_type': "text",
        'content': "Body.",
        'embedding': "[1.0]",
    }
    values.update(overrides)
    return KnowledgeEntry(**values)


class TestEngineCache:
    """Test the cached default engine."""

    def test_default_engine_is_cached(self, default_engine):
        assert get_engine() is get_engine()
        assert str(get_engine().url) == 'sqlite://'

    def test_reset_creates_new_engine(self, default_engine):
        first = get_engine()

        reset_engine()

        assert get_engine() is not first

    def test_explicit_url_is_not_cached(self):
        assert get_engine('sqlite://') is not get_engine('sqlite://')


class TestSessionScope:
    """Test commit and rollback of scoped sessions."""

    def test_commits_on_success(self, engine):
        with session_scope(engine) as session:
            session.add(make_entry())

        with session_scope(engine) as session:
            assert session.query(KnowledgeEntry).count() == 1

    def test_rolls_back_on_error(self, engine):
        with pytest.raises(RuntimeError):
            with session_scope(engine) as session:
                session.add(make_entry())
                session.flush()
                raise RuntimeError("boom")

        with session_scope(engine) as session:
            assert session.query(KnowledgeEntry).count() == 0

    def test_uses_default_engine(self, default_engine):
        init_db()

        with session_scope() as session:
            session.add(make_entry(title="Default"))

        with session_scope() as session:
            assert [e.title for e in session.query(KnowledgeEntry)] == ["Default"]
