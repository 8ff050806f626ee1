"""Tests for the command line client's persisted login."""

import stat
from pathlib import Path

from helpdesk_realtime.adapters.client import ClientStateStore
from helpdesk_realtime.domain.models.stored_session import StoredSession
from helpdesk_realtime.domain.models.viewer import UserType


def make_session() -> StoredSession:
    return StoredSession(
        token="carol-token",
        user_id="agt-2",
        user_name="Carol Jones",
        avatar_url="https://example.com/carol.png",
    )


def test_save_and_load(tmp_path: Path) -> None:
    """Given a saved login, when loading it again, then the same session is returned."""
    store = ClientStateStore(tmp_path / "state" / "session.json")

    store.save(make_session())

    assert store.load() == make_session()
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o600


def test_load_without_file_means_logged_out(tmp_path: Path) -> None:
    assert ClientStateStore(tmp_path / "missing.json").load() is None


def test_corrupt_file_means_logged_out(tmp_path: Path) -> None:
    """Given an unreadable state file, when loading, then no session is returned."""
    path = tmp_path / "session.json"
    path.write_text('{"token": "t"}', encoding="utf-8")
    store = ClientStateStore(path)

    assert store.load() is None

    path.write_text("not json", encoding="utf-8")
    assert store.load() is None


def test_clear_forgets_login(tmp_path: Path) -> None:
    """Given a saved login, when clearing twice, then the file is gone and nothing fails."""
    store = ClientStateStore(tmp_path / "session.json")
    store.save(make_session())

    store.clear()
    store.clear()

    assert store.load() is None


def test_session_describes_viewer() -> None:
    viewer = make_session().as_viewer()

    assert viewer.user_id == "agt-2"
    assert viewer.user_avatar == "https://example.com/carol.png"
    assert viewer.user_type is UserType.AGENT
