"""Unit tests for chat storage backends and the session manager."""
import json
import sqlite3

import pytest

from deepreason.chat import Chat, Message
from deepreason.chat.models import NEW_CHAT_TITLE
from deepreason.sessions import ChatStorage, SessionManager, create_chat_storage
from deepreason.sessions.base import STORAGE_KEY


def _chat(title: str = NEW_CHAT_TITLE, *texts: str) -> Chat:
    return Chat(title=title, messages=[Message(role="user", content=t) for t in texts])


class FailingStorage(ChatStorage):
    """Storage whose writes always fail."""

    def __init__(self) -> None:
        self.saves = 0

    def load(self) -> list[Chat]:
        return []

    def save(self, chats: list[Chat]) -> None:
        self.saves += 1
        raise OSError("disk full")

    def clear(self) -> None:
        raise OSError("read-only")

    @property
    def backend_type(self) -> str:
        return "failing"


class TestStorageFactory:
    """Tests for create_chat_storage."""

    def test_chat_storage_is_abstract(self):
        with pytest.raises(TypeError):
            ChatStorage()  # type: ignore

    @pytest.mark.parametrize("backend", ["memory", "json", "sqlite", "JSON"])
    def test_known_backends(self, backend, tmp_path):
        kwargs = {} if backend == "memory" else {"path": tmp_path / "chats.db"}
        storage = create_chat_storage(backend, **kwargs)
        assert storage.backend_type == backend.lower()
        storage.close()

    def test_unknown_backend_fails(self):
        with pytest.raises(ValueError, match="Unsupported storage backend"):
            create_chat_storage("redis")


class TestBackends:
    """Behavior shared by every durable backend."""

    @pytest.fixture(params=["memory", "json", "sqlite"])
    def backend(self, request, tmp_path):
        if request.param == "memory":
            storage = create_chat_storage("memory")
        else:
            storage = create_chat_storage(request.param, path=tmp_path / "store" / "chats")
        yield storage
        storage.close()

    def test_empty_store_loads_nothing(self, backend):
        assert backend.load() == []

    def test_save_then_load(self, backend):
        chats = [
            _chat("Greeting", "Hello"),
            Chat(messages=[
                Message(role="user", content="Why?"),
                Message(role="assistant", content="Because.", thinking="hmm"),
            ]),
        ]
        backend.save(chats)

        loaded = backend.load()
        assert [c.id for c in loaded] == [c.id for c in chats]
        assert loaded[0].title == "Greeting"
        assert loaded[1].messages[1].thinking == "hmm"
        assert loaded[1].timestamp == chats[1].timestamp

    def test_loaded_chats_are_independent_copies(self, backend):
        chat = _chat("A", "x")
        backend.save([chat])
        chat.messages.append(Message(role="user", content="unsaved"))
        assert len(backend.load()[0].messages) == 1

    def test_clear(self, backend):
        backend.save([_chat("A")])
        backend.clear()
        assert backend.load() == []


class TestJSONFileStorage:
    """Tests specific to the JSON file backend."""

    def test_document_shape(self, tmp_path):
        path = tmp_path / "chats.json"
        storage = create_chat_storage("json", path=path)
        storage.save([_chat("Hi", "Hi")])

        data = json.loads(path.read_text())
        assert isinstance(data, list)
        assert set(data[0]) == {"id", "title", "timestamp", "messages"}
        assert data[0]["messages"] == [{"role": "user", "content": "Hi"}]
        assert not (tmp_path / "chats.json.tmp").exists()

    def test_corrupt_file_is_moved_aside(self, tmp_path):
        path = tmp_path / "chats.json"
        path.write_text("{not json")
        reports = []
        storage = create_chat_storage("json", path=path, debug_callback=lambda *a: reports.append(a))

        assert storage.load() == []
        assert (tmp_path / "chats.json.corrupt").read_text() == "{not json"
        assert not path.exists()
        assert reports[0][0] == "warning"

    def test_wrong_shape_is_treated_as_corrupt(self, tmp_path):
        path = tmp_path / "chats.json"
        path.write_text(json.dumps([{"title": 3}]))
        storage = create_chat_storage("json", path=path)
        assert storage.load() == []
        assert (tmp_path / "chats.json.corrupt").exists()

    def test_invalid_utf8_is_treated_as_corrupt(self, tmp_path):
        path = tmp_path / "chats.json"
        raw = b'[{"id": "a", "title": "\xff\xfe", "messages": []}]'
        path.write_bytes(raw)
        sessions = SessionManager(create_chat_storage("json", path=path))

        fresh = sessions.load()

        assert [c.id for c in sessions.chats] == [fresh.id]
        assert (tmp_path / "chats.json.corrupt").read_bytes() == raw


class TestSQLiteStorage:
    """Tests specific to the SQLite backend."""

    def test_record_lives_under_storage_key(self, tmp_path):
        path = tmp_path / "chats.db"
        storage = create_chat_storage("sqlite", path=path)
        storage.save([_chat("A")])
        storage.close()

        with sqlite3.connect(path) as connection:
            keys = [row[0] for row in connection.execute("SELECT key FROM kv_store")]
        assert keys == [STORAGE_KEY]

    def test_save_overwrites_previous_record(self, tmp_path):
        storage = create_chat_storage("sqlite", path=tmp_path / "chats.db")
        storage.save([_chat("A"), _chat("B")])
        storage.save([_chat("C")])
        assert [c.title for c in storage.load()] == ["C"]
        storage.close()

    def test_unreadable_record_is_ignored(self, tmp_path):
        path = tmp_path / "chats.db"
        storage = create_chat_storage("sqlite", path=path)
        storage.save([])
        storage.close()
        with sqlite3.connect(path) as connection:
            connection.execute("UPDATE kv_store SET value = 'garbage'")

        storage = create_chat_storage("sqlite", path=path)
        assert storage.load() == []
        storage.close()


class TestSessionManager:
    """Tests for SessionManager."""

    def test_load_starts_a_fresh_active_chat(self, storage):
        storage.save([_chat("Old", "earlier")])
        sessions = SessionManager(storage)

        chat = sessions.load()

        assert [c.title for c in sessions.chats] == ["Old", NEW_CHAT_TITLE]
        assert sessions.active_chat_id == chat.id
        assert sessions.store.messages == []

    def test_load_without_new_chat(self, storage):
        storage.save([_chat("Old")])
        sessions = SessionManager(storage)
        assert sessions.load(start_new=False) is None
        assert sessions.active_chat is None
        assert len(sessions.chats) == 1

    def test_restart_keeps_chats_and_adds_one(self, storage):
        first = SessionManager(storage)
        first.load()
        first.store.append_user_message("Remember me")

        second = SessionManager(storage)
        second.load()

        assert len(second.chats) == 2
        assert second.chats[0].messages[0].content == "Remember me"
        assert second.chats[1].messages == []

    def test_title_comes_from_first_user_message(self, sessions):
        sessions.store.append_user_message("Explain quantum tunneling simply")
        assert sessions.active_chat.title == "Explain quantum tunn"

        sessions.store.append_user_message("And entanglement?")
        assert sessions.active_chat.title == "Explain quantum tunn"

    def test_every_mutation_is_persisted(self, sessions, storage):
        sessions.store.append_user_message("Hi")
        sessions.store.append_or_update_assistant_turn(Message(role="assistant", content="Hel"))
        sessions.store.append_or_update_assistant_turn(Message(role="assistant", content="Hello"))

        stored = storage.load()
        assert stored[-1].messages[-1].content == "Hello"

    def test_select_chat_swaps_visible_messages(self, storage):
        storage.save([_chat("Old", "earlier")])
        sessions = SessionManager(storage)
        sessions.load()
        old_id = sessions.chats[0].id

        sessions.select_chat(old_id)

        assert sessions.active_chat_id == old_id
        assert [m.content for m in sessions.store.messages] == ["earlier"]

    def test_select_unknown_chat_fails(self, sessions):
        with pytest.raises(KeyError):
            sessions.select_chat("missing")

    def test_delete_active_chat_leaves_none_active(self, sessions, storage):
        active_id = sessions.active_chat_id
        sessions.store.append_user_message("bye")

        assert sessions.delete_chat(active_id) is True

        assert sessions.active_chat is None
        assert sessions.store.messages == []
        assert storage.load() == []

    def test_delete_other_chat_keeps_active(self, storage):
        storage.save([_chat("Old", "earlier")])
        sessions = SessionManager(storage)
        current = sessions.load()
        sessions.store.append_user_message("current")

        sessions.delete_chat(sessions.chats[0].id)

        assert sessions.active_chat_id == current.id
        assert [m.content for m in sessions.store.messages] == ["current"]
        assert [c.id for c in storage.load()] == [current.id]

    def test_delete_unknown_chat(self, sessions):
        assert sessions.delete_chat("missing") is False

    def test_ensure_active_chat_creates_when_needed(self, sessions):
        sessions.delete_chat(sessions.active_chat_id)
        chat = sessions.ensure_active_chat()
        assert sessions.active_chat_id == chat.id
        assert sessions.ensure_active_chat() is chat

    def test_clear_all(self, sessions, storage):
        sessions.store.append_user_message("x")
        sessions.create_chat()

        sessions.clear_all()

        assert sessions.chats == []
        assert sessions.active_chat is None
        assert storage.load() == []

    def test_listeners_hear_about_changes(self, sessions):
        seen = []
        unsubscribe = sessions.subscribe(lambda s: seen.append(len(s.chats)))
        sessions.create_chat()
        unsubscribe()
        sessions.create_chat()
        assert seen == [2]

    def test_write_failure_keeps_session_usable(self):
        reports = []
        storage = FailingStorage()
        sessions = SessionManager(storage, debug_callback=lambda *a: reports.append(a))
        sessions.load()

        sessions.store.append_user_message("still here")
        sessions.clear_all()

        assert storage.saves >= 2
        assert any(level == "error" for level, _, _ in reports)
        assert sessions.chats == []
