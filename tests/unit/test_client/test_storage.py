"""Tests for the JSON-file backed client storage."""

from pathlib import Path

from foxshrine_api.client.storage import LocalStorage


class TestLocalStorage:
    def test_in_memory(self) -> None:
        storage = LocalStorage()
        storage.set_item("a", "1")
        assert storage.get_item("a") == "1"
        assert "a" in storage
        storage.remove_item("a")
        assert storage.get_item("a") is None

    def test_persists_between_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "storage.json"
        LocalStorage(path).set_item("foxshrine_access_token", "abc")
        assert LocalStorage(path).get_item("foxshrine_access_token") == "abc"

    def test_clear(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        storage = LocalStorage(path)
        storage.set_item("a", "1")
        storage.clear()
        assert LocalStorage(path).get_item("a") is None

    def test_unreadable_file_starts_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        path.write_text("{broken", encoding="utf-8")
        assert LocalStorage(path).get_item("a") is None

    def test_non_object_file_starts_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert "1" not in LocalStorage(path)

    def test_removing_missing_key(self) -> None:
        storage = LocalStorage()
        storage.remove_item("never-set")
        assert storage.get_item("never-set") is None
