from __future__ import annotations

from pathlib import Path

import pytest

from azanything.exceptions import AzStorageError
from azanything.storage import JsonFileStorage, KeyValueStorage, MemoryStorage


def test_memory_storage_basics() -> None:
    storage = MemoryStorage({"a": "1"})
    assert isinstance(storage, KeyValueStorage)
    assert storage.get("a") == "1"
    storage.set("b", "[]")
    assert storage.keys() == ["a", "b"]
    storage.delete("a")
    storage.delete("a")
    assert storage.get("a") is None


class TestJsonFileStorage:
    def test_round_trip(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path / "state")
        assert isinstance(storage, KeyValueStorage)
        assert storage.get("azAnythingRequests") is None

        storage.set("azAnythingRequests", '[{"id": "1"}]')
        assert storage.get("azAnythingRequests") == '[{"id": "1"}]'
        assert (tmp_path / "state" / "azAnythingRequests.json").is_file()

    def test_overwrite_leaves_no_temp_files(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        storage.set("k", "one")
        storage.set("k", "two")
        assert storage.get("k") == "two"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]

    def test_delete(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        storage.set("k", "v")
        storage.delete("k")
        storage.delete("k")
        assert storage.get("k") is None

    def test_unicode(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        storage.set("k", '{"pickupLocation": "गांव चौक"}')
        assert JsonFileStorage(tmp_path).get("k") == '{"pickupLocation": "गांव चौक"}'

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
    def test_unsafe_keys(self, tmp_path: Path, key: str) -> None:
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(AzStorageError):
            storage.set(key, "v")

    def test_temp_file_failure_is_storage_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        storage = JsonFileStorage(tmp_path)

        def no_space(*args: object, **kwargs: object) -> tuple[int, str]:
            raise OSError(28, "No space left on device")

        monkeypatch.setattr("azanything.storage.tempfile.mkstemp", no_space)
        with pytest.raises(AzStorageError) as excinfo:
            storage.set("k", "v")
        assert excinfo.value.key == "k"
        assert storage.get("k") is None
