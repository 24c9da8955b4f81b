import os

import pytest

from backend.errors import InvalidParameterError, OutputNotFoundError
from backend.utils import OutputStorage


@pytest.fixture
def storage(tmp_path):
    return OutputStorage(tmp_path / "output")


def test_save_and_resolve(storage):
    storage.save("aesthetic_abc.jpg", b"jpeg-bytes")
    assert storage.resolve("aesthetic_abc.jpg").read_bytes() == b"jpeg-bytes"


def test_resolve_missing(storage):
    with pytest.raises(OutputNotFoundError):
        storage.resolve("missing.png")


@pytest.mark.parametrize("name", ["../secret.txt", "..", "a/b.png", "a\\b.png", "", "x\x00.png"])
def test_rejects_traversal(storage, name):
    with pytest.raises(InvalidParameterError):
        storage.resolve(name)


def test_history_newest_first(storage):
    older = storage.save("older.jpg", b"1")
    storage.save("newer.png", b"22")
    storage.save(".hidden", b"x")
    os.utime(older, (1_000_000, 1_000_000))

    history = storage.history()

    assert [item.filename for item in history] == ["newer.png", "older.jpg"]
    assert history[0].size == 2
    assert history[0].download_url == "/api/download/newer.png"
