"""Tests for the ChromaDB vector store."""

import os

import pytest

pytest.importorskip("chromadb")

from taskweave.memory import VectorMemory  # noqa: E402
from taskweave.memory.vector_stores.chroma import ChromaVectorStore  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_chroma_env(tmp_path):
    """Ensure ONNX and Chroma don't clash on default cache dirs during testing."""
    cache_dir = tmp_path / ".cache"
    cache_dir.mkdir()

    old_onnx = os.environ.get("ONNX_HOME")
    old_chroma = os.environ.get("CHROMA_CACHE_DIR")

    os.environ["ONNX_HOME"] = str(cache_dir / "onnx")
    os.environ["CHROMA_CACHE_DIR"] = str(cache_dir / "chroma")

    yield

    if old_onnx is not None:
        os.environ["ONNX_HOME"] = old_onnx
    else:
        os.environ.pop("ONNX_HOME", None)

    if old_chroma is not None:
        os.environ["CHROMA_CACHE_DIR"] = old_chroma
    else:
        os.environ.pop("CHROMA_CACHE_DIR", None)


@pytest.fixture
def store(tmp_path):
    return ChromaVectorStore(collection_name="test_memory", path=tmp_path / "chroma")


@pytest.mark.asyncio
async def test_chroma_store_crud(store):
    assert await store.count() == 0

    await store.upsert("a", [1.0, 0.0, 0.0], "first", {"user_id": "u1", "seq": 1})
    await store.upsert("b", [0.0, 1.0, 0.0], "second", {"user_id": "u2", "seq": 2})

    assert await store.count() == 2
    assert await store.count({"user_id": "u1"}) == 1

    matches = await store.query([1.0, 0.1, 0.0], limit=2)
    assert [m.id for m in matches] == ["a", "b"]
    assert matches[0].score > matches[1].score
    assert matches[0].text == "first"

    filtered = await store.query([1.0, 0.0, 0.0], limit=5, filter={"user_id": "u2", "seq": 2})
    assert [m.id for m in filtered] == ["b"]

    assert await store.delete({"user_id": "u1"}) == 1
    assert [r.id for r in await store.get()] == ["b"]


@pytest.mark.asyncio
async def test_chroma_backed_vector_memory(provider, store):
    memory = VectorMemory(provider, store=store, user_id="u1")
    await memory.add_all(["deploy the api to staging", "order more coffee beans", "rollback staging deploy"])

    assert await memory.count() == 3
    assert [m.content for m in await memory.get_all()] == [
        "deploy the api to staging",
        "order more coffee beans",
        "rollback staging deploy",
    ]
    hits = await memory.get_relevant("coffee beans order", limit=1)
    assert hits[0].content == "order more coffee beans"
    assert hits[0].metadata["user_id"] == "u1"


def test_unknown_metric_rejected(tmp_path):
    with pytest.raises(ValueError):
        ChromaVectorStore(path=tmp_path / "chroma", metric="hamming")
