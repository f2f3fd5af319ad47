import json

import httpx
import pytest

from cookie_vote.errors import FetchFailed, SessionEstablishmentFailed, WriteFailed
from cookie_vote.session import FirebaseAnonymousSession
from cookie_vote.store import FirestoreCounterStore, MemoryCounterStore, decode_document

from conftest import COMPETITORS

BASE = "https://firestore.test/v1"
COLLECTION_PATH = "/v1/projects/cookies/databases/(default)/documents/competitors"


def doc(cid, name, flavor, looks):
    return {
        "name": f"projects/cookies/databases/(default)/documents/competitors/{cid}",
        "fields": {
            "name": {"stringValue": name},
            "imageUrl": {"stringValue": f"/img/{cid}.png"},
            "flavorVotes": {"integerValue": str(flavor)},
            "looksVotes": {"integerValue": str(looks)},
        },
    }


def firestore(handler, session=None):
    return FirestoreCounterStore(
        project_id="cookies",
        base_url=BASE,
        session=session,
        transport=httpx.MockTransport(handler),
    )


def test_decode_document_fills_missing_counters():
    comp = decode_document(
        {
            "name": "projects/p/databases/(default)/documents/competitors/xyz",
            "fields": {"name": {"stringValue": "Shortbread"}, "flavorVotes": {"doubleValue": 2.0}},
        }
    )
    assert comp.id == "xyz"
    assert comp.name == "Shortbread"
    assert comp.flavor_votes == 2
    assert comp.looks_votes == 0
    assert comp.image_url == ""


@pytest.mark.asyncio
async def test_memory_store_lists_in_seed_order_and_writes():
    store = MemoryCounterStore(COMPETITORS)
    assert [c.id for c in await store.list_all()] == ["a", "b", "c"]
    await store.increment("b", "looksVotes", 1)
    assert store.records["b"]["looksVotes"] == 1
    assert store.writes == [("b", "looksVotes", 1)]


@pytest.mark.asyncio
async def test_memory_store_rejects_unknown_record_and_counter():
    store = MemoryCounterStore(COMPETITORS)
    with pytest.raises(WriteFailed):
        await store.increment("zzz", "flavorVotes", 1)
    with pytest.raises(ValueError):
        await store.increment("a", "textureVotes", 1)


def test_memory_store_from_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(COMPETITORS))
    store = MemoryCounterStore.from_file(str(path))
    assert store.records["c"]["flavorVotes"] == 5


@pytest.mark.asyncio
async def test_firestore_list_follows_pages():
    seen = []

    def handler(request):
        seen.append(request.url.params.get("pageToken"))
        assert request.url.path == COLLECTION_PATH
        if request.url.params.get("pageToken") == "p2":
            return httpx.Response(200, json={"documents": [doc("c", "Chip", 5, 2)]})
        return httpx.Response(
            200,
            json={"documents": [doc("a", "Snicker", 3, 1), doc("b", "Oat", 0, 0)], "nextPageToken": "p2"},
        )

    competitors = await firestore(handler).list_all()
    assert seen == [None, "p2"]
    assert [(c.id, c.flavor_votes, c.looks_votes) for c in competitors] == [
        ("a", 3, 1),
        ("b", 0, 0),
        ("c", 5, 2),
    ]


@pytest.mark.asyncio
async def test_firestore_empty_collection():
    store = firestore(lambda request: httpx.Response(200, json={}))
    assert await store.list_all() == []


@pytest.mark.asyncio
async def test_firestore_list_error_is_fetch_failed():
    store = firestore(lambda request: httpx.Response(503, json={"error": {}}))
    with pytest.raises(FetchFailed):
        await store.list_all()


@pytest.mark.asyncio
async def test_firestore_increment_patches_single_field():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["params"] = dict(request.url.params)
        captured["body"] = json.loads(request.content)
        captured["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json=doc("a", "Snicker", 4, 1))

    class Session:
        id_token = "tok-123"

    await firestore(handler, session=Session()).increment("a", "flavorVotes", 4)

    assert captured["method"] == "PATCH"
    assert captured["path"] == f"{COLLECTION_PATH}/a"
    assert captured["params"] == {
        "updateMask.fieldPaths": "flavorVotes",
        "currentDocument.exists": "true",
    }
    assert captured["body"] == {"fields": {"flavorVotes": {"integerValue": "4"}}}
    assert captured["auth"] == "Bearer tok-123"


@pytest.mark.asyncio
async def test_firestore_increment_missing_document():
    store = firestore(lambda request: httpx.Response(404, json={"error": {"status": "NOT_FOUND"}}))
    with pytest.raises(WriteFailed) as exc:
        await store.increment("ghost", "looksVotes", 1)
    assert exc.value.competitor_id == "ghost"
    assert exc.value.counter == "looksVotes"


def test_firestore_requires_project():
    with pytest.raises(ValueError):
        FirestoreCounterStore(project_id="")


@pytest.mark.asyncio
async def test_anonymous_session_keeps_token():
    def handler(request):
        assert request.url.path == "/v1/accounts:signUp"
        assert request.url.params["key"] == "k"
        assert json.loads(request.content) == {"returnSecureToken": True}
        return httpx.Response(200, json={"idToken": "tok", "localId": "uid-1"})

    session = FirebaseAnonymousSession(
        api_key="k", base_url="https://identity.test", transport=httpx.MockTransport(handler)
    )
    await session.establish()
    assert session.id_token == "tok"
    assert session.uid == "uid-1"


@pytest.mark.asyncio
async def test_anonymous_session_failures():
    with pytest.raises(SessionEstablishmentFailed):
        await FirebaseAnonymousSession(api_key="").establish()

    session = FirebaseAnonymousSession(
        api_key="k",
        base_url="https://identity.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(400, json={})),
    )
    with pytest.raises(SessionEstablishmentFailed):
        await session.establish()
    assert session.id_token is None


@pytest.mark.asyncio
async def test_anonymous_session_rejects_non_object_body():
    session = FirebaseAnonymousSession(
        api_key="k",
        base_url="https://identity.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=["idToken"])),
    )
    with pytest.raises(SessionEstablishmentFailed):
        await session.establish()
    assert session.id_token is None
