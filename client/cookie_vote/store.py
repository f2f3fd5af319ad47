# remote counter store: in-memory + Firestore REST
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

import httpx

from .config import (
    COMPETITORS_COLLECTION,
    FIREBASE_PROJECT_ID,
    FIRESTORE_BASE_URL,
    HTTP_TIMEOUT,
)
from .errors import FetchFailed, WriteFailed
from .models import COUNTER_BY_CATEGORY, Competitor

logger = logging.getLogger(__name__)

COUNTERS = frozenset(COUNTER_BY_CATEGORY.values())


class CounterStore(Protocol):
    async def list_all(self) -> List[Competitor]: ...

    async def increment(self, competitor_id: str, counter: str, new_value: int) -> None: ...


def _check_counter(counter: str) -> None:
    if counter not in COUNTERS:
        raise ValueError(f"counter must be one of {sorted(COUNTERS)}, got {counter}")


class MemoryCounterStore:
    """
    Records kept in a dict: records[competitor_id] = {"name": ..., "flavorVotes": ...}.
    Order of list_all() is insertion order.
    """

    def __init__(self, competitors: Optional[Iterable[Dict[str, Any]]] = None):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.writes: List[tuple] = []
        if competitors:
            self.seed(competitors)

    def seed(self, competitors: Iterable[Dict[str, Any]]) -> None:
        for raw in competitors:
            comp = Competitor.model_validate(raw)
            self.records[comp.id] = comp.model_dump(by_alias=True, exclude={"id"})

    @classmethod
    def from_file(cls, path: str) -> "MemoryCounterStore":
        with open(path, "r", encoding="utf-8") as fh:
            return cls(json.load(fh))

    async def list_all(self) -> List[Competitor]:
        return [Competitor(id=cid, **fields) for cid, fields in self.records.items()]

    async def increment(self, competitor_id: str, counter: str, new_value: int) -> None:
        _check_counter(counter)
        if competitor_id not in self.records:
            raise WriteFailed(competitor_id, counter, "no such record")
        self.records[competitor_id][counter] = new_value
        self.writes.append((competitor_id, counter, new_value))


def _decode_value(value: Dict[str, Any]) -> Any:
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return int(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    return None


def decode_document(doc: Dict[str, Any]) -> Competitor:
    """
    Firestore REST document -> Competitor.
    The id is the last path segment of doc["name"].
    """
    fields = {k: _decode_value(v) for k, v in doc.get("fields", {}).items()}
    data = {k: v for k, v in fields.items() if v is not None}
    data["id"] = doc["name"].rsplit("/", 1)[-1]
    return Competitor.model_validate(data)


class FirestoreCounterStore:
    """
    Talks to the Firestore REST API.
    Counter writes are PATCHes with an update mask and an exists precondition,
    so a write to a missing document fails instead of creating it.
    """

    def __init__(
        self,
        project_id: str = FIREBASE_PROJECT_ID,
        collection: str = COMPETITORS_COLLECTION,
        base_url: str = FIRESTORE_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        session: Any = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not project_id:
            raise ValueError("FIREBASE_PROJECT_ID is required for the firestore backend")
        self.collection_url = (
            f"{base_url.rstrip('/')}/projects/{project_id}/databases/(default)/documents/{collection}"
        )
        self.timeout = timeout
        self.session = session
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        token = getattr(self.session, "id_token", None)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport)

    async def list_all(self) -> List[Competitor]:
        competitors: List[Competitor] = []
        params: Dict[str, str] = {}
        try:
            async with self._client() as client:
                while True:
                    resp = await client.get(self.collection_url, params=params)
                    resp.raise_for_status()
                    body = resp.json()
                    competitors.extend(decode_document(d) for d in body.get("documents", []))
                    token = body.get("nextPageToken")
                    if not token:
                        break
                    params = {"pageToken": token}
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise FetchFailed(f"could not load competitors: {e}") from e
        return competitors

    async def increment(self, competitor_id: str, counter: str, new_value: int) -> None:
        _check_counter(counter)
        params = {
            "updateMask.fieldPaths": counter,
            "currentDocument.exists": "true",
        }
        body = {"fields": {counter: {"integerValue": str(new_value)}}}
        try:
            async with self._client() as client:
                resp = await client.patch(
                    f"{self.collection_url}/{competitor_id}", params=params, json=body
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise WriteFailed(competitor_id, counter, str(e)) from e
