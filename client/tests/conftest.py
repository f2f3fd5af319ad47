import pytest

from cookie_vote.controller import VoteController
from cookie_vote.errors import FetchFailed, SessionEstablishmentFailed, WriteFailed
from cookie_vote.state import MemoryFlagStore
from cookie_vote.store import MemoryCounterStore

COMPETITORS = [
    {"id": "a", "name": "Snickerdoodle", "imageUrl": "/img/a.png", "flavorVotes": 3, "looksVotes": 1},
    {"id": "b", "name": "Oatmeal Raisin", "imageUrl": "/img/b.png", "flavorVotes": 0, "looksVotes": 0},
    {"id": "c", "name": "Chocolate Chip", "imageUrl": "/img/c.png", "flavorVotes": 5, "looksVotes": 2},
]


class FlakyStore(MemoryCounterStore):
    """Memory store that can be told to fail listing or specific writes."""

    def __init__(self, competitors=None):
        super().__init__(competitors)
        self.fail_list = False
        self.fail_writes = set()
        self.list_calls = 0

    async def list_all(self):
        self.list_calls += 1
        if self.fail_list:
            raise FetchFailed("store unreachable")
        return await super().list_all()

    async def increment(self, competitor_id, counter, new_value):
        if (competitor_id, counter) in self.fail_writes:
            raise WriteFailed(competitor_id, counter, "permission denied")
        await super().increment(competitor_id, counter, new_value)


class FailingSession:
    def __init__(self):
        self.calls = 0

    async def establish(self):
        self.calls += 1
        raise SessionEstablishmentFailed("network down")


@pytest.fixture
def store():
    return FlakyStore(COMPETITORS)


@pytest.fixture
def flags():
    return MemoryFlagStore()


@pytest.fixture
def controller(store, flags):
    return VoteController(store, flags)
