"""Vote selection and submission controller.

One controller per client session. It owns the competitor snapshot, the two
selection sets and the in-memory view of the submission flag; the store, the
durable flag storage and the session service are injected.

Every intent returns an ``Outcome``. Collaborator failures (``VoteError``)
are caught here and never escape to the caller.
"""
import asyncio
import logging
from typing import List, Optional, Tuple

from .config import FLAG_KEY, SELECTION_LIMIT
from .errors import (
    AlreadySubmitted,
    FetchFailed,
    FlagStorageError,
    SelectionLimitExceeded,
    SessionEstablishmentFailed,
    SubmissionFailed,
    VoteError,
)
from .models import (
    Category,
    Competitor,
    CompetitorView,
    ControllerSnapshot,
    ControllerState,
    Outcome,
)
from .session import NullSession, SessionService
from .state import FlagStore, SelectionState
from .store import CounterStore

logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = "Votes submitted successfully!"


class VoteController:
    def __init__(
        self,
        store: CounterStore,
        flags: FlagStore,
        session: Optional[SessionService] = None,
        flag_key: str = FLAG_KEY,
        limit: int = SELECTION_LIMIT,
    ):
        self.store = store
        self.flags = flags
        self.session = session or NullSession()
        self.flag_key = flag_key

        self.competitors: List[Competitor] = []
        self.selection = SelectionState(limit)
        self.submitted = False
        self.loaded = False
        self.message: Optional[str] = None
        self.last_error: Optional[Outcome] = None
        self.session_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ControllerState:
        if self.submitted:
            return ControllerState.SUBMITTED
        if not self.loaded:
            return ControllerState.LOADING
        return ControllerState.VOTING

    # ----------- lifecycle -----------

    async def initialize(self) -> Outcome:
        self.session_task = asyncio.create_task(self._establish_session())
        self.submitted = self._read_flag()
        return await self.refresh_competitors()

    async def _establish_session(self) -> None:
        try:
            await self.session.establish()
        except SessionEstablishmentFailed as e:
            # voting is keyed to documents, not identity
            logger.warning(f"Error signing in: {e.message}")

    def _read_flag(self) -> bool:
        try:
            return bool(self.flags.get(self.flag_key))
        except FlagStorageError as e:
            logger.error(f"Submission flag unreadable, assuming not submitted: {e.message}")
            return False

    async def refresh_competitors(self) -> Outcome:
        """
        Replace the snapshot with one full read.
        On failure the previous snapshot stays in place.
        """
        try:
            competitors = await self.store.list_all()
        except FetchFailed as e:
            logger.warning(f"Competitor refresh failed: {e.message}")
            self.last_error = Outcome.from_error(e)
            return self.last_error

        self.competitors = list(competitors)
        self.loaded = True
        self.last_error = None
        return Outcome.success()

    # ----------- intents -----------

    def toggle_selection(self, competitor_id: str, category: Category) -> Outcome:
        try:
            self.selection.toggle(competitor_id, Category(category))
        except SelectionLimitExceeded as e:
            return Outcome.from_error(e)
        return Outcome.success()

    def clear_selections(self) -> Outcome:
        self.selection.clear()
        return Outcome.success()

    def reset_submission_flag(self) -> Outcome:
        try:
            self.flags.clear(self.flag_key)
        except FlagStorageError as e:
            logger.error(f"Could not clear submission flag: {e.message}")
        self.submitted = False
        self.message = None
        return Outcome.success("Submission flag removed. You can now vote again.")

    async def submit_votes(self) -> Outcome:
        try:
            if self.submitted:
                raise AlreadySubmitted()
            self.selection.require_complete()
            writes = self._plan_writes()
            await self._apply(writes)
        except VoteError as e:
            return Outcome.from_error(e)

        logger.info(f"Submitted {len(writes)} votes")
        self._mark_submitted()
        self.selection.clear()
        self.message = SUBMITTED_MESSAGE
        await self.refresh_competitors()
        return Outcome.success(SUBMITTED_MESSAGE)

    # ----------- submission helpers -----------

    def _plan_writes(self) -> List[Tuple[str, str, int]]:
        """
        One (competitor_id, counter, new_value) per selected id and category,
        computed from the last snapshot rather than a fresh read.
        """
        by_id = {c.id: c for c in self.competitors}
        writes = []
        unknown = []
        for category in Category:
            for cid in self.selection.selected(category):
                comp = by_id.get(cid)
                if comp is None:
                    unknown.append((cid, category.counter))
                    continue
                writes.append((cid, category.counter, comp.votes_for(category) + 1))
        if unknown:
            names = ", ".join(cid for cid, _ in unknown)
            raise SubmissionFailed(
                applied=0,
                failed=unknown,
                message=f"Unknown competitors selected: {names}. Refresh and try again.",
            )
        return writes

    async def _apply(self, writes: List[Tuple[str, str, int]]) -> None:
        results = await asyncio.gather(
            *(self.store.increment(cid, counter, value) for cid, counter, value in writes),
            return_exceptions=True,
        )
        failed = []
        for (cid, counter, _), result in zip(writes, results):
            if isinstance(result, BaseException):
                logger.error(f"Error submitting vote {cid}.{counter}: {result}")
                failed.append((cid, counter))
        if failed:
            raise SubmissionFailed(applied=len(writes) - len(failed), failed=failed)

    def _mark_submitted(self) -> None:
        try:
            self.flags.set(self.flag_key, True)
        except FlagStorageError as e:
            logger.error(f"Submission flag not persisted: {e.message}")
        self.submitted = True

    # ----------- view -----------

    def snapshot(self) -> ControllerSnapshot:
        flavor = self.selection.selected(Category.FLAVOR)
        looks = self.selection.selected(Category.LOOKS)
        return ControllerSnapshot(
            state=self.state,
            submitted=self.submitted,
            can_submit=not self.submitted and self.selection.is_complete(),
            competitors=[
                CompetitorView(
                    id=c.id,
                    name=c.name,
                    image_url=c.image_url,
                    flavor_votes=c.flavor_votes,
                    looks_votes=c.looks_votes,
                    selected_flavor=c.id in flavor,
                    selected_looks=c.id in looks,
                )
                for c in self.competitors
            ],
            flavor=list(flavor),
            looks=list(looks),
            message=self.message,
            last_error=self.last_error,
        )
