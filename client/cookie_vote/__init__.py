from .controller import VoteController
from .errors import (
    AlreadySubmitted,
    FetchFailed,
    FlagStorageError,
    IncompleteSelection,
    SelectionLimitExceeded,
    SessionEstablishmentFailed,
    SubmissionFailed,
    VoteError,
    WriteFailed,
)
from .models import Category, Competitor, ControllerSnapshot, ControllerState, Outcome
from .session import FirebaseAnonymousSession, NullSession
from .state import FileFlagStore, MemoryFlagStore, SelectionState
from .store import FirestoreCounterStore, MemoryCounterStore

__all__ = [
    "VoteController",
    "Category",
    "Competitor",
    "ControllerSnapshot",
    "ControllerState",
    "Outcome",
    "SelectionState",
    "FileFlagStore",
    "MemoryFlagStore",
    "MemoryCounterStore",
    "FirestoreCounterStore",
    "FirebaseAnonymousSession",
    "NullSession",
    "VoteError",
    "SessionEstablishmentFailed",
    "FetchFailed",
    "SelectionLimitExceeded",
    "IncompleteSelection",
    "AlreadySubmitted",
    "WriteFailed",
    "SubmissionFailed",
    "FlagStorageError",
]
