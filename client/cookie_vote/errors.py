"""Failures raised by the voting collaborators.

Every error carries a stable ``kind`` so the controller can turn it into an
``Outcome`` without inspecting the exception type.
"""
from typing import Dict, List, Optional, Tuple


class VoteError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionEstablishmentFailed(VoteError):
    kind = "session_failed"


class FetchFailed(VoteError):
    kind = "fetch_failed"


class SelectionLimitExceeded(VoteError):
    kind = "selection_limit_exceeded"

    def __init__(self, category: str, limit: int):
        super().__init__(f"You can only select {limit} {category.capitalize()} votes!")
        self.category = category
        self.limit = limit


class IncompleteSelection(VoteError):
    kind = "incomplete_selection"

    def __init__(self, missing: Dict[str, int], limit: int):
        parts = [f"{count} more {category}" for category, count in missing.items() if count]
        super().__init__(
            f"You must select exactly {limit} Flavor votes and {limit} Looks votes "
            f"before submitting (missing: {', '.join(parts)})."
        )
        self.missing = missing


class AlreadySubmitted(VoteError):
    kind = "already_submitted"

    def __init__(self, message: str = "You have already submitted your votes. Thank you!"):
        super().__init__(message)


class WriteFailed(VoteError):
    """One counter write that did not go through."""

    kind = "write_failed"

    def __init__(self, competitor_id: str, counter: str, reason: Optional[str] = None):
        detail = f": {reason}" if reason else ""
        super().__init__(f"could not update {counter} on {competitor_id}{detail}")
        self.competitor_id = competitor_id
        self.counter = counter


class SubmissionFailed(VoteError):
    """
    Some writes of a batch failed. Writes that succeeded are NOT rolled back,
    so retrying can count those selections twice.
    """

    kind = "submission_failed"

    def __init__(self, applied: int, failed: List[Tuple[str, str]], message: Optional[str] = None):
        super().__init__(message or "Failed to submit votes. Please try again.")
        self.applied = applied
        self.failed = failed


class FlagStorageError(VoteError):
    kind = "flag_storage_failed"
