# selection sets + durable submission flag
import json
import logging
import os
import tempfile
from typing import Dict, List, Optional, Protocol, Tuple

from .config import SELECTION_LIMIT
from .errors import FlagStorageError, IncompleteSelection, SelectionLimitExceeded
from .models import Category

logger = logging.getLogger(__name__)


class SelectionState:
    """
    Two independent capacity-bounded id sets, one per category.
    An id may sit in both sets at once. Insertion order is kept for display.
    """

    def __init__(self, limit: int = SELECTION_LIMIT):
        self.limit = limit
        self._selected: Dict[Category, List[str]] = {c: [] for c in Category}

    def selected(self, category: Category) -> Tuple[str, ...]:
        return tuple(self._selected[Category(category)])

    def contains(self, competitor_id: str, category: Category) -> bool:
        return competitor_id in self._selected[Category(category)]

    def toggle(self, competitor_id: str, category: Category) -> bool:
        """
        Remove the id if present, add it otherwise.
        Returns True if the id is selected afterwards.
        Raises SelectionLimitExceeded (state unchanged) when adding to a full set.
        """
        category = Category(category)
        ids = self._selected[category]
        if competitor_id in ids:
            ids.remove(competitor_id)
            return False
        if len(ids) >= self.limit:
            raise SelectionLimitExceeded(category.value, self.limit)
        ids.append(competitor_id)
        return True

    def missing(self) -> Dict[str, int]:
        return {c.value: self.limit - len(ids) for c, ids in self._selected.items()}

    def is_complete(self) -> bool:
        return all(len(ids) == self.limit for ids in self._selected.values())

    def require_complete(self) -> None:
        if not self.is_complete():
            raise IncompleteSelection(self.missing(), self.limit)

    def clear(self) -> None:
        for ids in self._selected.values():
            ids.clear()


class FlagStore(Protocol):
    def get(self, key: str) -> Optional[bool]: ...

    def set(self, key: str, value: bool) -> None: ...

    def clear(self, key: str) -> None: ...


class MemoryFlagStore:
    def __init__(self, initial: Optional[Dict[str, bool]] = None):
        self.flags: Dict[str, bool] = dict(initial or {})

    def get(self, key: str) -> Optional[bool]:
        return self.flags.get(key)

    def set(self, key: str, value: bool) -> None:
        self.flags[key] = bool(value)

    def clear(self, key: str) -> None:
        self.flags.pop(key, None)


class FileFlagStore:
    """
    Device-local flags kept in a small JSON file.
    Writes go through a temp file + os.replace so a crash never leaves half a file.
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, bool]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise FlagStorageError(f"cannot read flags from {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise FlagStorageError(f"flag file {self.path} does not hold an object")
        return {k: bool(v) for k, v in data.items()}

    def _dump(self, flags: Dict[str, bool]) -> None:
        directory = os.path.dirname(self.path) or "."
        tmp = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".flags-")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(flags, fh)
            os.replace(tmp, self.path)
            tmp = None
        except (OSError, TypeError, ValueError) as e:
            raise FlagStorageError(f"cannot write flags to {self.path}: {e}") from e
        finally:
            if tmp is not None and os.path.exists(tmp):
                os.remove(tmp)

    def get(self, key: str) -> Optional[bool]:
        return self._load().get(key)

    def set(self, key: str, value: bool) -> None:
        flags = self._load()
        flags[key] = bool(value)
        self._dump(flags)
        logger.debug(f"flag {key}={value} saved to {self.path}")

    def clear(self, key: str) -> None:
        flags = self._load()
        if flags.pop(key, None) is not None:
            self._dump(flags)
