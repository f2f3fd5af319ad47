from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    FLAVOR = "flavor"
    LOOKS = "looks"

    @property
    def counter(self) -> str:
        return COUNTER_BY_CATEGORY[self]


COUNTER_BY_CATEGORY = {
    Category.FLAVOR: "flavorVotes",
    Category.LOOKS: "looksVotes",
}


class ControllerState(str, Enum):
    LOADING = "loading"
    VOTING = "voting"
    SUBMITTED = "submitted"


class Competitor(BaseModel):
    """
    One votable entry as stored remotely.
    Wire names are camelCase (imageUrl, flavorVotes, looksVotes).
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    image_url: str = Field("", alias="imageUrl")
    flavor_votes: int = Field(0, ge=0, alias="flavorVotes")
    looks_votes: int = Field(0, ge=0, alias="looksVotes")

    def votes_for(self, category: Category) -> int:
        if category is Category.FLAVOR:
            return self.flavor_votes
        return self.looks_votes


class ToggleIn(BaseModel):
    competitor_id: str = Field(..., min_length=1, examples=["a"])
    category: Category = Field(..., examples=["flavor"])


class Outcome(BaseModel):
    """Result of one controller intent, rendered by the view as a notice."""
    kind: str = "ok"
    message: Optional[str] = None
    category: Optional[Category] = None
    limit: Optional[int] = None
    missing: Optional[Dict[str, int]] = None
    applied: Optional[int] = None
    failed: Optional[List[Tuple[str, str]]] = None

    @property
    def ok(self) -> bool:
        return self.kind == "ok"

    @classmethod
    def success(cls, message: Optional[str] = None) -> "Outcome":
        return cls(kind="ok", message=message)

    @classmethod
    def from_error(cls, err: Any) -> "Outcome":
        fields: Dict[str, Any] = {"kind": err.kind, "message": err.message}
        for name in ("category", "limit", "missing", "applied", "failed"):
            if hasattr(err, name):
                fields[name] = getattr(err, name)
        return cls(**fields)


class CompetitorView(BaseModel):
    id: str
    name: str
    image_url: str
    flavor_votes: int
    looks_votes: int
    selected_flavor: bool
    selected_looks: bool


class ControllerSnapshot(BaseModel):
    state: ControllerState
    submitted: bool
    can_submit: bool
    competitors: List[CompetitorView]
    flavor: List[str]
    looks: List[str]
    message: Optional[str] = None
    last_error: Optional[Outcome] = None
