"""Core data models for treewatch.

Session Lifecycle:
------------------
A watched directory moves through two states:

1. begin: the tree is copied into a hidden snapshot directory and every
   tracked file's identity tick is recorded in a manifest beside the copies.
2. end: the live tree is compared against the snapshot and a ChangeReport is
   produced. The snapshot stays on disk.

Ticks are the only correlation key between the two trees. Content is read
only to break ties between candidates and to quantify rewrites.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .utils import get_iso_timestamp


# ============= Session State =============

class SessionState(str, Enum):
    """State of a watch session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class SnapshotManifest(BaseModel):
    """Snapshot manifest (stored in .initialstate/.initialstate.json).

    All paths are snapshot-relative POSIX strings, which equal their
    root-relative form in the live tree.
    """

    root: str
    tick_source: str
    ignore: List[str] = Field(default_factory=list)  # caller patterns only
    files: Dict[str, int] = Field(default_factory=dict)  # path -> tick
    created_at: str = Field(default_factory=get_iso_timestamp)
    ended_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """Check if the session has not been ended yet."""
        return self.ended_at is None


# ============= Change Report =============

class RenamedFile(BaseModel):
    """A deleted/created pair correlated by tick."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prev_path: str = Field(alias="prevPath")
    path: str
    moved: bool  # same base name, different directory
    similarity: float


class RewrittenFile(BaseModel):
    """A file whose content differs from its snapshot copy."""

    model_config = ConfigDict(frozen=True)

    path: str
    match: float  # % similarity with old content


class ChangeReport(BaseModel):
    """Result of comparing a watched tree with its snapshot."""

    model_config = ConfigDict(frozen=True)

    created: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    renamed: List[RenamedFile] = Field(default_factory=list)
    rewritten: List[RewrittenFile] = Field(default_factory=list)

    @property
    def has_changed(self) -> bool:
        """Check if anything changed."""
        return bool(self.created or self.deleted or self.renamed or self.rewritten)

    @property
    def summary(self) -> Dict[str, int]:
        """Get counts by change kind."""
        return {
            "created": len(self.created),
            "deleted": len(self.deleted),
            "renamed": sum(1 for r in self.renamed if not r.moved),
            "moved": sum(1 for r in self.renamed if r.moved),
            "rewritten": len(self.rewritten),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the external report shape (camelCase keys)."""
        return {
            "hasChanged": self.has_changed,
            "created": list(self.created),
            "deleted": list(self.deleted),
            "renamed": [r.model_dump(by_alias=True) for r in self.renamed],
            "rewritten": [r.model_dump() for r in self.rewritten],
        }
