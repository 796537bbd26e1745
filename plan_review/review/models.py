from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class ThreadStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Identity:
    email: str
    name: str


@dataclass
class PlanRecord:
    id: str
    title: str
    created_by_email: str
    created_by_name: str
    project_name: str = ""
    plan_filename: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class VersionRecord:
    """
    Immutable snapshot of a plan's full content. Numbers start at 1 and are
    assigned by the repository.
    """

    plan_id: str
    version: int
    content: str
    submitted_by_email: str
    submitted_by_name: str
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ReviewerRecord:
    plan_id: str
    version: int
    email: str
    name: str
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


@dataclass
class CommentRecord:
    id: str
    thread_id: str
    author_email: str
    author_name: str
    content: str
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ThreadRecord:
    """
    A review discussion anchored to one block of one plan version. The anchor
    (`version`, `block_id`, `start_line`, `end_line`) is stored as given and
    is only meaningful for that exact version.
    """

    id: str
    plan_id: str
    version: int
    block_id: str
    start_line: int
    end_line: int
    author_email: str
    author_name: str
    status: ThreadStatus = ThreadStatus.OPEN
    created_at: datetime = field(default_factory=datetime.utcnow)
    comments: List[CommentRecord] = field(default_factory=list)
