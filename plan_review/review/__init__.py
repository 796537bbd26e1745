"""
Review subsystem exports.
"""

from .anchoring import group_by_block, line_snippet, open_block_ids, parse_status, threads_for_block
from .errors import ConflictError, InvalidInputError, NotFoundError, ReviewError
from .export import build_export
from .indexing import Indexer, NoopIndexer, WhooshIndexer
from .models import (
    CommentRecord,
    Identity,
    PlanRecord,
    ReviewerRecord,
    ThreadRecord,
    ThreadStatus,
    VersionRecord,
)
from .repository import InMemoryReviewRepository, ReviewRepository, SqlAlchemyReviewRepository
from .service import ReviewService, VersionView, coerce_version

__all__ = [
    "CommentRecord",
    "ConflictError",
    "Identity",
    "Indexer",
    "InMemoryReviewRepository",
    "InvalidInputError",
    "NoopIndexer",
    "NotFoundError",
    "PlanRecord",
    "ReviewError",
    "ReviewRepository",
    "ReviewService",
    "ReviewerRecord",
    "SqlAlchemyReviewRepository",
    "ThreadRecord",
    "ThreadStatus",
    "VersionRecord",
    "VersionView",
    "WhooshIndexer",
    "build_export",
    "coerce_version",
    "group_by_block",
    "line_snippet",
    "open_block_ids",
    "parse_status",
    "threads_for_block",
]
