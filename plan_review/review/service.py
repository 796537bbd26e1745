from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..markdown.blocks import Block, parse_block_id
from ..markdown.segmenter import parse
from .anchoring import group_by_block, parse_status
from .errors import InvalidInputError, NotFoundError
from .export import build_export
from .indexing import Indexer, NoopIndexer
from .models import (
    CommentRecord,
    Identity,
    PlanRecord,
    ReviewerRecord,
    ThreadRecord,
    ThreadStatus,
    VersionRecord,
)
from .repository import ReviewRepository

logger = logging.getLogger(__name__)


@dataclass
class VersionView:
    """
    Everything needed to display one plan version: the snapshot, its blocks
    parsed fresh from the content, and the threads of that version grouped by
    block id.
    """

    plan: PlanRecord
    version: VersionRecord
    blocks: List[Block]
    threads_by_block: Dict[str, List[ThreadRecord]] = field(default_factory=dict)


def coerce_version(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise InvalidInputError("Invalid version number")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidInputError(f"Invalid version number: {value!r}")
    return int(text)


def _require(**fields: Any) -> None:
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise InvalidInputError(f"{', '.join(missing)} required")


class ReviewService:
    """
    Review workflow on top of a repository: plans and their versions,
    reviewer sign-off, and block-anchored threads. The repository handle is
    passed in and owned by the caller.
    """

    def __init__(self, repository: ReviewRepository, indexer: Optional[Indexer] = None):
        self.repo = repository
        self.indexer = indexer or NoopIndexer()

    # region Plans
    def create_plan(
        self,
        plan_id: str,
        title: str,
        content: str,
        identity: Identity,
        project_name: str = "",
        plan_filename: str = "",
    ) -> PlanRecord:
        _require(id=plan_id, title=title, content=content)
        now = datetime.utcnow()
        plan = PlanRecord(
            id=plan_id,
            title=title,
            created_by_email=identity.email,
            created_by_name=identity.name,
            project_name=project_name or "",
            plan_filename=plan_filename or "",
            created_at=now,
            updated_at=now,
        )
        self.repo.save_plan(plan)
        version = self.repo.add_version(plan_id, content, identity.email, identity.name)
        self._index(version)
        logger.info("Created plan %s by %s", plan_id, identity.email)
        return self.get_plan(plan_id)

    def get_plan(self, plan_id: str) -> PlanRecord:
        plan = self.repo.get_plan(plan_id)
        if not plan:
            raise NotFoundError("Plan not found")
        return plan

    def list_plans(self) -> List[PlanRecord]:
        return self.repo.list_plans()

    def rename_plan(self, plan_id: str, title: str) -> PlanRecord:
        _require(title=title)
        self.get_plan(plan_id)
        self.repo.update_plan_title(plan_id, title)
        return self.get_plan(plan_id)

    # endregion

    # region Versions
    def submit_version(self, plan_id: str, content: str, identity: Identity) -> VersionRecord:
        _require(content=content)
        self.get_plan(plan_id)
        version = self.repo.add_version(plan_id, content, identity.email, identity.name)
        self._index(version)
        logger.info("Plan %s now at version %d (submitted by %s)", plan_id, version.version, identity.email)
        return version

    def get_version(self, plan_id: str, version: Union[int, str]) -> VersionRecord:
        number = coerce_version(version)
        record = self.repo.get_version(plan_id, number)
        if not record:
            raise NotFoundError("Version not found")
        return record

    def list_versions(self, plan_id: str) -> List[VersionRecord]:
        return self.repo.list_versions(plan_id)

    def latest_version_number(self, plan_id: str) -> int:
        latest = self.repo.get_latest_version(plan_id)
        return latest.version if latest else 0

    def view_version(self, plan_id: str, version: Optional[Union[int, str]] = None) -> VersionView:
        plan = self.get_plan(plan_id)
        if version is None:
            record = self.repo.get_latest_version(plan_id)
            if not record:
                raise NotFoundError("Version not found")
        else:
            record = self.get_version(plan_id, version)
        threads = self.repo.list_threads(plan_id, record.version)
        return VersionView(
            plan=plan,
            version=record,
            blocks=parse(record.content),
            threads_by_block=group_by_block(threads, record.version),
        )

    # endregion

    # region Reviewers
    def assign_reviewer(self, plan_id: str, version: Union[int, str], email: str, name: str) -> ReviewerRecord:
        _require(email=email, name=name, version=version)
        number = coerce_version(version)
        self.get_plan(plan_id)
        reviewer = ReviewerRecord(plan_id=plan_id, version=number, email=email, name=name)
        self.repo.add_reviewer(reviewer)
        return reviewer

    def list_reviewers(self, plan_id: str) -> List[ReviewerRecord]:
        return self.repo.list_reviewers(plan_id, self.latest_version_number(plan_id))

    def mark_review_done(self, plan_id: str, identity: Identity) -> None:
        self._set_review_completed(plan_id, identity, datetime.utcnow())

    def reopen_review(self, plan_id: str, identity: Identity) -> None:
        self._set_review_completed(plan_id, identity, None)

    def _set_review_completed(self, plan_id: str, identity: Identity, completed_at: Optional[datetime]) -> None:
        version = self.latest_version_number(plan_id)
        if not self.repo.set_reviewer_completed(plan_id, version, identity.email, completed_at):
            raise NotFoundError("You are not a reviewer for this plan version")

    # endregion

    # region Threads
    def create_thread(
        self,
        plan_id: str,
        version: Union[int, str],
        block_id: str,
        start_line: int,
        end_line: int,
        content: str,
        identity: Identity,
    ) -> ThreadRecord:
        """
        Open a thread with its first comment. Only the shape of `block_id` is
        checked; the anchor is otherwise stored as given and callers take it
        from the blocks they rendered for that version.
        """
        _require(version=version, blockId=block_id, startLine=start_line, endLine=end_line, content=content)
        number = coerce_version(version)
        try:
            parse_block_id(block_id)
        except ValueError:
            raise InvalidInputError(f"Invalid block id: {block_id!r}") from None
        self.get_plan(plan_id)
        now = datetime.utcnow()
        thread_id = str(uuid.uuid4())
        thread = ThreadRecord(
            id=thread_id,
            plan_id=plan_id,
            version=number,
            block_id=block_id,
            start_line=start_line,
            end_line=end_line,
            author_email=identity.email,
            author_name=identity.name,
            status=ThreadStatus.OPEN,
            created_at=now,
            comments=[
                CommentRecord(
                    id=str(uuid.uuid4()),
                    thread_id=thread_id,
                    author_email=identity.email,
                    author_name=identity.name,
                    content=content,
                    created_at=now,
                )
            ],
        )
        self.repo.save_thread(thread)
        logger.info("Thread %s opened on %s v%d %s", thread_id, plan_id, number, block_id)
        return self.get_thread(thread_id)

    def get_thread(self, thread_id: str) -> ThreadRecord:
        thread = self.repo.get_thread(thread_id)
        if not thread:
            raise NotFoundError("Thread not found")
        return thread

    def list_threads(self, plan_id: str, version: Optional[Union[int, str]] = None) -> List[ThreadRecord]:
        number = coerce_version(version) if version is not None else None
        return self.repo.list_threads(plan_id, number)

    def add_comment(self, thread_id: str, content: str, identity: Identity) -> CommentRecord:
        _require(content=content)
        self.get_thread(thread_id)
        comment = CommentRecord(
            id=str(uuid.uuid4()),
            thread_id=thread_id,
            author_email=identity.email,
            author_name=identity.name,
            content=content,
        )
        self.repo.add_comment(comment)
        return comment

    def set_thread_status(self, thread_id: str, status: Union[ThreadStatus, str]) -> ThreadRecord:
        target = parse_status(status)
        thread = self.get_thread(thread_id)
        if thread.status != target:
            self.repo.update_thread_status(thread_id, target)
            logger.info("Thread %s %s -> %s", thread_id, thread.status.value, target.value)
        return self.get_thread(thread_id)

    def delete_thread(self, thread_id: str) -> None:
        self.get_thread(thread_id)
        self.repo.delete_thread(thread_id)
        logger.info("Thread %s deleted", thread_id)

    # endregion

    # region Export and search
    def export(self, plan_id: str) -> str:
        plan = self.get_plan(plan_id)
        latest = self.repo.get_latest_version(plan_id)
        reviewers = self.repo.list_reviewers(plan_id, latest.version if latest else 0)
        threads = self.repo.list_threads(plan_id)
        return build_export(plan, latest, reviewers, threads)

    def search(self, plan_id: str, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        if not query or not query.strip():
            raise InvalidInputError("Query must not be empty")
        self.get_plan(plan_id)
        return self.indexer.search(query, plan_id=plan_id, limit=limit)

    def _index(self, version: VersionRecord) -> None:
        self.indexer.index_version(version.plan_id, version.version, parse(version.content))

    # endregion
