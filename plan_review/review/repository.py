from __future__ import annotations

from copy import deepcopy
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import ConflictError
from .models import (
    CommentRecord,
    PlanRecord,
    ReviewerRecord,
    ThreadRecord,
    ThreadStatus,
    VersionRecord,
)

Base = declarative_base()


class PlanModel(Base):
    __tablename__ = "plans"
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    project_name = Column(String, nullable=False, default="")
    plan_filename = Column(String, nullable=False, default="")
    created_by_email = Column(String, nullable=False)
    created_by_name = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class VersionModel(Base):
    __tablename__ = "plan_versions"
    __table_args__ = (UniqueConstraint("plan_id", "version"),)
    seq = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(String, ForeignKey("plans.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    submitted_by_email = Column(String, nullable=False)
    submitted_by_name = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)


class ReviewerModel(Base):
    __tablename__ = "reviewers"
    __table_args__ = (UniqueConstraint("plan_id", "version", "email"),)
    seq = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(String, ForeignKey("plans.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    completed_at = Column(DateTime)


class ThreadModel(Base):
    __tablename__ = "block_threads"
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, unique=True, nullable=False)
    plan_id = Column(String, ForeignKey("plans.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    block_id = Column(String, nullable=False)
    start_line = Column(Integer, nullable=False)
    end_line = Column(Integer, nullable=False)
    author_email = Column(String, nullable=False)
    author_name = Column(String, nullable=False)
    status = Column(Enum(ThreadStatus), nullable=False, default=ThreadStatus.OPEN)
    created_at = Column(DateTime, nullable=False)


class CommentModel(Base):
    __tablename__ = "block_comments"
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, unique=True, nullable=False)
    thread_id = Column(String, ForeignKey("block_threads.id"), nullable=False, index=True)
    author_email = Column(String, nullable=False)
    author_name = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)


class ReviewRepository:
    """
    Abstract persistence boundary for plans, versions, reviewers and review
    threads. All methods are synchronous. Lookups return None when the row
    does not exist; deciding whether that is an error is left to the caller.
    """

    # Plan operations
    def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
        raise NotImplementedError

    def list_plans(self) -> List[PlanRecord]:
        raise NotImplementedError

    def save_plan(self, plan: PlanRecord) -> None:
        raise NotImplementedError

    def update_plan_title(self, plan_id: str, title: str) -> None:
        raise NotImplementedError

    # Version operations
    def add_version(self, plan_id: str, content: str, email: str, name: str) -> VersionRecord:
        """
        Append the next version of a plan and bump the plan's `updated_at`
        in the same transaction.
        """
        raise NotImplementedError

    def get_version(self, plan_id: str, version: int) -> Optional[VersionRecord]:
        raise NotImplementedError

    def get_latest_version(self, plan_id: str) -> Optional[VersionRecord]:
        raise NotImplementedError

    def list_versions(self, plan_id: str) -> List[VersionRecord]:
        raise NotImplementedError

    # Reviewer operations
    def add_reviewer(self, reviewer: ReviewerRecord) -> None:
        raise NotImplementedError

    def list_reviewers(self, plan_id: str, version: int) -> List[ReviewerRecord]:
        raise NotImplementedError

    def set_reviewer_completed(
        self, plan_id: str, version: int, email: str, completed_at: Optional[datetime]
    ) -> bool:
        raise NotImplementedError

    # Thread operations
    def save_thread(self, thread: ThreadRecord) -> None:
        raise NotImplementedError

    def get_thread(self, thread_id: str) -> Optional[ThreadRecord]:
        raise NotImplementedError

    def list_threads(self, plan_id: str, version: Optional[int] = None) -> List[ThreadRecord]:
        raise NotImplementedError

    def update_thread_status(self, thread_id: str, status: ThreadStatus) -> None:
        raise NotImplementedError

    def delete_thread(self, thread_id: str) -> None:
        raise NotImplementedError

    def add_comment(self, comment: CommentRecord) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


class InMemoryReviewRepository(ReviewRepository):
    """
    Simple in-memory store for local runs and tests. It mirrors the DB shape
    and keeps copies of dataclasses to avoid cross-mutation between calls.
    """

    def __init__(self):
        self.plans: Dict[str, PlanRecord] = {}
        self.versions: Dict[Tuple[str, int], VersionRecord] = {}
        self.reviewers: Dict[Tuple[str, int, str], ReviewerRecord] = {}
        self.threads: Dict[str, ThreadRecord] = {}
        self.comments: Dict[str, CommentRecord] = {}

    def _clone(self, obj):
        return deepcopy(obj)

    def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
        plan = self.plans.get(plan_id)
        return self._clone(plan) if plan else None

    def list_plans(self) -> List[PlanRecord]:
        return [self._clone(p) for p in sorted(self.plans.values(), key=lambda p: p.updated_at, reverse=True)]

    def save_plan(self, plan: PlanRecord) -> None:
        if plan.id in self.plans:
            raise ConflictError(f"Plan already exists: {plan.id}")
        self.plans[plan.id] = self._clone(plan)

    def update_plan_title(self, plan_id: str, title: str) -> None:
        plan = self.plans.get(plan_id)
        if not plan:
            return
        plan.title = title
        plan.updated_at = datetime.utcnow()

    def add_version(self, plan_id: str, content: str, email: str, name: str) -> VersionRecord:
        latest = self.get_latest_version(plan_id)
        record = VersionRecord(
            plan_id=plan_id,
            version=(latest.version if latest else 0) + 1,
            content=content,
            submitted_by_email=email,
            submitted_by_name=name,
        )
        self.versions[(plan_id, record.version)] = self._clone(record)
        plan = self.plans.get(plan_id)
        if plan:
            plan.updated_at = record.created_at
        return record

    def get_version(self, plan_id: str, version: int) -> Optional[VersionRecord]:
        record = self.versions.get((plan_id, version))
        return self._clone(record) if record else None

    def get_latest_version(self, plan_id: str) -> Optional[VersionRecord]:
        versions = self.list_versions(plan_id)
        return versions[0] if versions else None

    def list_versions(self, plan_id: str) -> List[VersionRecord]:
        matching = [v for (pid, _), v in self.versions.items() if pid == plan_id]
        return [self._clone(v) for v in sorted(matching, key=lambda v: v.version, reverse=True)]

    def add_reviewer(self, reviewer: ReviewerRecord) -> None:
        key = (reviewer.plan_id, reviewer.version, reviewer.email)
        if key not in self.reviewers:
            self.reviewers[key] = self._clone(reviewer)

    def list_reviewers(self, plan_id: str, version: int) -> List[ReviewerRecord]:
        return [self._clone(r) for r in self.reviewers.values() if r.plan_id == plan_id and r.version == version]

    def set_reviewer_completed(
        self, plan_id: str, version: int, email: str, completed_at: Optional[datetime]
    ) -> bool:
        reviewer = self.reviewers.get((plan_id, version, email))
        if not reviewer:
            return False
        reviewer.completed_at = completed_at
        return True

    def save_thread(self, thread: ThreadRecord) -> None:
        stored = self._clone(thread)
        for comment in stored.comments:
            self.comments[comment.id] = comment
        stored.comments = []
        self.threads[stored.id] = stored

    def get_thread(self, thread_id: str) -> Optional[ThreadRecord]:
        thread = self.threads.get(thread_id)
        return self._with_comments(thread) if thread else None

    def list_threads(self, plan_id: str, version: Optional[int] = None) -> List[ThreadRecord]:
        matching = [
            t for t in self.threads.values() if t.plan_id == plan_id and (version is None or t.version == version)
        ]
        return [self._with_comments(t) for t in sorted(matching, key=lambda t: t.created_at)]

    def update_thread_status(self, thread_id: str, status: ThreadStatus) -> None:
        thread = self.threads.get(thread_id)
        if thread:
            thread.status = status

    def delete_thread(self, thread_id: str) -> None:
        # Comments first, then the thread itself.
        for comment_id in [c.id for c in self.comments.values() if c.thread_id == thread_id]:
            del self.comments[comment_id]
        self.threads.pop(thread_id, None)

    def add_comment(self, comment: CommentRecord) -> None:
        self.comments[comment.id] = self._clone(comment)

    def _with_comments(self, thread: ThreadRecord) -> ThreadRecord:
        clone = self._clone(thread)
        comments = [c for c in self.comments.values() if c.thread_id == thread.id]
        clone.comments = [self._clone(c) for c in sorted(comments, key=lambda c: c.created_at)]
        return clone


class SqlAlchemyReviewRepository(ReviewRepository):
    """
    SQL-backed repository using SQLAlchemy. Works with SQLite/Postgres URLs.
    Tables are created on construction; `close()` disposes the engine.
    """

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url, future=True)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def _session(self) -> Session:
        return self.SessionLocal()

    def close(self) -> None:
        self.engine.dispose()

    # region Plan operations
    def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
        with self._session() as session:
            model = session.get(PlanModel, plan_id)
            return self._to_plan(model) if model else None

    def list_plans(self) -> List[PlanRecord]:
        with self._session() as session:
            stmt = select(PlanModel).order_by(PlanModel.updated_at.desc())
            return [self._to_plan(m) for m in session.execute(stmt).scalars().all()]

    def save_plan(self, plan: PlanRecord) -> None:
        with self._session() as session:
            if session.get(PlanModel, plan.id) is not None:
                raise ConflictError(f"Plan already exists: {plan.id}")
            session.add(
                PlanModel(
                    id=plan.id,
                    title=plan.title,
                    project_name=plan.project_name,
                    plan_filename=plan.plan_filename,
                    created_by_email=plan.created_by_email,
                    created_by_name=plan.created_by_name,
                    created_at=plan.created_at,
                    updated_at=plan.updated_at,
                )
            )
            session.commit()

    def update_plan_title(self, plan_id: str, title: str) -> None:
        with self._session() as session:
            stmt = update(PlanModel).where(PlanModel.id == plan_id).values(title=title, updated_at=datetime.utcnow())
            session.execute(stmt)
            session.commit()

    # endregion

    # region Version operations
    def add_version(self, plan_id: str, content: str, email: str, name: str) -> VersionRecord:
        now = datetime.utcnow()
        with self._session() as session, session.begin():
            latest = session.execute(
                select(func.max(VersionModel.version)).where(VersionModel.plan_id == plan_id)
            ).scalar()
            model = VersionModel(
                plan_id=plan_id,
                version=(latest or 0) + 1,
                content=content,
                submitted_by_email=email,
                submitted_by_name=name,
                created_at=now,
            )
            session.add(model)
            session.execute(update(PlanModel).where(PlanModel.id == plan_id).values(updated_at=now))
            return self._to_version(model)

    def get_version(self, plan_id: str, version: int) -> Optional[VersionRecord]:
        with self._session() as session:
            stmt = select(VersionModel).where(VersionModel.plan_id == plan_id, VersionModel.version == version)
            model = session.execute(stmt).scalars().first()
            return self._to_version(model) if model else None

    def get_latest_version(self, plan_id: str) -> Optional[VersionRecord]:
        with self._session() as session:
            stmt = (
                select(VersionModel)
                .where(VersionModel.plan_id == plan_id)
                .order_by(VersionModel.version.desc())
                .limit(1)
            )
            model = session.execute(stmt).scalars().first()
            return self._to_version(model) if model else None

    def list_versions(self, plan_id: str) -> List[VersionRecord]:
        with self._session() as session:
            stmt = select(VersionModel).where(VersionModel.plan_id == plan_id).order_by(VersionModel.version.desc())
            return [self._to_version(m) for m in session.execute(stmt).scalars().all()]

    # endregion

    # region Reviewer operations
    def add_reviewer(self, reviewer: ReviewerRecord) -> None:
        with self._session() as session:
            stmt = select(ReviewerModel).where(
                ReviewerModel.plan_id == reviewer.plan_id,
                ReviewerModel.version == reviewer.version,
                ReviewerModel.email == reviewer.email,
            )
            if session.execute(stmt).scalars().first() is not None:
                return
            session.add(
                ReviewerModel(
                    plan_id=reviewer.plan_id,
                    version=reviewer.version,
                    email=reviewer.email,
                    name=reviewer.name,
                    completed_at=reviewer.completed_at,
                )
            )
            session.commit()

    def list_reviewers(self, plan_id: str, version: int) -> List[ReviewerRecord]:
        with self._session() as session:
            stmt = (
                select(ReviewerModel)
                .where(ReviewerModel.plan_id == plan_id, ReviewerModel.version == version)
                .order_by(ReviewerModel.seq)
            )
            return [
                ReviewerRecord(
                    plan_id=m.plan_id,
                    version=m.version,
                    email=m.email,
                    name=m.name,
                    completed_at=m.completed_at,
                )
                for m in session.execute(stmt).scalars().all()
            ]

    def set_reviewer_completed(
        self, plan_id: str, version: int, email: str, completed_at: Optional[datetime]
    ) -> bool:
        with self._session() as session:
            stmt = (
                update(ReviewerModel)
                .where(
                    ReviewerModel.plan_id == plan_id,
                    ReviewerModel.version == version,
                    ReviewerModel.email == email,
                )
                .values(completed_at=completed_at)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    # endregion

    # region Thread operations
    def save_thread(self, thread: ThreadRecord) -> None:
        with self._session() as session, session.begin():
            session.add(
                ThreadModel(
                    id=thread.id,
                    plan_id=thread.plan_id,
                    version=thread.version,
                    block_id=thread.block_id,
                    start_line=thread.start_line,
                    end_line=thread.end_line,
                    author_email=thread.author_email,
                    author_name=thread.author_name,
                    status=thread.status,
                    created_at=thread.created_at,
                )
            )
            # Flush the thread row before its comments reference it.
            session.flush()
            for comment in thread.comments:
                session.add(self._comment_model(comment))

    def get_thread(self, thread_id: str) -> Optional[ThreadRecord]:
        with self._session() as session:
            model = session.execute(select(ThreadModel).where(ThreadModel.id == thread_id)).scalars().first()
            if not model:
                return None
            return self._to_thread(model, self._load_comments(session, [model.id]).get(model.id, []))

    def list_threads(self, plan_id: str, version: Optional[int] = None) -> List[ThreadRecord]:
        with self._session() as session:
            stmt = select(ThreadModel).where(ThreadModel.plan_id == plan_id)
            if version is not None:
                stmt = stmt.where(ThreadModel.version == version)
            models = session.execute(stmt.order_by(ThreadModel.created_at, ThreadModel.seq)).scalars().all()
            comments = self._load_comments(session, [m.id for m in models])
            return [self._to_thread(m, comments.get(m.id, [])) for m in models]

    def update_thread_status(self, thread_id: str, status: ThreadStatus) -> None:
        with self._session() as session:
            session.execute(update(ThreadModel).where(ThreadModel.id == thread_id).values(status=status))
            session.commit()

    def delete_thread(self, thread_id: str) -> None:
        # No FK cascade is relied upon: comments go first, in the same transaction.
        with self._session() as session, session.begin():
            session.execute(delete(CommentModel).where(CommentModel.thread_id == thread_id))
            session.execute(delete(ThreadModel).where(ThreadModel.id == thread_id))

    def add_comment(self, comment: CommentRecord) -> None:
        with self._session() as session:
            session.add(self._comment_model(comment))
            session.commit()

    # endregion

    # region mapping helpers
    def _load_comments(self, session: Session, thread_ids: List[str]) -> Dict[str, List[CommentRecord]]:
        if not thread_ids:
            return {}
        stmt = (
            select(CommentModel)
            .where(CommentModel.thread_id.in_(thread_ids))
            .order_by(CommentModel.created_at, CommentModel.seq)
        )
        grouped: Dict[str, List[CommentRecord]] = {}
        for m in session.execute(stmt).scalars().all():
            grouped.setdefault(m.thread_id, []).append(
                CommentRecord(
                    id=m.id,
                    thread_id=m.thread_id,
                    author_email=m.author_email,
                    author_name=m.author_name,
                    content=m.content,
                    created_at=m.created_at,
                )
            )
        return grouped

    def _comment_model(self, comment: CommentRecord) -> CommentModel:
        return CommentModel(
            id=comment.id,
            thread_id=comment.thread_id,
            author_email=comment.author_email,
            author_name=comment.author_name,
            content=comment.content,
            created_at=comment.created_at,
        )

    def _to_plan(self, model: PlanModel) -> PlanRecord:
        return PlanRecord(
            id=model.id,
            title=model.title,
            created_by_email=model.created_by_email,
            created_by_name=model.created_by_name,
            project_name=model.project_name or "",
            plan_filename=model.plan_filename or "",
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_version(self, model: VersionModel) -> VersionRecord:
        return VersionRecord(
            plan_id=model.plan_id,
            version=model.version,
            content=model.content,
            submitted_by_email=model.submitted_by_email,
            submitted_by_name=model.submitted_by_name,
            created_at=model.created_at,
        )

    def _to_thread(self, model: ThreadModel, comments: List[CommentRecord]) -> ThreadRecord:
        return ThreadRecord(
            id=model.id,
            plan_id=model.plan_id,
            version=model.version,
            block_id=model.block_id,
            start_line=model.start_line,
            end_line=model.end_line,
            author_email=model.author_email,
            author_name=model.author_name,
            status=model.status,
            created_at=model.created_at,
            comments=comments,
        )

    # endregion
