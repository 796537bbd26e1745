from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from fastapi import Header, HTTPException, Request

from plan_review.review import (
    ConflictError,
    Identity,
    Indexer,
    InvalidInputError,
    NoopIndexer,
    NotFoundError,
    ReviewRepository,
    ReviewService,
    SqlAlchemyReviewRepository,
    WhooshIndexer,
)


@dataclass
class Settings:
    database_url: str
    whoosh_dir: Optional[Path]
    log_level: str


def load_settings() -> Settings:
    whoosh_dir = os.getenv("WHOOSH_DIR", "./data/whoosh")
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite+pysqlite:///./data/plan_review.db"),
        whoosh_dir=Path(whoosh_dir) if whoosh_dir else None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def build_repository(settings: Settings) -> ReviewRepository:
    if settings.database_url.startswith("sqlite") and ":memory:" not in settings.database_url:
        db_path = settings.database_url.split("///", 1)[-1]
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return SqlAlchemyReviewRepository(settings.database_url)


def build_indexer(settings: Settings) -> Indexer:
    if settings.whoosh_dir is None:
        return NoopIndexer()
    return WhooshIndexer(settings.whoosh_dir)


def get_service(request: Request) -> ReviewService:
    return request.app.state.service


def get_identity(
    x_review_email: Optional[str] = Header(None),
    x_review_name: Optional[str] = Header(None),
) -> Identity:
    if not x_review_email or not x_review_name:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Identity(email=x_review_email, name=x_review_name)


@contextmanager
def review_errors() -> Iterator[None]:
    """Translate review errors raised inside the block into HTTP errors."""
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
