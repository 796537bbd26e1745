from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import build_indexer, build_repository, get_identity, load_settings
from api.routes.plans import router as plans_router
from api.routes.threads import router as threads_router
from plan_review.review import Identity, Indexer, ReviewRepository, ReviewService

logger = logging.getLogger(__name__)


def create_app(repository: Optional[ReviewRepository] = None, indexer: Optional[Indexer] = None) -> FastAPI:
    """
    Build the API around an explicit storage handle. When no repository is
    given one is opened from the environment; either way the app closes it on
    shutdown.
    """
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if repository is None:
        repository = build_repository(settings)
    if indexer is None:
        indexer = build_indexer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Closing review repository")
        repository.close()

    app = FastAPI(title="Plan Review API", version="0.1.0", lifespan=lifespan)
    app.state.service = ReviewService(repository, indexer)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(plans_router)
    app.include_router(threads_router)

    @app.get("/me")
    def me(identity: Identity = Depends(get_identity)) -> dict:
        return {"email": identity.email, "name": identity.name}

    @app.get("/healthz")
    def health() -> dict:
        return {"status": "ok"}

    return app
