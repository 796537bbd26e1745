from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from api.dependencies import get_identity, get_service, review_errors
from api.schemas import (
    AssignReviewerBody,
    CreatePlanBody,
    CreateThreadBody,
    RenamePlanBody,
    SubmitVersionBody,
    plan_json,
    reviewer_json,
    thread_json,
    version_json,
    view_json,
)
from plan_review.markdown import block_to_dict, parse
from plan_review.review import Identity, ReviewService

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("")
def list_plans(service: ReviewService = Depends(get_service)):
    return [plan_json(p) for p in service.list_plans()]


@router.post("", status_code=201)
def create_plan(
    body: CreatePlanBody,
    service: ReviewService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    with review_errors():
        plan = service.create_plan(
            plan_id=body.id,
            title=body.title,
            content=body.content,
            identity=identity,
            project_name=body.projectName or "",
            plan_filename=body.planFilename or "",
        )
    return plan_json(plan)


@router.get("/{plan_id}")
def get_plan(plan_id: str, service: ReviewService = Depends(get_service)):
    with review_errors():
        plan = service.get_plan(plan_id)
    return plan_json(plan, latest_version=service.latest_version_number(plan_id))


@router.patch("/{plan_id}")
def rename_plan(plan_id: str, body: RenamePlanBody, service: ReviewService = Depends(get_service)):
    with review_errors():
        plan = service.rename_plan(plan_id, body.title)
    return plan_json(plan)


@router.get("/{plan_id}/versions")
def list_versions(plan_id: str, service: ReviewService = Depends(get_service)):
    return [version_json(v) for v in service.list_versions(plan_id)]


@router.post("/{plan_id}/versions", status_code=201)
def submit_version(
    plan_id: str,
    body: SubmitVersionBody,
    service: ReviewService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    with review_errors():
        version = service.submit_version(plan_id, body.content, identity)
    return version_json(version)


@router.get("/{plan_id}/versions/{v}")
def get_version(plan_id: str, v: str, service: ReviewService = Depends(get_service)):
    with review_errors():
        version = service.get_version(plan_id, v)
    data = version_json(version)
    data["blocks"] = [block_to_dict(b) for b in parse(version.content)]
    return data


@router.get("/{plan_id}/view")
def view_version(plan_id: str, version: Optional[str] = None, service: ReviewService = Depends(get_service)):
    with review_errors():
        view = service.view_version(plan_id, version)
    return view_json(view)


@router.get("/{plan_id}/reviewers")
def list_reviewers(plan_id: str, service: ReviewService = Depends(get_service)):
    return [reviewer_json(r) for r in service.list_reviewers(plan_id)]


@router.post("/{plan_id}/reviewers", status_code=201)
def assign_reviewer(plan_id: str, body: AssignReviewerBody, service: ReviewService = Depends(get_service)):
    with review_errors():
        service.assign_reviewer(plan_id, body.version, body.email, body.name)
    return {"ok": True}


@router.post("/{plan_id}/reviewers/done")
def mark_review_done(
    plan_id: str,
    service: ReviewService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    with review_errors():
        service.mark_review_done(plan_id, identity)
    return {"ok": True}


@router.delete("/{plan_id}/reviewers/done")
def reopen_review(
    plan_id: str,
    service: ReviewService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    with review_errors():
        service.reopen_review(plan_id, identity)
    return {"ok": True}


@router.get("/{plan_id}/threads")
def list_threads(plan_id: str, version: Optional[str] = None, service: ReviewService = Depends(get_service)):
    with review_errors():
        threads = service.list_threads(plan_id, version)
    return [thread_json(t) for t in threads]


@router.post("/{plan_id}/threads", status_code=201)
def create_thread(
    plan_id: str,
    body: CreateThreadBody,
    service: ReviewService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    with review_errors():
        thread = service.create_thread(
            plan_id=plan_id,
            version=body.version,
            block_id=body.blockId,
            start_line=body.startLine,
            end_line=body.endLine,
            content=body.content,
            identity=identity,
        )
    return thread_json(thread)


@router.get("/{plan_id}/export", response_class=PlainTextResponse)
def export_plan(plan_id: str, service: ReviewService = Depends(get_service)):
    with review_errors():
        return service.export(plan_id)


@router.get("/{plan_id}/search")
def search_plan(plan_id: str, query: str, limit: int = 20, service: ReviewService = Depends(get_service)):
    with review_errors():
        hits = service.search(plan_id, query, limit=limit)
    return {"hits": hits}
