from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_identity, get_service, review_errors
from api.schemas import CommentBody, ThreadStatusBody, comment_json, thread_json
from plan_review.review import Identity, ReviewService

router = APIRouter(prefix="/threads", tags=["threads"])


@router.patch("/{thread_id}")
def update_thread_status(thread_id: str, body: ThreadStatusBody, service: ReviewService = Depends(get_service)):
    with review_errors():
        thread = service.set_thread_status(thread_id, body.status or "")
    return thread_json(thread)


@router.delete("/{thread_id}")
def delete_thread(thread_id: str, service: ReviewService = Depends(get_service)):
    with review_errors():
        service.delete_thread(thread_id)
    return {"ok": True}


@router.post("/{thread_id}/comments", status_code=201)
def add_comment(
    thread_id: str,
    body: CommentBody,
    service: ReviewService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    with review_errors():
        comment = service.add_comment(thread_id, body.content, identity)
    return comment_json(comment)
