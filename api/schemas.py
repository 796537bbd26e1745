from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from plan_review.markdown import CodeBlock, block_to_dict, gutter_label, render_block
from plan_review.markdown.inline import first_code_line
from plan_review.review import (
    CommentRecord,
    PlanRecord,
    ReviewerRecord,
    ThreadRecord,
    VersionRecord,
    VersionView,
    open_block_ids,
    threads_for_block,
)

# Request bodies keep the camelCase keys of the wire format. Every field is
# optional here; required-field checks happen in the service and come back
# as 400s rather than validation errors.


class CreatePlanBody(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    projectName: Optional[str] = None
    planFilename: Optional[str] = None


class RenamePlanBody(BaseModel):
    title: Optional[str] = None


class SubmitVersionBody(BaseModel):
    content: Optional[str] = None


class AssignReviewerBody(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    version: Optional[Union[int, str]] = None


class CreateThreadBody(BaseModel):
    version: Optional[Union[int, str]] = None
    blockId: Optional[str] = None
    startLine: Optional[int] = None
    endLine: Optional[int] = None
    content: Optional[str] = None


class ThreadStatusBody(BaseModel):
    status: Optional[str] = None


class CommentBody(BaseModel):
    content: Optional[str] = None


def plan_json(plan: PlanRecord, latest_version: Optional[int] = None) -> Dict[str, Any]:
    data = {
        "id": plan.id,
        "title": plan.title,
        "projectName": plan.project_name,
        "planFilename": plan.plan_filename,
        "createdByEmail": plan.created_by_email,
        "createdByName": plan.created_by_name,
        "createdAt": plan.created_at.isoformat(),
        "updatedAt": plan.updated_at.isoformat(),
    }
    if latest_version is not None:
        data["latestVersion"] = latest_version
    return data


def version_json(version: VersionRecord) -> Dict[str, Any]:
    return {
        "planId": version.plan_id,
        "version": version.version,
        "content": version.content,
        "submittedByEmail": version.submitted_by_email,
        "submittedByName": version.submitted_by_name,
        "createdAt": version.created_at.isoformat(),
    }


def reviewer_json(reviewer: ReviewerRecord) -> Dict[str, Any]:
    return {
        "planId": reviewer.plan_id,
        "version": reviewer.version,
        "email": reviewer.email,
        "name": reviewer.name,
        "completedAt": reviewer.completed_at.isoformat() if reviewer.completed_at else None,
    }


def comment_json(comment: CommentRecord) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "threadId": comment.thread_id,
        "authorEmail": comment.author_email,
        "authorName": comment.author_name,
        "content": comment.content,
        "createdAt": comment.created_at.isoformat(),
    }


def thread_json(thread: ThreadRecord) -> Dict[str, Any]:
    return {
        "id": thread.id,
        "planId": thread.plan_id,
        "version": thread.version,
        "blockId": thread.block_id,
        "startLine": thread.start_line,
        "endLine": thread.end_line,
        "authorEmail": thread.author_email,
        "authorName": thread.author_name,
        "status": thread.status.value,
        "createdAt": thread.created_at.isoformat(),
        "comments": [comment_json(c) for c in thread.comments],
    }


def view_json(view: VersionView) -> Dict[str, Any]:
    open_ids = open_block_ids(t for threads in view.threads_by_block.values() for t in threads)
    blocks = []
    for block in view.blocks:
        data = block_to_dict(block)
        data["html"] = render_block(block)
        data["gutter"] = gutter_label(block)
        data["hasOpenThreads"] = block.id in open_ids
        if isinstance(block, CodeBlock):
            data["firstCodeLine"] = first_code_line(block)
        data["threads"] = [thread_json(t) for t in threads_for_block(view.threads_by_block, block)]
        blocks.append(data)
    known = {block.id for block in view.blocks}
    unmatched = [
        thread_json(t) for block_id, threads in view.threads_by_block.items() if block_id not in known for t in threads
    ]
    return {
        "plan": plan_json(view.plan),
        "version": version_json(view.version),
        "blocks": blocks,
        "unmatchedThreads": unmatched,
    }
