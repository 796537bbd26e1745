from __future__ import annotations

from typing import Iterable, List, Optional

from .anchoring import line_snippet
from .models import PlanRecord, ReviewerRecord, ThreadRecord, ThreadStatus, VersionRecord


def format_thread_section(thread: ThreadRecord, content: str) -> Optional[str]:
    """
    One `### L<start>-L<end>` section per thread. The snippet is cut from
    `content`, which is the latest version's text, so it can drift from what
    the thread was written against.
    """
    if not thread.comments:
        return None
    comments = sorted(thread.comments, key=lambda c: c.created_at)
    snippet = line_snippet(content, thread.start_line, thread.end_line)
    first = comments[0]
    parts = [
        f'### L{thread.start_line}-L{thread.end_line}: "{snippet}"',
        "",
        f"**{first.author_name}** [{thread.status.value}]: {first.content}",
    ]
    for reply in comments[1:]:
        parts.append(f"  > **{reply.author_name}**: {reply.content}")
    return "\n".join(parts)


def build_export(
    plan: PlanRecord,
    latest: Optional[VersionRecord],
    reviewers: Iterable[ReviewerRecord],
    threads: Iterable[ThreadRecord],
) -> str:
    reviewers = list(reviewers)
    threads = sorted(threads, key=lambda t: t.start_line)
    content = latest.content if latest else ""
    version_number = latest.version if latest else 0

    done = [r for r in reviewers if r.is_complete]
    pending = [r for r in reviewers if not r.is_complete]
    open_count = sum(1 for t in threads if t.status == ThreadStatus.OPEN)
    resolved_count = sum(1 for t in threads if t.status == ThreadStatus.RESOLVED)

    sections: List[str] = []
    for thread in threads:
        section = format_thread_section(thread, content)
        if section is not None:
            sections.append(section)

    done_names = ", ".join(r.name for r in done)
    pending_names = ", ".join(r.name for r in pending)
    return (
        f"# Plan Review: {plan.title}\n"
        "\n"
        f"Plan ID: {plan.id}\n"
        f"Version: {version_number}\n"
        f"Reviews complete: {len(done)}/{len(reviewers)} ({done_names}; pending: {pending_names})\n"
        f"Open threads: {open_count}\n"
        "\n"
        "## Block comments\n"
        "\n"
        + "\n\n".join(sections)
        + "\n\n"
        "## Summary\n"
        f"{open_count} open, {resolved_count} resolved.\n"
    )
