from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Set, Union

from ..markdown.blocks import Block
from .errors import InvalidInputError
from .models import ThreadRecord, ThreadStatus

SNIPPET_LENGTH = 60


def group_by_block(threads: Iterable[ThreadRecord], version: int) -> Dict[str, List[ThreadRecord]]:
    """
    Select the threads created against `version` and group them by block id.

    Threads keep their input order inside a group and each thread's comments
    are ordered by creation time. Threads of other versions are dropped even
    when their block id also exists in this version: ids are positional and a
    match across versions says nothing about the content.
    """
    grouped: Dict[str, List[ThreadRecord]] = {}
    for thread in threads:
        if thread.version != version:
            continue
        ordered = replace(thread, comments=sorted(thread.comments, key=lambda c: c.created_at))
        grouped.setdefault(thread.block_id, []).append(ordered)
    return grouped


def threads_for_block(grouped: Dict[str, List[ThreadRecord]], block: Block) -> List[ThreadRecord]:
    return grouped.get(block.id, [])


def open_block_ids(threads: Iterable[ThreadRecord]) -> Set[str]:
    return {t.block_id for t in threads if t.status == ThreadStatus.OPEN}


def line_snippet(content: str, start_line: int, end_line: int, limit: int = SNIPPET_LENGTH) -> str:
    lines = content.split("\n")
    start = max(0, start_line - 1)
    end = min(len(lines), end_line)
    return "\n".join(lines[start:end])[:limit]


def parse_status(requested: Union[ThreadStatus, str]) -> ThreadStatus:
    """
    Validate a requested thread status. Threads move freely between open and
    resolved in both directions; there is no terminal state.
    """
    try:
        return ThreadStatus(requested)
    except ValueError:
        raise InvalidInputError("status must be 'open' or 'resolved'") from None
