from __future__ import annotations

import logging
from typing import List

from .blocks import (
    Block,
    BlockquoteBlock,
    CodeBlock,
    HeadingBlock,
    HrBlock,
    ListItemBlock,
    ParagraphBlock,
    TableBlock,
)
from .classifier import LineKind, classify_line, is_code_fence

logger = logging.getLogger(__name__)


def parse(document: str) -> List[Block]:
    """
    Split a markdown document into an ordered list of blocks.

    Single pass over the lines, looking at one line at a time. Every non-blank
    line ends up in exactly one block; blank lines only separate blocks.
    Line numbers are 1-based and inclusive.
    """
    lines = document.split("\n")
    blocks: List[Block] = []
    i = 0
    total = len(lines)

    while i < total:
        line = lines[i]
        info = classify_line(line)
        start_line = i + 1

        if info.kind is LineKind.BLANK:
            i += 1
            continue

        if info.kind is LineKind.FENCE:
            content_lines = [line]
            i += 1
            while i < total and not is_code_fence(lines[i]):
                content_lines.append(lines[i])
                i += 1
            closed = i < total
            if closed:
                content_lines.append(lines[i])
                i += 1
            blocks.append(
                CodeBlock(
                    content="\n".join(content_lines),
                    start_line=start_line,
                    end_line=i,
                    language=info.language,
                    closed=closed,
                )
            )
            continue

        if info.kind is LineKind.HEADING:
            blocks.append(HeadingBlock(content=line, start_line=start_line, end_line=start_line, level=info.level))
            i += 1
            continue

        if info.kind is LineKind.HR:
            blocks.append(HrBlock(content=line, start_line=start_line, end_line=start_line))
            i += 1
            continue

        if info.kind is LineKind.LIST_ITEM:
            blocks.append(
                ListItemBlock(
                    content=line,
                    start_line=start_line,
                    end_line=start_line,
                    level=info.level,
                    checked=info.checked,
                )
            )
            i += 1
            continue

        # Tables, blockquotes and paragraphs are maximal runs of one line kind.
        content_lines = []
        while i < total and classify_line(lines[i]).kind is info.kind:
            content_lines.append(lines[i])
            i += 1
        content = "\n".join(content_lines)
        if info.kind is LineKind.TABLE:
            blocks.append(TableBlock(content=content, start_line=start_line, end_line=i))
        elif info.kind is LineKind.BLOCKQUOTE:
            blocks.append(BlockquoteBlock(content=content, start_line=start_line, end_line=i))
        else:
            blocks.append(ParagraphBlock(content=content, start_line=start_line, end_line=i))

    logger.debug("Parsed %d lines into %d blocks", total, len(blocks))
    return blocks
