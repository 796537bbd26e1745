from __future__ import annotations

import re
from dataclasses import dataclass, field
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
from .classifier import is_code_fence

_CODE_SPAN_RE = re.compile(r"`([^`]+)`")
_STRONG_RE = re.compile(r"\*\*(.+?)\*\*")
_STRIKE_RE = re.compile(r"~~(.+?)~~")
_EM_STAR_RE = re.compile(r"\*(.+?)\*")
_EM_UNDERSCORE_RE = re.compile(r"_(.+?)_")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

_HEADING_MARKER_RE = re.compile(r"^#{1,6}\s+")
_BULLET_MARKER_RE = re.compile(r"^\s*[-*]\s+")
_NUMBER_MARKER_RE = re.compile(r"^\s*\d+\.\s+")
_CHECKBOX_MARKER_RE = re.compile(r"^\[([ xX])\]\s*")
_QUOTE_MARKER_RE = re.compile(r"^\s*>\s?")
_TABLE_SEPARATOR_RE = re.compile(r"^\s*\|[\s:|-]+\|\s*$")


def escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def render_inline(text: str) -> str:
    """
    Convert inline markdown to display markup.

    Escaping runs first so that user-authored tags never survive as markup.
    The substitution order matters: code spans before emphasis, `**` before
    `*`.
    """
    html = escape_html(text)
    html = _CODE_SPAN_RE.sub(r'<code class="inline-code">\1</code>', html)
    html = _STRONG_RE.sub(r"<strong>\1</strong>", html)
    html = _STRIKE_RE.sub(r"<del>\1</del>", html)
    html = _EM_STAR_RE.sub(r"<em>\1</em>", html)
    html = _EM_UNDERSCORE_RE.sub(r"<em>\1</em>", html)
    html = _LINK_RE.sub(_render_link, html)
    return html


def _render_link(match: re.Match) -> str:
    # The URL sits inside a double-quoted attribute.
    href = match.group(2).replace('"', "&quot;")
    return f'<a href="{href}" target="_blank" rel="noopener noreferrer">{match.group(1)}</a>'


def heading_text(block: HeadingBlock) -> str:
    return _HEADING_MARKER_RE.sub("", block.content, count=1)


def list_item_text(block: ListItemBlock) -> str:
    text = _BULLET_MARKER_RE.sub("", block.content, count=1)
    text = _NUMBER_MARKER_RE.sub("", text, count=1)
    return _CHECKBOX_MARKER_RE.sub("", text, count=1)


def blockquote_lines(block: BlockquoteBlock) -> List[str]:
    return [_QUOTE_MARKER_RE.sub("", line, count=1) for line in block.content.split("\n")]


def code_lines(block: CodeBlock) -> List[str]:
    """Body of a code block without its opening and (if present) closing fence."""
    lines = block.content.split("\n")
    if block.closed and len(lines) > 1 and is_code_fence(lines[-1]):
        return lines[1:-1]
    return lines[1:]


def first_code_line(block: CodeBlock) -> int:
    return block.start_line + 1


@dataclass
class TableRow:
    cells: List[str]
    source_line: int


@dataclass
class Table:
    header: List[str]
    has_separator: bool
    rows: List[TableRow] = field(default_factory=list)


def split_table_row(line: str) -> List[str]:
    cells = [cell.strip() for cell in line.strip().split("|")]
    # The leading pipe always yields an empty first piece; a trailing pipe
    # yields an empty last one.
    cells = cells[1:]
    if cells and cells[-1] == "" and line.rstrip().endswith("|"):
        cells = cells[:-1]
    return cells


def parse_table(block: TableBlock) -> Table:
    lines = block.content.split("\n")
    header = split_table_row(lines[0])
    has_separator = len(lines) > 1 and _TABLE_SEPARATOR_RE.match(lines[1]) is not None
    body_offset = 2 if has_separator else 1
    rows = [
        TableRow(cells=split_table_row(line), source_line=block.start_line + body_offset + idx)
        for idx, line in enumerate(lines[body_offset:])
    ]
    return Table(header=header, has_separator=has_separator, rows=rows)


def gutter_label(block: Block) -> str:
    if block.start_line == block.end_line:
        return f"L{block.start_line}"
    return f"L{block.start_line}-{block.end_line}"


def render_block(block: Block) -> str:
    """
    Display markup for one block. Dispatch is closed over the block variants;
    anything else is a programming error.
    """
    if isinstance(block, HeadingBlock):
        return f"<h{block.level}>{render_inline(heading_text(block))}</h{block.level}>"
    if isinstance(block, ParagraphBlock):
        return "<p>" + "<br />".join(render_inline(line) for line in block.content.split("\n")) + "</p>"
    if isinstance(block, ListItemBlock):
        marker = ""
        if block.checked is not None:
            marker = '<input type="checkbox" disabled checked /> ' if block.checked else '<input type="checkbox" disabled /> '
        return f'<li data-level="{block.level}">{marker}{render_inline(list_item_text(block))}</li>'
    if isinstance(block, BlockquoteBlock):
        return "<blockquote>" + "<br />".join(render_inline(line) for line in blockquote_lines(block)) + "</blockquote>"
    if isinstance(block, HrBlock):
        return "<hr />"
    if isinstance(block, CodeBlock):
        css = f' class="language-{escape_html(block.language)}"' if block.language else ""
        return f"<pre><code{css}>" + escape_html("\n".join(code_lines(block))) + "</code></pre>"
    if isinstance(block, TableBlock):
        table = parse_table(block)
        head = "".join(f"<th>{render_inline(cell)}</th>" for cell in table.header)
        body = "".join(
            f'<tr data-line="{row.source_line}">' + "".join(f"<td>{render_inline(cell)}</td>" for cell in row.cells) + "</tr>"
            for row in table.rows
        )
        return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
    raise TypeError(f"Unsupported block type: {type(block).__name__}")
