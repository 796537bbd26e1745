from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

_HEADING_RE = re.compile(r"^(#{1,6})\s")
_HR_RE = re.compile(r"^(?:-{3,}|\*{3,}|_{3,})$")
_FENCE_RE = re.compile(r"^\s*```(\S*)")
_BULLET_RE = re.compile(r"^( *)(?:[-*]|\d+\.)\s")
_CHECKBOX_RE = re.compile(r"^ *(?:[-*]|\d+\.)\s+\[([ xX])\]")
_BLOCKQUOTE_RE = re.compile(r"^\s*>")


class LineKind(str, Enum):
    BLANK = "blank"
    FENCE = "fence"
    HEADING = "heading"
    HR = "hr"
    TABLE = "table"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    PLAIN = "plain"


@dataclass(frozen=True)
class LineInfo:
    kind: LineKind
    level: Optional[int] = None
    language: Optional[str] = None
    checked: Optional[bool] = None


def is_blank(line: str) -> bool:
    return line.strip() == ""


def is_code_fence(line: str) -> bool:
    return _FENCE_RE.match(line) is not None


def fence_language(line: str) -> Optional[str]:
    match = _FENCE_RE.match(line)
    if not match or not match.group(1):
        return None
    return match.group(1)


def is_heading(line: str) -> bool:
    return _HEADING_RE.match(line) is not None


def heading_level(line: str) -> int:
    match = _HEADING_RE.match(line)
    return len(match.group(1)) if match else 0


def is_hr(line: str) -> bool:
    return _HR_RE.match(line.strip()) is not None


def is_table_row(line: str) -> bool:
    trimmed = line.strip()
    return trimmed.startswith("|") and "|" in trimmed[1:]


def is_list_item(line: str) -> bool:
    return _BULLET_RE.match(line) is not None


def list_indent_level(line: str) -> int:
    indent = len(line) - len(line.lstrip(" "))
    return indent // 2


def checkbox_state(line: str) -> Optional[bool]:
    """
    Return the checkbox state of a list line, or None when the item carries
    no literal `[ ]` / `[x]` marker right after its bullet.
    """
    match = _CHECKBOX_RE.match(line)
    if not match:
        return None
    return match.group(1).lower() == "x"


def is_blockquote(line: str) -> bool:
    return _BLOCKQUOTE_RE.match(line) is not None


def classify_line(line: str) -> LineInfo:
    """
    Classify one line of markup. Precedence when several rules match:
    fence > heading > hr > table > list item > blockquote > plain.
    """
    if is_blank(line):
        return LineInfo(LineKind.BLANK)
    if is_code_fence(line):
        return LineInfo(LineKind.FENCE, language=fence_language(line))
    if is_heading(line):
        return LineInfo(LineKind.HEADING, level=heading_level(line))
    if is_hr(line):
        return LineInfo(LineKind.HR)
    if is_table_row(line):
        return LineInfo(LineKind.TABLE)
    if is_list_item(line):
        return LineInfo(LineKind.LIST_ITEM, level=list_indent_level(line), checked=checkbox_state(line))
    if is_blockquote(line):
        return LineInfo(LineKind.BLOCKQUOTE)
    return LineInfo(LineKind.PLAIN)
