from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

BLOCK_ID_PREFIX = "block-"


class BlockType(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE = "code"
    LIST_ITEM = "list-item"
    BLOCKQUOTE = "blockquote"
    HR = "hr"
    TABLE = "table"


def block_id(start_line: int) -> str:
    """
    Anchor key for a block. Derived from position only, so it shifts whenever
    lines are inserted or removed above the block.
    """
    return f"{BLOCK_ID_PREFIX}{start_line}"


def parse_block_id(value: str) -> int:
    if not value.startswith(BLOCK_ID_PREFIX):
        raise ValueError(f"Not a block id: {value!r}")
    suffix = value[len(BLOCK_ID_PREFIX):]
    if not (suffix.isascii() and suffix.isdigit()):
        raise ValueError(f"Not a block id: {value!r}")
    return int(suffix)


@dataclass(frozen=True)
class _BlockBase:
    content: str
    start_line: int
    end_line: int

    @property
    def id(self) -> str:
        return block_id(self.start_line)


@dataclass(frozen=True)
class HeadingBlock(_BlockBase):
    level: int = 1
    type = BlockType.HEADING


@dataclass(frozen=True)
class ParagraphBlock(_BlockBase):
    type = BlockType.PARAGRAPH


@dataclass(frozen=True)
class CodeBlock(_BlockBase):
    language: Optional[str] = None
    closed: bool = True
    type = BlockType.CODE


@dataclass(frozen=True)
class ListItemBlock(_BlockBase):
    level: int = 0
    checked: Optional[bool] = None
    type = BlockType.LIST_ITEM


@dataclass(frozen=True)
class BlockquoteBlock(_BlockBase):
    type = BlockType.BLOCKQUOTE


@dataclass(frozen=True)
class HrBlock(_BlockBase):
    type = BlockType.HR


@dataclass(frozen=True)
class TableBlock(_BlockBase):
    type = BlockType.TABLE


Block = Union[
    HeadingBlock,
    ParagraphBlock,
    CodeBlock,
    ListItemBlock,
    BlockquoteBlock,
    HrBlock,
    TableBlock,
]


def block_to_dict(block: Block) -> Dict[str, Any]:
    """
    Wire shape of a block. Optional keys are only present when they carry a
    value; a list item without a checkbox has no `checked` key at all.
    """
    data: Dict[str, Any] = {
        "id": block.id,
        "type": block.type.value,
        "content": block.content,
        "startLine": block.start_line,
        "endLine": block.end_line,
    }
    if isinstance(block, (HeadingBlock, ListItemBlock)):
        data["level"] = block.level
    if isinstance(block, CodeBlock) and block.language:
        data["language"] = block.language
    if isinstance(block, ListItemBlock) and block.checked is not None:
        data["checked"] = block.checked
    return data
