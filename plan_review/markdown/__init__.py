"""
Markdown block parsing exports.
"""

from .blocks import (
    Block,
    BlockquoteBlock,
    BlockType,
    CodeBlock,
    HeadingBlock,
    HrBlock,
    ListItemBlock,
    ParagraphBlock,
    TableBlock,
    block_id,
    block_to_dict,
    parse_block_id,
)
from .classifier import LineInfo, LineKind, classify_line
from .inline import Table, TableRow, gutter_label, parse_table, render_block, render_inline
from .segmenter import parse

__all__ = [
    "Block",
    "BlockType",
    "BlockquoteBlock",
    "CodeBlock",
    "HeadingBlock",
    "HrBlock",
    "LineInfo",
    "LineKind",
    "ListItemBlock",
    "ParagraphBlock",
    "Table",
    "TableBlock",
    "TableRow",
    "block_id",
    "block_to_dict",
    "classify_line",
    "gutter_label",
    "parse",
    "parse_block_id",
    "parse_table",
    "render_block",
    "render_inline",
]
