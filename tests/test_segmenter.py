import pytest

from plan_review.markdown import (
    BlockquoteBlock,
    BlockType,
    CodeBlock,
    HeadingBlock,
    HrBlock,
    ListItemBlock,
    ParagraphBlock,
    TableBlock,
    block_to_dict,
    parse,
    parse_block_id,
)

SAMPLE_PLAN = """# Rollout plan

We ship the parser first.
Then the review UI.

## Steps

- [ ] write the parser
- [x] agree on block ids
  - nested detail
1. numbered step

```python
def main():

    return 1
```

| Phase | Owner |
|---|---|
| 1 | Ana |

> Note: ids are positional.
> They shift on edits.

---
Trailing paragraph"""


def test_parse_sample_plan_block_sequence():
    blocks = parse(SAMPLE_PLAN)
    summary = [(b.type, b.start_line, b.end_line) for b in blocks]
    assert summary == [
        (BlockType.HEADING, 1, 1),
        (BlockType.PARAGRAPH, 3, 4),
        (BlockType.HEADING, 6, 6),
        (BlockType.LIST_ITEM, 8, 8),
        (BlockType.LIST_ITEM, 9, 9),
        (BlockType.LIST_ITEM, 10, 10),
        (BlockType.LIST_ITEM, 11, 11),
        (BlockType.CODE, 13, 17),
        (BlockType.TABLE, 19, 21),
        (BlockType.BLOCKQUOTE, 23, 24),
        (BlockType.HR, 26, 26),
        (BlockType.PARAGRAPH, 27, 27),
    ]
    assert [b.id for b in blocks][:3] == ["block-1", "block-3", "block-6"]


def test_blocks_cover_every_non_blank_line_once_in_order():
    documents = [
        SAMPLE_PLAN,
        "",
        "\n\n\n",
        "one\ntwo\n\n\nthree",
        "```\nunterminated\n\n# not a heading",
        "| a |\n\n| b |\n> q\n- l\ntext\n---",
    ]
    for document in documents:
        lines = document.split("\n")
        blocks = parse(document)
        covered = []
        previous_end = 0
        for block in blocks:
            assert block.start_line <= block.end_line
            assert block.start_line > previous_end
            # Anything skipped between two blocks must be blank.
            for gap in range(previous_end + 1, block.start_line):
                assert lines[gap - 1].strip() == ""
            covered.extend(range(block.start_line, block.end_line + 1))
            previous_end = block.end_line
        non_blank = [i + 1 for i, line in enumerate(lines) if line.strip()]
        assert set(non_blank) <= set(covered)
        assert len(covered) == len(set(covered))
        ids = [b.id for b in blocks]
        assert len(ids) == len(set(ids))


def test_heading_block():
    (block,) = parse("### Third level")
    assert isinstance(block, HeadingBlock)
    assert block.level == 3 and block.content == "### Third level"


def test_code_block_with_closing_fence_keeps_blank_lines_and_markup():
    doc = "```js\nconst a = 1;\n\n# comment\n- not a list\n```\nafter"
    blocks = parse(doc)
    code = blocks[0]
    assert isinstance(code, CodeBlock)
    assert code.language == "js" and code.closed
    assert code.start_line == 1 and code.end_line == 6
    assert code.content == "\n".join(doc.split("\n")[:6])
    assert isinstance(blocks[1], ParagraphBlock) and blocks[1].start_line == 7


def test_unterminated_fence_runs_to_end_of_document():
    blocks = parse("```python\nprint(1)")
    assert len(blocks) == 1
    code = blocks[0]
    assert isinstance(code, CodeBlock)
    assert code.language == "python"
    assert code.end_line == 2
    assert not code.closed


def test_fence_without_language_has_no_language():
    (code,) = parse("```\nx\n```")
    assert code.language is None
    assert "language" not in block_to_dict(code)


def test_table_interrupted_by_blank_line_splits():
    blocks = parse("| A | B |\n|---|---|\n\n| 1 | 2 |")
    assert [type(b) for b in blocks] == [TableBlock, TableBlock]
    assert (blocks[0].start_line, blocks[0].end_line) == (1, 2)
    assert blocks[1].start_line == 4


def test_table_ends_at_first_non_table_line():
    blocks = parse("| A |\n| 1 |\ntext after")
    assert isinstance(blocks[0], TableBlock) and blocks[0].end_line == 2
    assert isinstance(blocks[1], ParagraphBlock) and blocks[1].start_line == 3


def test_list_items_are_never_merged():
    blocks = parse("- [ ] todo\n- [x] done\n\n- plain\n  - nested")
    assert all(isinstance(b, ListItemBlock) for b in blocks)
    assert [b.start_line for b in blocks] == [1, 2, 4, 5]
    assert blocks[0].checked is False
    assert blocks[1].checked is True
    assert blocks[2].checked is None
    assert blocks[3].level == 1
    assert "checked" not in block_to_dict(blocks[2])
    assert block_to_dict(blocks[0])["checked"] is False


def test_blockquote_run():
    blocks = parse("> one\n> two\nplain")
    assert isinstance(blocks[0], BlockquoteBlock)
    assert blocks[0].content == "> one\n> two"
    assert isinstance(blocks[1], ParagraphBlock)


def test_paragraph_stops_at_structural_lines():
    blocks = parse("first\nsecond\n# heading\nthird\n---")
    assert isinstance(blocks[0], ParagraphBlock) and blocks[0].content == "first\nsecond"
    assert isinstance(blocks[1], HeadingBlock)
    assert isinstance(blocks[2], ParagraphBlock) and blocks[2].start_line == 4
    assert isinstance(blocks[3], HrBlock)


def test_reparsing_multi_line_block_content_keeps_type():
    for block in parse(SAMPLE_PLAN):
        if block.type in (BlockType.CODE, BlockType.TABLE, BlockType.BLOCKQUOTE):
            reparsed = parse(block.content)
            assert len(reparsed) == 1
            assert reparsed[0].type == block.type
            assert reparsed[0].content == block.content


def test_ids_shift_when_lines_are_inserted_above():
    before = parse("# A\n\ntext")
    after = parse("# A\n\nnew line\n\ntext")
    assert before[1].id == "block-3"
    assert after[2].id == "block-5"
    assert parse_block_id(after[2].id) == 5


def test_block_to_dict_wire_shape():
    (heading,) = parse("## Hello")
    assert block_to_dict(heading) == {
        "id": "block-1",
        "type": "heading",
        "content": "## Hello",
        "startLine": 1,
        "endLine": 1,
        "level": 2,
    }


@pytest.mark.parametrize("value", ["para-3", "block-", "block-3a", "block-²", "Block-3"])
def test_parse_block_id_rejects_malformed_ids(value):
    with pytest.raises(ValueError):
        parse_block_id(value)
