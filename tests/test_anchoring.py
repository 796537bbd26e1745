from datetime import datetime, timedelta

import pytest

from plan_review.markdown import parse
from plan_review.review import (
    CommentRecord,
    InvalidInputError,
    PlanRecord,
    ReviewerRecord,
    ThreadRecord,
    ThreadStatus,
    VersionRecord,
    build_export,
    group_by_block,
    line_snippet,
    open_block_ids,
    parse_status,
    threads_for_block,
)

T0 = datetime(2024, 5, 1, 12, 0, 0)


def make_thread(thread_id, block_id, version=2, start=5, end=5, status=ThreadStatus.OPEN, comments=()):
    return ThreadRecord(
        id=thread_id,
        plan_id="plan-1",
        version=version,
        block_id=block_id,
        start_line=start,
        end_line=end,
        author_email="ana@example.com",
        author_name="Ana",
        status=status,
        created_at=T0,
        comments=list(comments),
    )


def make_comment(comment_id, thread_id, content, minutes, author="Ana"):
    return CommentRecord(
        id=comment_id,
        thread_id=thread_id,
        author_email=f"{author.lower()}@example.com",
        author_name=author,
        content=content,
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_group_by_block_filters_on_version():
    threads = [
        make_thread("t1", "block-5", comments=[make_comment("c2", "t1", "second", 2), make_comment("c1", "t1", "first", 1)]),
        make_thread("t2", "block-9", start=9, end=11, comments=[make_comment("c3", "t2", "only", 3)]),
    ]
    assert group_by_block(threads, 1) == {}

    grouped = group_by_block(threads, 2)
    assert set(grouped) == {"block-5", "block-9"}
    assert [t.id for t in grouped["block-5"]] == ["t1"]
    assert [c.content for c in grouped["block-5"][0].comments] == ["first", "second"]
    assert [c.content for c in grouped["block-9"][0].comments] == ["only"]


def test_group_by_block_keeps_several_threads_per_block_in_order():
    threads = [make_thread("a", "block-1"), make_thread("b", "block-1"), make_thread("c", "block-1", version=3)]
    grouped = group_by_block(threads, 2)
    assert [t.id for t in grouped["block-1"]] == ["a", "b"]


def test_threads_for_block_and_open_ids():
    blocks = parse("# Title\n\ntext")
    threads = [
        make_thread("t1", "block-1"),
        make_thread("t2", "block-3", status=ThreadStatus.RESOLVED),
    ]
    grouped = group_by_block(threads, 2)
    assert [t.id for t in threads_for_block(grouped, blocks[0])] == ["t1"]
    assert open_block_ids(threads) == {"block-1"}
    assert threads_for_block({}, blocks[1]) == []


def test_line_snippet_is_clamped_and_truncated():
    content = "line one\nline two\nline three"
    assert line_snippet(content, 2, 3) == "line two\nline three"
    assert line_snippet(content, 3, 99) == "line three"
    assert line_snippet(content, 0, 1) == "line one"
    assert line_snippet("x" * 100, 1, 1) == "x" * 60


def test_parse_status_allows_both_directions():
    assert parse_status("resolved") is ThreadStatus.RESOLVED
    assert parse_status("open") is ThreadStatus.OPEN
    assert parse_status(ThreadStatus.RESOLVED) is ThreadStatus.RESOLVED
    with pytest.raises(InvalidInputError):
        parse_status("closed")
    with pytest.raises(InvalidInputError):
        parse_status("")


def test_build_export_layout():
    plan = PlanRecord(
        id="plan-1",
        title="Rollout",
        created_by_email="ana@example.com",
        created_by_name="Ana",
    )
    latest = VersionRecord(
        plan_id="plan-1",
        version=2,
        content="# Rollout\n\nShip the parser first.\nThen the UI.",
        submitted_by_email="ana@example.com",
        submitted_by_name="Ana",
    )
    reviewers = [
        ReviewerRecord(plan_id="plan-1", version=2, email="bo@example.com", name="Bo", completed_at=T0),
        ReviewerRecord(plan_id="plan-1", version=2, email="cy@example.com", name="Cy"),
    ]
    threads = [
        make_thread(
            "t2",
            "block-3",
            start=3,
            end=4,
            status=ThreadStatus.RESOLVED,
            comments=[make_comment("c2", "t2", "Why first?", 1, author="Bo"), make_comment("c3", "t2", "Less risk.", 2)],
        ),
        make_thread("t1", "block-1", start=1, end=1, comments=[make_comment("c1", "t1", "Rename?", 0, author="Cy")]),
        make_thread("t3", "block-1", start=1, end=1),
    ]

    report = build_export(plan, latest, reviewers, threads)

    assert report == (
        "# Plan Review: Rollout\n"
        "\n"
        "Plan ID: plan-1\n"
        "Version: 2\n"
        "Reviews complete: 1/2 (Bo; pending: Cy)\n"
        "Open threads: 2\n"
        "\n"
        "## Block comments\n"
        "\n"
        '### L1-L1: "# Rollout"\n'
        "\n"
        "**Cy** [open]: Rename?\n"
        "\n"
        '### L3-L4: "Ship the parser first.\nThen the UI."\n'
        "\n"
        "**Bo** [resolved]: Why first?\n"
        "  > **Ana**: Less risk.\n"
        "\n"
        "## Summary\n"
        "2 open, 1 resolved.\n"
    )


def test_group_by_block_leaves_input_threads_untouched():
    thread = make_thread(
        "t1",
        "block-5",
        comments=[make_comment("c2", "t1", "second", 2), make_comment("c1", "t1", "first", 1)],
    )
    grouped = group_by_block([thread], 2)
    assert [c.content for c in grouped["block-5"][0].comments] == ["first", "second"]
    assert [c.content for c in thread.comments] == ["second", "first"]
