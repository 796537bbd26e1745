from datetime import datetime, timedelta

import pytest

from plan_review.review import (
    CommentRecord,
    ConflictError,
    InMemoryReviewRepository,
    PlanRecord,
    ReviewerRecord,
    SqlAlchemyReviewRepository,
    ThreadRecord,
    ThreadStatus,
)


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        yield InMemoryReviewRepository()
        return
    repository = SqlAlchemyReviewRepository(f"sqlite+pysqlite:///{tmp_path / 'test.db'}")
    yield repository
    repository.close()


def make_plan(plan_id="plan-1", created_at=None):
    created_at = created_at or datetime(2024, 1, 1)
    return PlanRecord(
        id=plan_id,
        title="Test",
        created_by_email="ana@example.com",
        created_by_name="Ana",
        created_at=created_at,
        updated_at=created_at,
    )


def make_thread(thread_id, version=1, block_id="block-1", created_at=None, comments=()):
    return ThreadRecord(
        id=thread_id,
        plan_id="plan-1",
        version=version,
        block_id=block_id,
        start_line=1,
        end_line=1,
        author_email="ana@example.com",
        author_name="Ana",
        created_at=created_at or datetime.utcnow(),
        comments=list(comments),
    )


def make_comment(comment_id, thread_id, content, created_at=None):
    return CommentRecord(
        id=comment_id,
        thread_id=thread_id,
        author_email="bo@example.com",
        author_name="Bo",
        content=content,
        created_at=created_at or datetime.utcnow(),
    )


def test_plan_roundtrip_and_conflict(repo):
    repo.save_plan(make_plan())
    fetched = repo.get_plan("plan-1")
    assert fetched and fetched.title == "Test" and fetched.project_name == ""
    assert repo.get_plan("missing") is None

    with pytest.raises(ConflictError):
        repo.save_plan(make_plan())

    repo.update_plan_title("plan-1", "Renamed")
    renamed = repo.get_plan("plan-1")
    assert renamed.title == "Renamed" and renamed.updated_at > fetched.updated_at


def test_versions_are_sequential_and_bump_updated_at(repo):
    repo.save_plan(make_plan())
    first = repo.add_version("plan-1", "v1 content", "ana@example.com", "Ana")
    second = repo.add_version("plan-1", "v2 content", "bo@example.com", "Bo")
    third = repo.add_version("plan-1", "v3 content", "ana@example.com", "Ana")
    assert [first.version, second.version, third.version] == [1, 2, 3]

    assert [v.version for v in repo.list_versions("plan-1")] == [3, 2, 1]
    assert repo.get_latest_version("plan-1").content == "v3 content"
    assert repo.get_version("plan-1", 2).submitted_by_name == "Bo"
    assert repo.get_version("plan-1", 4) is None
    assert repo.get_latest_version("other") is None
    assert repo.get_plan("plan-1").updated_at == third.created_at


def test_list_plans_newest_first(repo):
    repo.save_plan(make_plan("old", created_at=datetime(2024, 1, 1)))
    repo.save_plan(make_plan("new", created_at=datetime(2024, 1, 1) + timedelta(days=1)))
    assert [p.id for p in repo.list_plans()] == ["new", "old"]
    repo.add_version("old", "bump", "ana@example.com", "Ana")
    assert [p.id for p in repo.list_plans()] == ["old", "new"]


def test_reviewers(repo):
    repo.save_plan(make_plan())
    reviewer = ReviewerRecord(plan_id="plan-1", version=1, email="bo@example.com", name="Bo")
    repo.add_reviewer(reviewer)
    repo.add_reviewer(reviewer)
    assert len(repo.list_reviewers("plan-1", 1)) == 1
    assert repo.list_reviewers("plan-1", 2) == []

    done_at = datetime(2024, 2, 1)
    assert repo.set_reviewer_completed("plan-1", 1, "bo@example.com", done_at)
    assert repo.list_reviewers("plan-1", 1)[0].is_complete
    assert repo.set_reviewer_completed("plan-1", 1, "bo@example.com", None)
    assert not repo.list_reviewers("plan-1", 1)[0].is_complete
    assert not repo.set_reviewer_completed("plan-1", 1, "nobody@example.com", done_at)


def test_threads_with_comments(repo):
    repo.save_plan(make_plan())
    t0 = datetime(2024, 3, 1)
    repo.save_thread(make_thread("t1", created_at=t0, comments=[make_comment("c1", "t1", "first", created_at=t0)]))
    repo.save_thread(make_thread("t2", version=2, block_id="block-4", created_at=t0 + timedelta(seconds=1)))
    repo.add_comment(make_comment("c2", "t1", "second", created_at=t0 + timedelta(minutes=1)))

    thread = repo.get_thread("t1")
    assert thread.status == ThreadStatus.OPEN
    assert [c.content for c in thread.comments] == ["first", "second"]
    assert repo.get_thread("missing") is None

    assert [t.id for t in repo.list_threads("plan-1")] == ["t1", "t2"]
    assert [t.id for t in repo.list_threads("plan-1", version=2)] == ["t2"]
    assert repo.list_threads("plan-1", version=3) == []

    repo.update_thread_status("t1", ThreadStatus.RESOLVED)
    assert repo.get_thread("t1").status == ThreadStatus.RESOLVED
    repo.update_thread_status("t1", ThreadStatus.OPEN)
    assert repo.get_thread("t1").status == ThreadStatus.OPEN


def test_delete_thread_removes_its_comments(repo):
    repo.save_plan(make_plan())
    repo.save_thread(make_thread("t1", comments=[make_comment("c1", "t1", "first")]))
    repo.save_thread(make_thread("t2", comments=[make_comment("c2", "t2", "keep me")]))
    repo.add_comment(make_comment("c3", "t1", "reply"))

    repo.delete_thread("t1")

    assert repo.get_thread("t1") is None
    assert [t.id for t in repo.list_threads("plan-1")] == ["t2"]
    assert [c.content for c in repo.get_thread("t2").comments] == ["keep me"]
    if isinstance(repo, InMemoryReviewRepository):
        assert set(repo.comments) == {"c2"}
