#!/usr/bin/env python3
"""
Test script for verifying the contribution records: typed deserialization,
inclusive date ranges and the derived summary
"""

from datetime import date, datetime, timezone

import pytest

from conftest import comment_payload, commit_payload, issue_payload, pull_payload, review_payload
from contriblens.errors import InvalidDateFormatError, RecordFormatError
from contriblens.models import (
    Commit,
    DateRange,
    DeveloperSnapshot,
    Issue,
    IssueComment,
    PrComment,
    PullRequest,
    Repository,
    RepositoryContribution,
    Review,
    Summary,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_date_range_bounds_are_inclusive():
    """since covers its whole first day and until its whole last day"""
    date_range = DateRange(since=date(2025, 1, 1), until=date(2025, 1, 31))

    assert date_range.contains(utc(2025, 1, 1, 0, 0, 0))
    assert date_range.contains(utc(2025, 1, 31, 23, 59, 59))
    assert not date_range.contains(utc(2024, 12, 31, 23, 59, 59))
    assert not date_range.contains(utc(2025, 2, 1, 0, 0, 0))


def test_unbounded_range_contains_everything():
    date_range = DateRange()
    assert date_range.contains(utc(1999, 1, 1))
    assert date_range.contains(None)
    assert not DateRange(since=date(2025, 1, 1)).contains(None)


def test_inverted_range_is_empty():
    date_range = DateRange(since=date(2025, 2, 1), until=date(2025, 1, 1))
    assert date_range.is_empty
    assert not date_range.contains(utc(2025, 1, 15))


def test_date_range_parse():
    date_range = DateRange.parse("2025-01-01", None)
    assert date_range == DateRange(since=date(2025, 1, 1))
    assert DateRange.parse(None, None) == DateRange()

    with pytest.raises(InvalidDateFormatError):
        DateRange.parse("01/01/2025", None)
    with pytest.raises(InvalidDateFormatError):
        DateRange.parse("2025-02-01", "2025-01-01")


def test_commit_from_api():
    commit = Commit.from_api(commit_payload("abc", "2025-01-05T10:00:00Z", message="Fix bug"))
    assert commit.sha == "abc"
    assert commit.author_login == "jdoe"
    assert commit.authored_at == utc(2025, 1, 5, 10, 0, 0)
    assert commit.message == "Fix bug"


def test_commit_without_linked_account():
    data = commit_payload("abc", "2025-01-05T10:00:00Z")
    data["author"] = None
    assert Commit.from_api(data).author_login is None


def test_commit_details_are_persisted():
    commit = Commit.from_api(commit_payload("abc", "2025-01-05T10:00:00Z"))
    commit.apply_details({"stats": {"additions": 10, "deletions": 2, "total": 12}, "files": [{}, {}]})

    data = commit.to_dict()
    assert data["stats"] == {"additions": 10, "deletions": 2, "total": 12}
    assert data["files_changed"] == 2
    assert data["sha"] == "abc"


@pytest.mark.parametrize("parse, payload, missing", [
    (Commit.from_api, {"sha": "x", "commit": {"message": "m"}}, "commit.author.date"),
    (PullRequest.from_api, {"user": {"login": "a"}, "created_at": "2025-01-01T00:00:00Z"}, "number"),
    (Review.from_api, {"id": 1, "state": "APPROVED"}, "user"),
    (Issue.from_api, {"id": 1, "number": 2, "user": {"login": "a"}}, "created_at"),
    (IssueComment.from_api, {"id": 1, "user": {"id": 3}, "created_at": "2025-01-01T00:00:00Z"}, "login"),
    (Repository.from_api, {"id": 1, "name": "widgets"}, "full_name"),
])
def test_missing_required_fields_fail_loudly(parse, payload, missing):
    with pytest.raises(RecordFormatError) as excinfo:
        parse(payload)
    assert missing in str(excinfo.value)


def test_invalid_timestamp_fails_loudly():
    with pytest.raises(RecordFormatError):
        PullRequest.from_api(pull_payload(1, "yesterday"))


@pytest.mark.parametrize("value", [None, 1735689600])
def test_non_string_timestamp_fails_loudly(value):
    with pytest.raises(RecordFormatError) as excinfo:
        Commit.from_api(commit_payload("a1", value))
    assert "commit.author.date" in str(excinfo.value)


def test_issue_detects_pull_requests():
    assert Issue.from_api(issue_payload(1, 2, "2025-01-01T00:00:00Z", is_pull_request=True)).is_pull_request
    assert not Issue.from_api(issue_payload(1, 2, "2025-01-01T00:00:00Z")).is_pull_request


def test_review_without_submission_date():
    data = review_payload(5, "2025-01-01T00:00:00Z", state="PENDING", body=None)
    data["submitted_at"] = None
    review = Review.from_api(data, pull_request_number=3)
    assert review.submitted_at is None
    assert review.body == ""
    assert review.to_dict()["pull_request_number"] == 3


def test_deleted_user_is_allowed():
    data = comment_payload(1, "2025-01-01T00:00:00Z")
    data["user"] = None
    assert IssueComment.from_api(data).author_login is None


def test_filtered_drops_records_outside_range():
    contribution = RepositoryContribution(
        commits=[
            Commit.from_api(commit_payload("a", "2025-01-05T10:00:00Z")),
            Commit.from_api(commit_payload("b", "2024-12-05T10:00:00Z")),
        ],
        pr_comments=[PrComment.from_api(comment_payload(1, "2025-03-01T00:00:00Z"))],
    )
    filtered = contribution.filtered(DateRange(since=date(2025, 1, 1), until=date(2025, 1, 31)))

    assert [c.sha for c in filtered.commits] == ["a"]
    assert filtered.pr_comments == []
    assert len(contribution.commits) == 2


def test_describe():
    assert RepositoryContribution().describe() == "no activity"
    contribution = RepositoryContribution(pull_requests=[PullRequest.from_api(pull_payload(1, "2025-01-01T00:00:00Z"))])
    assert contribution.describe() == "1 PRs"


def test_summary_matches_repository_counts():
    """Every total equals the sum of the matching collection over repositories"""
    repositories = {
        "widgets": RepositoryContribution(
            commits=[Commit.from_api(commit_payload(str(i), "2025-01-05T10:00:00Z")) for i in range(3)],
            issues=[Issue.from_api(issue_payload(1, 1, "2025-01-01T00:00:00Z"))],
        ),
        "gadgets": RepositoryContribution(
            commits=[Commit.from_api(commit_payload("z", "2025-01-05T10:00:00Z"))],
            reviews=[Review.from_api(review_payload(1, "2025-01-01T00:00:00Z"))],
            issue_comments=[IssueComment.from_api(comment_payload(1, "2025-01-01T00:00:00Z"))],
        ),
    }
    snapshot = DeveloperSnapshot("jdoe", "acme", "2025-02-01T00:00:00+00:00", repositories)

    for total, kind in [
        ("total_commits", "commits"), ("total_prs", "pull_requests"), ("total_reviews", "reviews"),
        ("total_issues", "issues"), ("total_pr_comments", "pr_comments"),
        ("total_issue_comments", "issue_comments"),
    ]:
        assert getattr(snapshot.summary, total) == sum(len(getattr(r, kind)) for r in repositories.values())
    assert snapshot.summary == Summary(total_commits=4, total_reviews=1, total_issues=1, total_issue_comments=1)


def test_snapshot_dict_restores_records():
    commit = Commit.from_api(commit_payload("a", "2025-01-05T10:00:00Z"))
    commit.apply_details({"stats": {"additions": 1, "deletions": 0, "total": 1}, "files": [{}]})
    snapshot = DeveloperSnapshot("jdoe", "acme", "2025-02-01T00:00:00+00:00", {
        "widgets": RepositoryContribution(commits=[commit]),
    })

    restored = DeveloperSnapshot.from_dict(snapshot.to_dict())
    assert restored.to_dict() == snapshot.to_dict()
    assert restored.repositories["widgets"].commits[0].files_changed == 1
    assert snapshot.to_dict()["summary"]["total_commits"] == 1
