"""
Data Models for GHContribLens

This module defines the data structures used to hold a developer's contributions.
Platform entities are deserialized into explicit dataclasses that fail loudly when
a field the pipeline depends on is missing, while keeping the platform-native
payload so snapshots can be persisted without loss.

Key components:
- DateRange: optional inclusive since/until bounds
- Repository: discovery artifact identified by its platform id
- Commit, PullRequest, Review, Issue, PrComment, IssueComment: contribution records
- RepositoryContribution: the six record collections for one repository
- Summary: totals derived from a set of RepositoryContribution objects
- DeveloperSnapshot: the persisted root aggregate
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from contriblens.errors import InvalidDateFormatError, RecordFormatError
from contriblens.utilities import parse_date, parse_timestamp

RECORD_KINDS = ("commits", "pull_requests", "reviews", "issues", "pr_comments", "issue_comments")


def _require(data: Mapping[str, Any], *path: str) -> Any:
    """Walk a nested key path, raising RecordFormatError when a key is absent"""
    current: Any = data
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            raise RecordFormatError(f"Missing required field '{'.'.join(path)}'")
        current = current[key]
    return current


def _require_timestamp(data: Mapping[str, Any], *path: str) -> datetime:
    value = _require(data, *path)
    if not isinstance(value, str):
        raise RecordFormatError(f"Invalid timestamp in '{'.'.join(path)}': {value!r}")
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        raise RecordFormatError(f"Invalid timestamp in '{'.'.join(path)}': {value!r}") from None


def _optional_timestamp(data: Mapping[str, Any], *path: str) -> Optional[datetime]:
    if _require(data, *path) is None:
        return None
    return _require_timestamp(data, *path)


def _login(data: Mapping[str, Any], key: str = "user") -> Optional[str]:
    """Login of a user object; the object itself may be null for deleted accounts"""
    user = _require(data, key)
    if user is None:
        return None
    return _require(user, "login")


@dataclass
class DateRange:
    """
    Optional inclusive bounds on record timestamps, expressed as calendar dates.

    ``since`` includes the whole first day and ``until`` the whole last day (UTC).
    A range whose since is after its until is not rejected here: it simply
    contains nothing.
    """
    since: Optional[date] = None
    until: Optional[date] = None

    @classmethod
    def parse(cls, since: Optional[str] = None, until: Optional[str] = None) -> "DateRange":
        """
        Build a range from YYYY-MM-DD strings, rejecting an inverted range.

        Raises:
            InvalidDateFormatError: On malformed dates or when since is after until
        """
        date_range = cls(
            since=parse_date(since) if since else None,
            until=parse_date(until) if until else None,
        )
        if date_range.is_empty:
            raise InvalidDateFormatError(
                f"--since ({date_range.since}) must not be after --until ({date_range.until})"
            )
        return date_range

    @property
    def since_datetime(self) -> Optional[datetime]:
        if self.since is None:
            return None
        return datetime.combine(self.since, time.min, tzinfo=timezone.utc)

    @property
    def until_datetime(self) -> Optional[datetime]:
        """Exclusive upper bound: midnight after the until day"""
        if self.until is None:
            return None
        return datetime.combine(self.until + timedelta(days=1), time.min, tzinfo=timezone.utc)

    @property
    def is_empty(self) -> bool:
        return self.since is not None and self.until is not None and self.since > self.until

    @property
    def is_bounded(self) -> bool:
        return self.since is not None or self.until is not None

    def contains(self, timestamp: Optional[datetime]) -> bool:
        """Whether a timestamp falls inside the range; undated records only match an unbounded range"""
        if timestamp is None:
            return not self.is_bounded
        since = self.since_datetime
        until = self.until_datetime
        if since is not None and timestamp < since:
            return False
        if until is not None and timestamp >= until:
            return False
        return True


@dataclass(frozen=True)
class Repository:
    """Repository as returned by the search and repository endpoints"""
    id: int
    name: str
    full_name: str

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Repository":
        return cls(
            id=int(_require(data, "id")),
            name=_require(data, "name"),
            full_name=_require(data, "full_name"),
        )


@dataclass
class Commit:
    """A commit authored by the developer"""
    sha: str
    author_login: Optional[str]
    authored_at: datetime
    message: str
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)
    stats: Optional[Dict[str, int]] = None
    files_changed: Optional[int] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Commit":
        return cls(
            sha=_require(data, "sha"),
            author_login=(data.get("author") or {}).get("login"),
            authored_at=_require_timestamp(data, "commit", "author", "date"),
            message=_require(data, "commit", "message"),
            raw=dict(data),
        )

    @property
    def timestamp(self) -> datetime:
        return self.authored_at

    def apply_details(self, details: Mapping[str, Any]) -> None:
        """Merge line statistics from the single-commit endpoint"""
        stats = details.get("stats")
        if stats is not None:
            self.stats = {
                "additions": int(stats.get("additions", 0)),
                "deletions": int(stats.get("deletions", 0)),
                "total": int(stats.get("total", 0)),
            }
        if details.get("files") is not None:
            self.files_changed = len(details["files"])

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.raw)
        if self.stats is not None:
            data["stats"] = dict(self.stats)
        if self.files_changed is not None:
            data["files_changed"] = self.files_changed
        return data


@dataclass
class PullRequest:
    """A pull request opened by the developer"""
    number: int
    author_login: Optional[str]
    created_at: datetime
    state: str
    title: str
    merged_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "PullRequest":
        return cls(
            number=int(_require(data, "number")),
            author_login=_login(data),
            created_at=_require_timestamp(data, "created_at"),
            state=_require(data, "state"),
            title=_require(data, "title"),
            merged_at=_optional_timestamp(data, "merged_at") if "merged_at" in data else None,
            raw=dict(data),
        )

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass
class Review:
    """A review submitted by the developer on a pull request"""
    id: int
    author_login: Optional[str]
    state: str
    body: str
    submitted_at: Optional[datetime]
    pull_request_number: Optional[int] = None
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)

    @classmethod
    def from_api(cls, data: Mapping[str, Any], pull_request_number: Optional[int] = None) -> "Review":
        return cls(
            id=int(_require(data, "id")),
            author_login=_login(data),
            state=_require(data, "state"),
            body=data.get("body") or "",
            submitted_at=_optional_timestamp(data, "submitted_at") if "submitted_at" in data else None,
            pull_request_number=pull_request_number,
            raw=dict(data),
        )

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.submitted_at

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data["body"] = self.body
        if self.pull_request_number is not None:
            data.setdefault("pull_request_number", self.pull_request_number)
        return data


@dataclass
class Issue:
    """An issue created by or assigned to the developer"""
    id: int
    number: int
    author_login: Optional[str]
    created_at: datetime
    state: str
    title: str
    is_pull_request: bool = False
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Issue":
        return cls(
            id=int(_require(data, "id")),
            number=int(_require(data, "number")),
            author_login=_login(data),
            created_at=_require_timestamp(data, "created_at"),
            state=_require(data, "state"),
            title=_require(data, "title"),
            is_pull_request="pull_request" in data,
            raw=dict(data),
        )

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass
class Comment:
    """Common shape of issue and pull request comments"""
    id: int
    author_login: Optional[str]
    created_at: datetime
    body: str
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass
class IssueComment(Comment):
    """A comment on an issue (or on the conversation tab of a pull request)"""

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "IssueComment":
        return cls(
            id=int(_require(data, "id")),
            author_login=_login(data),
            created_at=_require_timestamp(data, "created_at"),
            body=data.get("body") or "",
            raw=dict(data),
        )


@dataclass
class PrComment(Comment):
    """An inline review comment on a pull request diff"""
    pull_request_review_id: Optional[int] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "PrComment":
        return cls(
            id=int(_require(data, "id")),
            author_login=_login(data),
            created_at=_require_timestamp(data, "created_at"),
            body=data.get("body") or "",
            pull_request_review_id=data.get("pull_request_review_id"),
            raw=dict(data),
        )


T = TypeVar("T")


def _filter_records(records: Sequence[T], date_range: DateRange) -> List[T]:
    return [record for record in records if date_range.contains(record.timestamp)]


@dataclass
class RepositoryContribution:
    """The six contribution collections of one developer in one repository"""
    commits: List[Commit] = field(default_factory=list)
    pull_requests: List[PullRequest] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    pr_comments: List[PrComment] = field(default_factory=list)
    issue_comments: List[IssueComment] = field(default_factory=list)

    def filtered(self, date_range: DateRange) -> "RepositoryContribution":
        """Return a copy keeping only records whose timestamp lies inside the range"""
        return RepositoryContribution(
            commits=_filter_records(self.commits, date_range),
            pull_requests=_filter_records(self.pull_requests, date_range),
            reviews=_filter_records(self.reviews, date_range),
            issues=_filter_records(self.issues, date_range),
            pr_comments=_filter_records(self.pr_comments, date_range),
            issue_comments=_filter_records(self.issue_comments, date_range),
        )

    def counts(self) -> Dict[str, int]:
        return {kind: len(getattr(self, kind)) for kind in RECORD_KINDS}

    def describe(self) -> str:
        """Short human readable activity summary"""
        labels = {
            "commits": "commits",
            "pull_requests": "PRs",
            "reviews": "reviews",
            "issues": "issues",
            "pr_comments": "PR comments",
            "issue_comments": "issue comments",
        }
        parts = [f"{count} {labels[kind]}" for kind, count in self.counts().items() if count]
        return ", ".join(parts) if parts else "no activity"

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {kind: [record.to_dict() for record in getattr(self, kind)] for kind in RECORD_KINDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RepositoryContribution":
        parsers: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
            "commits": Commit.from_api,
            "pull_requests": PullRequest.from_api,
            "reviews": lambda item: Review.from_api(item, item.get("pull_request_number")),
            "issues": Issue.from_api,
            "pr_comments": PrComment.from_api,
            "issue_comments": IssueComment.from_api,
        }
        contribution = cls()
        for kind, parse in parsers.items():
            records = []
            for item in data.get(kind, []):
                record = parse(item)
                if kind == "commits":
                    record.apply_details(item)
                    record.files_changed = item.get("files_changed", record.files_changed)
                records.append(record)
            setattr(contribution, kind, records)
        return contribution


@dataclass(frozen=True)
class Summary:
    """Totals across all repositories of a snapshot"""
    total_commits: int = 0
    total_prs: int = 0
    total_reviews: int = 0
    total_issues: int = 0
    total_pr_comments: int = 0
    total_issue_comments: int = 0

    @classmethod
    def from_repositories(cls, repositories: Mapping[str, RepositoryContribution]) -> "Summary":
        contributions = list(repositories.values())
        return cls(
            total_commits=sum(len(repo.commits) for repo in contributions),
            total_prs=sum(len(repo.pull_requests) for repo in contributions),
            total_reviews=sum(len(repo.reviews) for repo in contributions),
            total_issues=sum(len(repo.issues) for repo in contributions),
            total_pr_comments=sum(len(repo.pr_comments) for repo in contributions),
            total_issue_comments=sum(len(repo.issue_comments) for repo in contributions),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_commits": self.total_commits,
            "total_prs": self.total_prs,
            "total_reviews": self.total_reviews,
            "total_issues": self.total_issues,
            "total_pr_comments": self.total_pr_comments,
            "total_issue_comments": self.total_issue_comments,
        }


@dataclass
class DeveloperSnapshot:
    """
    Complete contribution dataset for one developer as of one collection run.

    The summary is always derived from the repositories map, never stored separately.
    """
    developer: str
    organization: str
    collected_at: str
    repositories: Dict[str, RepositoryContribution] = field(default_factory=dict)

    @property
    def summary(self) -> Summary:
        return Summary.from_repositories(self.repositories)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "developer": self.developer,
            "organization": self.organization,
            "collected_at": self.collected_at,
            "repositories": {name: repo.to_dict() for name, repo in self.repositories.items()},
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeveloperSnapshot":
        return cls(
            developer=_require(data, "developer"),
            organization=_require(data, "organization"),
            collected_at=_require(data, "collected_at"),
            repositories={
                name: RepositoryContribution.from_dict(repo)
                for name, repo in _require(data, "repositories").items()
            },
        )
