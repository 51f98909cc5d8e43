"""
GitHub search query construction.

Queries are space separated ``key:value`` qualifiers, e.g.
``org:acme reviewed-by:jdoe type:pr created:>=2025-01-01``.
"""

from typing import List, Optional

from contriblens.utilities import DateLike, format_for_search

AUTHOR = "author"
REVIEWED_BY = "reviewed-by"
COMMENTER = "commenter"

TYPE_PR = "pr"
TYPE_ISSUE = "issue"


class SearchQueryBuilder:
    """Builds search qualifiers scoped to one organization"""

    def __init__(self, organization: str) -> None:
        self.organization = organization

    def build(self, username: Optional[str] = None, activity_type: Optional[str] = None,
              relation: str = AUTHOR, since: Optional[DateLike] = None) -> str:
        parts: List[str] = [f"org:{self.organization}"]
        if username:
            parts.append(f"{relation}:{username}")
        if activity_type:
            parts.append(f"type:{activity_type}")
        if since:
            parts.append(f"created:>={format_for_search(since)}")
        return " ".join(parts)

    def for_author(self, username: str, since: Optional[DateLike] = None) -> str:
        return self.build(username, since=since)

    def for_pull_requests(self, username: str, since: Optional[DateLike] = None) -> str:
        return self.build(username, TYPE_PR, since=since)

    def for_issues(self, username: str, since: Optional[DateLike] = None) -> str:
        return self.build(username, TYPE_ISSUE, since=since)

    def for_reviewed_prs(self, username: str, since: Optional[DateLike] = None) -> str:
        return self.build(username, TYPE_PR, relation=REVIEWED_BY, since=since)

    def for_commented_prs(self, username: str, since: Optional[DateLike] = None) -> str:
        return self.build(username, TYPE_PR, relation=COMMENTER, since=since)

    def for_commented_issues(self, username: str, since: Optional[DateLike] = None) -> str:
        return self.build(username, TYPE_ISSUE, relation=COMMENTER, since=since)
