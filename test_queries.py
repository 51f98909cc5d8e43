#!/usr/bin/env python3
"""
Test script for verifying search query construction
"""

from datetime import date, datetime

from contriblens.queries import SearchQueryBuilder


def test_build_with_every_qualifier():
    qb = SearchQueryBuilder("acme")
    query = qb.build("jdoe", "pr", relation="reviewed-by", since="2025-01-01")
    assert query == "org:acme reviewed-by:jdoe type:pr created:>=2025-01-01"


def test_build_organization_only():
    assert SearchQueryBuilder("acme").build() == "org:acme"


def test_strategy_queries():
    qb = SearchQueryBuilder("acme")
    assert qb.for_author("jdoe") == "org:acme author:jdoe"
    assert qb.for_pull_requests("jdoe") == "org:acme author:jdoe type:pr"
    assert qb.for_issues("jdoe") == "org:acme author:jdoe type:issue"
    assert qb.for_reviewed_prs("jdoe") == "org:acme reviewed-by:jdoe type:pr"
    assert qb.for_commented_prs("jdoe") == "org:acme commenter:jdoe type:pr"
    assert qb.for_commented_issues("jdoe") == "org:acme commenter:jdoe type:issue"


def test_since_accepts_dates_and_datetimes():
    qb = SearchQueryBuilder("acme")
    assert qb.for_issues("jdoe", date(2024, 6, 1)).endswith("created:>=2024-06-01")
    assert qb.for_issues("jdoe", datetime(2024, 6, 1, 15, 30)).endswith("created:>=2024-06-01")
