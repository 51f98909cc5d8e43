"""
GHContribLens - collects a developer's contributions across a GitHub organization.

Repositories are discovered through several search strategies, each repository is
collected concurrently and the result is persisted as one JSON snapshot per developer.
"""

__version__ = "1.0.0"
