"""
Record Policies
===============

Decisions that depend only on a canonical record's fields:
- whether a reconciled record is complete enough to be stored
- how long a record may live in the cache
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from anisync.core.schema import CanonicalAnime


# Statuses that make the crawl's strictest gate accept a record
SAVING_STATUSES = frozenset({"FINISHED", "CANCELLED"})

# Statuses after which a record is not expected to change any more
TERMINAL_STATUSES = frozenset({"FINISHED", "RELEASED", "CANCELLED"})

TEMPORARY_TTL_SECONDS = 60 * 60  # 1 hour
PERMANENT_TTL_SECONDS = 30 * 24 * 60 * 60  # 30 days


class GatePolicy(str, Enum):
    """How the minimum-viable-record gate judges the status field."""

    # The crawl's historical check:
    #   status in SAVING_STATUSES or status is not None or status != ""
    # The last two clauses can never both be false, so any status passes.
    LEGACY = "legacy"
    NON_EMPTY = "non_empty"  # status must be a non-empty string
    TERMINAL = "terminal"  # status must be one of SAVING_STATUSES


def status_passes(status: str | None, policy: GatePolicy = GatePolicy.LEGACY) -> bool:
    """Check the status clause of the gate under a policy."""
    if policy == GatePolicy.LEGACY:
        return status in SAVING_STATUSES or status is not None or status != ""
    if policy == GatePolicy.NON_EMPTY:
        return bool(status)
    return status in SAVING_STATUSES


def is_storable(anime: CanonicalAnime, policy: GatePolicy = GatePolicy.LEGACY) -> bool:
    """
    Minimum-viable-record gate.

    A record is storable when it has an id, a title and a status accepted
    by `policy`.
    """
    if not anime.id:
        return False
    if anime.title is None or anime.title.is_empty():
        return False
    return status_passes(anime.status, policy)


def is_terminal(status: str | None) -> bool:
    """Check whether a status means the record is final."""
    return status in TERMINAL_STATUSES


def cache_ttl(
    status: str | None,
    temporary_ttl: int = TEMPORARY_TTL_SECONDS,
    permanent_ttl: int = PERMANENT_TTL_SECONDS,
) -> int:
    """Pick a cache TTL (seconds) from a record's status."""
    return permanent_ttl if is_terminal(status) else temporary_ttl
