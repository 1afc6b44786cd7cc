"""Revision and approval rules for projects.

These predicates mirror the conditional updates in ``ProjectRepository``; the
store enforces them atomically, the functions here classify failures and
build read models.
"""
from reviewgate.models.enums import ApprovalStatus


def is_approved(approval_status: str) -> bool:
    return ApprovalStatus(approval_status) == ApprovalStatus.APPROVED


def within_revision_limit(revision_limit: int | None, revisions_used: int) -> bool:
    """A new version is acceptable only while the limit is unset or not yet reached."""
    return revision_limit is None or revisions_used < revision_limit


def can_submit_version(approval_status: str, revision_limit: int | None, revisions_used: int) -> bool:
    return not is_approved(approval_status) and within_revision_limit(revision_limit, revisions_used)


def revisions_remaining(revision_limit: int | None, revisions_used: int) -> int | None:
    """Remaining revisions, or None when unlimited."""
    if revision_limit is None:
        return None
    return max(revision_limit - revisions_used, 0)
