"""Structural rules checked against a milestone before it is persisted.

All functions are pure: they read the candidate and the product's milestone
set that the caller already loaded, and raise a domain error on violation.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from roadmap.core.exceptions import (
    CertifyPrerequisiteError,
    DateOrderError,
    PricingCommitteeApprovalError,
)
from roadmap.models.milestone import (
    LABEL_CERTIFY,
    LABEL_PRICING_COMMITTEE_APPROVAL,
    LABEL_TESTED_SUCCESSFULLY,
)


class MilestoneLike(Protocol):
    id: uuid.UUID | None
    product_id: uuid.UUID
    product_version_id: uuid.UUID | None
    label: str
    start_date: date
    end_date: date | None


@dataclass(frozen=True)
class MilestoneCandidate:
    """Post-update field values of a milestone, evaluated before persistence.

    ``id`` is None for a milestone that is being created.
    """

    product_id: uuid.UUID
    label: str
    start_date: date
    end_date: date | None = None
    product_version_id: uuid.UUID | None = None
    id: uuid.UUID | None = None


def is_label(label: str | None, expected: str) -> bool:
    if label is None:
        return False
    return label.strip().casefold() == expected.casefold()


def same_scope(version_a: uuid.UUID | None, version_b: uuid.UUID | None) -> bool:
    """Version scopes match when both are unset or both name the same version."""
    if version_a is None and version_b is None:
        return True
    return version_a is not None and version_b is not None and version_a == version_b


def check_date_order(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and end_date < start_date:
        raise DateOrderError()


def has_tested_successfully(
    candidate: MilestoneLike, product_milestones: Iterable[MilestoneLike]
) -> bool:
    for other in product_milestones:
        if candidate.id is not None and other.id == candidate.id:
            continue
        if other.product_id != candidate.product_id:
            continue
        if not is_label(other.label, LABEL_TESTED_SUCCESSFULLY):
            continue
        if same_scope(candidate.product_version_id, other.product_version_id):
            return True
    return False


def check_certify_prerequisite(
    candidate: MilestoneLike, product_milestones: Iterable[MilestoneLike]
) -> None:
    if not is_label(candidate.label, LABEL_CERTIFY):
        return
    if not has_tested_successfully(candidate, product_milestones):
        raise CertifyPrerequisiteError()


def validate_milestone(
    candidate: MilestoneLike, product_milestones: Iterable[MilestoneLike]
) -> None:
    """Run every milestone rule; the first violation aborts the mutation."""
    check_date_order(candidate.start_date, candidate.end_date)
    check_certify_prerequisite(candidate, product_milestones)


def check_pricing_committee_approval(product_milestones: Iterable[MilestoneLike]) -> None:
    """A product may only become active once it has a Pricing Committee Approval milestone."""
    if not any(is_label(m.label, LABEL_PRICING_COMMITTEE_APPROVAL) for m in product_milestones):
        raise PricingCommitteeApprovalError()
