"""Unit tests for the milestone rule validator.

These tests do NOT require a database; every rule is a pure function over
the candidate and the product's milestone set.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from roadmap.core.exceptions import (
    CertifyPrerequisiteError,
    DateOrderError,
    PricingCommitteeApprovalError,
)
from roadmap.services.rule_validator import (
    MilestoneCandidate,
    check_certify_prerequisite,
    check_date_order,
    check_pricing_committee_approval,
    has_tested_successfully,
    is_label,
    same_scope,
    validate_milestone,
)

PRODUCT = uuid.uuid4()
V1 = uuid.uuid4()
V2 = uuid.uuid4()


def _ms(label, *, version=None, product=PRODUCT, id=None, start=date(2024, 1, 1), end=None):
    return MilestoneCandidate(
        id=id or uuid.uuid4(),
        product_id=product,
        product_version_id=version,
        label=label,
        start_date=start,
        end_date=end,
    )


def _candidate(label, *, version=None, start=date(2024, 1, 1), end=None):
    return MilestoneCandidate(
        product_id=PRODUCT,
        product_version_id=version,
        label=label,
        start_date=start,
        end_date=end,
    )


# ---------------------------------------------------------------------------
# Label matching
# ---------------------------------------------------------------------------


class TestIsLabel:
    def test_exact_match(self):
        assert is_label("Certify", "Certify") is True

    def test_case_insensitive(self):
        assert is_label("CERTIFY", "Certify") is True
        assert is_label("tested successfully", "Tested Successfully") is True

    def test_surrounding_whitespace_ignored(self):
        assert is_label("  Certify \t", "Certify") is True

    def test_inner_text_must_match(self):
        assert is_label("Certify v2", "Certify") is False
        assert is_label("Tested  Successfully", "Tested Successfully") is False

    def test_none_never_matches(self):
        assert is_label(None, "Certify") is False


# ---------------------------------------------------------------------------
# Version scope
# ---------------------------------------------------------------------------


class TestSameScope:
    def test_both_unscoped(self):
        assert same_scope(None, None) is True

    def test_same_version(self):
        assert same_scope(V1, V1) is True

    def test_different_versions(self):
        assert same_scope(V1, V2) is False

    def test_scoped_vs_unscoped(self):
        assert same_scope(V1, None) is False
        assert same_scope(None, V1) is False


# ---------------------------------------------------------------------------
# Date order
# ---------------------------------------------------------------------------


class TestCheckDateOrder:
    def test_end_after_start_passes(self):
        check_date_order(date(2024, 1, 1), date(2024, 2, 1))

    def test_end_equal_to_start_passes(self):
        check_date_order(date(2024, 1, 1), date(2024, 1, 1))

    def test_missing_end_passes(self):
        check_date_order(date(2024, 1, 1), None)

    def test_end_before_start_rejected(self):
        with pytest.raises(DateOrderError) as exc_info:
            check_date_order(date(2024, 2, 1), date(2024, 1, 1))
        assert exc_info.value.status_code == 400
        assert "end_date" in exc_info.value.detail


# ---------------------------------------------------------------------------
# Certify prerequisite
# ---------------------------------------------------------------------------


class TestCertifyPrerequisite:
    def test_non_certify_label_never_checked(self):
        check_certify_prerequisite(_candidate("Beta"), [])

    def test_certify_without_tested_successfully_rejected(self):
        with pytest.raises(CertifyPrerequisiteError):
            check_certify_prerequisite(_candidate("Certify"), [_ms("Beta")])

    def test_certify_with_unscoped_tested_successfully(self):
        check_certify_prerequisite(_candidate("Certify"), [_ms("Tested Successfully")])

    def test_label_variants_match(self):
        check_certify_prerequisite(_candidate(" certify "), [_ms("TESTED SUCCESSFULLY ")])

    def test_scoped_certify_needs_same_version(self):
        existing = [_ms("Tested Successfully", version=V1)]

        check_certify_prerequisite(_candidate("Certify", version=V1), existing)
        with pytest.raises(CertifyPrerequisiteError):
            check_certify_prerequisite(_candidate("Certify", version=V2), existing)

    def test_unscoped_certify_ignores_scoped_tested_successfully(self):
        with pytest.raises(CertifyPrerequisiteError):
            check_certify_prerequisite(
                _candidate("Certify"), [_ms("Tested Successfully", version=V1)]
            )

    def test_scoped_certify_ignores_unscoped_tested_successfully(self):
        with pytest.raises(CertifyPrerequisiteError):
            check_certify_prerequisite(
                _candidate("Certify", version=V1), [_ms("Tested Successfully")]
            )

    def test_other_product_does_not_count(self):
        other = _ms("Tested Successfully", product=uuid.uuid4())
        with pytest.raises(CertifyPrerequisiteError):
            check_certify_prerequisite(_candidate("Certify"), [other])

    def test_milestone_does_not_satisfy_itself(self):
        """Relabelling the only Tested Successfully to Certify leaves no prerequisite."""
        ms_id = uuid.uuid4()
        stored = _ms("Tested Successfully", id=ms_id)
        relabelled = MilestoneCandidate(
            id=ms_id, product_id=PRODUCT, label="Certify", start_date=date(2024, 1, 1)
        )

        assert has_tested_successfully(relabelled, [stored]) is False
        with pytest.raises(CertifyPrerequisiteError):
            check_certify_prerequisite(relabelled, [stored])


# ---------------------------------------------------------------------------
# validate_milestone
# ---------------------------------------------------------------------------


class TestValidateMilestone:
    def test_valid_candidate_passes(self):
        validate_milestone(_candidate("GA", end=date(2024, 3, 1)), [])

    def test_date_order_checked_before_certify(self):
        """A Certify candidate with inverted dates reports the date problem first."""
        with pytest.raises(DateOrderError):
            validate_milestone(
                _candidate("Certify", start=date(2024, 3, 1), end=date(2024, 1, 1)), []
            )

    def test_certify_rule_applied(self):
        with pytest.raises(CertifyPrerequisiteError):
            validate_milestone(_candidate("Certify"), [])


# ---------------------------------------------------------------------------
# Pricing Committee Approval
# ---------------------------------------------------------------------------


class TestPricingCommitteeApproval:
    def test_missing_approval_rejected(self):
        with pytest.raises(PricingCommitteeApprovalError):
            check_pricing_committee_approval([_ms("Beta"), _ms("GA")])

    def test_empty_product_rejected(self):
        with pytest.raises(PricingCommitteeApprovalError):
            check_pricing_committee_approval([])

    def test_approval_in_any_scope_passes(self):
        check_pricing_committee_approval([_ms("pricing committee approval", version=V2)])
