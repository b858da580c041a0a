"""Domain errors raised by the scheduling services.

Each error carries the HTTP status the API layer should answer with, so route
handlers never need to translate them one by one.
"""

from __future__ import annotations


class RoadmapError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    default_detail: str = "Request rejected"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ForbiddenError(RoadmapError):
    """Caller lacks privilege, or the product's lifecycle forbids the change."""

    status_code = 403
    default_detail = "Only the product owner can edit an active product"


class NotFoundError(RoadmapError):
    status_code = 404
    default_detail = "Not found"


class DateOrderError(RoadmapError):
    default_detail = "end_date must be greater than or equal to start_date"


class CertifyPrerequisiteError(RoadmapError):
    default_detail = (
        "A Certify milestone cannot exist without a Tested Successfully "
        "milestone for the same product (and version)"
    )


class PricingCommitteeApprovalError(RoadmapError):
    default_detail = (
        "Product cannot be set to active until it has a "
        "Pricing Committee Approval milestone"
    )
