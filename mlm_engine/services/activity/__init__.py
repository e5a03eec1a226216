"""Activity eligibility evaluation."""

from mlm_engine.services.activity.eligibility import (
    ActivityStatus,
    MembershipValidation,
    evaluate_activity,
    validate_initial_membership,
)

__all__ = [
    "ActivityStatus",
    "MembershipValidation",
    "evaluate_activity",
    "validate_initial_membership",
]
