"""Enums for catalog, installer and job constants."""

from enum import Enum


class CatalogSource(str, Enum):
    """Where a catalog listing came from."""

    LIVE = "live"
    FALLBACK = "fallback"


class FailurePolicy(str, Enum):
    """What a read operation does when its upstream fails."""

    FALLBACK = "fallback"
    PROPAGATE = "propagate"


class InstallerStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    PENDING = "Pending"


class JobStatus(str, Enum):
    """Installation job lifecycle."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def from_string(cls, value: str | None) -> "JobStatus | None":
        """Convert string to enum, returning None if invalid."""
        if not value:
            return None
        for status in cls:
            if status.value.lower() == value.strip().lower():
                return status
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.CANCELLED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        """Check a lifecycle transition. Re-applying the current status is allowed."""
        if target == self:
            return True
        return target in _JOB_TRANSITIONS[self]


_JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.CONFIRMED, JobStatus.CANCELLED}),
    JobStatus.CONFIRMED: frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


class Season(str, Enum):
    WINTER = "winter"
    ALL_SEASON = "all-season"


# Candidate defaults applied after the LLM output is parsed
DEFAULT_SEASON = Season.ALL_SEASON.value
DEFAULT_MATCH_SCORE = 75
DEFAULT_PRICE_RANGE = "$$"

# Rule-based fallback: picks per season bucket, first score, score step
FALLBACK_PICKS_PER_BUCKET = 2
FALLBACK_START_SCORE = 75
FALLBACK_SCORE_STEP = 10

# Shopify
CATALOG_PAGE_SIZE = 50
CATALOG_QUERY = "product_type:Tire OR tag:tire"
CHECKOUT_SOURCE = "ai_match_v2"
VARIANT_GID_PREFIX = "gid://shopify/ProductVariant/"

# Job reference prefix shared by checkout and the order webhook
JOB_REFERENCE_PREFIX = "PENDING-"
