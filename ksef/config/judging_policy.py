"""
Judging Policy Configuration

Centralized policy parameters for assignment, conflict detection and
promotion. All values are loaded from environment variables.
"""
import os
from enum import Enum


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return int(value)


def get_float_env(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return float(value)


class TiePolicy(str, Enum):
    """How to treat projects tied on score across the promotion cut."""
    STRICT = "strict"              # exactly PROMOTION_SLOTS, by sort order
    INCLUDE_TIES = "include_ties"  # everyone tied with the last slot goes up


class JudgingPolicy:
    """
    Policy parameters for the judging engine.

    To add a new parameter:
    1. Add it here as a class attribute
    2. Load it from an environment variable
    3. Read it through the policy object passed to the service
    """

    # Judges required per section (A, BC) for a project to be fully judged
    JUDGES_PER_SECTION: int = get_int_env('JUDGES_PER_SECTION', 2)

    # Number of projects promoted from each (level, category) cohort
    PROMOTION_SLOTS: int = get_int_env('PROMOTION_SLOTS', 4)
    PROMOTION_TIE_POLICY: TiePolicy = TiePolicy(os.getenv('PROMOTION_TIE_POLICY', TiePolicy.STRICT.value))

    # Section discrepancy, as a fraction of the section's maximum marks
    SCORE_DISCREPANCY_THRESHOLD: float = get_float_env('SCORE_DISCREPANCY_THRESHOLD', 0.25)

    # Legacy seeding path: widen short local pools with national judges
    NATIONAL_FALLBACK_ENABLED: bool = get_bool_env('NATIONAL_FALLBACK_ENABLED', True)

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown judging policy parameter: {key}")
            if key == "PROMOTION_TIE_POLICY":
                value = TiePolicy(value)
            setattr(self, key, value)

    def to_dict(self) -> dict:
        return {
            "judges_per_section": self.JUDGES_PER_SECTION,
            "promotion_slots": self.PROMOTION_SLOTS,
            "promotion_tie_policy": self.PROMOTION_TIE_POLICY.value,
            "score_discrepancy_threshold": self.SCORE_DISCREPANCY_THRESHOLD,
            "national_fallback_enabled": self.NATIONAL_FALLBACK_ENABLED,
        }


# Global instance
judging_policy = JudgingPolicy()
