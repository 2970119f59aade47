"""Emerging status codes and classifier defaults."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EmergingStatus(IntEnum):
    """Status code of a taxon in an evaluation year."""

    NOT_EMERGING = 0
    UNCLEAR = 1
    POTENTIALLY_EMERGING = 2
    EMERGING = 3

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")


class Method(StrEnum):
    """How a status was derived."""

    DECISION_RULES = "decision_rules"
    GAM = "gam"


# Years of absence before a comeback counts as a reappearance.
DEFAULT_LATENCY: int = 5

# Evaluation window: the as-of year and the years before it.
DEFAULT_WINDOW_LENGTH: int = 3

# Below this number of positive years a GAM is not attempted.
MIN_POSITIVE_YEARS_GAM: int = 3

# Two-sided confidence level for the derivative bands.
DEFAULT_CONFIDENCE: float = 0.8

# Map of the combined derivative signal (em) to the status code.
EM_TO_STATUS: dict[int, EmergingStatus] = {
    4: EmergingStatus.EMERGING,
    3: EmergingStatus.EMERGING,
    2: EmergingStatus.POTENTIALLY_EMERGING,
    1: EmergingStatus.POTENTIALLY_EMERGING,
    0: EmergingStatus.UNCLEAR,
    -1: EmergingStatus.UNCLEAR,
    -2: EmergingStatus.NOT_EMERGING,
    -3: EmergingStatus.NOT_EMERGING,
    -4: EmergingStatus.NOT_EMERGING,
}
