"""
Domain models for the indicator pipeline.

Pydantic models for records that leave the classifiers and get written out.
Tabular work happens in pandas; these define the canonical row schema and
``to_frame`` helpers turn lists of records back into DataFrames.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from trias_indicators.reference.status import EmergingStatus, Method

# =============================================================================
# Evaluation window
# =============================================================================


class EvaluationWindow(BaseModel):
    """Contiguous range of evaluation years, both ends included."""

    model_config = ConfigDict(frozen=True)

    first_year: int
    last_year: int

    @model_validator(mode="after")
    def _check_order(self) -> EvaluationWindow:
        if self.first_year > self.last_year:
            msg = f"first_year {self.first_year} is after last_year {self.last_year}"
            raise ValueError(msg)
        return self

    @classmethod
    def ending_at(cls, as_of_year: int, length: int = 1) -> EvaluationWindow:
        """Window of ``length`` years ending at ``as_of_year``."""
        if length < 1:
            msg = f"Window length must be positive, got {length}"
            raise ValueError(msg)
        return cls(first_year=as_of_year - length + 1, last_year=as_of_year)

    @classmethod
    def from_years(cls, years: Iterable[int]) -> EvaluationWindow:
        """Build a window from an explicit set of years.

        Raises:
            ValueError: If the set is empty or has gaps.
        """
        unique = sorted(set(int(y) for y in years))
        if not unique:
            raise ValueError("Evaluation years must not be empty")
        if unique[-1] - unique[0] + 1 != len(unique):
            msg = f"Evaluation years must be contiguous, got {unique}"
            raise ValueError(msg)
        return cls(first_year=unique[0], last_year=unique[-1])

    @property
    def years(self) -> list[int]:
        return list(range(self.first_year, self.last_year + 1))

    def __iter__(self) -> Iterator[int]:  # type: ignore[override]
        return iter(self.years)


# =============================================================================
# Classification
# =============================================================================


class ClassificationResult(BaseModel):
    """Status of one taxon in one evaluation year."""

    model_config = ConfigDict(frozen=True)

    taxonKey: int  # noqa: N815
    year: int
    em_status: EmergingStatus
    method: Method
    stats: dict[str, Any] = Field(default_factory=dict)

    def to_row(self) -> dict[str, Any]:
        """Flatten to a single output row, statistics as extra columns."""
        return {
            "taxonKey": self.taxonKey,
            "year": self.year,
            "em_status": int(self.em_status),
            "method": str(self.method),
            **self.stats,
        }


# =============================================================================
# Appearing / reappearing
# =============================================================================


class AppearanceRecord(BaseModel):
    """A taxon first seen in the evaluation window."""

    model_config = ConfigDict(frozen=True)

    taxonKey: int  # noqa: N815
    year: int
    value: float


class ReappearanceRecord(BaseModel):
    """A taxon seen again after more than ``latency`` years of absence."""

    model_config = ConfigDict(frozen=True)

    taxonKey: int  # noqa: N815
    year: int
    last_seen: int
    latency: int = Field(..., gt=0)
    value: float


# =============================================================================
# Taxonomy
# =============================================================================


class TaxonInfo(BaseModel):
    """Taxon metadata from the GBIF backbone."""

    taxonKey: int  # noqa: N815
    scientificName: str | None = None  # noqa: N815
    canonicalName: str | None = None  # noqa: N815
    kingdom: str | None = None
    class_: str | None = Field(default=None, alias="class")
    classKey: int | None = None  # noqa: N815
    rank: str | None = None

    model_config = ConfigDict(populate_by_name=True)


def to_frame(records: Iterable[BaseModel], columns: list[str] | None = None) -> pd.DataFrame:
    """Turn a list of records into a DataFrame.

    ``ClassificationResult`` records are flattened with ``to_row``; others
    are dumped by alias so ``TaxonInfo.class_`` becomes ``class``.
    """
    rows = [
        r.to_row() if isinstance(r, ClassificationResult) else r.model_dump(by_alias=True)
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=columns or [])
    return pd.DataFrame(rows)
