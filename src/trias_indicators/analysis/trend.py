"""Emerging status from a smoothed trend (GAM) and its derivatives.

A trend model is fitted once per taxon over its whole series (first positive
year through the last evaluation year, zero-filled).  For each evaluation
year the signs of the confidence bands of the first and second derivative
of the smooth give two signals in {-1, 0, 1}::

    em = 3 * sign(1st derivative) + sign(2nd derivative)   # -4 .. 4

which ``EM_TO_STATUS`` maps to a status code.  Fits that cannot be attempted
(too little history) or fail to converge give status 1 (unclear) and are
never raised.

The model is injectable: anything with a ``fit(years, values, baseline)``
method returning a ``TrendFit`` works.  ``GamTrendModel`` is the default,
a statsmodels GAM (Poisson or negative binomial, penalty chosen by AIC).
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.stats import norm
from statsmodels.gam.api import BSplines, GLMGam
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import NCELLS, TAXON, YEAR
from trias_indicators.reference.status import (
    DEFAULT_CONFIDENCE,
    EM_TO_STATUS,
    MIN_POSITIVE_YEARS_GAM,
    EmergingStatus,
    Method,
)
from trias_indicators.schemas import ClassificationResult

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "year",
    "fit",
    "lcl",
    "ucl",
    "deriv1",
    "deriv1_lcl",
    "deriv1_ucl",
    "deriv2",
    "deriv2_lcl",
    "deriv2_ucl",
]

# Errors a fit may raise on degenerate data
FIT_ERRORS = (
    ValueError,
    np.linalg.LinAlgError,
    FloatingPointError,
    OverflowError,
    PerfectSeparationError,
)
FIT_WARNINGS = (ConvergenceWarning, PerfectSeparationWarning)

# Smoothing penalty weights tried, lowest AIC wins
DEFAULT_PENALTIES = (0.1, 1.0, 10.0, 100.0, 1000.0, 10000.0)


# =============================================================================
# Fit results
# =============================================================================


@dataclass
class TrendFit:
    """Outcome of fitting a trend model to one series.

    ``summary`` has one row per year with the fitted value and the
    first/second derivative of the smooth, each with lower/upper bounds.
    """

    converged: bool
    summary: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=SUMMARY_COLUMNS))
    message: str | None = None
    result: Any = None
    penalty: float | None = None
    dispersion: float | None = None

    @classmethod
    def failed(cls, message: str) -> TrendFit:
        return cls(converged=False, message=message)

    def classify(self, year: int) -> tuple[EmergingStatus, dict[str, Any]]:
        """Status for ``year`` from the derivative confidence bands."""
        if not self.converged:
            return EmergingStatus.UNCLEAR, {"converged": False, "message": self.message}

        rows = self.summary.loc[self.summary["year"] == year]
        if rows.empty:
            msg = f"Year {year} is outside the fitted range"
            return EmergingStatus.UNCLEAR, {"converged": True, "message": msg}

        row = rows.iloc[0]
        em1 = _band_sign(row["deriv1_lcl"], row["deriv1_ucl"])
        em2 = _band_sign(row["deriv2_lcl"], row["deriv2_ucl"])
        em = 3 * em1 + em2
        stats = {col: float(row[col]) for col in SUMMARY_COLUMNS if col != "year"}
        stats.update({"em1": em1, "em2": em2, "em": em, "converged": True, "message": None})
        if self.penalty is not None:
            stats["penalty"] = self.penalty
        if self.dispersion is not None:
            stats["dispersion"] = self.dispersion
        return EM_TO_STATUS[em], stats


def _band_sign(lower: float, upper: float) -> int:
    """1 if the band is above zero, -1 if below, 0 if it straddles zero."""
    if lower > 0:
        return 1
    if upper < 0:
        return -1
    return 0


class TrendModel(Protocol):
    """Anything that fits a smooth trend with derivative bands."""

    def fit(
        self,
        years: np.ndarray,
        values: np.ndarray,
        baseline: np.ndarray | None = None,
    ) -> TrendFit: ...


# =============================================================================
# statsmodels GAM
# =============================================================================


class GamTrendModel:
    """GAM with a cubic B-spline smooth on year and a log link.

    The smoothing penalty is chosen by AIC over ``penalties`` on a Poisson
    fit.  The negative binomial dispersion is then estimated from the
    Pearson residuals of that fit (method of moments) and the model is
    refitted with it; a series showing no overdispersion stays Poisson.
    Pass ``dispersion`` to fix it instead.

    ``log1p(baseline)`` enters as a linear covariate when a baseline is
    given, so survey-effort changes are not read as population trends.
    """

    def __init__(
        self,
        df: int = 8,
        degree: int = 3,
        penalties: Sequence[float] = DEFAULT_PENALTIES,
        dispersion: float | None = None,
        confidence: float = DEFAULT_CONFIDENCE,
        step: float = 0.01,
    ) -> None:
        if not penalties:
            raise ValueError("At least one penalty weight is required")
        self.df = df
        self.degree = degree
        self.penalties = tuple(penalties)
        self.dispersion = dispersion
        self.confidence = confidence
        self.step = step

    @property
    def min_points(self) -> int:
        """Shortest series the spline basis can be built on."""
        return self.degree + 3

    def fit(
        self,
        years: np.ndarray,
        values: np.ndarray,
        baseline: np.ndarray | None = None,
    ) -> TrendFit:
        x = np.asarray(years, dtype=float)
        y = np.asarray(values, dtype=float)
        if x.size < self.min_points:
            return TrendFit.failed(f"{x.size} time points, need {self.min_points}")

        bs = BSplines(x, df=[min(self.df, x.size - 1)], degree=[self.degree])
        exog = np.ones((x.size, 1))
        if baseline is not None:
            covariate = np.log1p(np.asarray(baseline, dtype=float))
            # A constant baseline is collinear with the intercept
            if np.ptp(covariate) > 0:
                exog = np.column_stack([exog, covariate])

        penalty, poisson = self._select_penalty(y, exog, bs)
        if poisson is None:
            return TrendFit.failed("No usable fit at any penalty (perfect fit or no convergence)")

        dispersion = self.dispersion
        if dispersion is None:
            dispersion = estimate_dispersion(y, np.asarray(poisson.fittedvalues), poisson.df_resid)
        if dispersion > 0:
            family = sm.families.NegativeBinomial(alpha=dispersion)
            try:
                result, warned = _fit_gam(y, exog, bs, penalty, family)
            except PerfectSeparationError:
                result, warned = poisson, False
        else:
            result, warned = poisson, False

        if warned or not getattr(result, "converged", True):
            return TrendFit(converged=False, message="GAM did not converge", result=result)

        summary = self._summarize(x, exog, bs, result)
        return TrendFit(
            converged=True,
            summary=summary,
            result=result,
            penalty=penalty,
            dispersion=dispersion,
        )

    def _select_penalty(
        self, y: np.ndarray, exog: np.ndarray, bs: BSplines
    ) -> tuple[float, Any]:
        """Poisson fit with the lowest AIC over the penalty grid."""
        best_penalty, best = self.penalties[0], None
        for penalty in self.penalties:
            try:
                result, warned = _fit_gam(y, exog, bs, penalty, sm.families.Poisson())
            except PerfectSeparationError:
                continue
            if warned or not getattr(result, "converged", True):
                continue
            if best is None or result.aic < best.aic:
                best_penalty, best = penalty, result
        return best_penalty, best

    def _summarize(
        self, x: np.ndarray, exog: np.ndarray, bs: BSplines, result: Any
    ) -> pd.DataFrame:
        params = np.asarray(result.params)
        cov = np.asarray(result.cov_params())
        k_smooth = bs.basis.shape[1]
        smooth = slice(params.size - k_smooth, params.size)
        z = norm.ppf(0.5 + self.confidence / 2)

        # Linear predictor and its standard error on the log scale
        design = np.column_stack([exog, bs.basis])
        eta = design @ params
        eta_se = np.sqrt(np.einsum("ij,jk,ik->i", design, cov, design))

        # Derivatives of the smooth by differencing the basis, clipped to the data range
        lo = np.clip(x - self.step, x.min(), x.max())
        hi = np.clip(x + self.step, x.min(), x.max())
        d1 = (bs.transform(hi[:, None]) - bs.transform(lo[:, None])) / (hi - lo)[:, None]
        d2 = np.gradient(d1, x, axis=0)

        def band(lin: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
            est = lin @ params[smooth]
            se = np.sqrt(np.einsum("ij,jk,ik->i", lin, cov[smooth, smooth], lin))
            return est, se

        deriv1, deriv1_se = band(d1)
        deriv2, deriv2_se = band(d2)
        return pd.DataFrame(
            {
                "year": x.astype(int),
                "fit": np.exp(eta),
                "lcl": np.exp(eta - z * eta_se),
                "ucl": np.exp(eta + z * eta_se),
                "deriv1": deriv1,
                "deriv1_lcl": deriv1 - z * deriv1_se,
                "deriv1_ucl": deriv1 + z * deriv1_se,
                "deriv2": deriv2,
                "deriv2_lcl": deriv2 - z * deriv2_se,
                "deriv2_ucl": deriv2 + z * deriv2_se,
            }
        )


def _fit_gam(
    y: np.ndarray, exog: np.ndarray, bs: BSplines, penalty: float, family: Any
) -> tuple[Any, bool]:
    """Fit one GLMGam; the flag is set when statsmodels warned about the fit."""
    model = GLMGam(y, exog=exog, smoother=bs, alpha=penalty, family=family)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        warnings.simplefilter("always", PerfectSeparationWarning)
        result = model.fit()
    warned = any(issubclass(w.category, FIT_WARNINGS) for w in caught)
    return result, warned


def estimate_dispersion(y: np.ndarray, mu: np.ndarray, df_resid: float) -> float:
    """Method-of-moments negative binomial dispersion, 0 when not overdispersed.

    Solves ``Var(y) = mu + alpha * mu**2`` from the residuals of a Poisson fit.
    """
    y = np.asarray(y, dtype=float)
    mu = np.clip(np.asarray(mu, dtype=float), 1e-8, None)
    dof = df_resid if df_resid > 0 else float(y.size)
    alpha = float(np.sum(((y - mu) ** 2 - mu) / mu**2) / dof)
    if not np.isfinite(alpha):
        return 0.0
    return max(alpha, 0.0)


# =============================================================================
# Classification over taxa
# =============================================================================


def correct_baseline(baseline: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Remove the taxon's own counts from the class baseline, floored at zero."""
    corrected = np.asarray(baseline, dtype=float) - np.asarray(values, dtype=float)
    return np.clip(corrected, 0, None)


def apply_gam(
    df: pd.DataFrame,
    eval_years: Iterable[int],
    *,
    metric: str = NCELLS,
    baseline: str | None = None,
    model: TrendModel | None = None,
    min_positive_years: int = MIN_POSITIVE_YEARS_GAM,
    taxon_col: str = TAXON,
    year_col: str = YEAR,
) -> tuple[list[ClassificationResult], dict[int, TrendFit]]:
    """Fit a trend per taxon and classify each evaluation year.

    Args:
        df: Aggregated series, one row per (taxon, year); gaps allowed.
        eval_years: Years to classify.
        metric: Response column (``ncells`` or ``obs``).
        baseline: Optional class-level baseline column (``c_ncells``/``cobs``).
        model: Trend model, ``GamTrendModel()`` by default.
        min_positive_years: Fewer positive years than this gives "unclear"
            without fitting.

    Returns:
        Results (one per taxon and evaluation year at or after the taxon's
        first positive year) and the fits by taxon key.
    """
    years = sorted(set(eval_years))
    if not years:
        return [], {}
    columns = [taxon_col, year_col, metric] + ([baseline] if baseline else [])
    require_columns(df, columns, what="Time series")
    if df.duplicated([taxon_col, year_col]).any():
        raise ValueError("Time series must have one row per (taxon, year); aggregate first")

    model = model or GamTrendModel()
    last_year = years[-1]
    results: list[ClassificationResult] = []
    fits: dict[int, TrendFit] = {}

    for taxon, group in df.groupby(taxon_col, sort=True):
        key = int(taxon)
        group = group.loc[group[year_col] <= last_year]
        positive = group.loc[group[metric] > 0]
        if positive.empty:
            continue

        first_year = int(positive[year_col].min())
        series = (
            group.set_index(year_col)[[metric] + ([baseline] if baseline else [])]
            .reindex(pd.RangeIndex(first_year, last_year + 1, name=year_col), fill_value=0)
        )
        n_positive = int((series[metric] > 0).sum())

        if n_positive < min_positive_years:
            fit = TrendFit.failed(f"{n_positive} positive years, need {min_positive_years}")
        else:
            values = series[metric].to_numpy(dtype=float)
            corrected = (
                correct_baseline(series[baseline].to_numpy(), values) if baseline else None
            )
            fit = _safe_fit(model, series.index.to_numpy(), values, corrected)
            if not fit.converged:
                logger.warning("Trend fit for taxon %s downgraded to unclear: %s", key, fit.message)
        fits[key] = fit

        for year in years:
            if year < first_year:
                continue
            status, stats = fit.classify(year)
            results.append(
                ClassificationResult(
                    taxonKey=key,
                    year=year,
                    em_status=status,
                    method=Method.GAM,
                    stats={"n_positive_years": n_positive, **stats},
                )
            )
    return results, fits


def _safe_fit(
    model: TrendModel, years: np.ndarray, values: np.ndarray, baseline: np.ndarray | None
) -> TrendFit:
    try:
        return model.fit(years, values, baseline)
    except FIT_ERRORS as exc:
        return TrendFit.failed(f"{type(exc).__name__}: {exc}")
