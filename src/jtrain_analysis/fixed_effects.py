# ---------------------------------------------------------------------------
# jtrain_analysis.fixed_effects - Two-way fixed-effects OLS
# ---------------------------------------------------------------------------
"""Least-squares fit of log scrap on the grant covariates with firm and year
dummies.

Parametrization: no intercept, one dummy per firm, and a dummy for every
year except the first (the reference year).  This is the dummy-variable
form of the two-way within estimator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import polars as pl
import statsmodels.api as sm

logger = logging.getLogger(__name__)


@dataclass
class OLSResult:
    """Slope estimates plus everything needed to audit the fit."""

    covariates: tuple[str, ...]
    coef: dict[str, float]
    std_err: dict[str, float]
    t_values: dict[str, float]
    p_values: dict[str, float]
    firm_effects: dict[Any, float]
    year_effects: dict[int, float]
    resid: np.ndarray
    design: np.ndarray
    columns: list[str]
    nobs: int
    df_resid: float
    rsquared: float
    results: Any  # statsmodels RegressionResultsWrapper

    def to_frame(self) -> pl.DataFrame:
        """Slope table: ``term, estimate, std_error, t_value, p_value``."""
        return pl.DataFrame(
            {
                "term": list(self.covariates),
                "estimate": [self.coef[c] for c in self.covariates],
                "std_error": [self.std_err[c] for c in self.covariates],
                "t_value": [self.t_values[c] for c in self.covariates],
                "p_value": [self.p_values[c] for c in self.covariates],
            }
        )


def build_design_matrix(
    data: dict, covariates: tuple[str, ...] | None = None
) -> tuple[np.ndarray, list[str]]:
    """Stack covariates, firm dummies and non-reference year dummies.

    Returns
    -------
    (X, columns)
        ``X`` has shape ``(n_obs, len(covariates) + n_firms + n_years - 1)``.
    """
    if covariates is None:
        covariates = data["covariates"]
    obs = data["obs"]
    groups = data["groups"]

    X_cov = obs.select(covariates).to_numpy().astype(float)
    firm_dummies = np.eye(groups.n_firms)[data["firm_idx"]]
    year_dummies = np.eye(groups.n_years)[data["year_idx"]][:, 1:]

    columns = (
        list(covariates)
        + [f"firm[{f}]" for f in groups.firms]
        + [f"year[{y}]" for y in groups.years[1:]]
    )
    X = np.column_stack([X_cov, firm_dummies, year_dummies])
    return X, columns


def collinear_columns(X: np.ndarray, columns: list[str]) -> list[str]:
    """Columns that are linear combinations of the columns before them."""
    selected: list[int] = []
    dropped: list[str] = []
    for j, name in enumerate(columns):
        if np.linalg.matrix_rank(X[:, selected + [j]]) > len(selected):
            selected.append(j)
        else:
            dropped.append(name)
    return dropped


def fit_fixed_effects(data: dict, covariates: tuple[str, ...] | None = None) -> OLSResult:
    """Fit the two-way fixed-effects regression by QR least squares.

    Parameters
    ----------
    data : dict
        Output of :func:`jtrain_analysis.data.build_data`.
    covariates : tuple of str, optional
        Slope regressors.  Defaults to ``data['covariates']``.

    Raises
    ------
    ValueError
        If the design matrix is rank deficient (some slope or group dummy is
        not identified) or leaves no residual degrees of freedom.
    """
    if covariates is None:
        covariates = data["covariates"]
    covariates = tuple(covariates)

    X, columns = build_design_matrix(data, covariates)
    y = data["y"]
    n, k = X.shape

    rank = np.linalg.matrix_rank(X)
    if rank < k:
        bad = collinear_columns(X, columns)
        raise ValueError(
            f"Design matrix is rank deficient (rank {rank} < {k} columns, {n} rows); "
            f"not identified: {bad}"
        )
    if n == k:
        raise ValueError(
            f"No residual degrees of freedom ({n} rows, {k} columns); "
            f"standard errors are undefined"
        )

    # Firm dummies span the constant
    results = sm.OLS(y, X, hasconst=True).fit(method="qr")

    params = np.asarray(results.params)
    bse = np.asarray(results.bse)
    tvalues = np.asarray(results.tvalues)
    pvalues = np.asarray(results.pvalues)

    n_cov = len(covariates)
    groups = data["groups"]
    firm_block = params[n_cov : n_cov + groups.n_firms]
    year_block = np.concatenate([[0.0], params[n_cov + groups.n_firms :]])

    result = OLSResult(
        covariates=covariates,
        coef={c: float(params[i]) for i, c in enumerate(covariates)},
        std_err={c: float(bse[i]) for i, c in enumerate(covariates)},
        t_values={c: float(tvalues[i]) for i, c in enumerate(covariates)},
        p_values={c: float(pvalues[i]) for i, c in enumerate(covariates)},
        firm_effects={f: float(v) for f, v in zip(groups.firms, firm_block)},
        year_effects={yr: float(v) for yr, v in zip(groups.years, year_block)},
        resid=np.asarray(results.resid),
        design=X,
        columns=columns,
        nobs=n,
        df_resid=float(results.df_resid),
        rsquared=float(results.rsquared),
        results=results,
    )
    logger.info(
        f"Fixed-effects OLS: {n} obs, {k} columns, df_resid={result.df_resid:.0f}, "
        f"R^2={result.rsquared:.3f}"
    )
    return result


def print_fixed_effects(result: OLSResult) -> None:
    """Print the slope table in the diagnostics style."""
    print("=" * 72)
    print("TWO-WAY FIXED EFFECTS (OLS)")
    print("=" * 72)
    print(f"{'Term':<18} {'Estimate':>10} {'Std.Err':>10} {'t':>8} {'p':>8}")
    print("-" * 72)
    for c in result.covariates:
        print(
            f"{c:<18} {result.coef[c]:>+10.4f} {result.std_err[c]:>10.4f} "
            f"{result.t_values[c]:>8.2f} {result.p_values[c]:>8.3f}"
        )
    print("-" * 72)
    print(f"n = {result.nobs}, df_resid = {result.df_resid:.0f}, R^2 = {result.rsquared:.3f}")
