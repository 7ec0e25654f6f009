# ---------------------------------------------------------------------------
# jtrain_analysis.summary - Posterior summaries and OLS comparison
# ---------------------------------------------------------------------------
"""Summaries of pooled posterior draws.

All statistics use the draws of every chain concatenated together.  Pooling
presumes the chains have converged; see :mod:`jtrain_analysis.diagnostics`.
Tail probabilities are fractions in [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass

import arviz as az
import numpy as np
import polars as pl

from .config import COVARIATES
from .fixed_effects import OLSResult
from .model import coef_name

HDI_PROB = 0.90


@dataclass(frozen=True)
class PosteriorSummary:
    """Pooled-draw summary of one scalar parameter."""

    name: str
    mean: float
    sd: float
    hdi_lower: float
    hdi_upper: float
    prob_negative: float
    n_draws: int


def pooled_draws(idata: az.InferenceData, name: str) -> np.ndarray:
    """Draws of *name* with chain and draw dimensions concatenated.

    Scalar parameters give a 1-D array; vector parameters keep their
    trailing dimension(s).
    """
    vals = idata.posterior[name].values
    return vals.reshape((-1,) + vals.shape[2:])


def prob_negative(draws: np.ndarray) -> float:
    """Empirical ``P(theta < 0)``: ``count(draws < 0) / count(draws)``."""
    draws = np.asarray(draws)
    if draws.size == 0:
        raise ValueError("No draws to summarise")
    return int(np.count_nonzero(draws < 0)) / draws.size


def _summarise(name: str, draws: np.ndarray, hdi_prob: float) -> PosteriorSummary:
    lo, hi = az.hdi(draws, hdi_prob=hdi_prob)
    return PosteriorSummary(
        name=name,
        mean=float(draws.mean()),
        sd=float(draws.std(ddof=1)),
        hdi_lower=float(lo),
        hdi_upper=float(hi),
        prob_negative=prob_negative(draws),
        n_draws=int(draws.size),
    )


def summarize_parameter(
    idata: az.InferenceData, name: str, hdi_prob: float = HDI_PROB
) -> PosteriorSummary:
    """Summarise a scalar posterior variable."""
    draws = pooled_draws(idata, name)
    if draws.ndim != 1:
        raise ValueError(f"{name!r} is not scalar (shape {draws.shape[1:]}); use summarize_posterior")
    return _summarise(name, draws, hdi_prob)


def summarize_coefficients(
    idata: az.InferenceData,
    covariates: tuple[str, ...] = COVARIATES,
    hdi_prob: float = HDI_PROB,
) -> dict[str, PosteriorSummary]:
    """Summaries of the slope parameters, keyed by covariate."""
    return {cov: summarize_parameter(idata, coef_name(cov), hdi_prob) for cov in covariates}


def summarize_posterior(
    idata: az.InferenceData,
    var_names: list[str] | None = None,
    hdi_prob: float = HDI_PROB,
) -> pl.DataFrame:
    """One row per scalar parameter or vector element.

    Parameters
    ----------
    idata : az.InferenceData
        Sampled posterior.
    var_names : list of str, optional
        Variables to include.  Defaults to every scalar variable.

    Returns
    -------
    pl.DataFrame
        ``parameter, mean, sd, hdi_lower, hdi_upper, prob_negative``.
        Vector elements are labelled by coordinate, e.g. ``year_effect[1988]``.
    """
    post = idata.posterior
    if var_names is None:
        var_names = [str(v) for v, da in post.data_vars.items() if da.ndim == 2]

    rows: list[dict] = []
    for name in var_names:
        da = post[name]
        draws = pooled_draws(idata, name)
        if draws.ndim == 1:
            s = _summarise(name, draws, hdi_prob)
            rows.append(_row(s))
            continue
        extra_dims = da.dims[2:]
        for idx in np.ndindex(*draws.shape[1:]):
            labels = ",".join(str(da.coords[d].values[i]) for d, i in zip(extra_dims, idx))
            s = _summarise(f"{name}[{labels}]", draws[(slice(None),) + idx], hdi_prob)
            rows.append(_row(s))

    return pl.DataFrame(
        rows,
        schema={
            "parameter": pl.Utf8,
            "mean": pl.Float64,
            "sd": pl.Float64,
            "hdi_lower": pl.Float64,
            "hdi_upper": pl.Float64,
            "prob_negative": pl.Float64,
        },
    )


def _row(s: PosteriorSummary) -> dict:
    return {
        "parameter": s.name,
        "mean": s.mean,
        "sd": s.sd,
        "hdi_lower": s.hdi_lower,
        "hdi_upper": s.hdi_upper,
        "prob_negative": s.prob_negative,
    }


def compare_estimates(ols: OLSResult, idata: az.InferenceData) -> pl.DataFrame:
    """Side-by-side slope table: OLS estimate/SE vs posterior mean/SD/P(<0).

    This is the structured result handed to report rendering.
    """
    post = summarize_coefficients(idata, ols.covariates)
    return pl.DataFrame(
        {
            "term": list(ols.covariates),
            "parameter": [coef_name(c) for c in ols.covariates],
            "ols_estimate": [ols.coef[c] for c in ols.covariates],
            "ols_std_error": [ols.std_err[c] for c in ols.covariates],
            "posterior_mean": [post[c].mean for c in ols.covariates],
            "posterior_sd": [post[c].sd for c in ols.covariates],
            "prob_negative": [post[c].prob_negative for c in ols.covariates],
        }
    )


def print_comparison(table: pl.DataFrame) -> None:
    """Print the output of :func:`compare_estimates`."""
    print("\n" + "=" * 72)
    print("FIXED EFFECTS vs HIERARCHICAL BAYES")
    print("=" * 72)
    print(
        f"{'Term':<16} {'OLS':>9} {'(SE)':>8}   {'Post.mean':>9} {'(SD)':>8} {'P(<0)':>7}"
    )
    print("-" * 72)
    for r in table.iter_rows(named=True):
        print(
            f"{r['term']:<16} {r['ols_estimate']:>+9.4f} {r['ols_std_error']:>8.4f}   "
            f"{r['posterior_mean']:>+9.4f} {r['posterior_sd']:>8.4f} {r['prob_negative']:>7.3f}"
        )
