# ---------------------------------------------------------------------------
# jtrain_analysis.checks - Posterior predictive check
# ---------------------------------------------------------------------------
from __future__ import annotations

import arviz as az
import numpy as np
import pymc as pm

from .config import RANDOM_SEED


def run_posterior_predictive_check(
    model: pm.Model,
    idata: az.InferenceData,
    data: dict,
    interval: float = 0.90,
    random_seed: int = RANDOM_SEED,
) -> dict:
    """Compare replicated log scrap rates with the observed ones.

    Returns
    -------
    dict
        ``coverage``: share of observations inside the central *interval*
        posterior predictive band.  ``sd_pvalue``: ``P(sd(y_rep) >= sd(y))``.
    """
    if not 0 < interval < 1:
        raise ValueError(f"interval must lie in (0, 1), got {interval}")

    print("Sampling posterior predictive…")
    with model:
        ppc = pm.sample_posterior_predictive(idata, random_seed=random_seed, progressbar=False)

    rep = ppc.posterior_predictive["log_scrap"].values
    rep = rep.reshape(-1, rep.shape[-1])  # (pooled draws, n_obs)
    y = data["y"]

    tail = (1.0 - interval) / 2.0 * 100
    lo, hi = np.percentile(rep, [tail, 100 - tail], axis=0)
    coverage = float(np.mean((y >= lo) & (y <= hi)))

    obs_sd = float(y.std(ddof=1))
    rep_sd = rep.std(axis=1, ddof=1)
    sd_pvalue = float(np.mean(rep_sd >= obs_sd))

    print(
        f"  {interval:.0%} predictive coverage: {coverage:.3f}  "
        f"| sd(y) = {obs_sd:.3f}, P(sd(y_rep) >= sd(y)) = {sd_pvalue:.3f}"
    )
    return dict(coverage=coverage, interval=interval, obs_sd=obs_sd, sd_pvalue=sd_pvalue)
