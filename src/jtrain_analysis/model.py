# ---------------------------------------------------------------------------
# jtrain_analysis.model - PyMC model specification
# ---------------------------------------------------------------------------
"""Hierarchical regression of log scrap rates with firm and year random
intercepts and fixed slopes on the grant covariates."""

from __future__ import annotations

import numpy as np
import pymc as pm
import pytensor.tensor as pt

from .config import COEF_NAMES, DEFAULT_PRIORS, PriorConfig


def coef_name(covariate: str) -> str:
    """Model parameter name for the slope on *covariate*."""
    return COEF_NAMES.get(covariate, f"beta_{covariate}")


def build_model(
    data: dict,
    priors: PriorConfig | None = None,
    covariates: tuple[str, ...] | None = None,
) -> pm.Model:
    """Build the hierarchical PyMC model.

    Parameters
    ----------
    data : dict
        Output of :func:`jtrain_analysis.data.build_data`.
    priors : PriorConfig, optional
        Prior hyperparameters.  Defaults to ``N(0, 100)`` location priors and
        ``InverseGamma(0.5, 0.5)`` variance priors.
    covariates : tuple of str, optional
        Slope regressors.  Defaults to ``data['covariates']``.

    Model
    -----
    ::

        log_scrap_i   ~ N(mu_i, residual_var)
        mu_i          = firm_effect[f(i)] + year_effect[t(i)] + Σ_k b_k x_ik
        firm_effect_j ~ N(mean_firm_effect, var_firm_effect)
        year_effect_t ~ N(mean_year_effect, var_year_effect)

    The second argument of every Normal is a variance.  The variance
    parameters are sampled on the log scale by PyMC's default transform.
    """
    if priors is None:
        priors = DEFAULT_PRIORS
    if covariates is None:
        covariates = data["covariates"]

    obs = data["obs"]
    groups = data["groups"]
    firm_idx = data["firm_idx"]
    year_idx = data["year_idx"]
    X = obs.select(covariates).to_numpy().astype(float)
    y = data["y"]

    coef_sigma = float(np.sqrt(priors.coef_var))

    coords = {
        "firm": [str(f) for f in groups.firms],
        "year": list(groups.years),
        "obs_id": np.arange(data["n_obs"]),
    }

    with pm.Model(coords=coords) as model:

        # =============================================================
        # Firm random intercepts
        # =============================================================

        mean_firm_effect = pm.Normal("mean_firm_effect", mu=priors.coef_mean, sigma=coef_sigma)
        var_firm_effect = pm.InverseGamma("var_firm_effect", alpha=priors.ig_shape, beta=priors.ig_rate)
        firm_effect = pm.Normal(
            "firm_effect",
            mu=mean_firm_effect,
            sigma=pt.sqrt(var_firm_effect),
            dims="firm",
        )

        # =============================================================
        # Year random intercepts
        # =============================================================

        mean_year_effect = pm.Normal("mean_year_effect", mu=priors.coef_mean, sigma=coef_sigma)
        var_year_effect = pm.InverseGamma("var_year_effect", alpha=priors.ig_shape, beta=priors.ig_rate)
        year_effect = pm.Normal(
            "year_effect",
            mu=mean_year_effect,
            sigma=pt.sqrt(var_year_effect),
            dims="year",
        )

        # =============================================================
        # Fixed slopes
        # =============================================================

        mu = firm_effect[firm_idx] + year_effect[year_idx]
        for k, cov in enumerate(covariates):
            b_k = pm.Normal(coef_name(cov), mu=priors.coef_mean, sigma=coef_sigma)
            mu = mu + b_k * X[:, k]

        # =============================================================
        # Likelihood
        # =============================================================

        residual_var = pm.InverseGamma("residual_var", alpha=priors.ig_shape, beta=priors.ig_rate)
        pm.Normal(
            "log_scrap",
            mu=mu,
            sigma=pt.sqrt(residual_var),
            observed=y,
            dims="obs_id",
        )

    return model
