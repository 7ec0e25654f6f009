# ---------------------------------------------------------------------------
# jtrain_analysis.sampling - MCMC sampling
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging

import arviz as az
import pymc as pm

from .config import RANDOM_SEED

logger = logging.getLogger(__name__)

# Between/within-chain diagnostics need at least this many chains
MIN_CHAINS = 3

# Default sampling configuration (full production run).  ``tune`` iterations
# are the burn-in and are discarded; ``draws`` are retained per chain.
DEFAULT_SAMPLER_KWARGS: dict = dict(
    draws=20000,
    tune=1000,
    chains=3,
    target_accept=0.9,
    return_inferencedata=True,
)

# Medium configuration for exploratory reruns
MEDIUM_SAMPLER_KWARGS: dict = dict(
    draws=5000,
    tune=1000,
    chains=3,
    target_accept=0.9,
    return_inferencedata=True,
)

# Lighter configuration for tests and synthetic panels
LIGHT_SAMPLER_KWARGS: dict = dict(
    draws=1000,
    tune=1000,
    chains=3,
    target_accept=0.9,
    return_inferencedata=True,
)

SAMPLER_PRESETS: dict[str, dict] = {
    "default": DEFAULT_SAMPLER_KWARGS,
    "medium": MEDIUM_SAMPLER_KWARGS,
    "light": LIGHT_SAMPLER_KWARGS,
}


def sample_model(
    model: pm.Model,
    sampler_kwargs: dict | None = None,
    random_seed: int = RANDOM_SEED,
    nuts_sampler: str = "nutpie",
) -> az.InferenceData:
    """Sample the model using nutpie (preferred) or PyMC NUTS.

    Parameters
    ----------
    model : pm.Model
        Compiled PyMC model.
    sampler_kwargs : dict, optional
        Override the default sampling configuration.  Use
        ``LIGHT_SAMPLER_KWARGS`` for tests or ``MEDIUM_SAMPLER_KWARGS`` for
        quick reruns.
    random_seed : int
        Seed passed to the sampler.  Same model, data and seed give the same
        draws.
    nuts_sampler : ``'nutpie'`` | ``'pymc'``
        Preferred NUTS backend.  nutpie falls back to PyMC only when it is
        not installed; any other sampler error propagates.

    Raises
    ------
    ValueError
        If fewer than ``MIN_CHAINS`` chains are requested.
    """
    if sampler_kwargs is None:
        sampler_kwargs = DEFAULT_SAMPLER_KWARGS
    sampler_kwargs = dict(sampler_kwargs)

    # pm.sample defaults to max(2, cores) chains
    chains = sampler_kwargs.setdefault("chains", MIN_CHAINS)
    if chains < MIN_CHAINS:
        raise ValueError(f"At least {MIN_CHAINS} chains are required, got {chains}")

    with model:
        if nuts_sampler == "nutpie":
            try:
                idata = pm.sample(nuts_sampler="nutpie", random_seed=random_seed, **sampler_kwargs)
                sampler_used = "nutpie"
            except ImportError as e:
                logger.warning(f"nutpie unavailable ({e}), falling back to PyMC NUTS")
                idata = pm.sample(random_seed=random_seed, **sampler_kwargs)
                sampler_used = "pymc"
        else:
            idata = pm.sample(nuts_sampler=nuts_sampler, random_seed=random_seed, **sampler_kwargs)
            sampler_used = nuts_sampler

    n_draws = idata.posterior.sizes["chain"] * idata.posterior.sizes["draw"]
    logger.info(f"Sampling complete ({sampler_used}): {n_draws} pooled draws, seed={random_seed}")
    return idata
