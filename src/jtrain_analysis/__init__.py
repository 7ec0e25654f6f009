# ---------------------------------------------------------------------------
# jtrain_analysis - Job-training grants and manufacturing scrap rates
# ---------------------------------------------------------------------------
"""Two-way fixed-effects OLS and a hierarchical Bayesian regression of firm
scrap rates on job-training grants, with pooled posterior summaries."""

from .config import (
    BASE_DIR,
    COVARIATES,
    DEFAULT_PRIORS,
    OUTPUT_DIR,
    RANDOM_SEED,
    PriorConfig,
)
from .data import build_data, load_data, prepare_panel, read_panel, read_reference_panel, validate_raw
from .diagnostics import convergence_table, plot_trace, print_diagnostics
from .fixed_effects import OLSResult, fit_fixed_effects
from .groups import GroupIndexMap, annotate, build_group_index
from .model import build_model
from .sampling import (
    DEFAULT_SAMPLER_KWARGS,
    LIGHT_SAMPLER_KWARGS,
    MEDIUM_SAMPLER_KWARGS,
    sample_model,
)
from .sim import PanelDGP, simulate_panel
from .summary import (
    PosteriorSummary,
    compare_estimates,
    pooled_draws,
    prob_negative,
    summarize_coefficients,
    summarize_posterior,
)

__all__ = [
    "BASE_DIR",
    "OUTPUT_DIR",
    "COVARIATES",
    "RANDOM_SEED",
    "PriorConfig",
    "DEFAULT_PRIORS",
    "read_panel",
    "read_reference_panel",
    "validate_raw",
    "prepare_panel",
    "build_data",
    "load_data",
    "GroupIndexMap",
    "build_group_index",
    "annotate",
    "OLSResult",
    "fit_fixed_effects",
    "build_model",
    "sample_model",
    "DEFAULT_SAMPLER_KWARGS",
    "LIGHT_SAMPLER_KWARGS",
    "MEDIUM_SAMPLER_KWARGS",
    "PosteriorSummary",
    "pooled_draws",
    "prob_negative",
    "summarize_coefficients",
    "summarize_posterior",
    "compare_estimates",
    "convergence_table",
    "print_diagnostics",
    "plot_trace",
    "PanelDGP",
    "simulate_panel",
]
