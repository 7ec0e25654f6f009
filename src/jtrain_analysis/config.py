# ---------------------------------------------------------------------------
# jtrain_analysis.config - Paths, column names, priors and project constants
# ---------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
OUTPUT_DIR = BASE_DIR / "output"

# Wooldridge dataset used when no panel file is given
REFERENCE_DATASET = "jtrain"

# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

# Raw firm-year panel, one row per (firm_id, year)
RAW_COLUMNS: tuple[str, ...] = (
    "firm_id",
    "year",
    "scrap_rate",
    "grant",
    "sales",
    "employment",
)

# Columns dropped row-wise when missing (no imputation)
REQUIRED_MEASURES: tuple[str, ...] = ("scrap_rate", "sales", "employment")

# Wooldridge JTRAIN names -> raw names
WOOLDRIDGE_COLUMN_MAP: dict[str, str] = {
    "fcode": "firm_id",
    "scrap": "scrap_rate",
    "employ": "employment",
}

# Regressors, in design-matrix order
COVARIATES: tuple[str, ...] = ("grant", "grant_lag1", "log_sales", "log_employment")

# Regressor -> slope parameter name in the hierarchical model
COEF_NAMES: dict[str, str] = {
    "grant": "beta_grant",
    "grant_lag1": "beta_grant_lag1",
    "log_sales": "gamma_sales",
    "log_employment": "delta_employment",
}

# ---------------------------------------------------------------------------
# Sampling constants
# ---------------------------------------------------------------------------

RANDOM_SEED = 20240611

RHAT_THRESHOLD = 1.01
ESS_THRESHOLD = 400

# Population means of the random effects trade off against the effects
# themselves; they mix slowly and that is expected for this model.
WEAKLY_IDENTIFIED: tuple[str, ...] = ("mean_firm_effect", "mean_year_effect")


# ---------------------------------------------------------------------------
# Prior specification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriorConfig:
    """Prior hyperparameters for the hierarchical model.

    Normal priors are written as (mean, variance), matching the model
    equations; :func:`jtrain_analysis.model.build_model` converts the
    variance to a standard deviation for PyMC.

    Parameters
    ----------
    coef_mean : float
        Prior mean of the slopes and of both random-effect means.
    coef_var : float
        Prior variance of the slopes and of both random-effect means.
    ig_shape : float
        Inverse-Gamma shape for the three variance parameters.
    ig_rate : float
        Inverse-Gamma rate (scale) for the three variance parameters.
        ``shape = rate = 0.5`` is a prior sample size of one with a prior
        variance guess of one.
    """

    coef_mean: float = 0.0
    coef_var: float = 100.0
    ig_shape: float = 0.5
    ig_rate: float = 0.5

    def __post_init__(self) -> None:
        if self.coef_var <= 0:
            raise ValueError(f"coef_var must be positive, got {self.coef_var}")
        if self.ig_shape <= 0 or self.ig_rate <= 0:
            raise ValueError(
                f"Inverse-Gamma shape and rate must be positive, "
                f"got shape={self.ig_shape}, rate={self.ig_rate}"
            )


DEFAULT_PRIORS = PriorConfig()
