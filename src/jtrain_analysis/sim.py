# ---------------------------------------------------------------------------
# jtrain_analysis.sim - Synthetic firm-year panels with planted effects
# ---------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import polars as pl


@dataclass(frozen=True)
class PanelDGP:
    """Data-generating process for a synthetic scrap-rate panel.

    Log scrap is generated from the same equation the models fit, with firm
    and year intercepts drawn around ``firm_mean`` / ``year_mean``.  Each
    firm receives at most one grant, in a year after the first, mirroring
    how the training grants were awarded.
    """

    n_firms: int = 20
    n_years: int = 3
    first_year: int = 1987
    beta_grant: float = -0.5
    beta_grant_lag1: float = -0.2
    gamma_sales: float = 0.3
    delta_employment: float = -0.4
    firm_mean: float = 0.5
    firm_sd: float = 1.0
    year_mean: float = 0.0
    year_sd: float = 0.2
    noise_sd: float = 0.05
    grant_prob: float = 0.5
    missing_share: float = 0.0

    def __post_init__(self) -> None:
        if self.n_firms < 1 or self.n_years < 2:
            raise ValueError("Need at least one firm and two years")
        if not 0.0 <= self.grant_prob <= 1.0:
            raise ValueError(f"grant_prob must lie in [0, 1], got {self.grant_prob}")
        if not 0.0 <= self.missing_share < 1.0:
            raise ValueError(f"missing_share must lie in [0, 1), got {self.missing_share}")


def simulate_panel(dgp: PanelDGP | None = None, seed: int = 0) -> pl.DataFrame:
    """Draw a raw panel (levels, not logs) in the loader's input format.

    Rows selected by ``missing_share`` have a null scrap rate.
    """
    if dgp is None:
        dgp = PanelDGP()
    rng = np.random.default_rng(seed)

    F, T = dgp.n_firms, dgp.n_years
    firm_ids = np.arange(1001, 1001 + F)
    years = np.arange(dgp.first_year, dgp.first_year + T)

    firm_eff = rng.normal(dgp.firm_mean, dgp.firm_sd, size=F)
    year_eff = rng.normal(dgp.year_mean, dgp.year_sd, size=T)

    # One grant per treated firm, never in the first year
    grant = np.zeros((F, T), dtype=int)
    treated = rng.random(F) < dgp.grant_prob
    grant_year = rng.integers(1, T, size=F)
    grant[treated, grant_year[treated]] = 1
    grant_lag = np.zeros_like(grant)
    grant_lag[:, 1:] = grant[:, :-1]

    log_sales = rng.normal(1.0, 0.5, size=(F, 1)) + rng.normal(0.0, 0.2, size=(F, T))
    log_emp = rng.normal(1.0, 0.5, size=(F, 1)) + rng.normal(0.0, 0.2, size=(F, T))

    log_scrap = (
        firm_eff[:, None]
        + year_eff[None, :]
        + dgp.beta_grant * grant
        + dgp.beta_grant_lag1 * grant_lag
        + dgp.gamma_sales * log_sales
        + dgp.delta_employment * log_emp
        + rng.normal(0.0, dgp.noise_sd, size=(F, T))
    )

    scrap = np.exp(log_scrap).ravel()
    if dgp.missing_share > 0:
        n_missing = int(round(dgp.missing_share * F * T))
        scrap[rng.choice(F * T, size=n_missing, replace=False)] = np.nan

    return pl.DataFrame(
        {
            "firm_id": np.repeat(firm_ids, T),
            "year": np.tile(years, F),
            "scrap_rate": scrap,
            "grant": grant.ravel(),
            "sales": np.exp(log_sales).ravel(),
            "employment": np.exp(log_emp).ravel(),
        }
    ).with_columns(pl.col("scrap_rate").fill_nan(None))
