# ---------------------------------------------------------------------------
# jtrain_analysis.diagnostics - Convergence diagnostics and trace plots
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .config import ESS_THRESHOLD, OUTPUT_DIR, RHAT_THRESHOLD, WEAKLY_IDENTIFIED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvergenceIssue:
    parameter: str
    r_hat: float
    ess_bulk: float
    expected: bool  # weakly identified by construction


def _scalar_vars(idata: az.InferenceData) -> list[str]:
    return [str(v) for v, da in idata.posterior.data_vars.items() if da.ndim == 2]


# =========================================================================
# Convergence table
# =========================================================================


def convergence_table(idata: az.InferenceData, var_names: list[str] | None = None) -> pd.DataFrame:
    """R-hat, bulk/tail ESS and lag-1 autocorrelation per scalar parameter.

    Lag-1 autocorrelation is averaged over chains.
    """
    if var_names is None:
        var_names = _scalar_vars(idata)

    summary = az.summary(idata, var_names=var_names, kind="diagnostics")
    acf1 = {}
    for name in var_names:
        vals = idata.posterior[name].values  # (chain, draw)
        acf1[name] = float(np.mean(az.autocorr(vals, axis=-1)[:, 1]))
    summary["acf_lag1"] = pd.Series(acf1)
    return summary


def convergence_issues(summary: pd.DataFrame) -> list[ConvergenceIssue]:
    """Parameters with R-hat above or bulk ESS below threshold.

    Issues on :data:`WEAKLY_IDENTIFIED` parameters are marked ``expected``:
    shifting every firm effect by a constant and its population mean by the
    opposite constant leaves the likelihood unchanged, so those means mix
    slowly under this model.
    """
    issues: list[ConvergenceIssue] = []
    for pname, row in summary.iterrows():
        if row["r_hat"] > RHAT_THRESHOLD or row["ess_bulk"] < ESS_THRESHOLD:
            issues.append(
                ConvergenceIssue(
                    parameter=str(pname),
                    r_hat=float(row["r_hat"]),
                    ess_bulk=float(row["ess_bulk"]),
                    expected=str(pname) in WEAKLY_IDENTIFIED,
                )
            )
    return issues


def print_diagnostics(idata: az.InferenceData) -> pd.DataFrame:
    """Print sampling diagnostics; convergence problems are reported, never raised."""
    print("=" * 72)
    print("SAMPLING DIAGNOSTICS")
    print("=" * 72)

    n_chains = idata.posterior.sizes["chain"]
    n_draws = idata.posterior.sizes["draw"]
    print(f"Chains: {n_chains} x {n_draws} retained draws")
    if "diverging" in idata.sample_stats:
        divs = int(idata.sample_stats.diverging.sum().values)
        print(f"Divergences: {divs}")

    summary = convergence_table(idata)
    print("\n" + summary.to_string(float_format=lambda v: f"{v:.3f}"))

    issues = convergence_issues(summary)
    unexpected = [i for i in issues if not i.expected]
    expected = [i for i in issues if i.expected]

    if unexpected:
        print(f"\n** WARNING: Parameters with R-hat > {RHAT_THRESHOLD} or ESS_bulk < {ESS_THRESHOLD}:")
        for i in unexpected:
            print(f"    {i.parameter}: R-hat = {i.r_hat:.4f}, ESS = {i.ess_bulk:.0f}")
            logger.warning(f"Poor mixing for {i.parameter} (R-hat={i.r_hat:.4f}, ESS={i.ess_bulk:.0f})")
    if expected:
        print("\nWeakly identified hyperparameters (slow mixing is a property of the model):")
        for i in expected:
            print(f"    {i.parameter}: R-hat = {i.r_hat:.4f}, ESS = {i.ess_bulk:.0f}")
    if not issues:
        print(f"\nAll parameters converged (R-hat <= {RHAT_THRESHOLD}, ESS_bulk >= {ESS_THRESHOLD})")

    return summary


# =========================================================================
# Trace plot
# =========================================================================


def plot_trace(
    idata: az.InferenceData,
    path: Path | None = None,
    var_names: list[str] | None = None,
) -> Path:
    """Save an ArviZ trace plot of the scalar parameters."""
    if var_names is None:
        var_names = _scalar_vars(idata)
    if path is None:
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        path = OUTPUT_DIR / "trace.png"

    axes = az.plot_trace(idata, var_names=var_names, compact=True)
    fig = np.asarray(axes).ravel()[0].figure
    fig.suptitle("Trace plots (pooled chains)", fontsize=13, fontweight="bold")
    plt.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {path}")
    return path
