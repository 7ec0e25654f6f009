#!/usr/bin/env python
# ---------------------------------------------------------------------------
# jtrain_estimation.py - Thin runner for the jtrain_analysis package
# ---------------------------------------------------------------------------
"""Fixed-effects vs hierarchical Bayes estimates of the effect of job-training
grants on manufacturing scrap rates.

Usage:
    python jtrain_estimation.py [--data PANEL.csv] [--seed N]
                                [--preset default|medium|light] [--synthetic]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from jtrain_analysis.checks import run_posterior_predictive_check
from jtrain_analysis.config import OUTPUT_DIR, RANDOM_SEED
from jtrain_analysis.data import build_data, load_data
from jtrain_analysis.diagnostics import plot_trace, print_diagnostics
from jtrain_analysis.fixed_effects import fit_fixed_effects, print_fixed_effects
from jtrain_analysis.model import build_model
from jtrain_analysis.sampling import SAMPLER_PRESETS, sample_model
from jtrain_analysis.sim import PanelDGP, simulate_panel
from jtrain_analysis.summary import compare_estimates, print_comparison, summarize_posterior


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--data", type=Path, default=None, help="CSV or parquet panel file (default: Wooldridge JTRAIN)"
    )
    parser.add_argument("--seed", type=int, default=RANDOM_SEED, help="sampler seed")
    parser.add_argument("--preset", choices=sorted(SAMPLER_PRESETS), default="default")
    parser.add_argument(
        "--synthetic", action="store_true", help="use a simulated panel instead of --data"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    # 1. Data ------------------------------------------------------------------
    if args.synthetic:
        data = build_data(simulate_panel(PanelDGP(n_firms=51, missing_share=0.03), seed=args.seed))
    else:
        data = load_data(args.data)

    # 2. Fixed-effects OLS -----------------------------------------------------
    ols = fit_fixed_effects(data)
    print()
    print_fixed_effects(ols)

    # 3. Build model -----------------------------------------------------------
    model = build_model(data)

    # 4. Sample ----------------------------------------------------------------
    idata = sample_model(model, SAMPLER_PRESETS[args.preset], random_seed=args.seed)

    # 5. Diagnostics -----------------------------------------------------------
    print()
    print_diagnostics(idata)
    plot_trace(idata)

    # 6. Posterior predictive check --------------------------------------------
    run_posterior_predictive_check(model, idata, data, random_seed=args.seed)

    # 7. Summaries -------------------------------------------------------------
    comparison = compare_estimates(ols, idata)
    print_comparison(comparison)
    comparison.write_csv(OUTPUT_DIR / "fe_vs_bayes.csv")
    summarize_posterior(idata).write_csv(OUTPUT_DIR / "posterior_summary.csv")
    print(f"\nSaved: {OUTPUT_DIR / 'fe_vs_bayes.csv'}")
    print(f"Saved: {OUTPUT_DIR / 'posterior_summary.csv'}")

    # 8. Save InferenceData ----------------------------------------------------
    idata.to_netcdf(str(OUTPUT_DIR / "jtrain_idata.nc"))
    print(f"InferenceData saved to {OUTPUT_DIR / 'jtrain_idata.nc'}")

    print("\n" + "=" * 72)
    print("jtrain pipeline complete.")
    print("=" * 72)


if __name__ == "__main__":
    main()
