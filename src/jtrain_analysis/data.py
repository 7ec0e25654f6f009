# ---------------------------------------------------------------------------
# jtrain_analysis.data - Panel loading, validation and covariate derivation
# ---------------------------------------------------------------------------
"""Load the firm-year scrap-rate panel; drop incomplete rows, take logs,
lag the grant indicator and attach dense group indices."""

from __future__ import annotations

import logging
from pathlib import Path

import polars as pl
import wooldridge

from .config import (
    COVARIATES,
    RAW_COLUMNS,
    REFERENCE_DATASET,
    REQUIRED_MEASURES,
    WOOLDRIDGE_COLUMN_MAP,
)
from .groups import annotate, build_group_index, group_offsets

logger = logging.getLogger(__name__)

# Cleaned observation columns, in output order
OBSERVATION_COLUMNS: tuple[str, ...] = (
    "firm_id",
    "year",
    "log_scrap",
    "grant",
    "grant_lag1",
    "log_sales",
    "log_employment",
)

# Raw measure -> log column
_LOG_COLUMNS: dict[str, str] = {
    "scrap_rate": "log_scrap",
    "sales": "log_sales",
    "employment": "log_employment",
}

# Rows quoted in error messages
_MAX_ROWS_REPORTED = 10


def _row_keys(df: pl.DataFrame) -> list[tuple]:
    head = df.select("firm_id", "year").head(_MAX_ROWS_REPORTED)
    return [(r["firm_id"], r["year"]) for r in head.to_dicts()]


def validate_raw(df: pl.DataFrame) -> pl.DataFrame:
    """Validate a raw firm-year panel.

    Parameters
    ----------
    df : pl.DataFrame
        Raw panel with at least :data:`RAW_COLUMNS`.

    Returns
    -------
    pl.DataFrame
        The input DataFrame (unchanged) if valid.

    Raises
    ------
    ValueError
        If any validation check fails.
    """
    missing = set(RAW_COLUMNS) - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    for col in ("firm_id", "year", "grant"):
        n_null = df[col].null_count()
        if n_null > 0:
            raise ValueError(f"Column {col!r} has {n_null} missing values")

    # Non-numeric values cast to null and count as violations
    is_binary = pl.col("grant").cast(pl.Float64, strict=False).is_in([0.0, 1.0]).fill_null(False)
    bad_grant = df.filter(~is_binary)
    if len(bad_grant) > 0:
        raise ValueError(
            f"Column 'grant' must be 0/1; {len(bad_grant)} rows violate this. "
            f"Rows (firm_id, year): {_row_keys(bad_grant)}"
        )

    dups = df.group_by(["firm_id", "year"]).len().filter(pl.col("len") > 1)
    if len(dups) > 0:
        raise ValueError(
            f"{len(dups)} duplicate (firm_id, year) combinations found. "
            f"Examples: {_row_keys(dups)}"
        )

    return df


def _rename_wooldridge(raw: pl.DataFrame, source: str) -> pl.DataFrame:
    rename = {k: v for k, v in WOOLDRIDGE_COLUMN_MAP.items() if k in raw.columns and v not in raw.columns}
    if rename:
        raw = raw.rename(rename)

    missing = set(RAW_COLUMNS) - set(raw.columns)
    if missing:
        raise ValueError(f"Missing required columns in {source}: {sorted(missing)}")
    return raw.select(RAW_COLUMNS)


def read_reference_panel() -> pl.DataFrame:
    """Wooldridge's ``JTRAIN`` panel as bundled with the ``wooldridge`` package.

    471 firm-years (157 firms, 1987-1989).  After incomplete rows are
    dropped, 148 records across 51 firms remain.
    """
    raw = pl.from_pandas(wooldridge.data(REFERENCE_DATASET))
    logger.info(f"Read {len(raw)} rows from wooldridge dataset {REFERENCE_DATASET!r}")
    return _rename_wooldridge(raw, REFERENCE_DATASET)


def read_panel(path: Path | str | None = None) -> pl.DataFrame:
    """Read the raw panel from CSV or parquet.

    Files using the Wooldridge ``JTRAIN`` column names (``fcode``, ``scrap``,
    ``employ``) are renamed to :data:`RAW_COLUMNS`.  Extra columns are dropped.
    With no *path*, the reference panel from :func:`read_reference_panel` is
    returned.
    """
    if path is None:
        return read_reference_panel()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Panel file not found: {path}. Export the JTRAIN data "
            f"(fcode, year, scrap, grant, sales, employ) to this location."
        )

    if path.suffix == ".parquet":
        raw = pl.read_parquet(path)
    else:
        raw = pl.read_csv(path, null_values=["", ".", "NA"])

    logger.info(f"Read {len(raw)} rows from {path}")
    return _rename_wooldridge(raw, path.name)


def add_grant_lag(raw: pl.DataFrame) -> pl.DataFrame:
    """Add ``grant_lag1``: the firm's grant in year t-1, 0 if that year is absent.

    Computed on the full raw panel, so a firm-year dropped later for a missing
    measure still supplies its grant to the following year.
    """
    lagged = raw.select(
        pl.col("firm_id"),
        (pl.col("year") + 1).alias("year"),
        pl.col("grant").alias("grant_lag1"),
    )
    return raw.join(lagged, on=["firm_id", "year"], how="left").with_columns(
        pl.col("grant_lag1").fill_null(0)
    )


def prepare_panel(raw: pl.DataFrame) -> pl.DataFrame:
    """Produce the cleaned observation set from a raw panel.

    Rows missing scrap rate, sales or employment are dropped.  The three
    measures must be strictly positive for the log transform.

    Returns
    -------
    pl.DataFrame
        :data:`OBSERVATION_COLUMNS`, sorted by ``(firm_id, year)``.
    """
    validate_raw(raw)

    panel = raw.select(RAW_COLUMNS).with_columns(
        pl.col("year").cast(pl.Int64),
        pl.col("grant").cast(pl.Int64),
        *[pl.col(c).cast(pl.Float64).fill_nan(None) for c in REQUIRED_MEASURES],
    )
    panel = add_grant_lag(panel)

    complete = panel.drop_nulls(subset=list(REQUIRED_MEASURES))
    n_dropped = len(panel) - len(complete)
    if n_dropped > 0:
        dropped = panel.filter(pl.any_horizontal([pl.col(c).is_null() for c in REQUIRED_MEASURES]))
        logger.info(f"Dropped {n_dropped} rows with missing measures: {_row_keys(dropped)}")

    if len(complete) == 0:
        raise ValueError("No complete rows remain after dropping missing measures")

    for col in REQUIRED_MEASURES:
        bad = complete.filter(pl.col(col) <= 0)
        if len(bad) > 0:
            raise ValueError(
                f"Column {col!r} must be strictly positive for the log transform; "
                f"{len(bad)} rows violate this. Rows (firm_id, year): {_row_keys(bad)}"
            )

    obs = complete.with_columns(
        [pl.col(raw_col).log().alias(log_col) for raw_col, log_col in _LOG_COLUMNS.items()]
    )
    return obs.select(OBSERVATION_COLUMNS).sort("firm_id", "year")


def build_data(raw: pl.DataFrame, covariates: tuple[str, ...] = COVARIATES) -> dict:
    """Clean *raw*, index groups and extract the arrays used downstream.

    Returns
    -------
    dict
        Keyed arrays consumed by :func:`jtrain_analysis.model.build_model`,
        :func:`jtrain_analysis.fixed_effects.fit_fixed_effects` and the
        diagnostics.
    """
    obs = prepare_panel(raw)
    groups = build_group_index(obs)
    obs = annotate(obs, groups)
    firm_idx, year_idx = group_offsets(obs)

    unknown = set(covariates) - set(obs.columns)
    if unknown:
        raise ValueError(f"Unknown covariates: {sorted(unknown)}")

    y = obs["log_scrap"].to_numpy().astype(float)
    X = obs.select(covariates).to_numpy().astype(float)

    n_obs = len(obs)
    print(
        f"Scrap-rate panel: {n_obs} firm-years, {groups.n_firms} firms, "
        f"{groups.n_years} years ({groups.years[0]} → {groups.years[-1]})"
    )
    print(f"  dropped rows:     {len(raw) - n_obs}")
    print(f"  grid coverage:    {n_obs / (groups.n_firms * groups.n_years):.1%}")
    print(f"  grant = 1:        {int(obs['grant'].sum())} firm-years")
    print(f"  grant_lag1 = 1:   {int(obs['grant_lag1'].sum())} firm-years")
    print(f"  mean log(scrap):  {y.mean():+.4f}")

    return dict(
        obs=obs,
        groups=groups,
        n_obs=n_obs,
        n_firms=groups.n_firms,
        n_years=groups.n_years,
        firm_idx=firm_idx,
        year_idx=year_idx,
        y=y,
        X=X,
        covariates=tuple(covariates),
    )


def load_data(path: Path | str | None = None, covariates: tuple[str, ...] = COVARIATES) -> dict:
    """Read the panel file and build the analysis arrays.

    Parameters
    ----------
    path : Path or str, optional
        CSV or parquet file.  Defaults to the Wooldridge ``JTRAIN`` panel.
    covariates : tuple of str
        Regressor columns, in order.
    """
    return build_data(read_panel(path), covariates=covariates)
