# ---------------------------------------------------------------------------
# jtrain_analysis.groups - Dense firm / year indices for random effects
# ---------------------------------------------------------------------------
"""Assign each firm and each year a dense 1-based integer label.

Labels are exchangeable, not ordinal.  They are assigned in sorted order of
the distinct values so that the same input always yields the same labels,
whatever the row order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import polars as pl


@dataclass(frozen=True)
class GroupIndexMap:
    """Bijection from firm ids / years to ``1..n_firms`` / ``1..n_years``."""

    firms: tuple[Any, ...]
    years: tuple[int, ...]

    @property
    def n_firms(self) -> int:
        return len(self.firms)

    @property
    def n_years(self) -> int:
        return len(self.years)

    def firm_index(self, firm_id: Any) -> int:
        try:
            return self.firms.index(firm_id) + 1
        except ValueError:
            raise ValueError(f"Unknown firm_id: {firm_id!r}") from None

    def year_index(self, year: int) -> int:
        try:
            return self.years.index(year) + 1
        except ValueError:
            raise ValueError(f"Unknown year: {year!r}") from None

    def firm_of(self, index: int) -> Any:
        """Reverse lookup: firm id carrying 1-based label *index*."""
        if not 1 <= index <= self.n_firms:
            raise ValueError(f"Firm index {index} outside [1, {self.n_firms}]")
        return self.firms[index - 1]

    def year_of(self, index: int) -> int:
        if not 1 <= index <= self.n_years:
            raise ValueError(f"Year index {index} outside [1, {self.n_years}]")
        return self.years[index - 1]


def build_group_index(obs: pl.DataFrame) -> GroupIndexMap:
    """Build the group map from the distinct firm ids and years in *obs*."""
    if len(obs) == 0:
        raise ValueError("Cannot index an empty observation set")
    firms = tuple(obs["firm_id"].unique().sort().to_list())
    years = tuple(int(y) for y in obs["year"].unique().sort().to_list())
    return GroupIndexMap(firms=firms, years=years)


def annotate(obs: pl.DataFrame, gmap: GroupIndexMap) -> pl.DataFrame:
    """Add ``firm_index`` and ``year_index`` columns to *obs*.

    Raises
    ------
    ValueError
        If *obs* holds a firm or year that *gmap* does not know.
    """
    unknown_firms = set(obs["firm_id"].unique().to_list()) - set(gmap.firms)
    if unknown_firms:
        raise ValueError(f"firm_id values missing from group map: {sorted(unknown_firms)}")
    unknown_years = set(obs["year"].unique().to_list()) - set(gmap.years)
    if unknown_years:
        raise ValueError(f"year values missing from group map: {sorted(unknown_years)}")

    return obs.with_columns(
        pl.col("firm_id")
        .replace_strict(list(gmap.firms), list(range(1, gmap.n_firms + 1)), return_dtype=pl.Int64)
        .alias("firm_index"),
        pl.col("year")
        .replace_strict(list(gmap.years), list(range(1, gmap.n_years + 1)), return_dtype=pl.Int64)
        .alias("year_index"),
    )


def group_offsets(obs: pl.DataFrame) -> tuple[np.ndarray, np.ndarray]:
    """0-based firm and year offsets for indexing random-effect vectors."""
    firm_idx = obs["firm_index"].to_numpy().astype(int) - 1
    year_idx = obs["year_index"].to_numpy().astype(int) - 1
    return firm_idx, year_idx
