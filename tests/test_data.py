"""Tests for jtrain_analysis.data: validation, cleaning and covariates."""

import math

import numpy as np
import polars as pl
import pytest

from jtrain_analysis.data import (
    OBSERVATION_COLUMNS,
    add_grant_lag,
    build_data,
    load_data,
    prepare_panel,
    read_panel,
    validate_raw,
)
from jtrain_analysis.sim import PanelDGP, simulate_panel


def _make_raw_rows(overrides: dict | None = None) -> list[dict]:
    """Two firms x three years, firm 2 treated in 1988."""
    rows = []
    for firm in (1, 2):
        for year in (1987, 1988, 1989):
            rows.append(
                {
                    'firm_id': firm,
                    'year': year,
                    'scrap_rate': 2.0 + 0.1 * firm,
                    'grant': 1 if (firm == 2 and year == 1988) else 0,
                    'sales': 1.0e6 * firm,
                    'employment': 50.0 + year - 1987,
                }
            )
    for (firm, year), fields in (overrides or {}).items():
        for row in rows:
            if row['firm_id'] == firm and row['year'] == year:
                row.update(fields)
    return rows


def _make_raw_df(overrides: dict | None = None) -> pl.DataFrame:
    return pl.DataFrame(_make_raw_rows(overrides))


class TestValidateRaw:
    """Tests for validate_raw."""

    def test_good_panel(self):
        """A well-formed panel passes unchanged."""
        df = _make_raw_df()
        assert validate_raw(df).equals(df)

    def test_missing_column(self):
        """Missing required column raises ValueError."""
        df = _make_raw_df().drop('sales')
        with pytest.raises(ValueError, match='Missing required columns'):
            validate_raw(df)

    def test_duplicate_firm_year(self):
        """Duplicate (firm_id, year) raises ValueError."""
        rows = _make_raw_rows()
        rows.append(rows[0].copy())
        with pytest.raises(ValueError, match='duplicate'):
            validate_raw(pl.DataFrame(rows))

    def test_non_binary_grant(self):
        """Grant values other than 0/1 are rejected with the offending row."""
        df = _make_raw_df({(1, 1988): {'grant': 2}})
        with pytest.raises(ValueError, match=r'\(1, 1988\)'):
            validate_raw(df)

    def test_non_numeric_grant(self):
        """Grant values that are not numbers are reported with their rows."""
        df = _make_raw_df().with_columns(
            pl.when((pl.col('firm_id') == 1) & (pl.col('year') == 1988))
            .then(pl.lit('yes'))
            .otherwise(pl.col('grant').cast(pl.Utf8))
            .alias('grant')
        )
        with pytest.raises(ValueError, match=r"'grant' must be 0/1.*\(1, 1988\)"):
            validate_raw(df)

    def test_missing_firm_id(self):
        """Null identifiers are data errors, not dropped rows."""
        df = _make_raw_df().with_columns(
            pl.when(pl.col('year') == 1989).then(None).otherwise(pl.col('firm_id')).alias('firm_id')
        )
        with pytest.raises(ValueError, match="'firm_id' has 2 missing"):
            validate_raw(df)


class TestGrantLag:
    """Tests for add_grant_lag."""

    def test_lag_follows_prior_year(self):
        """grant_lag1 in year t equals the firm's grant in t-1."""
        out = add_grant_lag(_make_raw_df()).sort('firm_id', 'year')
        firm2 = out.filter(pl.col('firm_id') == 2)
        assert firm2['grant'].to_list() == [0, 1, 0]
        assert firm2['grant_lag1'].to_list() == [0, 0, 1]

    def test_first_year_is_zero(self):
        """A firm's first observed year has grant_lag1 = 0."""
        out = add_grant_lag(_make_raw_df())
        assert out.filter(pl.col('year') == 1987)['grant_lag1'].to_list() == [0, 0]

    def test_gap_year_is_zero(self):
        """A missing t-1 row means no lag, not the t-2 grant."""
        df = _make_raw_df({(2, 1989): {'grant': 1}}).filter(
            ~((pl.col('firm_id') == 2) & (pl.col('year') == 1988))
        )
        out = add_grant_lag(df).filter(pl.col('firm_id') == 2).sort('year')
        assert out['grant_lag1'].to_list() == [0, 0]


class TestPreparePanel:
    """Tests for prepare_panel."""

    def test_columns_and_logs(self):
        """Output has the observation columns and natural logs of the measures."""
        obs = prepare_panel(_make_raw_df())
        assert obs.columns == list(OBSERVATION_COLUMNS)
        row = obs.filter((pl.col('firm_id') == 2) & (pl.col('year') == 1989)).row(0, named=True)
        assert row['log_scrap'] == pytest.approx(math.log(2.2))
        assert row['log_sales'] == pytest.approx(math.log(2.0e6))
        assert row['log_employment'] == pytest.approx(math.log(52.0))

    def test_drops_missing_measures(self):
        """Rows with missing scrap, sales or employment are dropped."""
        df = _make_raw_df(
            {
                (1, 1987): {'scrap_rate': None},
                (2, 1989): {'employment': float('nan')},
            }
        )
        obs = prepare_panel(df)
        assert len(obs) == 4
        keys = set(zip(obs['firm_id'].to_list(), obs['year'].to_list()))
        assert (1, 1987) not in keys
        assert (2, 1989) not in keys

    def test_lag_survives_dropped_prior_year(self):
        """A dropped firm-year still passes its grant to the next year."""
        df = _make_raw_df({(2, 1988): {'scrap_rate': None}})
        obs = prepare_panel(df)
        row = obs.filter((pl.col('firm_id') == 2) & (pl.col('year') == 1989)).row(0, named=True)
        assert row['grant_lag1'] == 1

    def test_non_positive_measure(self):
        """Zero or negative measures fail the log transform with row keys."""
        df = _make_raw_df({(1, 1988): {'sales': 0.0}})
        with pytest.raises(ValueError, match=r"'sales'.*\(1, 1988\)"):
            prepare_panel(df)

    def test_all_rows_missing(self):
        """No complete rows is a data error."""
        df = _make_raw_df().with_columns(pl.lit(None, dtype=pl.Float64).alias('scrap_rate'))
        with pytest.raises(ValueError, match='No complete rows'):
            prepare_panel(df)

    def test_sorted_and_order_invariant(self):
        """Shuffled input rows give the same cleaned table."""
        df = _make_raw_df()
        shuffled = df.sample(fraction=1.0, shuffle=True, seed=3)
        assert prepare_panel(df).equals(prepare_panel(shuffled))


class TestBuildData:
    """Tests for build_data / load_data."""

    def test_arrays_align_with_obs(self):
        """y, X and group offsets line up row by row with the cleaned table."""
        raw = simulate_panel(PanelDGP(n_firms=8, missing_share=0.1), seed=1)
        data = build_data(raw)
        obs = data['obs']
        assert data['n_obs'] == len(obs) == len(raw) - 2
        assert data['X'].shape == (data['n_obs'], 4)
        np.testing.assert_allclose(data['y'], obs['log_scrap'].to_numpy())
        np.testing.assert_array_equal(data['firm_idx'], obs['firm_index'].to_numpy() - 1)
        assert data['firm_idx'].min() == 0
        assert data['firm_idx'].max() == data['n_firms'] - 1

    def test_unknown_covariate(self):
        """Covariates outside the observation set are rejected."""
        with pytest.raises(ValueError, match='Unknown covariates'):
            build_data(_make_raw_df(), covariates=('grant', 'profit'))

    def test_load_wooldridge_csv(self, tmp_path):
        """A CSV using JTRAIN column names loads through the rename map."""
        df = _make_raw_df().rename({'firm_id': 'fcode', 'scrap_rate': 'scrap', 'employment': 'employ'})
        df = df.with_columns(pl.lit(0.0).alias('hrsemp'))
        path = tmp_path / 'jtrain.csv'
        df.write_csv(path)

        raw = read_panel(path)
        assert raw.columns == ['firm_id', 'year', 'scrap_rate', 'grant', 'sales', 'employment']

        data = load_data(path)
        assert data['n_obs'] == 6
        assert data['n_firms'] == 2

    def test_missing_file(self, tmp_path):
        """An absent panel file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match='Panel file not found'):
            read_panel(tmp_path / 'nope.csv')


class TestReferencePanel:
    """Tests for the Wooldridge JTRAIN reference panel."""

    def test_reference_counts(self):
        """148 complete firm-years across 51 firms and 3 years."""
        data = load_data()
        assert data['n_obs'] == 148
        assert data['n_firms'] == 51
        assert data['n_years'] == 3
        assert data['groups'].years == (1987, 1988, 1989)

    def test_reference_raw_columns(self):
        """The bundled panel arrives under the raw column names."""
        raw = read_panel()
        assert raw.columns == ['firm_id', 'year', 'scrap_rate', 'grant', 'sales', 'employment']
        assert len(raw) == 471
