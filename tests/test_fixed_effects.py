"""Tests for jtrain_analysis.fixed_effects: two-way fixed-effects OLS."""

import math

import numpy as np
import polars as pl
import pytest

from jtrain_analysis.data import build_data
from jtrain_analysis.fixed_effects import build_design_matrix, collinear_columns, fit_fixed_effects
from jtrain_analysis.sim import PanelDGP, simulate_panel


def _make_two_firm_panel() -> pl.DataFrame:
    """Firm A treated in 1988 with a scrap dip that year; firm B flat, untreated."""
    log_scrap = {
        ('A', 1987): 1.00, ('A', 1988): 0.20, ('A', 1989): 1.05,
        ('B', 1987): 1.00, ('B', 1988): 1.02, ('B', 1989): 0.98,
    }
    rows = [
        {
            'firm_id': firm,
            'year': year,
            'scrap_rate': math.exp(v),
            'grant': 1 if (firm, year) == ('A', 1988) else 0,
            'sales': 5.0e6,
            'employment': 100.0,
        }
        for (firm, year), v in log_scrap.items()
    ]
    return pl.DataFrame(rows)


@pytest.fixture(scope='module')
def sim_data() -> dict:
    return build_data(simulate_panel(PanelDGP(n_firms=15, noise_sd=0.05), seed=7))


class TestDesignMatrix:
    """Tests for build_design_matrix."""

    def test_shape_and_columns(self, sim_data):
        """Covariates, one dummy per firm, one per non-reference year, no intercept."""
        X, columns = build_design_matrix(sim_data)
        assert X.shape == (sim_data['n_obs'], 4 + 15 + 2)
        assert columns[:4] == ['grant', 'grant_lag1', 'log_sales', 'log_employment']
        assert columns[-2:] == ['year[1988]', 'year[1989]']
        # each row hits exactly one firm dummy
        np.testing.assert_array_equal(X[:, 4 : 4 + 15].sum(axis=1), 1.0)

    def test_collinear_columns(self):
        """A column equal to a sum of earlier ones is reported."""
        X = np.array([[1.0, 0.0, 1.0], [0.0, 1.0, 1.0], [1.0, 1.0, 2.0], [2.0, 0.0, 2.0]])
        assert collinear_columns(X, ['a', 'b', 'a+b']) == ['a+b']


class TestFitFixedEffects:
    """Tests for fit_fixed_effects."""

    def test_residuals_orthogonal_to_design(self, sim_data):
        """Normal equations: X'e = 0 for every design column."""
        res = fit_fixed_effects(sim_data)
        score = res.design.T @ res.resid
        np.testing.assert_allclose(score, 0.0, atol=1e-8)

    def test_recovers_planted_slopes(self, sim_data):
        """Low-noise simulation recovers the generating slopes."""
        res = fit_fixed_effects(sim_data)
        dgp = PanelDGP()
        assert res.coef['grant'] == pytest.approx(dgp.beta_grant, abs=0.1)
        assert res.coef['grant_lag1'] == pytest.approx(dgp.beta_grant_lag1, abs=0.1)
        assert res.coef['log_sales'] == pytest.approx(dgp.gamma_sales, abs=0.15)
        assert res.coef['log_employment'] == pytest.approx(dgp.delta_employment, abs=0.15)
        assert all(se > 0 for se in res.std_err.values())

    def test_matches_two_way_within_estimator(self, sim_data):
        """On a balanced panel the dummy fit equals the two-way demeaned fit."""
        res = fit_fixed_effects(sim_data)
        obs = sim_data['obs']
        cols = ['log_scrap', 'grant', 'grant_lag1', 'log_sales', 'log_employment']
        demeaned = obs.select(
            [
                (
                    pl.col(c)
                    - pl.col(c).mean().over('firm_id')
                    - pl.col(c).mean().over('year')
                    + pl.col(c).mean()
                ).alias(c)
                for c in cols
            ]
        )
        y = demeaned['log_scrap'].to_numpy()
        X = demeaned.select(cols[1:]).to_numpy()
        beta_within, *_ = np.linalg.lstsq(X, y, rcond=None)
        np.testing.assert_allclose([res.coef[c] for c in cols[1:]], beta_within, atol=1e-8)

    def test_reference_year_is_zero(self, sim_data):
        """The first year carries no dummy; its effect is reported as 0."""
        res = fit_fixed_effects(sim_data)
        assert res.year_effects[1987] == 0.0
        assert set(res.firm_effects) == set(sim_data['groups'].firms)

    def test_to_frame(self, sim_data):
        """The slope table lists the four covariates in order."""
        table = fit_fixed_effects(sim_data).to_frame()
        assert table.columns == ['term', 'estimate', 'std_error', 't_value', 'p_value']
        assert table['term'].to_list() == ['grant', 'grant_lag1', 'log_sales', 'log_employment']

    def test_grant_without_variation(self):
        """A grant column of zeros is not identified."""
        raw = simulate_panel(PanelDGP(n_firms=10, grant_prob=0.0), seed=2)
        with pytest.raises(ValueError, match=r"rank deficient.*'grant'"):
            fit_fixed_effects(build_data(raw))

    def test_more_columns_than_rows(self):
        """Six rows cannot identify the full specification."""
        data = build_data(_make_two_firm_panel())
        with pytest.raises(ValueError, match='rank deficient'):
            fit_fixed_effects(data)

    def test_no_residual_degrees_of_freedom(self):
        """An exactly identified design has no standard errors."""
        data = build_data(_make_two_firm_panel())
        with pytest.raises(ValueError, match='No residual degrees of freedom'):
            fit_fixed_effects(data, covariates=('grant', 'grant_lag1'))

    def test_two_firm_scenario(self):
        """Firm A's scrap dips in its grant year: the grant slope is negative."""
        data = build_data(_make_two_firm_panel(), covariates=('grant',))
        res = fit_fixed_effects(data)
        assert res.coef['grant'] < 0
        assert res.df_resid == 1
