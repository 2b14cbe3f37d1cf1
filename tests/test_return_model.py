import pytest

from engine.return_model import (
    calculate_blended_return,
    calculate_risk_allocation,
    effective_returns,
)
from models import BandSplit, SimulationParameters


class TestRiskAllocation:

    @pytest.fixture
    def allocation(self):
        return calculate_risk_allocation(1_000_000, 3_000_000, 2_000_000, 2_500_000, 2_500_000)

    def test_portfolio_bands(self, allocation):
        assert allocation.portfolio == BandSplit(low=2_500_000, mod=2_500_000, high=1_000_000)

    def test_after_tax_fills_low_risk_first(self, allocation):
        assert allocation.at == BandSplit(low=1_000_000, mod=0, high=0)

    def test_ira_takes_rest_of_low_then_moderate(self, allocation):
        assert allocation.ira == BandSplit(low=1_500_000, mod=1_500_000, high=0)

    def test_roth_absorbs_high_risk(self, allocation):
        assert allocation.roth == BandSplit(low=0, mod=1_000_000, high=1_000_000)

    def test_bands_cover_portfolio(self, allocation):
        total = allocation.at.total + allocation.ira.total + allocation.roth.total
        assert total == allocation.portfolio.total == 6_000_000


class TestBlendedReturn:

    def test_weighted_average(self):
        split = BandSplit(low=1_500_000, mod=1_500_000, high=0)
        assert calculate_blended_return(split, 0.04, 0.06, 0.08) == pytest.approx(0.05)

    def test_empty_allocation_returns_zero(self):
        assert calculate_blended_return(BandSplit(0, 0, 0), 0.04, 0.06, 0.08) == 0


class TestEffectiveReturns:

    def test_account_mode_uses_flat_rates(self):
        params = SimulationParameters(return_mode="account", at_return=0.01, ira_return=0.02, roth_return=0.03)
        returns = effective_returns(params, 100, 100, 100)
        assert (returns.at, returns.ira, returns.roth) == (0.01, 0.02, 0.03)
        assert returns.allocation is None

    def test_blended_mode_reports_allocation(self):
        params = SimulationParameters(return_mode="blended")
        returns = effective_returns(params, 1_000_000, 3_000_000, 2_000_000)
        assert returns.at == pytest.approx(0.04)
        assert returns.ira == pytest.approx(0.05)
        assert returns.roth == pytest.approx(0.07)
        assert returns.allocation is not None
