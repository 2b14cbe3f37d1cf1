"""
Tests for heir valuation.

Tests verify:
- Gross (legacy) value and per-heir detail
- lump_sum_year0 vs rmd_based are distinct strategies
- The defer-to-year-10 policy when the owner dies before the RBD
- SLE-driven schedules when the owner dies after it
- Split handling and the default heir
"""

import pytest

from engine.heir_engine import HeirValueEngine, rmd_based_schedule
from models import HeirConfig, HeirStrategy, ParameterValidationError, default_heir

DEFAULT_RATE = 0.37 + 0.0495


def make_engine(heirs, strategy=HeirStrategy.RMD_BASED, horizon=10, discount_rate=0.03):
    return HeirValueEngine(heirs, strategy, horizon, discount_rate)


def heir(reinvestment_rate=0.06, birth_year=1990, split_percent=100, state="IL", agi=1_000_000):
    return HeirConfig(name="Heir", state=state, agi=agi, split_percent=split_percent,
                      birth_year=birth_year, reinvestment_rate=reinvestment_rate)


class TestGrossValue:

    def test_only_ira_is_taxed(self):
        valuation = make_engine([default_heir(1960)]).value(
            100_000, 1_000_000, 200_000, death_year=2040, owner_birth_year=1960, internal_growth=0.05
        )
        assert valuation.gross_value == pytest.approx(300_000 + 1_000_000 * (1 - DEFAULT_RATE))

    def test_default_heir(self):
        fallback = default_heir(1960)
        assert fallback.split_percent == 100
        assert fallback.birth_year == 1990
        assert fallback.state == "IL"

    def test_split_between_heirs(self, two_heirs):
        valuation = make_engine(two_heirs).value(
            0, 1_000_000, 0, death_year=2040, owner_birth_year=1960, internal_growth=0.05
        )
        alex, sam = valuation.details
        assert alex.gross_inheritance == pytest.approx(600_000)
        assert sam.gross_inheritance == pytest.approx(400_000)
        assert alex.combined_rate == pytest.approx(0.22 + 0.0495)
        assert sam.combined_rate == pytest.approx(0.12)
        assert alex.tax_on_ira == pytest.approx(600_000 * alex.combined_rate)
        assert valuation.gross_value == pytest.approx(alex.net_value + sam.net_value)

    def test_splits_applied_as_given(self):
        partial = [heir(split_percent=50), heir(split_percent=30)]
        valuation = make_engine(partial).value(
            500_000, 0, 500_000, death_year=2040, owner_birth_year=1960, internal_growth=0.05
        )
        assert valuation.gross_value == pytest.approx(800_000)


class TestStrategies:

    def test_lump_sum_and_rmd_based_differ(self):
        """Owner dies at 80 and the heir reinvests at a different rate than the IRA grows."""
        heirs = [heir(reinvestment_rate=0.06)]
        kwargs = dict(death_year=2040, owner_birth_year=1960, internal_growth=0.04)
        lump = make_engine(heirs, HeirStrategy.LUMP_SUM_YEAR0).value(0, 1_000_000, 0, **kwargs)
        rmd = make_engine(heirs, HeirStrategy.RMD_BASED).value(0, 1_000_000, 0, **kwargs)
        assert lump.normalized_value != pytest.approx(rmd.normalized_value)

    def test_alternate_matches_other_strategy(self):
        heirs = [heir()]
        kwargs = dict(death_year=2040, owner_birth_year=1960, internal_growth=0.04)
        lump = make_engine(heirs, HeirStrategy.LUMP_SUM_YEAR0).value(0, 1_000_000, 0, **kwargs)
        rmd = make_engine(heirs, HeirStrategy.RMD_BASED).value(0, 1_000_000, 0, **kwargs)
        assert lump.alternate_strategy is HeirStrategy.RMD_BASED
        assert lump.alternate_value == pytest.approx(rmd.normalized_value)
        assert rmd.alternate_value == pytest.approx(lump.normalized_value)

    def test_lump_sum_value(self):
        valuation = make_engine([heir(reinvestment_rate=0.05)], HeirStrategy.LUMP_SUM_YEAR0).value(
            0, 1_000_000, 0, death_year=2040, owner_birth_year=1960, internal_growth=0.04
        )
        expected = 1_000_000 * (1 - DEFAULT_RATE) * 1.05 ** 10 / 1.03 ** 10
        assert valuation.normalized_value == pytest.approx(expected)

    def test_before_rbd_defers_to_year_ten(self):
        """With equal growth and reinvestment rates, deferring and cashing out are worth the same."""
        heirs = [heir(reinvestment_rate=0.06)]
        kwargs = dict(death_year=2030, owner_birth_year=1960, internal_growth=0.06)
        lump = make_engine(heirs, HeirStrategy.LUMP_SUM_YEAR0).value(0, 1_000_000, 0, **kwargs)
        rmd = make_engine(heirs, HeirStrategy.RMD_BASED).value(0, 1_000_000, 0, **kwargs)
        assert rmd.normalized_value == pytest.approx(lump.normalized_value)
        schedule = rmd.details[0].distributions
        assert len(schedule) == 1
        assert schedule[0].year_offset == 10

    def test_pass_through_accounts_compound(self):
        valuation = make_engine([heir(reinvestment_rate=0.05)]).value(
            100_000, 0, 100_000, death_year=2040, owner_birth_year=1960, internal_growth=0.04
        )
        assert valuation.normalized_value == pytest.approx(200_000 * 1.05 ** 10 / 1.03 ** 10)


class TestRmdBasedSchedule:

    def test_after_rbd_distributes_everything_by_year_ten(self):
        schedule = rmd_based_schedule(
            1_000_000, 0.3, 0.05, 0.03, 10, internal_growth=0.0, owner_after_rbd=True, heir_age=50
        )
        assert len(schedule) == 10
        assert schedule[0].distribution == pytest.approx(1_000_000 / 34.0)
        assert schedule[-1].year_offset == 10
        assert sum(d.distribution for d in schedule) == pytest.approx(1_000_000)

    def test_divisor_exhausted_early(self):
        """Heir aged 90: divisors 2.2, 1.2, then below one empties the account."""
        schedule = rmd_based_schedule(
            1_000_000, 0.3, 0.05, 0.03, 10, internal_growth=0.0, owner_after_rbd=True, heir_age=90
        )
        assert [d.year_offset for d in schedule] == [1, 2, 3]
        assert schedule[0].distribution == pytest.approx(1_000_000 / 2.2)
        assert sum(d.distribution for d in schedule) == pytest.approx(1_000_000)

    def test_each_distribution_taxed_and_reinvested(self):
        schedule = rmd_based_schedule(
            1_000_000, 0.3, 0.05, 0.03, 10, internal_growth=0.04, owner_after_rbd=True, heir_age=50
        )
        first = schedule[0]
        assert first.tax == pytest.approx(first.distribution * 0.3)
        assert first.future_value == pytest.approx(first.net * 1.05 ** 9)
        assert first.present_value == pytest.approx(first.future_value / 1.03 ** 10)

    def test_empty_ira(self):
        assert rmd_based_schedule(0, 0.3, 0.05, 0.03, 10, 0.04, True, 50) == []


class TestStrategyParsing:

    @pytest.mark.parametrize("legacy", ["even", "year10", "RMD_BASED", "rmd_based"])
    def test_legacy_names_map_to_rmd_based(self, legacy):
        assert HeirStrategy.parse(legacy) is HeirStrategy.RMD_BASED

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ParameterValidationError) as exc:
            HeirStrategy.parse("stretch")
        assert exc.value.field_name == "heir_distribution_strategy"
