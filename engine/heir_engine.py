# engine/heir_engine.py

"""
What heirs would net if the owner died at the end of a given year.

After-Tax (stepped-up basis) and Roth pass through untaxed. Only the IRA is
taxed, as the heir distributes it under the 10-year rule. Two views are kept:

- gross value: IRA share taxed once at the heir's combined marginal rate
- normalized value: every dollar carried to the same horizon at the heir's
  reinvestment rate and discounted back, so strategies with different
  distribution timing can be compared
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from config import heir_assumptions
from engine.rmd_tables import get_beneficiary_sle_factor, owner_died_after_rbd
from engine.tax_engine import get_federal_marginal_rate, get_state_marginal_rate
from models import HeirConfig, HeirDetail, HeirDistribution, HeirStrategy

TEN_YEAR_RULE = heir_assumptions.ten_year_rule_years


@dataclass(frozen=True)
class HeirRates:
    federal: float
    state: float

    @property
    def combined(self) -> float:
        return self.federal + self.state


@dataclass(frozen=True)
class HeirValuation:
    gross_value: float
    normalized_value: float
    strategy: HeirStrategy
    alternate_value: float
    alternate_strategy: HeirStrategy
    details: Tuple[HeirDetail, ...]


def calculate_heir_rates(heir: HeirConfig) -> HeirRates:
    return HeirRates(
        federal=get_federal_marginal_rate(heir.agi),
        state=get_state_marginal_rate(heir.state),
    )


# =============================================================================
# DEFERRED-ACCOUNT DISTRIBUTION SCHEDULES
# =============================================================================

def _distribution(year_offset, amount, rate, reinvest_rate, discount_rate, horizon):
    tax = amount * rate
    net = amount - tax
    future_value = net * (1 + reinvest_rate) ** max(0, horizon - year_offset)
    return HeirDistribution(
        year_offset=year_offset,
        distribution=amount,
        tax=tax,
        net=net,
        future_value=future_value,
        present_value=future_value / (1 + discount_rate) ** horizon,
    )


def lump_sum_schedule(
    ira_share: float, rate: float, reinvest_rate: float, discount_rate: float, horizon: int
) -> List[HeirDistribution]:
    """Whole IRA share taxed at inheritance; the net is reinvested for the full horizon."""
    if ira_share <= 0:
        return []
    return [_distribution(0, ira_share, rate, reinvest_rate, discount_rate, horizon)]


def rmd_based_schedule(
    ira_share: float,
    rate: float,
    reinvest_rate: float,
    discount_rate: float,
    horizon: int,
    internal_growth: float,
    owner_after_rbd: bool,
    heir_age: int,
) -> List[HeirDistribution]:
    """
    Distributions under the 10-year rule.

    Owner died before the Required Beginning Date: no annual distributions are
    mandated, and the heir is assumed to defer everything to year 10. This is a
    modeling policy, not a rule of law.

    Owner died on or after it: annual distributions sized by the heir's Single
    Life Expectancy factor, reduced by one each year, with whatever is left
    distributed in year 10.
    """
    if ira_share <= 0:
        return []

    if not owner_after_rbd:
        balance = ira_share * (1 + internal_growth) ** TEN_YEAR_RULE
        return [_distribution(TEN_YEAR_RULE, balance, rate, reinvest_rate, discount_rate, horizon)]

    schedule = []
    first_factor = get_beneficiary_sle_factor(heir_age)
    balance = ira_share
    for k in range(1, TEN_YEAR_RULE + 1):
        balance *= 1 + internal_growth
        divisor = first_factor - (k - 1)
        if k == TEN_YEAR_RULE or divisor <= 1:
            amount = balance
        else:
            amount = balance / divisor
        balance -= amount
        schedule.append(_distribution(k, amount, rate, reinvest_rate, discount_rate, horizon))
        if balance <= 0:
            break
    return schedule


# =============================================================================
# ENGINE
# =============================================================================

class HeirValueEngine:
    """
    Values the estate for a fixed list of heirs. Rates are resolved once, so a
    bad state code is reported once per run rather than once per year.
    """

    def __init__(
        self,
        heirs: Sequence[HeirConfig],
        strategy: HeirStrategy,
        horizon: int,
        discount_rate: float,
    ):
        self.heirs = tuple(heirs)
        self.strategy = strategy
        self.horizon = horizon
        self.discount_rate = discount_rate
        self.rates = tuple(calculate_heir_rates(heir) for heir in self.heirs)

    def _schedule(self, strategy, heir, rates, ira_share, owner_after_rbd, death_year, internal_growth):
        if strategy is HeirStrategy.LUMP_SUM_YEAR0:
            return lump_sum_schedule(
                ira_share, rates.combined, heir.reinvestment_rate, self.discount_rate, self.horizon
            )
        if strategy is HeirStrategy.RMD_BASED:
            return rmd_based_schedule(
                ira_share,
                rates.combined,
                heir.reinvestment_rate,
                self.discount_rate,
                self.horizon,
                internal_growth,
                owner_after_rbd,
                heir_age=death_year - heir.birth_year,
            )
        raise ValueError(f"Unsupported heir distribution strategy: {strategy!r}")

    def _value_heirs(self, strategy, at, ira, roth, death_year, owner_birth_year, internal_growth):
        owner_after_rbd = owner_died_after_rbd(death_year, owner_birth_year)
        discount = (1 + self.discount_rate) ** self.horizon

        details = []
        for heir, rates in zip(self.heirs, self.rates):
            split = heir.split_percent / 100
            at_share, ira_share, roth_share = at * split, ira * split, roth * split

            schedule = self._schedule(
                strategy, heir, rates, ira_share, owner_after_rbd, death_year, internal_growth
            )
            pass_through = (at_share + roth_share) * (1 + heir.reinvestment_rate) ** self.horizon / discount
            tax_on_ira = ira_share * rates.combined

            details.append(HeirDetail(
                name=heir.name,
                split=split,
                federal_rate=rates.federal,
                state_rate=rates.state,
                combined_rate=rates.combined,
                gross_inheritance=at_share + ira_share + roth_share,
                tax_on_ira=tax_on_ira,
                net_value=at_share + roth_share + ira_share - tax_on_ira,
                normalized_value=pass_through + sum(d.present_value for d in schedule),
                distributions=tuple(schedule),
            ))
        return details

    def value(
        self,
        at: float,
        ira: float,
        roth: float,
        death_year: int,
        owner_birth_year: int,
        internal_growth: float,
    ) -> HeirValuation:
        """Gross and normalized value for the selected strategy, plus the alternate's normalized value."""
        details = self._value_heirs(
            self.strategy, at, ira, roth, death_year, owner_birth_year, internal_growth
        )
        alternate = self.strategy.alternate
        alternate_details = self._value_heirs(
            alternate, at, ira, roth, death_year, owner_birth_year, internal_growth
        )
        return HeirValuation(
            gross_value=sum(d.net_value for d in details),
            normalized_value=sum(d.normalized_value for d in details),
            strategy=self.strategy,
            alternate_value=sum(d.normalized_value for d in alternate_details),
            alternate_strategy=alternate,
            details=tuple(details),
        )
