# withdrawal_engine.py

import logging
from dataclasses import dataclass
from typing import Dict, List, Union

from engine.tax_engine import TaxBreakdown, calculate_taxes
from utils.tax_utils import TaxFilingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    requested: float
    converted: float
    capped: bool


@dataclass(frozen=True)
class WithdrawalPlan:
    at_withdrawal: float
    ira_withdrawal: float
    roth_withdrawal: float
    at_harvest: float
    need: float
    shortfall: float
    surplus_cash: float
    taxes: TaxBreakdown
    total_tax: float
    iterations: int
    converged: bool

    @property
    def total_withdrawal(self) -> float:
        return self.at_withdrawal + self.ira_withdrawal + self.roth_withdrawal


def cap_roth_conversion(requested: float, ira_boy: float, rmd_required: float) -> ConversionResult:
    """
    Limits a Roth conversion to what is left in the IRA after the RMD.
    Over-sized requests are capped and flagged, never rejected.
    """
    requested = max(0.0, requested)
    available = max(0.0, ira_boy - rmd_required)
    converted = min(requested, available)
    return ConversionResult(requested=requested, converted=converted, capped=requested > converted)


class WithdrawalEngine:
    """
    Solves one year's withdrawals and taxes together.

    Taxes are paid from the same withdrawals they are levied on, so the plan is
    found by fixed-point iteration on the tax estimate: withdraw for expenses
    plus the current estimate, compute the resulting tax, repeat until the
    estimate moves by less than the tolerance or the iteration cap is reached.
    """

    def __init__(
        self,
        filing_status: TaxFilingStatus,
        federal_constants: Dict[str, Union[float, List]],
        state_tax_rate: float,
        capital_gains_percent: float,
        property_tax_paid: float = 0.0,
        exempt_ss_from_tax: bool = False,
        iterative: bool = True,
        max_iterations: int = 5,
        tolerance: float = 100.0,
    ):
        self.filing_status = filing_status
        self.federal_constants = federal_constants
        self.state_tax_rate = state_tax_rate
        self.capital_gains_percent = capital_gains_percent
        self.property_tax_paid = property_tax_paid
        self.exempt_ss_from_tax = exempt_ss_from_tax
        self.max_iterations = max(1, int(max_iterations)) if iterative else 1
        self.tolerance = tolerance

    def _realized_gain(self, at_withdrawal: float, at_boy: float, cost_basis: float) -> float:
        """Taxable gain on an After-Tax sale, from the account's unrealized-gain fraction."""
        if at_withdrawal <= 0 or at_boy <= 0:
            return 0.0
        gain_ratio = max(0.0, 1 - cost_basis / at_boy)
        return at_withdrawal * gain_ratio * self.capital_gains_percent

    def solve(
        self,
        at_boy: float,
        ira_boy: float,
        roth_boy: float,
        cost_basis: float,
        ss_income: float,
        expenses: float,
        irmaa: float,
        rmd_required: float,
        roth_conversion: float = 0.0,
        at_harvest: float = 0.0,
    ) -> WithdrawalPlan:
        """
        Withdrawal priority: RMD from the IRA, After-Tax, any extra After-Tax
        liquidation, more IRA, Roth last. A need no account can cover is
        reported as shortfall.
        """
        estimated_tax = 0.0
        plan = None

        for iteration in range(1, self.max_iterations + 1):
            need = max(0.0, expenses + irmaa + estimated_tax - ss_income)
            remaining = need
            surplus = 0.0

            # (a) IRA, at least the RMD; the conversion leaves the IRA first
            ira_available = max(0.0, ira_boy - roth_conversion)
            ira_w = min(ira_available, rmd_required)
            surplus += max(0.0, ira_w - remaining)
            remaining = max(0.0, remaining - ira_w)

            # (b) After-Tax
            at_w = min(at_boy, remaining)
            remaining -= at_w

            # (c) Extra liquidation on top, bounded by what is left in After-Tax
            harvest = min(max(0.0, at_harvest), at_boy - at_w)
            at_w += harvest
            covered = min(harvest, remaining)
            remaining -= covered
            surplus += harvest - covered

            # (d) More IRA
            extra_ira = min(ira_available - ira_w, remaining)
            ira_w += extra_ira
            remaining -= extra_ira

            # (e) Roth last
            roth_w = min(roth_boy, remaining)
            remaining -= roth_w

            capital_gains = self._realized_gain(at_w, at_boy, cost_basis)
            taxes = calculate_taxes(
                ira_withdrawal=ira_w,
                roth_conversion=roth_conversion,
                capital_gains=capital_gains,
                social_security_income=ss_income,
                filing_status=self.filing_status,
                federal_constants=self.federal_constants,
                state_tax_rate=self.state_tax_rate,
                property_tax_paid=self.property_tax_paid,
                exempt_ss_from_tax=self.exempt_ss_from_tax,
            )
            total_tax = taxes.total
            converged = abs(total_tax - estimated_tax) < self.tolerance

            plan = WithdrawalPlan(
                at_withdrawal=at_w,
                ira_withdrawal=ira_w,
                roth_withdrawal=roth_w,
                at_harvest=harvest,
                need=need,
                shortfall=remaining,
                surplus_cash=surplus,
                taxes=taxes,
                total_tax=total_tax,
                iterations=iteration,
                converged=converged,
            )
            logger.debug(
                f"iteration {iteration}: estimate={estimated_tax:,.0f} "
                f"tax={total_tax:,.0f} need={need:,.0f} shortfall={remaining:,.0f}"
            )
            if converged:
                break
            estimated_tax = total_tax

        return plan
