"""
U.S. tax and Medicare premium calculator for retirement projections.
It contains the bracket math and the per-year tax orchestrator, relying
entirely on indexed constants provided by utils.tax_utils.
"""
from dataclasses import dataclass
from typing import Dict, List, Sequence, Union
import numpy as np
import logging

logger = logging.getLogger(__name__)

from utils.tax_utils import (
    ORDINARY_BRACKETS_2024,
    SS_TAX_THRESHOLDS,
    NIIT_RATE,
    NIIT_THRESHOLD,
    IL_PROPERTY_TAX_CREDIT_RATE,
    IL_PROPERTY_TAX_CREDIT_AGI_LIMIT,
    STATE_TAX_RATES,
    DEFAULT_STATE_TAX_RATE,
    Bracket,
    IrmaaTier,
    TaxFilingStatus,
)


@dataclass(frozen=True)
class StateTaxResult:
    base_tax: float
    property_tax_credit: float
    net_tax: float
    credit_limited_by_agi: bool
    credit_limited_by_tax: bool


@dataclass(frozen=True)
class IrmaaSurcharge:
    part_b: float
    part_d: float
    total: float
    bracket: int


@dataclass(frozen=True)
class TaxBreakdown:
    taxable_ss: float
    ordinary_income: float
    taxable_ordinary: float
    capital_gains: float
    magi: float
    federal_tax: float
    ltcg_tax: float
    niit: float
    state: StateTaxResult

    @property
    def total(self) -> float:
        return self.federal_tax + self.ltcg_tax + self.niit + self.state.net_tax


# --- 1. Bracket Math Primitives ---

def federal_income_tax(taxable_income: float, brackets: Sequence[Bracket]) -> float:
    """Progressive tax on ordinary taxable income. Zero or negative income is untaxed."""
    if taxable_income <= 0:
        return 0.0

    tax = 0.0
    for low, high, rate in brackets:
        if taxable_income <= low:
            break
        top = min(taxable_income, high) if np.isfinite(high) else taxable_income
        tax += (top - low) * rate
    return tax


def ltcg_tax(capital_gains: float, taxable_ordinary: float, brackets: Sequence[Bracket]) -> float:
    """
    Long-term capital gains tax, stacked on top of ordinary taxable income.

    Each gains bracket only has room above whatever ordinary income (plus gains
    already placed) has consumed; the cursor advances as gains are placed.
    """
    if capital_gains <= 0:
        return 0.0

    tax = 0.0
    remaining = capital_gains
    cursor = max(0.0, taxable_ordinary)
    for low, high, rate in brackets:
        if remaining <= 0:
            break
        if cursor >= high:
            continue
        room = high - max(low, cursor)
        in_bracket = min(remaining, room)
        tax += in_bracket * rate
        remaining -= in_bracket
        cursor += in_bracket
    return tax


def net_investment_income_tax(
    investment_income: float, magi: float, filing_status: TaxFilingStatus
) -> float:
    """3.8% on the lesser of investment income and MAGI above the statutory threshold."""
    excess = max(0.0, magi - NIIT_THRESHOLD[filing_status])
    return NIIT_RATE * min(max(0.0, investment_income), excess)


def taxable_social_security(
    ss_income: float, other_income: float, filing_status: TaxFilingStatus
) -> float:
    """
    Taxable portion of Social Security from "combined income"
    (other income + half of the benefit). Never more than 85% of the benefit.
    """
    if ss_income <= 0:
        return 0.0

    tier1, tier2 = SS_TAX_THRESHOLDS[filing_status]
    combined = other_income + 0.5 * ss_income

    if combined <= tier1:
        return 0.0
    if combined <= tier2:
        return min(0.5 * (combined - tier1), 0.5 * ss_income)
    return min(0.5 * (tier2 - tier1) + 0.85 * (combined - tier2), 0.85 * ss_income)


def state_income_tax(
    investment_income: float,
    rate: float,
    property_tax_paid: float,
    agi: float,
    filing_status: TaxFilingStatus,
) -> StateTaxResult:
    """
    Illinois-style flat tax on investment income, less a non-refundable
    property-tax credit that is lost entirely once AGI exceeds the limit.
    """
    base_tax = max(0.0, investment_income) * rate
    limited_by_agi = agi > IL_PROPERTY_TAX_CREDIT_AGI_LIMIT[filing_status]

    potential_credit = 0.0 if limited_by_agi else max(0.0, property_tax_paid) * IL_PROPERTY_TAX_CREDIT_RATE
    credit = min(potential_credit, base_tax)

    return StateTaxResult(
        base_tax=base_tax,
        property_tax_credit=credit,
        net_tax=base_tax - credit,
        credit_limited_by_agi=limited_by_agi and property_tax_paid > 0,
        credit_limited_by_tax=potential_credit > base_tax,
    )


def get_irmaa_surcharge(
    magi_two_years_ago: float, tiers: Sequence[IrmaaTier], household_size: int
) -> IrmaaSurcharge:
    """
    Annual Part B and Part D add-ons for the highest tier whose threshold
    the lagged MAGI exceeds. Bracket 0 carries no surcharge.
    """
    bracket = 0
    for i, (threshold, _, _) in enumerate(tiers):
        if i > 0 and magi_two_years_ago > threshold:
            bracket = i

    _, part_b_mo, part_d_mo = tiers[bracket]
    part_b = part_b_mo * 12 * household_size
    part_d = part_d_mo * 12 * household_size
    return IrmaaSurcharge(part_b=part_b, part_d=part_d, total=part_b + part_d, bracket=bracket)


# --- 2. Heir marginal rates ---

def get_federal_marginal_rate(agi: float) -> float:
    """Marginal rate for an income level, from the base-year MFJ ordinary brackets."""
    rate = ORDINARY_BRACKETS_2024["married_filing_jointly"][0][2]
    for low, _, bracket_rate in ORDINARY_BRACKETS_2024["married_filing_jointly"]:
        if agi > low:
            rate = bracket_rate
    return rate


def get_state_marginal_rate(state: str) -> float:
    """Top marginal rate for a state code. Unknown codes fall back to 5%."""
    code = (state or "").strip().upper()
    if code not in STATE_TAX_RATES:
        logger.warning(
            f"No state tax rate on file for '{state}'. "
            f"Using the default {DEFAULT_STATE_TAX_RATE:.2%}."
        )
        return DEFAULT_STATE_TAX_RATE
    return STATE_TAX_RATES[code]


# --- 3. Main Orchestrator Function ---

def calculate_taxes(
    ira_withdrawal: float,
    roth_conversion: float,
    capital_gains: float,
    social_security_income: float,
    filing_status: TaxFilingStatus,
    federal_constants: Dict[str, Union[float, List]],
    state_tax_rate: float,
    property_tax_paid: float = 0.0,
    exempt_ss_from_tax: bool = False,
) -> TaxBreakdown:
    """
    Calculates all annual income taxes (federal ordinary, stacked LTCG, NIIT, state)
    for one year's realized income.

    Returns:
        TaxBreakdown with each component, MAGI and the total.
    """
    # 1. Taxable Social Security
    if exempt_ss_from_tax:
        taxable_ss = 0.0
    else:
        other_income = ira_withdrawal + roth_conversion + capital_gains
        taxable_ss = taxable_social_security(social_security_income, other_income, filing_status)

    # 2. Ordinary income and MAGI
    ordinary_income = taxable_ss + ira_withdrawal + roth_conversion
    taxable_ordinary = max(0.0, ordinary_income - federal_constants["std_deduction"])
    magi = ordinary_income + capital_gains

    # 3. Federal
    federal_tax = federal_income_tax(taxable_ordinary, federal_constants["ord_list"])
    gains_tax = ltcg_tax(capital_gains, taxable_ordinary, federal_constants["cg_list"])
    niit = net_investment_income_tax(capital_gains, magi, filing_status)

    # 4. State (investment income only)
    state = state_income_tax(capital_gains, state_tax_rate, property_tax_paid, magi, filing_status)

    return TaxBreakdown(
        taxable_ss=taxable_ss,
        ordinary_income=ordinary_income,
        taxable_ordinary=taxable_ordinary,
        capital_gains=capital_gains,
        magi=magi,
        federal_tax=federal_tax,
        ltcg_tax=gains_tax,
        niit=niit,
        state=state,
    )
