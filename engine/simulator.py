import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from config import expense_assumptions
from engine.heir_engine import HeirValueEngine
from engine.return_model import effective_returns
from engine.rmd_tables import calculate_rmd
from engine.summary import summarize
from engine.tax_engine import IrmaaSurcharge, get_irmaa_surcharge
from engine.withdrawal_engine import WithdrawalEngine, cap_roth_conversion
from models import FilingStatus, SimulationParameters, SimulationResult, YearRecord
from utils.input_adapter import merge_overrides
from utils.tax_utils import (
    brackets_from_thresholds,
    get_indexed_federal_constants,
    irmaa_from_rows,
)

logger = logging.getLogger(__name__)

NO_SURCHARGE = IrmaaSurcharge(part_b=0.0, part_d=0.0, total=0.0, bracket=0)


@dataclass(frozen=True)
class _LoopState:
    """Everything one year hands to the next. Replaced, never mutated."""
    at: float
    ira: float
    roth: float
    cost_basis: float
    magi_history: Tuple[float, float]   # (two years prior, prior year)
    cumulative_tax: float = 0.0
    cumulative_irmaa: float = 0.0
    cumulative_expenses: float = 0.0
    cumulative_capital_gains: float = 0.0
    cumulative_at_withdrawals: float = 0.0


class RetirementSimulator:
    """
    Deterministic year-by-year projection of After-Tax, IRA and Roth balances
    with taxes, RMDs, Medicare surcharges and heir values.
    """
    def __init__(self, params: SimulationParameters):

        # -----------------------
        # STEP 1: Validate once, before any year is computed
        # -----------------------
        self.params = params.validate()

        # -----------------------
        # STEP 2: Convert caller-supplied tables to internal form
        # -----------------------
        self.custom_ordinary = self._convert_tables(params.custom_federal_brackets, brackets_from_thresholds)
        self.custom_capgains = self._convert_tables(params.custom_ltcg_brackets, brackets_from_thresholds)
        self.custom_irmaa = self._convert_tables(params.custom_irmaa_brackets, irmaa_from_rows)

        # -----------------------
        # STEP 3: Heir valuation (rates resolved once per run)
        # -----------------------
        self.heir_engine = HeirValueEngine(
            heirs=params.resolved_heirs(),
            strategy=params.heir_distribution_strategy,
            horizon=params.heir_normalization_years,
            discount_rate=params.discount_rate,
        )

    @staticmethod
    def _convert_tables(tables, convert):
        if not tables:
            return None
        return {status: convert(rows) for status, rows in tables.items()}

    # =========================================================================
    # 1. CORE SIMULATION RUNNER
    # =========================================================================
    def run_simulation(self) -> SimulationResult:
        """Folds the year range into an immutable sequence of YearRecords."""
        p = self.params
        state = _LoopState(
            at=p.after_tax_start,
            ira=p.ira_start,
            roth=p.roth_start,
            cost_basis=p.after_tax_cost_basis,
            magi_history=(p.magi_two_years_prior, p.magi_prior_year),
        )

        records = []
        for year in range(p.start_year, p.end_year + 1):
            record, state = self._simulate_year(year, state)
            records.append(record)

        records = tuple(records)
        summary = summarize(records)
        logger.info(
            f"Projection {p.start_year}-{p.end_year} complete: "
            f"ending portfolio ${summary.ending_portfolio:,.0f}, "
            f"{len(summary.shortfall_years)} shortfall year(s)"
        )
        return SimulationResult(years=records, summary=summary)

    # =========================================================================
    # 2. PER-YEAR INPUTS
    # =========================================================================
    def _social_security(self, years_from_start: int, is_survivor: bool) -> float:
        p = self.params
        ss = p.social_security_monthly * 12 * (1 + p.ss_cola) ** years_from_start
        if is_survivor:
            ss *= p.survivor_ss_percent
        return ss

    def _expenses(self, year: int, years_from_start: int, is_survivor: bool) -> float:
        """An override is taken as given; otherwise inflate the base amount."""
        p = self.params
        if year in p.expense_overrides:
            return float(p.expense_overrides[year])
        expenses = p.annual_expenses * (1 + p.expense_inflation) ** years_from_start
        if is_survivor:
            expenses *= p.survivor_expense_percent
        return expenses

    def _requested_conversion(self, year: int, years_from_start: int) -> float:
        """Nominal conversion request. Present-value requests grow at the discount rate."""
        request = self.params.roth_conversions.get(year, 0.0)
        if isinstance(request, Mapping):
            amount = float(request.get("amount", 0.0))
            if request.get("is_pv"):
                amount *= (1 + self.params.discount_rate) ** years_from_start
            return amount
        return float(request)

    # =========================================================================
    # 3. SINGLE YEAR LOGIC
    # =========================================================================
    def _simulate_year(self, year: int, state: _LoopState) -> Tuple[YearRecord, _LoopState]:
        p = self.params
        years_from_start = year - p.start_year
        age = year - p.birth_year
        is_survivor = p.survivor_death_year is not None and year >= p.survivor_death_year
        filing_status = FilingStatus.SINGLE if is_survivor else FilingStatus.MARRIED_FILING_JOINTLY

        at_boy, ira_boy, roth_boy, basis_boy = state.at, state.ira, state.roth, state.cost_basis
        total_boy = at_boy + ira_boy + roth_boy

        returns = effective_returns(p, at_boy, ira_boy, roth_boy)
        ss_annual = self._social_security(years_from_start, is_survivor)
        expenses = self._expenses(year, years_from_start, is_survivor)

        constants = get_indexed_federal_constants(
            year,
            p.bracket_inflation,
            filing_status.value,
            age=age,
            base_year=p.tax_base_year,
            custom_ordinary=self.custom_ordinary,
            custom_capgains=self.custom_capgains,
            custom_irmaa=self.custom_irmaa,
        )

        # RMD first: a conversion can only use what the RMD leaves behind
        rmd = calculate_rmd(ira_boy, age)
        conversion = cap_roth_conversion(
            self._requested_conversion(year, years_from_start), ira_boy, rmd.required
        )

        # Medicare surcharge from MAGI two years back
        irmaa_magi = state.magi_history[0]
        if age >= expense_assumptions.medicare_start_age:
            irmaa = get_irmaa_surcharge(irmaa_magi, constants["irmaa_list"], 1 if is_survivor else 2)
        else:
            irmaa = NO_SURCHARGE

        engine = WithdrawalEngine(
            filing_status=filing_status.value,
            federal_constants=constants,
            state_tax_rate=p.state_tax_rate,
            capital_gains_percent=p.capital_gains_percent,
            property_tax_paid=p.annual_property_tax,
            exempt_ss_from_tax=p.exempt_ss_from_tax,
            iterative=p.iterative_tax,
            max_iterations=p.max_iterations,
            tolerance=p.convergence_tolerance,
        )
        plan = engine.solve(
            at_boy=at_boy,
            ira_boy=ira_boy,
            roth_boy=roth_boy,
            cost_basis=basis_boy,
            ss_income=ss_annual,
            expenses=expenses,
            irmaa=irmaa.total,
            rmd_required=rmd.required,
            roth_conversion=conversion.converted,
            at_harvest=float(p.at_harvest_overrides.get(year, 0.0)),
        )
        if not plan.converged and p.iterative_tax:
            logger.debug(f"{year}: tax estimate did not converge in {plan.iterations} iterations")

        # Withdrawals come out before the year's growth
        at_after = at_boy - plan.at_withdrawal
        ira_after = ira_boy - plan.ira_withdrawal - conversion.converted
        roth_after = roth_boy - plan.roth_withdrawal + conversion.converted

        at_eoy = max(0.0, at_after * (1 + returns.at))
        ira_eoy = max(0.0, ira_after * (1 + returns.ira))
        roth_eoy = max(0.0, roth_after * (1 + returns.roth))
        total_eoy = at_eoy + ira_eoy + roth_eoy

        basis_used = basis_boy * (plan.at_withdrawal / at_boy) if at_boy > 0 else 0.0
        basis_eoy = max(0.0, basis_boy - basis_used)

        heirs = self.heir_engine.value(
            at_eoy, ira_eoy, roth_eoy,
            death_year=year,
            owner_birth_year=p.birth_year,
            internal_growth=returns.ira,
        )

        taxes = plan.taxes
        next_state = replace(
            state,
            at=at_eoy,
            ira=ira_eoy,
            roth=roth_eoy,
            cost_basis=basis_eoy,
            magi_history=(state.magi_history[1], taxes.magi),
            cumulative_tax=state.cumulative_tax + plan.total_tax,
            cumulative_irmaa=state.cumulative_irmaa + irmaa.total,
            cumulative_expenses=state.cumulative_expenses + expenses,
            cumulative_capital_gains=state.cumulative_capital_gains + taxes.capital_gains,
            cumulative_at_withdrawals=state.cumulative_at_withdrawals + plan.at_withdrawal,
        )

        record = YearRecord(
            year=year,
            age=age,
            years_from_start=years_from_start,
            is_survivor=is_survivor,
            filing_status=filing_status.value,
            at_boy=at_boy,
            ira_boy=ira_boy,
            roth_boy=roth_boy,
            total_boy=total_boy,
            cost_basis_boy=basis_boy,
            effective_at_return=returns.at,
            effective_ira_return=returns.ira,
            effective_roth_return=returns.roth,
            risk_allocation=returns.allocation,
            at_return=at_after * returns.at if at_after > 0 else 0.0,
            ira_return=ira_after * returns.ira if ira_after > 0 else 0.0,
            roth_return=roth_after * returns.roth if roth_after > 0 else 0.0,
            ss_annual=ss_annual,
            expenses=expenses,
            rmd_factor=rmd.factor,
            rmd_required=rmd.required,
            roth_conversion_requested=conversion.requested,
            roth_conversion=conversion.converted,
            roth_conversion_capped=conversion.capped,
            at_withdrawal=plan.at_withdrawal,
            ira_withdrawal=plan.ira_withdrawal,
            roth_withdrawal=plan.roth_withdrawal,
            total_withdrawal=plan.total_withdrawal,
            at_harvest=plan.at_harvest,
            taxable_ss=taxes.taxable_ss,
            ordinary_income=taxes.ordinary_income,
            taxable_ordinary=taxes.taxable_ordinary,
            standard_deduction=constants["std_deduction"],
            capital_gains=taxes.capital_gains,
            federal_tax=taxes.federal_tax,
            ltcg_tax=taxes.ltcg_tax,
            niit=taxes.niit,
            state_tax_base=taxes.state.base_tax,
            property_tax_credit=taxes.state.property_tax_credit,
            state_tax=taxes.state.net_tax,
            total_tax=plan.total_tax,
            magi=taxes.magi,
            irmaa_magi=irmaa_magi,
            irmaa_bracket=irmaa.bracket,
            irmaa_part_b=irmaa.part_b,
            irmaa_part_d=irmaa.part_d,
            irmaa_total=irmaa.total,
            iterations=plan.iterations,
            converged=plan.converged,
            shortfall=plan.shortfall,
            surplus_cash=plan.surplus_cash,
            at_eoy=at_eoy,
            ira_eoy=ira_eoy,
            roth_eoy=roth_eoy,
            total_eoy=total_eoy,
            cost_basis_eoy=basis_eoy,
            roth_percent=roth_eoy / total_eoy if total_eoy > 0 else 0.0,
            heir_value=heirs.gross_value,
            heir_value_normalized=heirs.normalized_value,
            heir_strategy=heirs.strategy.value,
            heir_value_alternate=heirs.alternate_value,
            alternate_strategy=heirs.alternate_strategy.value,
            heir_details=heirs.details,
            cumulative_tax=next_state.cumulative_tax,
            cumulative_irmaa=next_state.cumulative_irmaa,
            cumulative_expenses=next_state.cumulative_expenses,
            cumulative_capital_gains=next_state.cumulative_capital_gains,
            at_liquidation_percent=(
                next_state.cumulative_at_withdrawals / p.after_tax_start if p.after_tax_start > 0 else 0.0
            ),
        )
        return record, next_state


# =============================================================================
# ENTRY POINTS
# =============================================================================

def simulate(params: SimulationParameters) -> SimulationResult:
    """Runs one projection. Identical parameters always give identical output."""
    return RetirementSimulator(params).run_simulation()


def run_projection_with_overrides(
    baseline: SimulationParameters, overrides: Optional[Mapping[str, Any]] = None
) -> SimulationResult:
    """Shallow-merges a partial override mapping onto the baseline and runs it."""
    return simulate(merge_overrides(baseline, overrides or {}))


def compare_scenarios(
    baseline: SimulationParameters, scenarios: Mapping[str, Mapping[str, Any]]
) -> Dict[str, SimulationResult]:
    """
    Runs the baseline plus one projection per named override set.
    The baseline result is keyed "base".
    """
    results = {"base": simulate(baseline)}
    for name, overrides in scenarios.items():
        if name == "base":
            raise ValueError("'base' is reserved for the baseline scenario")
        results[name] = run_projection_with_overrides(baseline, overrides)
    return results
