# engine/summary.py

from typing import Sequence

from config import heir_assumptions
from models import Summary, YearRecord


def summarize(records: Sequence[YearRecord]) -> Summary:
    """
    Top-line statistics for a projection. A pure reduction: the same records
    always give the same summary.
    """
    if not records:
        raise ValueError("Cannot summarize an empty projection")

    first, last = records[0], records[-1]

    # Starting estate valued with the legacy single-heir rates
    legacy_rate = heir_assumptions.legacy_heir_fed_rate + heir_assumptions.legacy_heir_state_rate
    starting_heir_value = first.at_boy + first.roth_boy + first.ira_boy * (1 - legacy_rate)

    # First year wins a tie
    peak = max(records, key=lambda r: r.total_eoy)

    return Summary(
        start_year=first.year,
        end_year=last.year,
        years_modeled=len(records),
        starting_portfolio=first.total_boy,
        ending_portfolio=last.total_eoy,
        portfolio_growth=last.total_eoy - first.total_boy,
        starting_heir_value=starting_heir_value,
        ending_heir_value=last.heir_value,
        total_tax_paid=last.cumulative_tax,
        total_irmaa_paid=last.cumulative_irmaa,
        total_expenses=last.cumulative_expenses,
        final_roth_percent=last.roth_percent,
        peak_portfolio=peak.total_eoy,
        peak_year=peak.year,
        shortfall_years=tuple(r.year for r in records if r.shortfall > 0),
        non_converged_years=tuple(r.year for r in records if not r.converged),
        roth_conversions_requested=sum(r.roth_conversion_requested for r in records),
        roth_conversions_converted=sum(r.roth_conversion for r in records),
        capped_conversion_years=tuple(r.year for r in records if r.roth_conversion_capped),
    )
