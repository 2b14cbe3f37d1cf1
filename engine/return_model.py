# engine/return_model.py

"""
Deterministic return assumptions per account.

In account mode each account earns its own flat rate. In blended mode the
portfolio is cut into low/moderate/high risk bands by two dollar targets and
each account earns the weighted return of the bands it holds.
"""

from dataclasses import dataclass
from typing import Optional

from models import BandSplit, ReturnMode, RiskAllocation, SimulationParameters


@dataclass(frozen=True)
class EffectiveReturns:
    at: float
    ira: float
    roth: float
    allocation: Optional[RiskAllocation] = None


def _fill(balance: float, low_room: float, mod_room: float):
    low = min(balance, low_room)
    mod = min(balance - low, mod_room)
    return BandSplit(low=low, mod=mod, high=balance - low - mod)


def calculate_risk_allocation(
    at_balance: float,
    ira_balance: float,
    roth_balance: float,
    low_target: float,
    mod_target: float,
) -> RiskAllocation:
    """
    Splits the portfolio into risk bands and fills them in account order
    After-Tax -> IRA -> Roth, so the most liquid money takes the low-risk
    band and Roth absorbs the high-risk remainder.
    """
    total = at_balance + ira_balance + roth_balance
    portfolio = BandSplit(
        low=min(total, low_target),
        mod=min(max(0.0, total - low_target), mod_target),
        high=max(0.0, total - low_target - mod_target),
    )

    low_room, mod_room = portfolio.low, portfolio.mod
    at = _fill(at_balance, low_room, mod_room)
    low_room -= at.low
    mod_room -= at.mod

    ira = _fill(ira_balance, low_room, mod_room)
    low_room -= ira.low
    mod_room -= ira.mod

    roth = _fill(roth_balance, low_room, mod_room)
    return RiskAllocation(portfolio=portfolio, at=at, ira=ira, roth=roth)


def calculate_blended_return(
    allocation: BandSplit, low_return: float, mod_return: float, high_return: float
) -> float:
    """Band-weighted return. An empty allocation earns nothing."""
    total = allocation.total
    if total <= 0:
        return 0.0
    return (
        allocation.low * low_return
        + allocation.mod * mod_return
        + allocation.high * high_return
    ) / total


def effective_returns(
    params: SimulationParameters, at_balance: float, ira_balance: float, roth_balance: float
) -> EffectiveReturns:
    """Per-account return for the year, based on beginning-of-year balances."""
    mode = params.return_mode
    if mode is ReturnMode.ACCOUNT:
        return EffectiveReturns(at=params.at_return, ira=params.ira_return, roth=params.roth_return)

    if mode is ReturnMode.BLENDED:
        allocation = calculate_risk_allocation(
            at_balance, ira_balance, roth_balance,
            params.low_risk_target, params.mod_risk_target,
        )
        bands = (params.low_risk_return, params.mod_risk_return, params.high_risk_return)
        return EffectiveReturns(
            at=calculate_blended_return(allocation.at, *bands),
            ira=calculate_blended_return(allocation.ira, *bands),
            roth=calculate_blended_return(allocation.roth, *bands),
            allocation=allocation,
        )

    raise ValueError(f"Unsupported return mode: {mode!r}")
