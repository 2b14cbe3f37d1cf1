# models.py
import hashlib
import json
import logging
import numbers
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from config import expense_assumptions as expense_defaults
from config import heir_assumptions as heir_defaults
from config import market_assumptions as market_defaults
from utils.tax_utils import brackets_from_thresholds, irmaa_from_rows

logger = logging.getLogger(__name__)


class ParameterValidationError(ValueError):
    """Raised once, at the start of a run, for input that cannot be simulated."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}")


# =============================================================================
# Closed variants
# =============================================================================

class FilingStatus(str, Enum):
    MARRIED_FILING_JOINTLY = "married_filing_jointly"
    SINGLE = "single"


class ReturnMode(str, Enum):
    ACCOUNT = "account"
    BLENDED = "blended"

    @classmethod
    def parse(cls, value: Union[str, "ReturnMode"]) -> "ReturnMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ParameterValidationError("return_mode", f"unknown return mode {value!r}") from None


class HeirStrategy(str, Enum):
    LUMP_SUM_YEAR0 = "lump_sum_year0"
    RMD_BASED = "rmd_based"

    @classmethod
    def parse(cls, value: Union[str, "HeirStrategy"]) -> "HeirStrategy":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        # 'even' and 'year10' were earlier names for distribution-based valuation
        if key in ("even", "year10"):
            return cls.RMD_BASED
        try:
            return cls(key)
        except ValueError:
            raise ParameterValidationError(
                "heir_distribution_strategy", f"unknown strategy {value!r}"
            ) from None

    @property
    def alternate(self) -> "HeirStrategy":
        if self is HeirStrategy.RMD_BASED:
            return HeirStrategy.LUMP_SUM_YEAR0
        return HeirStrategy.RMD_BASED


# =============================================================================
# Heirs
# =============================================================================

@dataclass(frozen=True)
class HeirConfig:
    name: str
    state: str
    agi: float
    split_percent: float
    birth_year: int
    reinvestment_rate: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HeirConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ParameterValidationError("heirs", f"unknown heir fields {sorted(unknown)}")
        missing = known - set(data)
        if missing:
            raise ParameterValidationError("heirs", f"missing heir fields {sorted(missing)}")
        return cls(**dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


_WHOLE_NUMBER_FIELDS = (
    "start_year", "end_year", "birth_year", "tax_base_year",
    "max_iterations", "heir_normalization_years",
)
_OPTIONAL_YEAR_FIELDS = ("current_year", "survivor_death_year")


def _is_whole(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def default_heir(owner_birth_year: int) -> HeirConfig:
    """Single heir used when none are configured."""
    return HeirConfig(
        name=heir_defaults.default_heir_name,
        state=heir_defaults.default_heir_state,
        agi=heir_defaults.default_heir_agi,
        split_percent=100.0,
        birth_year=owner_birth_year + heir_defaults.default_heir_age_gap,
        reinvestment_rate=heir_defaults.default_heir_reinvestment_rate,
    )


# =============================================================================
# Simulation parameters
# =============================================================================

def _year_map(name: str, raw: Optional[Mapping]) -> Mapping[int, Any]:
    """Copies a year-keyed mapping into a read-only one with int keys."""
    out = {}
    for key, value in (raw or {}).items():
        try:
            year = int(key)
        except (TypeError, ValueError):
            raise ParameterValidationError(name, f"year key {key!r} is not an integer") from None
        out[year] = dict(value) if isinstance(value, Mapping) else value
    return MappingProxyType(out)


def _table_map(name: str, raw: Optional[Mapping]) -> Optional[Mapping[str, Tuple]]:
    if raw is None:
        return None
    tables = {}
    for status, rows in raw.items():
        try:
            key = FilingStatus(status).value
        except ValueError:
            raise ParameterValidationError(name, f"unknown filing status {status!r}") from None
        tables[key] = tuple(tuple(row) for row in rows)
    return MappingProxyType(tables)


@dataclass(frozen=True)
class SimulationParameters:
    """
    Everything one projection run needs. Flat on purpose: any subset of fields
    can be overridden with a shallow merge (see utils.input_adapter).
    """
    # Timeline
    start_year: int = expense_defaults.start_year
    end_year: int = expense_defaults.end_year
    birth_year: int = expense_defaults.birth_year
    current_year: Optional[int] = None
    survivor_death_year: Optional[int] = None
    survivor_ss_percent: float = expense_defaults.survivor_ss_percent
    survivor_expense_percent: float = expense_defaults.survivor_expense_percent

    # Starting balances
    after_tax_start: float = expense_defaults.after_tax_start
    after_tax_cost_basis: float = expense_defaults.after_tax_cost_basis
    ira_start: float = expense_defaults.ira_start
    roth_start: float = expense_defaults.roth_start

    # Returns
    return_mode: ReturnMode = ReturnMode(market_defaults.return_mode)
    at_return: float = market_defaults.at_return
    ira_return: float = market_defaults.ira_return
    roth_return: float = market_defaults.roth_return
    low_risk_target: float = market_defaults.low_risk_target
    mod_risk_target: float = market_defaults.mod_risk_target
    low_risk_return: float = market_defaults.low_risk_return
    mod_risk_return: float = market_defaults.mod_risk_return
    high_risk_return: float = market_defaults.high_risk_return

    # Income
    social_security_monthly: float = expense_defaults.social_security_monthly
    ss_cola: float = expense_defaults.ss_cola

    # Expenses
    annual_expenses: float = expense_defaults.annual_expenses
    expense_inflation: float = expense_defaults.expense_inflation
    expense_overrides: Mapping[int, float] = field(default_factory=dict)

    # Year-keyed requests
    roth_conversions: Mapping[int, Any] = field(default_factory=dict)
    at_harvest_overrides: Mapping[int, float] = field(default_factory=dict)

    # Taxes
    state_tax_rate: float = expense_defaults.state_tax_rate
    capital_gains_percent: float = expense_defaults.capital_gains_percent
    bracket_inflation: float = expense_defaults.bracket_inflation
    tax_base_year: int = expense_defaults.tax_base_year
    exempt_ss_from_tax: bool = False
    annual_property_tax: float = expense_defaults.annual_property_tax
    custom_federal_brackets: Optional[Mapping[str, Tuple]] = None
    custom_ltcg_brackets: Optional[Mapping[str, Tuple]] = None
    custom_irmaa_brackets: Optional[Mapping[str, Tuple]] = None
    magi_two_years_prior: float = expense_defaults.magi_two_years_prior
    magi_prior_year: float = expense_defaults.magi_prior_year

    # Valuation
    discount_rate: float = market_defaults.discount_rate
    heirs: Tuple[HeirConfig, ...] = ()
    heir_distribution_strategy: HeirStrategy = HeirStrategy(heir_defaults.heir_distribution_strategy)
    heir_normalization_years: int = heir_defaults.heir_normalization_years

    # Solver
    iterative_tax: bool = expense_defaults.iterative_tax
    max_iterations: int = expense_defaults.max_iterations
    convergence_tolerance: float = expense_defaults.convergence_tolerance

    def __post_init__(self):
        # Canonicalize plain-data inputs so every instance is read-only
        object.__setattr__(self, "return_mode", ReturnMode.parse(self.return_mode))
        object.__setattr__(
            self, "heir_distribution_strategy", HeirStrategy.parse(self.heir_distribution_strategy)
        )
        for name in ("expense_overrides", "roth_conversions", "at_harvest_overrides"):
            object.__setattr__(self, name, _year_map(name, getattr(self, name)))
        for name in ("custom_federal_brackets", "custom_ltcg_brackets", "custom_irmaa_brackets"):
            object.__setattr__(self, name, _table_map(name, getattr(self, name)))

        heirs = tuple(
            heir if isinstance(heir, HeirConfig) else HeirConfig.from_dict(heir)
            for heir in (self.heirs or ())
        )
        object.__setattr__(self, "heirs", heirs)

    # -------------------------------------------------------------------------
    # Plain-data round trip
    # -------------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationParameters":
        """
        Builds parameters from plain data (e.g. parsed JSON). Missing fields
        take the documented defaults; unknown fields are rejected.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ParameterValidationError(sorted(unknown)[0], "unknown parameter")

        values = dict(data)
        if "birth_year" not in values and values.get("current_year") is not None:
            values["birth_year"] = int(values["current_year"]) - expense_defaults.default_start_age
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif f.name == "heirs":
                value = [heir.to_dict() for heir in value]
            elif isinstance(value, Mapping):
                value = {
                    key: [list(row) for row in rows] if isinstance(rows, tuple) else
                    (dict(rows) if isinstance(rows, Mapping) else rows)
                    for key, rows in value.items()
                }
            out[f.name] = value
        return out

    def with_overrides(self, **changes: Any) -> "SimulationParameters":
        return replace(self, **changes)

    def fingerprint(self) -> str:
        """Stable content hash, usable as a memoization key by the host."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def resolved_heirs(self) -> Tuple[HeirConfig, ...]:
        return self.heirs or (default_heir(self.birth_year),)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------
    def validate(self) -> "SimulationParameters":
        """Rejects static input that would produce silently wrong numbers."""
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type in (int, float, "int", "float") and (
                isinstance(value, bool) or not isinstance(value, numbers.Real)
            ):
                raise ParameterValidationError(f.name, f"expected a number, got {value!r}")

        for name in _WHOLE_NUMBER_FIELDS:
            if not _is_whole(getattr(self, name)):
                raise ParameterValidationError(name, f"expected a whole number, got {getattr(self, name)!r}")
        for name in _OPTIONAL_YEAR_FIELDS:
            value = getattr(self, name)
            if value is not None and not _is_whole(value):
                raise ParameterValidationError(name, "must be a year or None")

        if self.start_year > self.end_year:
            raise ParameterValidationError("end_year", "must not be before start_year")

        for name in ("after_tax_start", "after_tax_cost_basis", "ira_start", "roth_start",
                     "social_security_monthly", "annual_expenses", "annual_property_tax",
                     "low_risk_target", "mod_risk_target",
                     "magi_two_years_prior", "magi_prior_year"):
            if getattr(self, name) < 0:
                raise ParameterValidationError(name, "must not be negative")

        for name in ("at_return", "ira_return", "roth_return", "low_risk_return",
                     "mod_risk_return", "high_risk_return", "discount_rate",
                     "expense_inflation", "ss_cola", "bracket_inflation"):
            if getattr(self, name) <= -1:
                raise ParameterValidationError(name, "rate must be greater than -100%")

        for name in ("survivor_ss_percent", "survivor_expense_percent",
                     "capital_gains_percent", "state_tax_rate"):
            if not 0 <= getattr(self, name) <= 1:
                raise ParameterValidationError(name, "must be between 0 and 1")

        if self.max_iterations < 1:
            raise ParameterValidationError("max_iterations", "must be at least 1")
        if self.convergence_tolerance <= 0:
            raise ParameterValidationError("convergence_tolerance", "must be positive")
        if self.heir_normalization_years < 1:
            raise ParameterValidationError("heir_normalization_years", "must be at least 1")

        for name in ("expense_overrides", "at_harvest_overrides"):
            for year, amount in getattr(self, name).items():
                if not isinstance(amount, numbers.Real) or amount < 0:
                    raise ParameterValidationError(name, f"amount for {year} must be a non-negative number")
        for year, request in self.roth_conversions.items():
            amount = request.get("amount") if isinstance(request, Mapping) else request
            if not isinstance(amount, numbers.Real) or amount < 0:
                raise ParameterValidationError("roth_conversions", f"amount for {year} must be a non-negative number")

        for name, convert in (("custom_federal_brackets", brackets_from_thresholds),
                              ("custom_ltcg_brackets", brackets_from_thresholds),
                              ("custom_irmaa_brackets", irmaa_from_rows)):
            for status, rows in (getattr(self, name) or {}).items():
                try:
                    convert(rows)
                except (TypeError, ValueError) as exc:
                    raise ParameterValidationError(name, f"{status}: {exc}") from exc

        for heir in self.heirs:
            if not isinstance(heir.name, str) or not isinstance(heir.state, str):
                raise ParameterValidationError("heirs", f"{heir.name!r}: name and state must be strings")
            for attr in ("agi", "split_percent", "reinvestment_rate"):
                if not _is_real(getattr(heir, attr)):
                    raise ParameterValidationError("heirs", f"{heir.name}: {attr} must be a number")
            if not _is_whole(heir.birth_year):
                raise ParameterValidationError("heirs", f"{heir.name}: birth_year must be a year")
            if heir.split_percent < 0:
                raise ParameterValidationError("heirs", f"{heir.name}: split_percent must not be negative")
            if heir.reinvestment_rate <= -1:
                raise ParameterValidationError("heirs", f"{heir.name}: reinvestment_rate must be greater than -100%")
        total_split = sum(heir.split_percent for heir in self.heirs)
        if self.heirs and abs(total_split - 100.0) > 1e-6:
            logger.warning(
                f"Heir splits sum to {total_split:.2f}%, not 100%. "
                "Each heir's share is applied as given."
            )
        return self


# =============================================================================
# Engine output
# =============================================================================

@dataclass(frozen=True)
class BandSplit:
    low: float
    mod: float
    high: float

    @property
    def total(self) -> float:
        return self.low + self.mod + self.high


@dataclass(frozen=True)
class RiskAllocation:
    portfolio: BandSplit
    at: BandSplit
    ira: BandSplit
    roth: BandSplit


@dataclass(frozen=True)
class HeirDistribution:
    year_offset: int
    distribution: float
    tax: float
    net: float
    future_value: float
    present_value: float


@dataclass(frozen=True)
class HeirDetail:
    name: str
    split: float
    federal_rate: float
    state_rate: float
    combined_rate: float
    gross_inheritance: float
    tax_on_ira: float
    net_value: float
    normalized_value: float
    distributions: Tuple[HeirDistribution, ...] = ()


@dataclass(frozen=True)
class YearRecord:
    # Identifiers
    year: int
    age: int
    years_from_start: int
    is_survivor: bool
    filing_status: str

    # Beginning of year
    at_boy: float
    ira_boy: float
    roth_boy: float
    total_boy: float
    cost_basis_boy: float

    # Returns
    effective_at_return: float
    effective_ira_return: float
    effective_roth_return: float
    risk_allocation: Optional[RiskAllocation]
    at_return: float
    ira_return: float
    roth_return: float

    # Income & expenses
    ss_annual: float
    expenses: float

    # RMD and conversion
    rmd_factor: float
    rmd_required: float
    roth_conversion_requested: float
    roth_conversion: float
    roth_conversion_capped: bool

    # Withdrawals
    at_withdrawal: float
    ira_withdrawal: float
    roth_withdrawal: float
    total_withdrawal: float
    at_harvest: float

    # Taxes
    taxable_ss: float
    ordinary_income: float
    taxable_ordinary: float
    standard_deduction: float
    capital_gains: float
    federal_tax: float
    ltcg_tax: float
    niit: float
    state_tax_base: float
    property_tax_credit: float
    state_tax: float
    total_tax: float
    magi: float

    # Medicare surcharge
    irmaa_magi: float
    irmaa_bracket: int
    irmaa_part_b: float
    irmaa_part_d: float
    irmaa_total: float

    # Solver
    iterations: int
    converged: bool
    shortfall: float
    surplus_cash: float

    # End of year
    at_eoy: float
    ira_eoy: float
    roth_eoy: float
    total_eoy: float
    cost_basis_eoy: float
    roth_percent: float

    # Heirs
    heir_value: float
    heir_value_normalized: float
    heir_strategy: str
    heir_value_alternate: float
    alternate_strategy: str
    heir_details: Tuple[HeirDetail, ...]

    # Cumulative
    cumulative_tax: float
    cumulative_irmaa: float
    cumulative_expenses: float
    cumulative_capital_gains: float
    at_liquidation_percent: float


@dataclass(frozen=True)
class Summary:
    start_year: int
    end_year: int
    years_modeled: int
    starting_portfolio: float
    ending_portfolio: float
    portfolio_growth: float
    starting_heir_value: float
    ending_heir_value: float
    total_tax_paid: float
    total_irmaa_paid: float
    total_expenses: float
    final_roth_percent: float
    peak_portfolio: float
    peak_year: int
    shortfall_years: Tuple[int, ...]
    non_converged_years: Tuple[int, ...]
    roth_conversions_requested: float
    roth_conversions_converted: float
    capped_conversion_years: Tuple[int, ...]


@dataclass(frozen=True)
class SimulationResult:
    years: Tuple[YearRecord, ...]
    summary: Summary
