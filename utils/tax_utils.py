# utils/tax_utils.py
import numpy as np
from typing import List, Tuple, Dict, Literal, Mapping, Optional, Sequence, Union

# Define the acceptable set of filing statuses for type hinting
TaxFilingStatus = Literal["married_filing_jointly", "single"]
BASE_YEAR = 2024 # Base year for the ordinary/LTCG brackets and deductions
IRMAA_BASE_YEAR = 2026 # IRMAA table below is the published 2026 schedule

Bracket = Tuple[float, float, float]          # (low, high, rate)
IrmaaTier = Tuple[float, float, float]        # (threshold, part_b_addon, part_d_addon) monthly

# =============================================================================
# 1. Federal Ordinary Income Tax Brackets (2024)
# =============================================================================

ORDINARY_BRACKETS_2024: Dict[TaxFilingStatus, List[Bracket]] = {
    "married_filing_jointly": [
        (0, 23_200, 0.10), (23_200, 94_300, 0.12), (94_300, 201_050, 0.22),
        (201_050, 383_900, 0.24), (383_900, 487_450, 0.32), (487_450, 731_200, 0.35),
        (731_200, np.inf, 0.37),
    ],
    "single": [
        (0, 11_600, 0.10), (11_600, 47_150, 0.12), (47_150, 100_525, 0.22),
        (100_525, 191_950, 0.24), (191_950, 243_725, 0.32), (243_725, 609_350, 0.35),
        (609_350, np.inf, 0.37),
    ],
}

# =============================================================================
# 2. Federal Preferential Income Tax Brackets (Long-Term Capital Gains)
# =============================================================================
CAPGAINS_BRACKETS_2024: Dict[TaxFilingStatus, List[Bracket]] = {
    "married_filing_jointly": [(0, 94_050, 0.0), (94_050, 583_750, 0.15), (583_750, np.inf, 0.20)],
    "single": [(0, 47_025, 0.0), (47_025, 518_900, 0.15), (518_900, np.inf, 0.20)],
}

# =============================================================================
# 3. Federal Deduction and Surtax Thresholds
# =============================================================================
STANDARD_DEDUCTION_2024: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 29_200,
    "single": 14_600,
}

# Additional standard deduction once 65+ (both spouses for MFJ)
SENIOR_BONUS_2024: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 3_100,
    "single": 1_950,
}

# NIIT thresholds are statutory and NOT indexed
NIIT_RATE = 0.038
NIIT_THRESHOLD: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 250_000,
    "single": 200_000,
}

# =============================================================================
# 4. Medicare IRMAA (monthly Part B / Part D add-ons above the standard premium)
# Tier is chosen from MAGI two years prior.
# =============================================================================
IRMAA_BRACKETS_2026: Dict[TaxFilingStatus, List[IrmaaTier]] = {
    "married_filing_jointly": [
        (0, 0.00, 0.00),
        (218_000, 81.20, 14.50),
        (274_000, 202.90, 37.40),
        (342_000, 324.60, 60.30),
        (410_000, 446.30, 83.20),
        (750_000, 487.00, 91.00),
    ],
    "single": [
        (0, 0.00, 0.00),
        (109_000, 81.20, 14.50),
        (137_000, 202.90, 37.40),
        (171_000, 324.60, 60.30),
        (205_000, 446.30, 83.20),
        (500_000, 487.00, 91.00),
    ],
}

# =============================================================================
# 5. Fixed / Non-Indexed Federal Tax Parameters
# =============================================================================

# Social Security "combined income" tiers (Statutory and NOT indexed)
SS_TAX_THRESHOLDS: Dict[TaxFilingStatus, Tuple[float, float]] = {
    "married_filing_jointly": (32_000, 44_000),
    "single": (25_000, 34_000),
}

# =============================================================================
# 6. State Tax Parameters
# =============================================================================

# ILLINOIS: flat rate on investment income only (retirement income exempt)
IL_TAX_RATE = 0.0495
IL_PROPERTY_TAX_CREDIT_RATE = 0.05
IL_PROPERTY_TAX_CREDIT_AGI_LIMIT: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 500_000,
    "single": 250_000,
}

# Approximate top marginal rates, used only to value what heirs keep
STATE_TAX_RATES: Dict[str, float] = {
    # No income tax
    "AK": 0.0, "FL": 0.0, "NV": 0.0, "NH": 0.0, "SD": 0.0, "TN": 0.0, "TX": 0.0, "WA": 0.0, "WY": 0.0,
    # Flat tax states
    "IL": 0.0495, "CO": 0.044, "IN": 0.0305, "KY": 0.04, "MA": 0.09, "MI": 0.0425,
    "NC": 0.0475, "PA": 0.0307, "UT": 0.0465,
    # Progressive states (top marginal)
    "CA": 0.133, "NY": 0.109, "NJ": 0.1075, "OR": 0.099, "MN": 0.0985, "VT": 0.0875,
    "WI": 0.0765, "HI": 0.11, "SC": 0.07, "MT": 0.0675, "AZ": 0.045, "GA": 0.055,
    "VA": 0.0575, "OH": 0.04, "MD": 0.0575, "DC": 0.105,
}
DEFAULT_STATE_TAX_RATE = 0.05


# =============================================================================
# 7. Table conversion and validation
# =============================================================================

def brackets_from_thresholds(pairs: Sequence[Sequence[float]]) -> List[Bracket]:
    """
    Converts caller-supplied ``(rate, threshold)`` pairs into the internal
    ``(low, high, rate)`` form. Raises ValueError unless both rates and
    thresholds are strictly increasing.
    """
    if not pairs:
        raise ValueError("bracket table is empty")

    rates = [float(rate) for rate, _ in pairs]
    thresholds = [float(threshold) for _, threshold in pairs]

    if thresholds[0] < 0:
        raise ValueError("bracket thresholds must be non-negative")
    for i in range(1, len(pairs)):
        if thresholds[i] <= thresholds[i - 1]:
            raise ValueError(f"bracket thresholds must be strictly increasing (position {i})")
        if rates[i] <= rates[i - 1]:
            raise ValueError(f"bracket rates must be strictly increasing (position {i})")

    uppers = thresholds[1:] + [np.inf]
    return [(low, high, rate) for low, high, rate in zip(thresholds, uppers, rates)]


def irmaa_from_rows(rows: Sequence[Sequence[float]]) -> List[IrmaaTier]:
    """Validates an IRMAA table of ``(threshold, part_b, part_d)`` rows."""
    if not rows:
        raise ValueError("IRMAA table is empty")

    tiers = [(float(t), float(b), float(d)) for t, b, d in rows]
    for i in range(1, len(tiers)):
        if tiers[i][0] <= tiers[i - 1][0]:
            raise ValueError(f"IRMAA thresholds must be strictly increasing (position {i})")
    return tiers


# =============================================================================
# 8. Inflation indexer
# =============================================================================

def inflation_factor(rate: float, year: int, base_year: int = BASE_YEAR) -> float:
    """Compound growth from base_year to year. 1.0 on or before the base year."""
    years = year - base_year
    if years <= 0:
        return 1.0
    return (1 + rate) ** years


def inflate_brackets(brackets: Sequence[Bracket], factor: float) -> List[Bracket]:
    """Scales bracket bounds by factor. Rates never change."""
    indexed = []
    for low, high, rate in brackets:
        inflated_low = low * factor
        inflated_high = high * factor if np.isfinite(high) else np.inf
        indexed.append((inflated_low, inflated_high, rate))
    return indexed


def inflate_irmaa(tiers: Sequence[IrmaaTier], factor: float) -> List[IrmaaTier]:
    """Scales IRMAA thresholds by factor. Monthly add-ons stay fixed."""
    return [(threshold * factor, part_b, part_d) for threshold, part_b, part_d in tiers]


# =============================================================================
# 9. Core Utility Function (Returns all indexed Federal values)
# =============================================================================

def get_indexed_federal_constants(
    year: int,
    bracket_inflation: float,
    filing_status: TaxFilingStatus,
    age: Optional[int] = None,
    base_year: int = BASE_YEAR,
    custom_ordinary: Optional[Mapping[str, List[Bracket]]] = None,
    custom_capgains: Optional[Mapping[str, List[Bracket]]] = None,
    custom_irmaa: Optional[Mapping[str, List[IrmaaTier]]] = None,
) -> Dict[str, Union[float, List]]:
    """
    Returns a dictionary of all Federal tax brackets, deductions, and thresholds
    indexed to the simulation year.

    Custom tables (already converted to internal form) replace the built-in
    table for the filing statuses they provide.
    """
    factor = inflation_factor(bracket_inflation, year, base_year)
    irmaa_factor = inflation_factor(bracket_inflation, year, max(base_year, IRMAA_BASE_YEAR))

    # Get Base Data
    base_ord = (custom_ordinary or {}).get(filing_status, ORDINARY_BRACKETS_2024[filing_status])
    base_cg = (custom_capgains or {}).get(filing_status, CAPGAINS_BRACKETS_2024[filing_status])
    base_irmaa = (custom_irmaa or {}).get(filing_status, IRMAA_BRACKETS_2026[filing_status])

    deduction = STANDARD_DEDUCTION_2024[filing_status]
    if age is not None and age >= 65:
        deduction += SENIOR_BONUS_2024[filing_status]

    return {
        "ord_list": inflate_brackets(base_ord, factor),
        "cg_list": inflate_brackets(base_cg, factor),
        "std_deduction": deduction * factor,
        "irmaa_list": inflate_irmaa(base_irmaa, irmaa_factor),
        "inflation_factor": factor,
    }
