# engine/rmd_tables.py

"""
RMD and beneficiary divisor lookups:
- 2022+ Uniform Lifetime Table (owner RMDs)
- Single Life Expectancy Table (inherited IRAs when the owner died on or after
  the Required Beginning Date)
- SECURE 2.0 start age 73
"""

from dataclasses import dataclass
from typing import Dict

# =============================================================================
# FULL 2022+ IRS UNIFORM LIFETIME TABLE (AGES 72–120)
# =============================================================================
UNIFORM_LIFETIME_TABLE_2022: Dict[int, float] = {
    72: 27.4, 73: 26.5, 74: 25.5, 75: 24.6, 76: 23.7, 77: 22.9,
    78: 22.0, 79: 21.1, 80: 20.2, 81: 19.4, 82: 18.5, 83: 17.7,
    84: 16.8, 85: 16.0, 86: 15.2, 87: 14.4, 88: 13.7, 89: 12.9,
    90: 12.2, 91: 11.5, 92: 10.8, 93: 10.1, 94: 9.5, 95: 8.9,
    96: 8.4, 97: 7.8, 98: 7.3, 99: 6.8, 100: 6.4, 101: 6.0,
    102: 5.6, 103: 5.2, 104: 4.9, 105: 4.6, 106: 4.3, 107: 4.1,
    108: 3.9, 109: 3.7, 110: 3.5, 111: 3.4, 112: 3.3, 113: 3.1,
    114: 3.0, 115: 2.9, 116: 2.8, 117: 2.7, 118: 2.5, 119: 2.3,
    120: 2.0,
}

RMD_START_AGE = 73

# =============================================================================
# BENEFICIARY SINGLE LIFE EXPECTANCY TABLE (IRS Pub. 590-B, AGES 20–90)
# The first-year factor is looked up at the heir's age; subtract 1 each year after.
# =============================================================================
BENEFICIARY_SLE_TABLE: Dict[int, float] = {
    20: 63.0, 21: 62.1, 22: 61.1, 23: 60.1, 24: 59.2, 25: 58.2,
    26: 57.2, 27: 56.3, 28: 55.3, 29: 54.3, 30: 53.3, 31: 52.4,
    32: 51.4, 33: 50.4, 34: 49.4, 35: 48.5, 36: 47.5, 37: 46.5,
    38: 45.6, 39: 44.6, 40: 43.6, 41: 42.7, 42: 41.7, 43: 40.7,
    44: 39.8, 45: 38.8, 46: 37.9, 47: 36.9, 48: 35.9, 49: 35.0,
    50: 34.0, 51: 33.1, 52: 32.1, 53: 31.2, 54: 30.2, 55: 29.3,
    56: 28.3, 57: 27.4, 58: 26.5, 59: 25.5, 60: 24.6, 61: 23.7,
    62: 22.8, 63: 21.8, 64: 20.9, 65: 20.0, 66: 19.1, 67: 18.2,
    68: 17.4, 69: 16.5, 70: 15.6, 71: 14.8, 72: 13.9, 73: 13.1,
    74: 12.3, 75: 11.5, 76: 10.7, 77: 9.9, 78: 9.2, 79: 8.4,
    80: 7.7, 81: 7.0, 82: 6.3, 83: 5.7, 84: 5.1, 85: 4.5,
    86: 4.0, 87: 3.5, 88: 3.0, 89: 2.6, 90: 2.2,
}


@dataclass(frozen=True)
class RmdResult:
    required: float
    factor: float


# =============================================================================
# MAIN FUNCTIONS
# =============================================================================

def get_rmd_factor(age: int) -> float:
    """
    Returns the IRS Uniform Lifetime divisor for an owner's age, or 0.0 before
    the RMD start age. Ages past the end of the table use the last divisor.
    """
    if age < RMD_START_AGE:
        return 0.0

    oldest = max(UNIFORM_LIFETIME_TABLE_2022)
    if age > oldest:
        return UNIFORM_LIFETIME_TABLE_2022[oldest]
    return UNIFORM_LIFETIME_TABLE_2022[age]


def calculate_rmd(ira_balance: float, age: int) -> RmdResult:
    """Required minimum distribution for the year: balance / divisor."""
    factor = get_rmd_factor(age)
    if factor <= 0 or ira_balance <= 0:
        return RmdResult(required=0.0, factor=factor)
    return RmdResult(required=ira_balance / factor, factor=factor)


def get_beneficiary_sle_factor(age: int) -> float:
    """Single Life Expectancy factor, clamped to the table's 20–90 range."""
    youngest = min(BENEFICIARY_SLE_TABLE)
    oldest = max(BENEFICIARY_SLE_TABLE)
    return BENEFICIARY_SLE_TABLE[min(max(age, youngest), oldest)]


def owner_died_after_rbd(owner_death_year: int, owner_birth_year: int) -> bool:
    """True when the owner reached the Required Beginning Date age before death."""
    return owner_death_year - owner_birth_year >= RMD_START_AGE


__all__ = [
    "RMD_START_AGE",
    "RmdResult",
    "get_rmd_factor",
    "calculate_rmd",
    "get_beneficiary_sle_factor",
    "owner_died_after_rbd",
]
