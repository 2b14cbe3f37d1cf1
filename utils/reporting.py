# utils/reporting.py
"""
Tabular views of a projection for presentation and export layers.

Records never carry present values. This module is the one place a nominal
figure is divided by (1 + discount_rate) ** years_from_start.
"""
from dataclasses import fields
from typing import Iterable, Optional, Sequence

import pandas as pd

from models import YearRecord

# Nested structures are exposed through their own views
NESTED_FIELDS = {"risk_allocation", "heir_details"}

# Scalar fields that are not dollar amounts
NON_DOLLAR_FIELDS = {
    "year", "age", "years_from_start", "is_survivor", "filing_status",
    "effective_at_return", "effective_ira_return", "effective_roth_return",
    "rmd_factor", "roth_conversion_capped", "irmaa_bracket",
    "iterations", "converged", "roth_percent",
    "heir_strategy", "alternate_strategy", "at_liquidation_percent",
}

DOLLAR_COLUMNS = [
    f.name for f in fields(YearRecord)
    if f.name not in NESTED_FIELDS and f.name not in NON_DOLLAR_FIELDS
]


def apply_pv(value: float, discount_rate: float, years_from_start: int) -> float:
    """Today's-dollar equivalent of a nominal amount."""
    return value / (1 + discount_rate) ** years_from_start


def records_to_frame(
    records: Sequence[YearRecord],
    present_value: bool = False,
    discount_rate: Optional[float] = None,
) -> pd.DataFrame:
    """
    One row per year, one column per scalar record field, indexed by year.
    In present-value mode every dollar column is discounted exactly once.
    """
    columns = [f.name for f in fields(YearRecord) if f.name not in NESTED_FIELDS]
    df = pd.DataFrame(
        [{name: getattr(r, name) for name in columns} for r in records],
        columns=columns,
    )

    if present_value:
        if discount_rate is None:
            raise ValueError("discount_rate is required for a present-value view")
        df[DOLLAR_COLUMNS] = df[DOLLAR_COLUMNS].astype(float).apply(
            lambda col: apply_pv(col, discount_rate, df["years_from_start"])
        )

    return df.set_index("year", drop=False)


def heir_detail_frame(records: Iterable[YearRecord]) -> pd.DataFrame:
    """Per-heir breakdown for each year, long format."""
    rows = []
    for r in records:
        for detail in r.heir_details:
            rows.append({
                "year": r.year,
                "name": detail.name,
                "split": detail.split,
                "combined_rate": detail.combined_rate,
                "gross_inheritance": detail.gross_inheritance,
                "tax_on_ira": detail.tax_on_ira,
                "net_value": detail.net_value,
                "normalized_value": detail.normalized_value,
            })
    return pd.DataFrame(rows)
