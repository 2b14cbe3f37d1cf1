"""Shared fixtures for the projection test suite."""

import pytest

from models import HeirConfig, SimulationParameters
from utils.tax_utils import get_indexed_federal_constants


@pytest.fixture
def base_params():
    """Documented defaults: 2025-2054, owner aged 65 in 2025."""
    return SimulationParameters()


@pytest.fixture
def no_growth_params():
    """Flat returns of zero, no inflation, and Social Security exactly covering expenses."""
    return SimulationParameters(
        start_year=2025,
        end_year=2040,
        birth_year=1970,
        return_mode="account",
        at_return=0.0,
        ira_return=0.0,
        roth_return=0.0,
        social_security_monthly=3_000,
        ss_cola=0.0,
        annual_expenses=36_000,
        expense_inflation=0.0,
        magi_two_years_prior=0,
        magi_prior_year=0,
    )


@pytest.fixture
def mfj_constants_2024():
    return get_indexed_federal_constants(2024, 0.0, "married_filing_jointly")


@pytest.fixture
def two_heirs():
    return (
        HeirConfig(name="Alex", state="IL", agi=150_000, split_percent=60,
                   birth_year=1990, reinvestment_rate=0.05),
        HeirConfig(name="Sam", state="TX", agi=60_000, split_percent=40,
                   birth_year=1993, reinvestment_rate=0.07),
    )
