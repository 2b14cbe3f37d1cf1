"""Tests for SimulationParameters: plain-data round trip, overrides and validation."""

import json
import logging

import pytest

from models import (
    HeirConfig,
    HeirStrategy,
    ParameterValidationError,
    ReturnMode,
    SimulationParameters,
)
from engine.simulator import simulate
from utils.input_adapter import merge_overrides


@pytest.fixture
def rich_params(two_heirs):
    return SimulationParameters(
        survivor_death_year=2040,
        return_mode="account",
        expense_overrides={2030: 90_000},
        roth_conversions={2026: 50_000, 2027: {"amount": 25_000, "is_pv": True}},
        at_harvest_overrides={2028: 10_000},
        custom_federal_brackets={"single": [(0.10, 0), (0.30, 100_000)]},
        heirs=two_heirs,
        heir_distribution_strategy="lump_sum_year0",
    )


class TestPlainDataRoundTrip:

    def test_round_trip_through_json(self, rich_params):
        data = json.loads(json.dumps(rich_params.to_dict()))
        restored = SimulationParameters.from_dict(data)
        assert restored.to_dict() == rich_params.to_dict()
        assert restored == rich_params

    def test_year_keys_become_integers(self):
        params = SimulationParameters.from_dict({"roth_conversions": {"2030": 40_000}})
        assert params.roth_conversions[2030] == 40_000

    def test_enums_serialize_as_strings(self, rich_params):
        data = rich_params.to_dict()
        assert data["return_mode"] == "account"
        assert data["heir_distribution_strategy"] == "lump_sum_year0"
        assert rich_params.return_mode is ReturnMode.ACCOUNT

    def test_missing_fields_take_defaults(self):
        assert SimulationParameters.from_dict({}) == SimulationParameters()

    def test_unknown_key_rejected(self):
        with pytest.raises(ParameterValidationError) as exc:
            SimulationParameters.from_dict({"annual_expense": 1})
        assert exc.value.field_name == "annual_expense"

    def test_birth_year_derived_from_current_year(self):
        params = SimulationParameters.from_dict({"current_year": 2026})
        assert params.birth_year == 2026 - 65

    def test_heirs_from_dicts(self):
        params = SimulationParameters.from_dict({"heirs": [{
            "name": "Kim", "state": "CA", "agi": 90_000, "split_percent": 100,
            "birth_year": 1995, "reinvestment_rate": 0.05,
        }]})
        assert isinstance(params.heirs[0], HeirConfig)

    def test_year_maps_are_read_only(self, rich_params):
        with pytest.raises(TypeError):
            rich_params.expense_overrides[2031] = 1


class TestFingerprint:

    def test_stable(self, rich_params):
        again = SimulationParameters.from_dict(rich_params.to_dict())
        assert again.fingerprint() == rich_params.fingerprint()

    def test_changes_with_content(self, rich_params):
        assert rich_params.with_overrides(discount_rate=0.04).fingerprint() != rich_params.fingerprint()


class TestOverrides:

    def test_shallow_merge(self, base_params):
        merged = merge_overrides(base_params, {"annual_expenses": 99_000, "return_mode": "account"})
        assert merged.annual_expenses == 99_000
        assert merged.return_mode is ReturnMode.ACCOUNT
        assert merged.ira_start == base_params.ira_start
        assert base_params.annual_expenses == 120_000

    def test_empty_overrides_return_baseline(self, base_params):
        assert merge_overrides(base_params, {}) is base_params


class TestValidation:

    @pytest.mark.parametrize("changes,field_name", [
        ({"ira_start": -1}, "ira_start"),
        ({"after_tax_cost_basis": -5}, "after_tax_cost_basis"),
        ({"annual_expenses": -1}, "annual_expenses"),
        ({"discount_rate": -1.0}, "discount_rate"),
        ({"max_iterations": 0}, "max_iterations"),
        ({"convergence_tolerance": 0}, "convergence_tolerance"),
        ({"survivor_ss_percent": 1.5}, "survivor_ss_percent"),
        ({"heir_normalization_years": 0}, "heir_normalization_years"),
        ({"annual_expenses": "lots"}, "annual_expenses"),
        ({"roth_conversions": {2030: -10}}, "roth_conversions"),
        ({"max_iterations": 5.0}, "max_iterations"),
        ({"start_year": 2025.0}, "start_year"),
        ({"end_year": 2054.5}, "end_year"),
        ({"birth_year": True}, "birth_year"),
        ({"tax_base_year": 2024.0}, "tax_base_year"),
        ({"heir_normalization_years": 10.0}, "heir_normalization_years"),
        ({"survivor_death_year": True}, "survivor_death_year"),
        ({"survivor_death_year": 2040.0}, "survivor_death_year"),
    ])
    def test_rejected(self, base_params, changes, field_name):
        with pytest.raises(ParameterValidationError) as exc:
            base_params.with_overrides(**changes).validate()
        assert exc.value.field_name == field_name

    def test_non_monotonic_custom_brackets(self, base_params):
        params = base_params.with_overrides(
            custom_federal_brackets={"married_filing_jointly": [(0.10, 0), (0.20, 50_000), (0.15, 90_000)]}
        )
        with pytest.raises(ParameterValidationError) as exc:
            params.validate()
        assert exc.value.field_name == "custom_federal_brackets"

    def test_unknown_filing_status_in_table(self, base_params):
        with pytest.raises(ParameterValidationError):
            base_params.with_overrides(custom_ltcg_brackets={"head_of_household": [(0.0, 0)]})

    def test_unknown_return_mode(self):
        with pytest.raises(ParameterValidationError) as exc:
            SimulationParameters(return_mode="stochastic")
        assert exc.value.field_name == "return_mode"

    def test_legacy_strategy_accepted(self):
        assert SimulationParameters(heir_distribution_strategy="year10").heir_distribution_strategy \
            is HeirStrategy.RMD_BASED

    def test_negative_heir_split(self, base_params):
        bad = HeirConfig(name="X", state="IL", agi=0, split_percent=-10, birth_year=1990, reinvestment_rate=0.05)
        with pytest.raises(ParameterValidationError):
            base_params.with_overrides(heirs=(bad,)).validate()

    def test_split_not_summing_to_100_warns(self, base_params, two_heirs, caplog):
        params = base_params.with_overrides(heirs=(two_heirs[0],))
        with caplog.at_level(logging.WARNING, logger="models"):
            params.validate()
        assert "60.00%" in caplog.text

    def test_defaults_are_valid(self, base_params):
        assert base_params.validate() is base_params


class TestHeirValidation:

    @pytest.fixture
    def heir(self):
        return {
            "name": "Kim", "state": "CA", "agi": 90_000, "split_percent": 100,
            "birth_year": 1995, "reinvestment_rate": 0.05,
        }

    @pytest.mark.parametrize("key,value", [
        ("agi", "lots"),
        ("agi", None),
        ("split_percent", "half"),
        ("split_percent", True),
        ("reinvestment_rate", None),
        ("birth_year", None),
        ("birth_year", 1995.0),
        ("birth_year", True),
        ("name", 7),
        ("state", None),
    ])
    def test_bad_heir_field_rejected(self, heir, key, value):
        heir[key] = value
        params = SimulationParameters.from_dict({"heirs": [heir]})
        with pytest.raises(ParameterValidationError) as exc:
            params.validate()
        assert exc.value.field_name == "heirs"

    def test_bad_heir_rejected_before_run(self, heir):
        heir["birth_year"] = None
        with pytest.raises(ParameterValidationError):
            simulate(SimulationParameters.from_dict({"heirs": [heir]}))

    def test_valid_heir_accepted(self, heir):
        params = SimulationParameters.from_dict({"heirs": [heir]})
        assert params.validate() is params
