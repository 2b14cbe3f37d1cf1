import pytest

from engine.simulator import simulate
from utils.reporting import DOLLAR_COLUMNS, apply_pv, heir_detail_frame, records_to_frame


@pytest.fixture
def years(base_params):
    return simulate(base_params.with_overrides(end_year=2030)).years


class TestRecordsToFrame:

    def test_one_row_per_year(self, years):
        df = records_to_frame(years)
        assert list(df.index) == [2025, 2026, 2027, 2028, 2029, 2030]
        assert "heir_details" not in df.columns
        assert df.loc[2027, "total_eoy"] == years[2].total_eoy

    def test_present_value_divides_once(self, years):
        df = records_to_frame(years, present_value=True, discount_rate=0.03)
        record = years[3]
        assert df.loc[2028, "total_eoy"] == pytest.approx(record.total_eoy / 1.03 ** 3)
        assert df.loc[2028, "heir_value"] == pytest.approx(record.heir_value / 1.03 ** 3)

    def test_rates_not_discounted(self, years):
        df = records_to_frame(years, present_value=True, discount_rate=0.03)
        assert df.loc[2028, "roth_percent"] == years[3].roth_percent
        assert df.loc[2028, "age"] == years[3].age

    def test_first_year_unchanged(self, years):
        df = records_to_frame(years, present_value=True, discount_rate=0.03)
        assert df.loc[2025, "total_eoy"] == pytest.approx(years[0].total_eoy)

    def test_requires_discount_rate(self, years):
        with pytest.raises(ValueError):
            records_to_frame(years, present_value=True)

    def test_dollar_columns_exclude_flags(self):
        assert "total_eoy" in DOLLAR_COLUMNS
        assert "converged" not in DOLLAR_COLUMNS
        assert "years_from_start" not in DOLLAR_COLUMNS


def test_apply_pv():
    assert apply_pv(1_000, 0.10, 2) == pytest.approx(1_000 / 1.21)
    assert apply_pv(1_000, 0.10, 0) == 1_000


def test_heir_detail_frame(years):
    df = heir_detail_frame(years)
    assert len(df) == len(years)
    assert set(df["name"]) == {"Heir"}
