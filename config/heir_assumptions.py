# config/heir_assumptions.py
# Defaults for valuing what heirs net from the estate

heir_distribution_strategy = "rmd_based"   # or 'lump_sum_year0'
heir_normalization_years = 10

# Used when no heirs are configured: a single heir taxed at the top
# federal rate plus the Illinois flat rate.
default_heir_name = "Heir"
default_heir_state = "IL"
default_heir_agi = 1_000_000
default_heir_age_gap = 30        # heir born this many years after the owner
default_heir_reinvestment_rate = 0.06

legacy_heir_fed_rate = 0.37
legacy_heir_state_rate = 0.0495

# Post-death distribution window for non-spouse beneficiaries
ten_year_rule_years = 10
