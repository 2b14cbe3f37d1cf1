# config/expense_assumptions.py
# These are **reasonable defaults** — callers override any of them per run

# Timeline
start_year = 2025
end_year = 2054
birth_year = 1960                # age 65 in 2025
default_start_age = 65           # used to derive birth_year from current_year

# Starting balances
after_tax_start = 1_500_000
after_tax_cost_basis = 500_000
ira_start = 3_000_000
roth_start = 2_000_000

# Social Security (combined household, monthly at start year)
social_security_monthly = 4_000
ss_cola = 0.025

# Spending
annual_expenses = 120_000
expense_inflation = 0.03

# Survivor scenario
survivor_ss_percent = 0.67       # survivor keeps the larger of the two benefits
survivor_expense_percent = 0.70

# Taxes
state_tax_rate = 0.0495          # Illinois flat rate
capital_gains_percent = 0.75     # share of an After-Tax withdrawal that is gain vs basis
bracket_inflation = 0.03
tax_base_year = 2024
annual_property_tax = 0          # disabled unless the caller enters an amount

# Medicare
medicare_start_age = 65

# MAGI seed for the 2-year IRMAA lookback (start_year - 2, start_year - 1)
magi_two_years_prior = 0
magi_prior_year = 0

# Withdrawal/tax solver
iterative_tax = True
max_iterations = 5
convergence_tolerance = 100.0    # dollars
