# =============================================================================
# Return assumptions used in projections
# =============================================================================
# Returns are deterministic inputs. Two modes are supported:
#   'account' - one flat rate per account
#   'blended' - portfolio is split into low / moderate / high risk bands and
#               each account earns the weighted return of the bands it holds

return_mode = "blended"

# Account mode (flat per-account rates)
at_return = 0.04
ira_return = 0.06
roth_return = 0.08

# Blended mode (risk bands)
low_risk_target = 2_500_000      # first $2.5M held at low risk
mod_risk_target = 2_500_000      # next $2.5M held at moderate risk
low_risk_return = 0.04           # bonds, CDs, money market
mod_risk_return = 0.06           # balanced funds
high_risk_return = 0.08          # stocks, growth funds

# Present value
discount_rate = 0.03
