# engine/__init__.py

# The projection entry points; everything else is reachable through them.
from .simulator import RetirementSimulator, simulate, run_projection_with_overrides, compare_scenarios

# Per-year tax orchestrator, for callers that price a single year.
from .tax_engine import calculate_taxes
