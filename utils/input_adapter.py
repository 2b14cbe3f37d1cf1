from dataclasses import fields
from typing import Any, Mapping

from models import ParameterValidationError, SimulationParameters


def merge_overrides(
    baseline: SimulationParameters,
    overrides: Mapping[str, Any],
) -> SimulationParameters:
    """
    Shallow-merges a partial override mapping onto a baseline parameter set,
    using reflection (dataclasses.fields) so any subset of fields can be given.

    Year-keyed maps and the heir list are replaced whole, not merged key by key.
    """
    # 1. Only real fields may be overridden
    valid_names = {f.name for f in fields(SimulationParameters)}
    unknown = sorted(key for key in overrides if key not in valid_names)
    if unknown:
        raise ParameterValidationError(unknown[0], "unknown parameter")

    # 2. Overrides win over the baseline
    if not overrides:
        return baseline
    return baseline.with_overrides(**dict(overrides))
