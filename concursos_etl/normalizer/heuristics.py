"""
Tunable constants for the text heuristics.

The city and salary extractors are pattern-matching guesses tuned to how the
source sites currently format their listings. Their thresholds live here so
they can be adjusted from `config/sources.yml` without code changes.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class HeuristicSettings:
    # Salary values below this are dropped as stray leftovers...
    salary_stray_value_ceiling: float = 15
    # ...but only when the largest value exceeds this
    salary_stray_trigger: float = 100
    # Monthly approximation of hourly / daily rates
    hourly_multiplier: float = 176
    daily_multiplier: float = 22
    # Accepted effective-city candidates
    city_min_length: int = 3
    city_max_words: int = 5


DEFAULT_HEURISTICS = HeuristicSettings()
