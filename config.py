# ============================================================================
# config.py - Analysis Configuration Module
# ============================================================================
"""
This module handles:
- Default analysis settings
- Loading overrides from a YAML configuration file
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

from errors import DataError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass(frozen=True)
class AnalysisConfig:
    # Input columns
    date_column: str = 'Date'
    exchange_rate_column: str = 'monthly_exc_rate'
    inflation_column: str = 'Inflation'
    activity_column: str = 'Actual_IIP'
    trend_column: str = 'Potential_IIP'
    gap_column: str = 'Output_Gap'
    n_obs: int = 75

    # HP filter (monthly convention)
    hp_lambda: float = 14400.0

    # Stationarity: KPSS null per variable, 'c' level / 'ct' trend
    kpss_trends: dict = field(default_factory=lambda: {
        'monthly_exc_rate': 'c',
        'Output_Gap': 'c',
        'Inflation': 'ct',
    })
    adf_regression: str = 'ct'
    pp_regression: str = 'ct'
    min_obs: int = 20
    alpha: float = 0.05
    weak_alpha: float = 0.10

    # Long-run path
    ardl_dependent: str = 'monthly_exc_rate'
    ardl_max_order: int = 5
    bounds_case: int = 3

    # Short-run path
    var_max_lags: int = 10
    lag_criterion: str = 'aic'
    diagnostic_lags: int = 5

    # Causality pairs (cause, effect) in original variable names
    causality_pairs: tuple = (
        ('Inflation', 'monthly_exc_rate'),
        ('Output_Gap', 'Inflation'),
        ('monthly_exc_rate', 'Output_Gap'),
    )

    # Output
    plots_dir: str = 'plots'
    irf_steps: int = 10

    @property
    def variables(self):
        return [self.exchange_rate_column, self.gap_column, self.inflation_column]

    def trend_for(self, name):
        return self.kpss_trends.get(name, 'c')


def load_config(path=None):
    """Load settings from YAML, falling back to defaults for missing keys"""
    config = AnalysisConfig()
    yaml_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not yaml_path.exists():
        if path is not None:
            raise DataError('config', f"Configuration file not found: {yaml_path}")
        return config

    with open(yaml_path, 'r', encoding='utf-8') as file:
        raw = yaml.safe_load(file) or {}

    if not isinstance(raw, dict):
        raise DataError('config', f"Configuration root must be a mapping: {yaml_path}")

    known = {f.name for f in fields(AnalysisConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise DataError('config', f"Unknown configuration keys: {', '.join(unknown)}")

    if 'causality_pairs' in raw:
        raw['causality_pairs'] = tuple(tuple(pair) for pair in raw['causality_pairs'])
    if 'kpss_trends' in raw:
        trends = dict(config.kpss_trends)
        trends.update(raw['kpss_trends'] or {})
        raw['kpss_trends'] = trends

    return replace(config, **raw)
