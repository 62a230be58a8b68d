# ============================================================================
# data_loader.py - Data Loading and Transformation Module
# ============================================================================
"""
This module handles:
- Loading the monthly macro panel from CSV
- Date parsing (day-month-year) and chronological ordering
- Output gap construction with the Hodrick-Prescott filter
- Data transformations (levels, first differences)
"""

import logging

import numpy as np
import pandas as pd
from statsmodels.tsa.filters.hp_filter import hpfilter

from errors import DataError

logger = logging.getLogger(__name__)

# ============================================================================
# CSV LOADER
# ============================================================================

def load_panel(path, config):
    """Read the raw table, keep the first n_obs rows and sort them by date"""
    try:
        raw = pd.read_csv(path)
    except (OSError, pd.errors.ParserError) as e:
        raise DataError('data', f"Could not read {path}: {e}") from e

    required = [config.date_column, config.exchange_rate_column,
                config.inflation_column, config.activity_column]
    missing = [col for col in required if col not in raw.columns]
    if missing:
        raise DataError('data', f"Missing columns: {', '.join(missing)}")

    raw = raw.iloc[:config.n_obs].copy()
    return index_by_date(raw, config.date_column)


def index_by_date(frame, date_column):
    """Parse day-month-year dates and return the frame sorted on a DatetimeIndex"""
    dates = pd.to_datetime(frame[date_column], dayfirst=True, errors='coerce')
    if dates.isna().any():
        bad = frame.loc[dates.isna(), date_column].tolist()
        raise DataError('data', f"Unparsable dates: {bad[:5]}", variable=date_column)

    frame = frame.drop(columns=[date_column])
    frame.index = pd.DatetimeIndex(dates, name=date_column)
    frame = frame.sort_index()

    if frame.index.has_duplicates:
        dupes = frame.index[frame.index.duplicated()].strftime('%Y-%m-%d').tolist()
        raise DataError('data', f"Duplicate dates: {dupes[:5]}", variable=date_column)

    return frame

# ============================================================================
# OUTPUT GAP
# ============================================================================

def add_output_gap(data, config):
    """Split the activity index into trend (potential) and cycle (output gap)"""
    activity = pd.to_numeric(data[config.activity_column], errors='coerce')
    if activity.isna().any():
        raise DataError('data', "Activity series has missing values", variable=config.activity_column)

    cycle, trend = hpfilter(activity, lamb=config.hp_lambda)

    out = data.copy()
    out[config.trend_column] = np.asarray(trend)
    out[config.gap_column] = np.asarray(cycle)
    return out


def prepare_panel(data, config):
    """Select the three analysis series and drop incomplete rows"""
    panel = data[config.variables].apply(pd.to_numeric, errors='coerce')
    n_before = len(panel)
    panel = panel.dropna()
    if len(panel) < n_before:
        logger.warning("Dropped %d incomplete rows", n_before - len(panel))

    if len(panel) < config.min_obs:
        raise DataError('data', f"Insufficient data ({len(panel)} observations). "
                                f"Need at least {config.min_obs} observations.")
    return panel

# ============================================================================
# TRANSFORMATION FUNCTIONS
# ============================================================================

def apply_transformation(df, transformations):
    """Apply level/diff transformations and rename differenced columns d_<name>"""
    columns = {}
    transform_info = {}

    for col in df.columns:
        trans_type = transformations.get(col, 'level')
        if trans_type == 'diff':
            columns[f"d_{col}"] = df[col].diff()
            transform_info[col] = 'First Difference'
        elif trans_type == 'level':
            columns[col] = df[col]
            transform_info[col] = 'Level'
        else:
            raise DataError('model_build', f"Unknown transformation '{trans_type}'", variable=col)

    # Differencing loses the first observation; align everything on that window
    return pd.DataFrame(columns).dropna(), transform_info
