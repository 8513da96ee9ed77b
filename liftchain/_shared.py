"""
Shared globals and utilities for liftchain modules.

Thread-safety note:
`CONFIG` is process-global and not synchronized for concurrent mutation.
Set it from a single controlling thread before loading chains or querying.
"""

import pandas as _pandas

# Configuration dictionary
CONFIG = {
    'strict': False,     # Structural inconsistencies raise instead of warn
    'min_match': 0.95,   # Default minimum fraction of a query that must map
    'multiple': False,   # Return every qualifying chain, not only the best
}


def _config_value(value, key):
    """Return *value*, or ``CONFIG[key]`` when *value* is None."""
    if value is None:
        return CONFIG[key]
    return value


def _check_fraction(value, name):
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
    return value


def _empty_frame(columns, str_cols=(), float_cols=()):
    """Build an empty DataFrame with stable dtypes."""
    return _pandas.DataFrame({
        c: _pandas.Series(
            dtype="object" if c in str_cols else "float64" if c in float_cols else "int64"
        ) for c in columns
    })
