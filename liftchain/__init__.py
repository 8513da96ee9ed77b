"""
liftchain - UCSC chain file parsing and genome coordinate liftover
"""

__version__ = '0.1.0'

from ._shared import CONFIG
from .chain import Chain, ContinuousBlock, format_chain, parse_chain, write_chain
from .errors import (
    ChainError,
    InvalidChainError,
    InvalidRangeError,
    MalformedHeaderError,
    StructuralInconsistencyError,
    StructuralInconsistencyWarning,
    TruncatedRecordError,
)
from .interval import Interval
from .liftover import (
    LiftOver,
    MappedRegion,
    lift_over,
    lift_point,
    liftover_df,
    map_interval,
)
from .loader import chains_to_df, load_chain_file, load_chains, read_chains, write_chains
from .overlap import OverlapDetector

__all__ = [
    "CONFIG",
    "Chain",
    "ChainError",
    "ContinuousBlock",
    "Interval",
    "InvalidChainError",
    "InvalidRangeError",
    "LiftOver",
    "MalformedHeaderError",
    "MappedRegion",
    "OverlapDetector",
    "StructuralInconsistencyError",
    "StructuralInconsistencyWarning",
    "TruncatedRecordError",
    "chains_to_df",
    "format_chain",
    "lift_over",
    "lift_point",
    "liftover_df",
    "load_chain_file",
    "load_chains",
    "map_interval",
    "parse_chain",
    "read_chains",
    "write_chain",
    "write_chains",
]
