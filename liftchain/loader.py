"""Loading whole chain files into an overlap index."""

import gzip
import logging
import warnings
from pathlib import Path

import pandas as pd

from ._shared import _empty_frame
from .chain import _read_chain, write_chain
from .errors import (
    ChainError,
    InvalidRangeError,
    StructuralInconsistencyWarning,
    _format_location,
)
from .overlap import OverlapDetector

_logger = logging.getLogger(__name__)

_CHAIN_COLS = [
    "chrom", "start", "end", "strand",
    "chromsrc", "startsrc", "endsrc", "strandsrc",
    "chain_id", "score",
]


def read_chains(lines, source=None, strict=None):
    """Yield every chain record found in *lines*.

    Records are separated by blank lines; ``#`` comment lines are ignored
    wherever they occur. Parsing stops at the first fatal record error.

    Parameters
    ----------
    lines : iterable of str
        Chain text, one line per item (file objects work directly).
    source : str, optional
        Name used in error messages.
    strict : bool, optional
        Raise on structural inconsistencies instead of warning. Defaults to
        ``CONFIG['strict']``.
    """
    numbered = iter(enumerate(lines, 1))
    record = 0
    while True:
        record += 1
        chain = _read_chain(numbered, source=source, strict=strict, record=record)
        if chain is None:
            return
        yield chain


def load_chains(lines, source=None, strict=None, min_score=None):
    """Read all chains from *lines* and index them by their "from" span.

    Chain ids are only unique within the file they came from. Whole-genome
    chain sets concatenated from per-chromosome files repeat ids, so a
    repeated id is reported at debug level and otherwise accepted. A chain
    whose "from" span is empty has no key; it is skipped with a
    :class:`StructuralInconsistencyWarning` (strict mode rejects it while
    parsing).

    Parameters
    ----------
    lines : iterable of str
        Chain text, one line per item.
    source : str, optional
        Name used in error messages and logs.
    strict : bool, optional
        Raise on structural inconsistencies instead of warning. Defaults to
        ``CONFIG['strict']``.
    min_score : float, optional
        Chains scoring below this value are skipped.

    Returns
    -------
    OverlapDetector
        Detector mapping each chain's ``from_interval`` to the chain, with
        its index already built.

    Raises
    ------
    ChainError
        On the first record that cannot be parsed. The message names the
        source, line and record number.

    Examples
    --------
    >>> text = [
    ...     "chain 100 chr1 1000 + 0 100 chrA 1000 + 0 100 1",
    ...     "100",
    ...     "",
    ... ]
    >>> det = load_chains(text)
    >>> len(det)
    1
    """
    seen_ids = set()
    detector = OverlapDetector()
    skipped = 0
    for record, chain in enumerate(read_chains(lines, source=source, strict=strict), 1):
        if min_score is not None and chain.score < min_score:
            skipped += 1
            continue
        if chain.id in seen_ids:
            _logger.debug("Chain id %d appears more than once in %s", chain.id, source or "input")
        seen_ids.add(chain.id)
        try:
            key = chain.from_interval
        except InvalidRangeError as exc:
            # only reachable in permissive mode; strict validation already raised
            warnings.warn(
                StructuralInconsistencyWarning(_format_location(
                    f"chain {chain.id} skipped, empty from span: {exc}", source, None, record
                )),
                stacklevel=2,
            )
            continue
        detector.add(key, chain)
    detector.build_index()
    _logger.info(
        "Loaded %d chains on %d sequences from %s%s",
        len(detector), len(detector.sequence_names), source or "input",
        f" ({skipped} below min_score)" if skipped else "",
    )
    return detector


def _open_chain_file(chain_path):
    if chain_path.suffix == ".gz":
        return gzip.open(chain_path, "rt", encoding="utf-8")
    return open(chain_path, encoding="utf-8")


def load_chain_file(path, strict=None, min_score=None):
    """Load a chain file (plain or gzip-compressed) into an OverlapDetector.

    See :func:`load_chains` for the parameters and return value.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is not a regular file, or the chain file is malformed.
    """
    chain_path = Path(path)
    if not chain_path.exists():
        raise FileNotFoundError(f"Chain file does not exist: {path}")
    if not chain_path.is_file():
        raise ValueError(f"Chain path is not a regular file: {path}")

    with _open_chain_file(chain_path) as f:
        try:
            return load_chains(f, source=str(path), strict=strict, min_score=min_score)
        except ChainError:
            _logger.error("Failed to load chain file %s", path)
            raise


def _iter_chains(chains):
    if isinstance(chains, OverlapDetector):
        return sorted((c for _key, c in chains), key=lambda c: (c.from_sequence_name,
                                                                 c.from_chain_start, c.id))
    return list(chains)


def write_chains(chains, file):
    """Write chains in UCSC chain format.

    Parameters
    ----------
    chains : iterable of Chain or OverlapDetector
        Chains to write. A detector is written in "from" coordinate order.
    file : str, path or file object
        Destination; a ``.gz`` path is gzip-compressed.
    """
    chains = _iter_chains(chains)
    if hasattr(file, "write"):
        for chain in chains:
            write_chain(chain, file)
        return

    chain_path = Path(file)
    opener = gzip.open if chain_path.suffix == ".gz" else open
    with opener(chain_path, "wt", encoding="utf-8") as fh:
        for chain in chains:
            write_chain(chain, fh)


def chains_to_df(chains):
    """Return the alignment blocks of *chains* as a DataFrame.

    One row per block. ``chrom``/``start``/``end`` are the "to" coordinates
    on the forward strand, ``chromsrc``/``startsrc``/``endsrc`` the "from"
    coordinates, all zero-based half-open. ``strand`` is 0 for '+' and 1 for
    '-'; ``strandsrc`` is always 0.

    Parameters
    ----------
    chains : iterable of Chain or OverlapDetector

    Returns
    -------
    pandas.DataFrame
        Columns ``chrom, start, end, strand, chromsrc, startsrc, endsrc,
        strandsrc, chain_id, score``.
    """
    rows = []
    for chain in _iter_chains(chains):
        strand = 1 if chain.to_negative_strand else 0
        for block in chain.blocks:
            start, end = chain.to_forward(block.to_start, block.to_end)
            rows.append({
                "chrom": chain.to_sequence_name,
                "start": start,
                "end": end,
                "strand": strand,
                "chromsrc": chain.from_sequence_name,
                "startsrc": block.from_start,
                "endsrc": block.from_end,
                "strandsrc": 0,
                "chain_id": chain.id,
                "score": chain.score,
            })
    if not rows:
        return _empty_frame(_CHAIN_COLS, str_cols=("chrom", "chromsrc"), float_cols=("score",))
    return pd.DataFrame(rows)[_CHAIN_COLS]
