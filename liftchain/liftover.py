"""Coordinate conversion through indexed chains.

Three entry points share the same block walk:

- :func:`map_interval` returns every mapped piece of a query, with the
  query sub-range each piece came from (partial liftover).
- :func:`lift_over` is the basic all-or-nothing conversion: one interval
  spanning the mapped bases of a single unambiguous chain, or None.
- :func:`lift_point` converts a single base.

:func:`liftover_df` applies :func:`map_interval` to every row of a pandas
table of zero-based intervals.
"""

import os
from dataclasses import dataclass

import pandas as pd

from ._shared import _check_fraction, _config_value, _empty_frame
from .chain import Chain
from .interval import Interval
from .loader import load_chain_file, load_chains
from .overlap import OverlapDetector

_LIFTOVER_COLS = ["chrom", "start", "end", "intervalID", "chain_id"]


@dataclass(frozen=True)
class MappedRegion:
    """A piece of a query lifted through one chain.

    Attributes
    ----------
    query_part : Interval
        The "from" sub-range of the query that was mapped.
    mapped : Interval
        Its image on the "to" sequence, forward-strand coordinates.
    chain : Chain
        The chain used.
    negative_strand : bool
        True when the image is reverse-complemented relative to the query.
    """

    query_part: Interval
    mapped: Interval
    chain: Chain
    negative_strand: bool


def _rank_candidates(detector, query, min_match):
    """Chains covering at least *min_match* of *query*, best first.

    Ranking: larger overlap of the chain span with the query, then higher
    score, then lower id.
    """
    ranked = []
    for key, chain in detector.get_overlapping_entries(query, min_overlap_fraction=min_match):
        overlap = key.intersection(query)
        if overlap is None or overlap.length / query.length < min_match:
            continue
        ranked.append((overlap.length, chain))
    ranked.sort(key=lambda item: (-item[0], -item[1].score, item[1].id))
    return [chain for _overlap, chain in ranked]


def _mapped_pieces(chain, start, end):
    """Map zero-based ``[start, end)`` through the blocks of *chain*.

    Returns ``(from_start, from_end, to_start, to_end)`` tuples in chain-strand
    "to" coordinates. Pieces contiguous in both spaces are merged; a gap in
    either space keeps them apart.
    """
    pieces = []
    for block in chain.blocks_overlapping(start, end):
        piece_start = max(start, block.from_start)
        piece_end = min(end, block.from_end)
        to_start = block.to_start + (piece_start - block.from_start)
        to_end = to_start + (piece_end - piece_start)
        if pieces and pieces[-1][1] == piece_start and pieces[-1][3] == to_start:
            prev = pieces[-1]
            pieces[-1] = (prev[0], piece_end, prev[2], to_end)
        else:
            pieces.append((piece_start, piece_end, to_start, to_end))
    return pieces


def _map_through_chain(chain, query):
    regions = []
    for from_start, from_end, to_start, to_end in _mapped_pieces(chain, query.start0, query.end0):
        to_start, to_end = chain.to_forward(to_start, to_end)
        regions.append(MappedRegion(
            query_part=Interval.from_zero_based(chain.from_sequence_name, from_start, from_end),
            mapped=Interval.from_zero_based(chain.to_sequence_name, to_start, to_end),
            chain=chain,
            negative_strand=chain.to_negative_strand,
        ))
    return regions


def map_interval(detector, query, min_match=None, multiple=None):
    """Lift *query* from "from" to "to" coordinates.

    Parameters
    ----------
    detector : OverlapDetector
        Chains indexed by their "from" span, as returned by
        :func:`~liftchain.load_chains`.
    query : Interval
        One-based inclusive interval on a "from" sequence.
    min_match : float, optional
        Minimum fraction of the query that a chain's span must overlap for
        the chain to be used. Defaults to ``CONFIG['min_match']``.
    multiple : bool, optional
        If True, map through every qualifying chain instead of only the
        best-ranked one. Defaults to ``CONFIG['multiple']``.

    Returns
    -------
    list of MappedRegion
        Ordered by query position (ties by chain rank). Sub-ranges falling
        in chain gaps produce nothing. Empty when no chain qualifies.

    Raises
    ------
    ValueError
        If *min_match* is outside ``[0, 1]``.

    Examples
    --------
    >>> det = load_chains([
    ...     "chain 100 chr1 1000 + 0 100 chrA 1000 + 500 600 1", "100", "",
    ... ])
    >>> [str(r.mapped) for r in map_interval(det, Interval("chr1", 11, 20))]
    ['chrA:511-520']
    """
    min_match = _check_fraction(_config_value(min_match, "min_match"), "min_match")
    multiple = _config_value(multiple, "multiple")

    ranked = _rank_candidates(detector, query, min_match)
    if not multiple:
        ranked = ranked[:1]

    regions = []
    for rank, chain in enumerate(ranked):
        for region in _map_through_chain(chain, query):
            regions.append((region.query_part.start, rank, region))
    regions.sort(key=lambda item: (item[0], item[1]))
    return [region for _start, _rank, region in regions]


def lift_over(detector, query, min_match=None):
    """Lift *query* as a whole, or not at all.

    Each chain overlapping the query is walked block by block. A chain
    qualifies when the bases it maps reach ``round(min_match * query.length)``.
    If exactly one chain qualifies, the result spans from the first to the
    last base it maps (gaps included); if none or several do, the query
    cannot be lifted unambiguously and None is returned.

    Returns
    -------
    Interval or None
        Forward-strand interval on the "to" sequence.
    """
    min_match = _check_fraction(_config_value(min_match, "min_match"), "min_match")
    min_match_size = round(min_match * query.length)

    hit = None
    for chain in detector.get_overlaps(query):
        pieces = _mapped_pieces(chain, query.start0, query.end0)
        covered = sum(piece[1] - piece[0] for piece in pieces)
        if not pieces or covered < min_match_size:
            continue
        if hit is not None:
            return None
        hit = (chain, pieces)

    if hit is None:
        return None
    chain, pieces = hit
    to_start, to_end = chain.to_forward(pieces[0][2], pieces[-1][3])
    return Interval.from_zero_based(chain.to_sequence_name, to_start, to_end)


def lift_point(detector, sequence_name, position):
    """Lift a single one-based *position*.

    Returns
    -------
    list of tuple
        ``(to_sequence_name, to_position, strand, chain)`` per chain mapping
        the base, best chain first; ``strand`` is '+' or '-' and
        ``to_position`` is one-based on the forward strand. Empty when the
        base is not covered by any chain block.
    """
    query = Interval(sequence_name, position, position)
    results = []
    for chain in _rank_candidates(detector, query, 0.0):
        for region in _map_through_chain(chain, query):
            strand = "-" if region.negative_strand else "+"
            results.append((region.mapped.sequence_name, region.mapped.start, strand, chain))
    return results


def _empty_liftover_df(include_metadata):
    cols = list(_LIFTOVER_COLS)
    if include_metadata:
        cols += ["strand", "score"]
    return _empty_frame(cols, str_cols=("chrom",), float_cols=("score",))


def liftover_df(intervals, detector, min_match=None, multiple=None, include_metadata=False):
    """Lift a table of zero-based half-open intervals.

    Parameters
    ----------
    intervals : pandas.DataFrame
        Must contain ``chrom``, ``start`` and ``end`` columns on the "from"
        assembly.
    detector : OverlapDetector
        Loaded chains.
    min_match, multiple : optional
        See :func:`map_interval`.
    include_metadata : bool, optional
        Add ``strand`` (0 = '+', 1 = '-') and ``score`` columns.

    Returns
    -------
    pandas.DataFrame
        Columns ``chrom, start, end, intervalID, chain_id`` sorted by target
        coordinates. ``intervalID`` is the 0-based position of the source row.
        A source interval spanning chain gaps yields one row per mapped piece.

    Raises
    ------
    TypeError
        If *intervals* is not a DataFrame.
    ValueError
        If required columns are missing or a row has ``end <= start``.
    """
    if not isinstance(intervals, pd.DataFrame):
        raise TypeError("intervals must be a DataFrame")
    missing = {"chrom", "start", "end"} - set(intervals.columns)
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(sorted(missing))}")

    result_rows = []
    chroms = intervals["chrom"].astype(str).tolist()
    starts = intervals["start"].astype("int64").tolist()
    ends = intervals["end"].astype("int64").tolist()
    for interval_id, (chrom, start, end) in enumerate(zip(chroms, starts, ends)):
        if end <= start:
            raise ValueError(f"Interval {interval_id} ({chrom}:{start}-{end}) is empty or inverted")
        query = Interval.from_zero_based(chrom, start, end)
        for region in map_interval(detector, query, min_match=min_match, multiple=multiple):
            row = {
                "chrom": region.mapped.sequence_name,
                "start": region.mapped.start0,
                "end": region.mapped.end0,
                "intervalID": interval_id,
                "chain_id": region.chain.id,
            }
            if include_metadata:
                row["strand"] = 1 if region.negative_strand else 0
                row["score"] = region.chain.score
            result_rows.append(row)

    if not result_rows:
        return _empty_liftover_df(include_metadata)
    result = pd.DataFrame(result_rows)
    return result.sort_values(["chrom", "start", "end"], kind="stable").reset_index(drop=True)


class LiftOver:
    """Chains loaded once and queried many times.

    Parameters
    ----------
    chains : str, path, OverlapDetector or iterable of str
        A chain file path (plain or ``.gz``), an already loaded detector, or
        chain text lines.
    strict, min_score : optional
        Passed to the loader when *chains* is not a detector.

    Examples
    --------
    >>> lo = LiftOver(["chain 10 chr1 500 + 0 50 chrB 500 - 0 50 7", "50", ""])
    >>> lo.lift_point("chr1", 1)[0][:3]
    ('chrB', 500, '-')
    """

    def __init__(self, chains, strict=None, min_score=None):
        if isinstance(chains, OverlapDetector):
            self.detector = chains.build_index()
        elif isinstance(chains, (str, os.PathLike)):
            self.detector = load_chain_file(chains, strict=strict, min_score=min_score)
        else:
            self.detector = load_chains(chains, strict=strict, min_score=min_score)

    def map(self, query, min_match=None, multiple=None):
        return map_interval(self.detector, query, min_match=min_match, multiple=multiple)

    def lift_over(self, query, min_match=None):
        return lift_over(self.detector, query, min_match=min_match)

    def lift_point(self, sequence_name, position):
        return lift_point(self.detector, sequence_name, position)

    def liftover_df(self, intervals, min_match=None, multiple=None, include_metadata=False):
        return liftover_df(intervals, self.detector, min_match=min_match, multiple=multiple,
                           include_metadata=include_metadata)

    def __repr__(self):
        return f"LiftOver({self.detector!r})"
