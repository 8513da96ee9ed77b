"""Interval index answering "which stored intervals overlap this one?".

Entries are kept per sequence name. On first query after insertion the
entries of each modified sequence are sorted by start once, and a running
maximum of the ends is computed. A query ``[qs, qe]`` then needs two binary
searches: entries past ``searchsorted(starts, qe)`` start after the query,
and entries before ``searchsorted(max_ends, qs)`` all end before it. Only
the slice in between is scanned.
"""

from collections import defaultdict

import numpy as np

from .interval import Interval


class _SequenceIndex:
    """Sorted entries of one sequence."""
    __slots__ = ("starts", "ends", "max_ends", "keys", "values")

    def __init__(self, keys, values):
        starts = np.fromiter((k.start for k in keys), dtype=np.int64, count=len(keys))
        ends = np.fromiter((k.end for k in keys), dtype=np.int64, count=len(keys))
        order = np.lexsort((ends, starts))
        self.starts = starts[order]
        self.ends = ends[order]
        self.max_ends = np.maximum.accumulate(self.ends) if len(order) else self.ends
        self.keys = [keys[i] for i in order]
        self.values = [values[i] for i in order]

    def hits(self, start, end):
        """Positions of entries intersecting ``[start, end]``."""
        hi = int(np.searchsorted(self.starts, end, side="right"))
        lo = int(np.searchsorted(self.max_ends[:hi], start, side="left"))
        if lo >= hi:
            return np.empty(0, dtype=np.int64)
        return lo + np.flatnonzero(self.ends[lo:hi] >= start)


class OverlapDetector:
    """Map one-based intervals to arbitrary values and query them by overlap.

    Entries may be added at any time; the per-sequence index is rebuilt
    lazily on the next query, or explicitly with :meth:`build_index`. Bulk
    insertion followed by a single build is the efficient pattern.

    Once built and no longer modified, the detector is read-only and can be
    shared between threads. Insertion itself is not thread-safe.

    Examples
    --------
    >>> det = OverlapDetector()
    >>> det.add(Interval("chr1", 1, 100), "a")
    >>> det.add(Interval("chr1", 50, 150), "b")
    >>> sorted(det.get_overlaps(Interval("chr1", 120, 130)))
    ['b']
    >>> list(det.get_overlaps(Interval("chr2", 1, 10)))
    []
    """

    def __init__(self):
        self._keys = defaultdict(list)
        self._values = defaultdict(list)
        self._index = {}
        self._dirty = set()

    def add(self, key, value):
        """Insert *value* under the interval *key*."""
        if not isinstance(key, Interval):
            raise TypeError(f"key must be an Interval, got {type(key).__name__}")
        self._keys[key.sequence_name].append(key)
        self._values[key.sequence_name].append(value)
        self._dirty.add(key.sequence_name)

    def add_all(self, keys, values):
        """Insert many entries; *keys* and *values* are parallel sequences."""
        keys = list(keys)
        values = list(values)
        if len(keys) != len(values):
            raise ValueError(
                f"keys and values differ in length ({len(keys)} != {len(values)})"
            )
        for key, value in zip(keys, values):
            self.add(key, value)

    def merge(self, other):
        """Insert every entry of another detector into this one."""
        for key, value in other:
            self.add(key, value)

    def build_index(self):
        """Sort the entries of every modified sequence. Idempotent."""
        for name in self._dirty:
            self._index[name] = _SequenceIndex(self._keys[name], self._values[name])
        self._dirty.clear()
        return self

    def _lookup(self, query):
        if self._dirty:
            self.build_index()
        idx = self._index.get(query.sequence_name)
        if idx is None:
            return None, np.empty(0, dtype=np.int64)
        return idx, idx.hits(query.start, query.end)

    def _filtered_hits(self, query, min_overlap_fraction):
        idx, hits = self._lookup(query)
        if idx is None or not len(hits) or not min_overlap_fraction:
            return idx, hits
        overlap = (
            np.minimum(idx.ends[hits], query.end)
            - np.maximum(idx.starts[hits], query.start)
            + 1
        )
        return idx, hits[overlap / query.length >= min_overlap_fraction]

    def get_overlaps(self, query, min_overlap_fraction=0.0):
        """Return a generator over values whose key overlaps *query*.

        Parameters
        ----------
        query : Interval
            Interval to test.
        min_overlap_fraction : float, optional
            When positive, only entries covering at least this fraction of
            ``query.length`` are returned.

        Returns
        -------
        generator
            Values in unspecified order. Empty when nothing overlaps.
        """
        idx, hits = self._filtered_hits(query, min_overlap_fraction)
        if idx is None:
            return iter(())
        values = idx.values
        return (values[i] for i in hits.tolist())

    def get_overlapping_entries(self, query, min_overlap_fraction=0.0):
        """Like :meth:`get_overlaps` but yields ``(key, value)`` pairs."""
        idx, hits = self._filtered_hits(query, min_overlap_fraction)
        if idx is None:
            return iter(())
        keys, values = idx.keys, idx.values
        return ((keys[i], values[i]) for i in hits.tolist())

    def overlaps_any(self, query):
        _idx, hits = self._lookup(query)
        return bool(len(hits))

    @property
    def sequence_names(self):
        return sorted(name for name, keys in self._keys.items() if keys)

    def __len__(self):
        return sum(len(keys) for keys in self._keys.values())

    def __iter__(self):
        for name in list(self._keys):
            yield from zip(self._keys[name], self._values[name])

    def __repr__(self):
        return f"OverlapDetector({len(self)} entries on {len(self.sequence_names)} sequences)"
