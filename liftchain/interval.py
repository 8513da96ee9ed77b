"""One-based, inclusive genomic intervals."""

from dataclasses import dataclass

from .errors import InvalidRangeError


@dataclass(frozen=True, order=True)
class Interval:
    """A closed range ``[start, end]`` on a named sequence.

    Coordinates are one-based and inclusive, so ``Interval("chr1", 1, 1)``
    covers exactly the first base of ``chr1``. Chain files and pandas tables
    use zero-based half-open coordinates; convert with
    :meth:`from_zero_based` and the :attr:`start0` / :attr:`end0` accessors.

    Parameters
    ----------
    sequence_name : str
        Name of the sequence (chromosome, contig). Compared case-sensitively.
    start : int
        First base covered (one-based).
    end : int
        Last base covered (one-based, inclusive).

    Raises
    ------
    InvalidRangeError
        If ``start > end``.

    Examples
    --------
    >>> iv = Interval("chr1", 10, 20)
    >>> iv.length
    11
    >>> iv.intersection(Interval("chr1", 15, 30))
    Interval(sequence_name='chr1', start=15, end=20)
    """

    sequence_name: str
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidRangeError(
                f"Interval start ({self.start}) is greater than end ({self.end}) "
                f"on {self.sequence_name}"
            )

    @classmethod
    def from_zero_based(cls, sequence_name, start, end):
        """Build an interval from zero-based half-open ``[start, end)``."""
        return cls(sequence_name, int(start) + 1, int(end))

    @property
    def start0(self):
        """Zero-based start."""
        return self.start - 1

    @property
    def end0(self):
        """Zero-based, exclusive end (same number as :attr:`end`)."""
        return self.end

    @property
    def length(self):
        return self.end - self.start + 1

    def overlaps(self, other):
        """Return True if both intervals share a sequence and at least one base."""
        return (
            self.sequence_name == other.sequence_name
            and self.start <= other.end
            and other.start <= self.end
        )

    def intersection(self, other):
        """Return the overlapping sub-range, or None when there is no overlap."""
        if not self.overlaps(other):
            return None
        return Interval(self.sequence_name, max(self.start, other.start), min(self.end, other.end))

    def __str__(self):
        return f"{self.sequence_name}:{self.start}-{self.end}"
