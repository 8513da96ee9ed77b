"""UCSC chain records: parsing, validation and serialization.

Chain format is described at http://genome.ucsc.edu/goldenPath/help/chain.html

A chain is a header line followed by alignment data lines::

    chain score tName tSize tStrand tStart tEnd qName qSize qStrand qStart qEnd id
    size dt dq
    ...
    size

In UCSC terminology the "target" (t fields) is the assembly being mapped
*from* and the "query" (q fields) is the assembly being mapped *to*. This
module names the two sides ``from`` and ``to``.

Chain coordinates are zero-based, half-open. ``Chain.from_interval`` is the
one-based inclusive :class:`~liftchain.interval.Interval` under which a chain
is stored in an :class:`~liftchain.overlap.OverlapDetector`.
"""

import re
import warnings
from bisect import bisect_right
from dataclasses import dataclass
from functools import cached_property

from ._shared import _config_value
from .errors import (
    InvalidChainError,
    MalformedHeaderError,
    StructuralInconsistencyError,
    StructuralInconsistencyWarning,
    TruncatedRecordError,
    _format_location,
)
from .interval import Interval

_HEADER_FIELDS = 13
_INT_RE = re.compile(r"-?[0-9]+")


def _int_field(text):
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"not an integer: {text!r}")
    return int(text)


@dataclass(frozen=True)
class ContinuousBlock:
    """A range of "from" that lines up base for base with a range of "to".

    Indices are zero-based, half-open.
    """

    from_start: int
    to_start: int
    length: int

    @property
    def from_end(self):
        return self.from_start + self.length

    @property
    def to_end(self):
        return self.to_start + self.length


@dataclass(frozen=True)
class Chain:
    """A single chain from a UCSC chain file.

    All blocks of a chain map one "from" sequence to one "to" sequence, from
    the positive "from" strand to the strand given by ``to_negative_strand``.
    Gaps between blocks are regions that cannot be lifted with this chain
    (another chain may cover them).

    When ``to_negative_strand`` is True the "to" coordinates of the chain and
    its blocks are positions on the reverse-complemented "to" sequence; a
    position ``p`` there is ``to_sequence_size - p`` on the forward strand.

    Construction only rejects chains that cannot be mapped through at all
    (no blocks, non-positive block sizes). Use :meth:`validate` for the full
    structural check; :func:`parse_chain` runs it on every record.
    """

    score: float
    from_sequence_name: str
    from_sequence_size: int
    from_chain_start: int
    from_chain_end: int
    to_sequence_name: str
    to_sequence_size: int
    to_negative_strand: bool
    to_chain_start: int
    to_chain_end: int
    id: int
    blocks: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "blocks", tuple(self.blocks))
        if not self.blocks:
            raise InvalidChainError(f"Chain {self.id} has empty block list")
        for i, block in enumerate(self.blocks):
            if block.length <= 0:
                raise InvalidChainError(
                    f"Continuous block {i} of chain {self.id} has non-positive size {block.length}"
                )

    @property
    def from_interval(self):
        """One-based, inclusive span covered in "from"."""
        return Interval(self.from_sequence_name, self.from_chain_start + 1, self.from_chain_end)

    @cached_property
    def _from_starts(self):
        return [b.from_start for b in self.blocks]

    def blocks_overlapping(self, start, end):
        """Yield blocks intersecting the zero-based half-open range ``[start, end)``."""
        i = max(bisect_right(self._from_starts, start) - 1, 0)
        for block in self.blocks[i:]:
            if block.from_start >= end:
                break
            if block.from_end > start:
                yield block

    def to_forward(self, start, end):
        """Convert a zero-based "to" range of this chain to the forward strand."""
        if self.to_negative_strand:
            return self.to_sequence_size - end, self.to_sequence_size - start
        return start, end

    def validate(self, strict=None, source=None, lineno=None):
        """Check the structural invariants of the chain.

        Parameters
        ----------
        strict : bool, optional
            If True, raise on the first problem. If False, issue a
            :class:`StructuralInconsistencyWarning` per problem. Defaults to
            ``CONFIG['strict']``.
        source, lineno : optional
            Location reported in warnings and errors.

        Returns
        -------
        list of str
            Problems found; empty for a consistent chain.

        Raises
        ------
        StructuralInconsistencyError
            In strict mode, when any problem is found.
        """
        strict = _config_value(strict, "strict")
        problems = list(self._structural_problems())
        for problem in problems:
            if strict:
                raise StructuralInconsistencyError(problem, source=source, lineno=lineno)
            warnings.warn(
                StructuralInconsistencyWarning(_format_location(problem, source, lineno, None)),
                stacklevel=2,
            )
        return problems

    def _structural_problems(self):
        cid = self.id
        for name, value in (("fromSequenceSize", self.from_sequence_size),
                            ("toSequenceSize", self.to_sequence_size)):
            if value <= 0:
                yield f"{name} is not positive: {value} for chain {cid}"
        for name, value in (("fromChainStart", self.from_chain_start),
                            ("toChainStart", self.to_chain_start)):
            if value < 0:
                yield f"{name} is negative: {value} for chain {cid}"

        from_length = self.from_chain_end - self.from_chain_start
        to_length = self.to_chain_end - self.to_chain_start
        if from_length <= 0:
            yield f"from length is not positive: {from_length} for chain {cid}"
        if to_length <= 0:
            yield f"to length is not positive: {to_length} for chain {cid}"
        if from_length > self.from_sequence_size:
            yield (f"From chain length ({from_length}) > from sequence length "
                   f"({self.from_sequence_size}) for chain {cid}")
        if to_length > self.to_sequence_size:
            yield (f"To chain length ({to_length}) > to sequence length "
                   f"({self.to_sequence_size}) for chain {cid}")
        if not self.from_sequence_name:
            yield f"Chain {cid} has empty from sequence name"
        if not self.to_sequence_name:
            yield f"Chain {cid} has empty to sequence name"

        first, last = self.blocks[0], self.blocks[-1]
        if first.from_start != self.from_chain_start:
            yield f"First block from start != chain from start for chain {cid}"
        if first.to_start != self.to_chain_start:
            yield f"First block to start != chain to start for chain {cid}"
        if last.from_end != self.from_chain_end:
            yield f"Last block from end != chain from end for chain {cid}"
        if last.to_end != self.to_chain_end:
            yield f"Last block to end != chain to end for chain {cid}"

        for i in range(1, len(self.blocks)):
            prev, block = self.blocks[i - 1], self.blocks[i]
            if block.from_start < prev.from_end:
                yield f"Continuous block {i} from starts before previous block ends for chain {cid}"
            if block.to_start < prev.to_end:
                yield f"Continuous block {i} to starts before previous block ends for chain {cid}"

    def __str__(self):
        strand = "-" if self.to_negative_strand else "+"
        return (f"chain {self.id} {self.from_sequence_name}:{self.from_chain_start}-"
                f"{self.from_chain_end} -> {self.to_sequence_name}:{self.to_chain_start}-"
                f"{self.to_chain_end} ({strand})")


# ===================================================================
# Parsing
# ===================================================================

def _next_content(numbered):
    """Return the next non-comment ``(lineno, line)``, or ``(None, None)`` at end of input."""
    for lineno, raw in numbered:
        line = raw.rstrip("\r\n")
        if line.startswith("#"):
            continue
        return lineno, line
    return None, None


def _parse_header(line, source, lineno, record):
    fields = line.replace(",", " ").split()
    if len(fields) != _HEADER_FIELDS:
        raise MalformedHeaderError(
            f"chain line has wrong number of fields: expected {_HEADER_FIELDS}, got {len(fields)}",
            source, lineno, record,
        )
    if fields[0] != "chain":
        raise MalformedHeaderError("chain line does not start with 'chain'", source, lineno, record)
    if fields[4] != "+":
        raise MalformedHeaderError(
            f"unsupported from strand '{fields[4]}' (only '+' is allowed)", source, lineno, record
        )
    if fields[9] not in ("+", "-"):
        raise MalformedHeaderError(f"invalid to strand '{fields[9]}'", source, lineno, record)

    try:
        return {
            "score": float(fields[1]),
            "from_sequence_name": fields[2],
            "from_sequence_size": _int_field(fields[3]),
            "from_chain_start": _int_field(fields[5]),
            "from_chain_end": _int_field(fields[6]),
            "to_sequence_name": fields[7],
            "to_sequence_size": _int_field(fields[8]),
            "to_negative_strand": fields[9] == "-",
            "to_chain_start": _int_field(fields[10]),
            "to_chain_end": _int_field(fields[11]),
            "id": _int_field(fields[12]),
        }
    except ValueError as exc:
        raise MalformedHeaderError(f"Invalid field ({exc})", source, lineno, record) from None


def _parse_block_line(line, source, lineno, record):
    fields = line.split()
    if len(fields) not in (1, 3):
        raise InvalidChainError(
            f"Block line has unexpected number of fields: expected 1 or 3, got {len(fields)}",
            source, lineno, record,
        )
    try:
        values = [_int_field(f) for f in fields]
    except ValueError as exc:
        raise InvalidChainError(f"Invalid block field ({exc})", source, lineno, record) from None
    if values[0] <= 0:
        raise InvalidChainError(f"invalid block size {values[0]}", source, lineno, record)
    return values


def _read_chain(numbered, source=None, strict=None, record=None):
    """Read the next chain record from an iterator of ``(lineno, line)`` pairs.

    Returns None when the input holds no further record.
    """
    lineno, line = _next_content(numbered)
    while line is not None and not line.strip():
        lineno, line = _next_content(numbered)
    if line is None:
        return None

    header_lineno = lineno
    header = _parse_header(line, source, lineno, record)
    from_cursor = header["from_chain_start"]
    to_cursor = header["to_chain_start"]
    blocks = []
    saw_last_line = False
    while True:
        lineno, line = _next_content(numbered)
        if line is None or not line.strip():
            if not saw_last_line:
                raise TruncatedRecordError(
                    "Reached end of chain without seeing terminal block",
                    source, lineno if lineno is not None else header_lineno, record,
                )
            break
        if saw_last_line:
            raise TruncatedRecordError("Terminal block seen before end of chain", source, lineno, record)

        values = _parse_block_line(line, source, lineno, record)
        size = values[0]
        blocks.append(ContinuousBlock(from_cursor, to_cursor, size))
        if len(values) == 1:
            saw_last_line = True
        else:
            from_cursor += size + values[1]
            to_cursor += size + values[2]

    try:
        chain = Chain(blocks=tuple(blocks), **header)
    except InvalidChainError as exc:
        raise InvalidChainError(exc.reason, source, header_lineno, record) from None
    chain.validate(strict=strict, source=source, lineno=header_lineno)
    return chain


def parse_chain(lines, source=None, strict=None):
    """Parse one chain record from a sequence of text lines.

    Leading comments and blank lines are skipped; anything after the record
    terminator is ignored. Use :func:`liftchain.load_chains` for whole files.

    Parameters
    ----------
    lines : iterable of str
        Lines of chain text, with or without trailing newlines.
    source : str, optional
        Name used in error messages.
    strict : bool, optional
        Raise on structural inconsistencies instead of warning. Defaults to
        ``CONFIG['strict']``.

    Returns
    -------
    Chain

    Raises
    ------
    MalformedHeaderError, TruncatedRecordError, InvalidChainError
        If the record cannot be parsed, or if *lines* contain no record.
    StructuralInconsistencyError
        In strict mode, if the parsed chain is inconsistent.
    """
    chain = _read_chain(iter(enumerate(lines, 1)), source=source, strict=strict)
    if chain is None:
        raise MalformedHeaderError("no chain record found", source)
    return chain


# ===================================================================
# Serialization
# ===================================================================

def format_chain(chain):
    """Return the chain-format text of *chain*, including the closing blank line."""
    out = [
        "chain\t{}\t{}\t{}\t+\t{}\t{}\t{}\t{}\t{}\t{}\t{}\t{}\n".format(
            repr(float(chain.score)), chain.from_sequence_name, chain.from_sequence_size,
            chain.from_chain_start, chain.from_chain_end, chain.to_sequence_name,
            chain.to_sequence_size, "-" if chain.to_negative_strand else "+",
            chain.to_chain_start, chain.to_chain_end, chain.id,
        )
    ]
    blocks = chain.blocks
    for block, next_block in zip(blocks, blocks[1:]):
        from_gap = next_block.from_start - block.from_end
        to_gap = next_block.to_start - block.to_end
        out.append(f"{block.length}\t{from_gap}\t{to_gap}\n")
    out.append(f"{blocks[-1].length}\n")
    out.append("\n")
    return "".join(out)


def write_chain(chain, fh):
    fh.write(format_chain(chain))
