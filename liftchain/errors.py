"""Exceptions and warnings raised while reading chains and building intervals."""


class InvalidRangeError(ValueError):
    """An interval was constructed with ``start > end``."""


class ChainError(ValueError):
    """Base class for chain records that cannot be used.

    ``source`` and ``lineno`` point at the offending input when known.
    """

    def __init__(self, message, source=None, lineno=None, record=None):
        self.source = source
        self.lineno = lineno
        self.record = record
        self.reason = message
        super().__init__(_format_location(message, source, lineno, record))


class MalformedHeaderError(ChainError):
    """Header line has the wrong field count, tag, strand or a bad number."""


class TruncatedRecordError(ChainError):
    """Blocks ended without a terminal line, or content followed it."""


class InvalidChainError(ChainError):
    """Chain has no blocks, a malformed block line or a non-positive block size."""


class StructuralInconsistencyError(ChainError):
    """A structural inconsistency found while validating in strict mode."""


class StructuralInconsistencyWarning(UserWarning):
    """A structural inconsistency found while validating in permissive mode."""


def _format_location(message, source, lineno, record):
    parts = []
    if source is not None:
        parts.append(f"Chain file {source}")
    if lineno is not None:
        parts.append(f"line {lineno}")
    if record is not None:
        parts.append(f"record {record}")
    if not parts:
        return message
    return ", ".join(parts) + ": " + message
