"""NBT error codes and exception classes.

Every exception raised by this package derives from NbtError and carries
a `.code` string.  The subclasses let callers tell a short read
(TruncatedError) from malformed-but-complete input (FormatError), and
both of those from editor misuse (ValidationError, TagValueError).
"""

from __future__ import annotations

from typing import Optional

ERR_TRUNCATED: str = "ERR_TRUNCATED"    # stream ended before a read completed
ERR_FORMAT: str = "ERR_FORMAT"          # malformed wire content
ERR_VALIDATION: str = "ERR_VALIDATION"  # edit would break a tree invariant
ERR_VALUE: str = "ERR_VALUE"            # input not parseable / out of range


class NbtError(Exception):
    """Base exception.  `.code` is one of the ERR_* strings above."""

    code: str = ""

    def __init__(self, msg: str = "") -> None:
        super().__init__(msg or self.code)


class _OffsetError(NbtError):
    def __init__(self, reason: str, offset: Optional[int] = None) -> None:
        if offset is None:
            super().__init__(reason)
        else:
            super().__init__("{} at byte {}".format(reason, offset))
        self.reason = reason
        self.offset = offset


class TruncatedError(_OffsetError, EOFError):
    """Input ended in the middle of a tag."""

    code = ERR_TRUNCATED


class FormatError(_OffsetError):
    """Input is complete but not a well-formed tag tree."""

    code = ERR_FORMAT


class ValidationError(NbtError):
    """An edit or construction would violate a structural invariant."""

    code = ERR_VALIDATION


class TagValueError(NbtError, ValueError):
    """A payload cannot be parsed into, or does not fit, its tag kind."""

    code = ERR_VALUE
