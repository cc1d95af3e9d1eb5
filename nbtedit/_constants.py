"""NBT constants — wire tag ids, numeric ranges, and decoding limits.

All multi-byte quantities on the wire are big-endian.
"""

from __future__ import annotations

# ── Wire tag ids (single byte each) ──────────────────────────
# Fixed by the file format; ids 13+ are unknown and rejected on read.
TAG_END: int = 0x00
TAG_BYTE: int = 0x01
TAG_SHORT: int = 0x02
TAG_INT: int = 0x03
TAG_LONG: int = 0x04
TAG_FLOAT: int = 0x05
TAG_DOUBLE: int = 0x06
TAG_BYTE_ARRAY: int = 0x07
TAG_STRING: int = 0x08
TAG_LIST: int = 0x09
TAG_COMPOUND: int = 0x0A
TAG_INT_ARRAY: int = 0x0B
TAG_LONG_ARRAY: int = 0x0C

# ── Signed integer ranges ────────────────────────────────────
# Python ints are arbitrary-precision, so every width is range-checked
# explicitly instead of being truncated by a fixed-size type.
INT8_MIN: int = -(2**7)
INT8_MAX: int = 2**7 - 1
INT16_MIN: int = -(2**15)
INT16_MAX: int = 2**15 - 1
INT32_MIN: int = -(2**31)
INT32_MAX: int = 2**31 - 1
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

# Names and string payloads carry a uint16 byte-length prefix.
MAX_STRING_BYTES: int = 0xFFFF

# Arrays and lists carry an int32 count.
MAX_COUNT: int = INT32_MAX

# Nesting is attacker/corruption controlled, so recursion is bounded.
# The root compound sits at depth 0; each nested compound or list adds one.
MAX_DEPTH: int = 512

# ── Compression envelopes (detected by magic number) ─────────
GZIP_MAGIC = b"\x1f\x8b"
ZLIB_FIRST_BYTE: int = 0x78
