"""NBT codec — decode raw bytes into a tag tree and encode it back.

Wire layout (all big-endian):

    named tag   kind:u8  name_len:u16  name:bytes  payload
    BYTE..LONG  i8 / i16 / i32 / i64
    FLOAT       IEEE-754 binary32 bits
    DOUBLE      IEEE-754 binary64 bits
    STRING      len:u16  utf-8 bytes
    *_ARRAY     count:i32  count x (i8 | i32 | i64)
    LIST        element_kind:u8  count:i32  count x unnamed payload
    COMPOUND    named tags ...  END (0x00)

The input is the decompressed stream; any gzip/zlib envelope is removed
by the caller first (see _document.py).

For every buffer the decoder accepts, encode(decode(buf)[0]) == buf.
"""

from __future__ import annotations

import struct
from typing import Dict, List, Tuple

from ._constants import MAX_COUNT, MAX_DEPTH, MAX_STRING_BYTES
from ._errors import FormatError, TagValueError, TruncatedError, ValidationError
from ._model import TagKind, TagNode, TagValue

_U16 = struct.Struct(">H")
_I32 = struct.Struct(">i")
_F32 = struct.Struct(">f")
_F64 = struct.Struct(">d")
_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")

_INT_STRUCTS: Dict[TagKind, struct.Struct] = {
    TagKind.BYTE: struct.Struct(">b"),
    TagKind.SHORT: struct.Struct(">h"),
    TagKind.INT: _I32,
    TagKind.LONG: struct.Struct(">q"),
}

# Array kind -> (struct item code, item size).
_ARRAY_ITEMS: Dict[TagKind, Tuple[str, int]] = {
    TagKind.BYTE_ARRAY: ("b", 1),
    TagKind.INT_ARRAY: ("i", 4),
    TagKind.LONG_ARRAY: ("q", 8),
}


# ── Reader ────────────────────────────────────────────────────

def _check_max_depth(max_depth: int) -> None:
    # Reader and writer recurse once per level; MAX_DEPTH keeps that well
    # inside the interpreter's recursion limit.
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) \
            or not 0 <= max_depth <= MAX_DEPTH:
        raise ValidationError("max_depth must be an int in [0, {}], got {!r}".format(
            MAX_DEPTH, max_depth))


def _need(buf: bytes, off: int, n: int, what: str) -> None:
    if off + n > len(buf):
        raise TruncatedError("truncated " + what, off)


def _read_kind(buf: bytes, off: int) -> Tuple[TagKind, int]:
    _need(buf, off, 1, "tag id")
    tid = buf[off]
    try:
        return TagKind(tid), off + 1
    except ValueError:
        raise FormatError("unknown tag id 0x{:02x}".format(tid), off)


def _read_string(buf: bytes, off: int, what: str) -> Tuple[str, int]:
    _need(buf, off, 2, what + " length")
    n = _U16.unpack_from(buf, off)[0]
    off += 2
    _need(buf, off, n, what)
    try:
        return buf[off:off + n].decode("utf-8"), off + n
    except UnicodeDecodeError:
        raise FormatError("invalid UTF-8 in " + what, off)


def _read_count(buf: bytes, off: int, what: str) -> Tuple[int, int]:
    _need(buf, off, 4, what + " count")
    n = _I32.unpack_from(buf, off)[0]
    if n < 0:
        raise FormatError("negative {} count {}".format(what, n), off)
    return n, off + 4


def _read_payload(buf: bytes, off: int, kind: TagKind, depth: int,
                  max_depth: int) -> Tuple[TagValue, int]:
    """Decode one payload of `kind` at `off`.

    Containers nest by recursion (one frame per level), so `depth` is
    checked against `max_depth` before any child is read.
    """
    if kind in _INT_STRUCTS:
        st = _INT_STRUCTS[kind]
        _need(buf, off, st.size, kind.name + " payload")
        return TagValue._trusted(kind, st.unpack_from(buf, off)[0]), off + st.size

    # Floats go through their integer bit pattern so NaN payloads survive.
    if kind is TagKind.FLOAT:
        _need(buf, off, 4, "FLOAT payload")
        val = _F32.unpack_from(buf, off)[0]
        bits = _U32.unpack_from(buf, off)[0] if val != val else None
        return TagValue._trusted(kind, val, raw_bits=bits), off + 4

    if kind is TagKind.DOUBLE:
        _need(buf, off, 8, "DOUBLE payload")
        val = _F64.unpack_from(buf, off)[0]
        bits = _U64.unpack_from(buf, off)[0] if val != val else None
        return TagValue._trusted(kind, val, raw_bits=bits), off + 8

    if kind is TagKind.STRING:
        s, off = _read_string(buf, off, "STRING payload")
        return TagValue._trusted(kind, s), off

    if kind in _ARRAY_ITEMS:
        code, size = _ARRAY_ITEMS[kind]
        n, off = _read_count(buf, off, kind.name)
        # Check the full extent before allocating anything for it.
        _need(buf, off, n * size, kind.name + " items")
        items = list(struct.unpack_from(">{}{}".format(n, code), buf, off))
        return TagValue._trusted(kind, items), off + n * size

    if depth > max_depth:
        raise FormatError("nesting deeper than {}".format(max_depth), off)

    if kind is TagKind.LIST:
        elem_off = off
        elem_kind, off = _read_kind(buf, off)
        n, off = _read_count(buf, off, "LIST")
        if elem_kind is TagKind.END and n > 0:
            raise FormatError("non-empty LIST of END", elem_off)
        nodes: List[TagNode] = []
        for _ in range(n):
            item, off = _read_payload(buf, off, elem_kind, depth + 1, max_depth)
            nodes.append(TagNode._trusted("", item))
        return TagValue._trusted(kind, nodes, elem_kind), off

    if kind is TagKind.COMPOUND:
        children: Dict[str, TagNode] = {}
        while True:
            child_kind, off = _read_kind(buf, off)
            if child_kind is TagKind.END:
                return TagValue._trusted(kind, children), off
            name_off = off
            name, off = _read_string(buf, off, "tag name")
            if name in children:
                raise FormatError("duplicate child name {!r}".format(name), name_off)
            child, off = _read_payload(buf, off, child_kind, depth + 1, max_depth)
            children[name] = TagNode._trusted(name, child)

    # END only reaches here as a LIST element kind with count 0,
    # which never calls back into this function.
    raise FormatError("END tag has no payload", off)


def decode(data: bytes, *, max_depth: int = MAX_DEPTH) -> Tuple[TagNode, int]:
    """Decode the root compound at the start of `data`.

    Returns (root, bytes_consumed).  Bytes after the root are left to the
    caller; use loads() to reject them.

    Raises TruncatedError if the stream ends early and FormatError if it
    is malformed.  Nothing is returned on failure.  `max_depth` may only
    lower the limit; a value above MAX_DEPTH raises ValidationError.
    """
    _check_max_depth(max_depth)
    buf = bytes(data)
    kind, off = _read_kind(buf, 0)
    if kind is not TagKind.COMPOUND:
        raise FormatError("root tag must be COMPOUND, got {}".format(kind.name), 0)
    name, off = _read_string(buf, off, "tag name")
    if off == len(buf) and not name:
        # A stream that is exactly 0A 00 00 is an empty unnamed root with
        # its END omitted.  Remember that so it re-encodes identically.
        # A named root cut off here is truncated like anything else.
        value = TagValue._trusted(kind, {})
        value.implicit_end = True
        return TagNode._trusted(name, value), off
    value, off = _read_payload(buf, off, kind, 0, max_depth)
    return TagNode._trusted(name, value), off


def loads(data: bytes, *, max_depth: int = MAX_DEPTH) -> TagNode:
    """Decode `data`, which must hold exactly one root compound."""
    root, end = decode(data, max_depth=max_depth)
    if end != len(data):
        raise FormatError("trailing bytes after root compound", end)
    return root


# ── Writer ────────────────────────────────────────────────────

def _string_bytes(s: str, what: str) -> bytes:
    if not isinstance(s, str):
        raise TagValueError("{} must be a str, got {}".format(what, type(s).__name__))
    try:
        raw = s.encode("utf-8")
    except UnicodeEncodeError:
        raise TagValueError("{} is not valid UTF-8".format(what))
    if len(raw) > MAX_STRING_BYTES:
        raise TagValueError("{} is {} bytes; limit is {}".format(
            what, len(raw), MAX_STRING_BYTES))
    return _U16.pack(len(raw)) + raw


def _count_bytes(n: int, what: str) -> bytes:
    if n > MAX_COUNT:
        raise TagValueError("{} count {} exceeds int32".format(what, n))
    return _I32.pack(n)


def _write_payload(parts: List[bytes], value: TagValue, depth: int,
                   max_depth: int) -> None:
    kind = value.kind

    if kind in _INT_STRUCTS:
        parts.append(_INT_STRUCTS[kind].pack(value.payload))
    elif kind is TagKind.FLOAT:
        parts.append(_U32.pack(value.float_bits()))
    elif kind is TagKind.DOUBLE:
        parts.append(_U64.pack(value.float_bits()))
    elif kind is TagKind.STRING:
        parts.append(_string_bytes(value.payload, "STRING payload"))
    elif kind in _ARRAY_ITEMS:
        code, _size = _ARRAY_ITEMS[kind]
        items = value.payload
        parts.append(_count_bytes(len(items), kind.name))
        parts.append(struct.pack(">{}{}".format(len(items), code), *items))
    elif kind is TagKind.LIST:
        if depth > max_depth:
            raise ValidationError("nesting deeper than {}".format(max_depth))
        elem_kind = value.element_kind
        parts.append(bytes([elem_kind]))
        parts.append(_count_bytes(len(value.payload), "LIST"))
        for node in value.payload:
            if node.value.kind is not elem_kind:
                raise ValidationError("LIST of {} holds a {}".format(
                    elem_kind.name, node.value.kind.name))
            _write_payload(parts, node.value, depth + 1, max_depth)
    elif kind is TagKind.COMPOUND:
        if depth > max_depth:
            raise ValidationError("nesting deeper than {}".format(max_depth))
        for name, node in value.payload.items():
            parts.append(bytes([node.value.kind]))
            parts.append(_string_bytes(name, "tag name"))
            _write_payload(parts, node.value, depth + 1, max_depth)
        parts.append(bytes([TagKind.END]))
    else:
        raise ValidationError("{} has no payload".format(kind.name))


def encode(root: TagNode, *, max_depth: int = MAX_DEPTH) -> bytes:
    """Encode a root compound to bytes (the exact inverse of decode)."""
    _check_max_depth(max_depth)
    if root.kind is not TagKind.COMPOUND:
        raise ValidationError("root tag must be COMPOUND, got {}".format(root.kind.name))
    parts: List[bytes] = [bytes([TagKind.COMPOUND]), _string_bytes(root.name, "tag name")]
    if root.value.implicit_end and not root.value.payload and not root.name:
        return b"".join(parts)
    try:
        _write_payload(parts, root.value, 0, max_depth)
    except (struct.error, OverflowError) as e:
        # A payload was altered in place to something its width cannot hold.
        raise TagValueError("payload out of range: {}".format(e))
    return b"".join(parts)

