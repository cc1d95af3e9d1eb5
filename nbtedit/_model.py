"""NBT data model — tag kinds, tag values, and named tag nodes.

A tree is made of TagNode objects (a name plus a TagValue).  Compound
values own their children in an insertion-ordered dict keyed by name;
list values own an ordered list of unnamed TagNodes that all share the
list's declared element kind.

Payload representation per kind:

    BYTE, SHORT, INT, LONG     int, range-checked to the kind's width
    FLOAT, DOUBLE              float (FLOAT is rounded to single precision)
    STRING                     str, at most 65535 bytes once UTF-8 encoded
    BYTE/INT/LONG_ARRAY        list of int, each range-checked
    LIST                       list of TagNode (name "")
    COMPOUND                   dict of name -> TagNode, in insertion order

Everything is validated at construction so that a tree built from these
classes always satisfies the invariants the encoder relies on.
Container payloads are copied on the way in, so a node handed to a
constructor twice, or already owned by another tree, never ends up with
two parents.
"""

from __future__ import annotations

import enum
import math
import struct
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ._constants import (
    INT8_MAX,
    INT8_MIN,
    INT16_MAX,
    INT16_MIN,
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    MAX_COUNT,
    MAX_STRING_BYTES,
    TAG_BYTE,
    TAG_BYTE_ARRAY,
    TAG_COMPOUND,
    TAG_DOUBLE,
    TAG_END,
    TAG_FLOAT,
    TAG_INT,
    TAG_INT_ARRAY,
    TAG_LIST,
    TAG_LONG,
    TAG_LONG_ARRAY,
    TAG_SHORT,
    TAG_STRING,
)
from ._errors import TagValueError, ValidationError


class TagKind(enum.IntEnum):
    """The thirteen tag kinds, valued by their wire id."""

    END = TAG_END
    BYTE = TAG_BYTE
    SHORT = TAG_SHORT
    INT = TAG_INT
    LONG = TAG_LONG
    FLOAT = TAG_FLOAT
    DOUBLE = TAG_DOUBLE
    BYTE_ARRAY = TAG_BYTE_ARRAY
    STRING = TAG_STRING
    LIST = TAG_LIST
    COMPOUND = TAG_COMPOUND
    INT_ARRAY = TAG_INT_ARRAY
    LONG_ARRAY = TAG_LONG_ARRAY

    @property
    def is_container(self) -> bool:
        return self in (TagKind.LIST, TagKind.COMPOUND)

    @property
    def is_array(self) -> bool:
        return self in ARRAY_ITEM_KINDS


# Integer kinds and the inclusive range each one can hold.
INT_RANGES: Dict[TagKind, Tuple[int, int]] = {
    TagKind.BYTE: (INT8_MIN, INT8_MAX),
    TagKind.SHORT: (INT16_MIN, INT16_MAX),
    TagKind.INT: (INT32_MIN, INT32_MAX),
    TagKind.LONG: (INT64_MIN, INT64_MAX),
}

# Array kinds and the scalar kind of their items.
ARRAY_ITEM_KINDS: Dict[TagKind, TagKind] = {
    TagKind.BYTE_ARRAY: TagKind.BYTE,
    TagKind.INT_ARRAY: TagKind.INT,
    TagKind.LONG_ARRAY: TagKind.LONG,
}


def parse_kind(text: Union[str, int]) -> TagKind:
    """Look up a kind by name ("short", "BYTE_ARRAY", "int-array") or wire id."""
    if isinstance(text, int) and not isinstance(text, bool):
        try:
            return TagKind(text)
        except ValueError:
            raise TagValueError("unknown tag id {}".format(text))
    key = str(text).strip().upper().replace("-", "_")
    if key.isdigit():
        return parse_kind(int(key))
    try:
        return TagKind[key]
    except KeyError:
        raise TagValueError("unknown tag kind {!r}".format(text))


# ── Scalar checks ─────────────────────────────────────────────

def check_int(kind: TagKind, val: Any) -> int:
    lo, hi = INT_RANGES[kind]
    # bool is a subclass of int; True is not a valid BYTE.
    if isinstance(val, bool) or not isinstance(val, int):
        raise TagValueError("{} payload must be an int, got {}".format(
            kind.name, type(val).__name__))
    if val < lo or val > hi:
        raise TagValueError("{} out of {} range [{}, {}]".format(val, kind.name, lo, hi))
    return val


def float32(val: Any) -> float:
    """Round a number to IEEE-754 single precision, rejecting overflow."""
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise TagValueError("FLOAT payload must be a number, got {}".format(
            type(val).__name__))
    try:
        return struct.unpack(">f", struct.pack(">f", val))[0]
    except (OverflowError, struct.error):
        raise TagValueError("{} does not fit a 32-bit float".format(val))


def check_string(val: Any, what: str = "STRING payload") -> str:
    if not isinstance(val, str):
        raise TagValueError("{} must be a str, got {}".format(what, type(val).__name__))
    try:
        raw = val.encode("utf-8")
    except UnicodeEncodeError:
        raise TagValueError("{} is not valid UTF-8".format(what))
    if len(raw) > MAX_STRING_BYTES:
        raise TagValueError("{} is {} bytes; limit is {}".format(
            what, len(raw), MAX_STRING_BYTES))
    return val


def _check_array(kind: TagKind, val: Any) -> List[int]:
    if kind is TagKind.BYTE_ARRAY and isinstance(val, (bytes, bytearray)):
        # Raw bytes are reinterpreted as signed 8-bit items.
        return list(struct.unpack(">{}b".format(len(val)), val))
    if isinstance(val, (str, bytes, bytearray)) or not isinstance(val, Iterable):
        raise TagValueError("{} payload must be a sequence of ints".format(kind.name))
    item_kind = ARRAY_ITEM_KINDS[kind]
    items = [check_int(item_kind, item) for item in val]
    if len(items) > MAX_COUNT:
        raise TagValueError("{} has too many items".format(kind.name))
    return items


def default_payload(kind: TagKind) -> Any:
    """Zero value for a kind."""
    if kind in INT_RANGES:
        return 0
    if kind in (TagKind.FLOAT, TagKind.DOUBLE):
        return 0.0
    if kind is TagKind.STRING:
        return ""
    if kind in ARRAY_ITEM_KINDS or kind is TagKind.LIST:
        return []
    if kind is TagKind.COMPOUND:
        return {}
    raise ValidationError("{} has no payload".format(kind.name))


# ── TagValue ──────────────────────────────────────────────────

class TagValue:
    """One payload of one kind.

    `element_kind` is meaningful only for LIST (END for everything else).
    `raw_bits` is set by the decoder for FLOAT/DOUBLE NaNs so their exact
    bit pattern survives re-encoding.  `implicit_end` marks a root compound
    whose stream stopped right after its header, with no END byte; it is
    written back the same way while it stays empty.
    """

    __slots__ = ("kind", "payload", "element_kind", "raw_bits", "implicit_end")

    def __init__(self, kind: Union[TagKind, int], payload: Any = None,
                 element_kind: Optional[Union[TagKind, int]] = None) -> None:
        kind = parse_kind(kind)
        if kind is TagKind.END:
            raise ValidationError("END is a terminator and holds no value")
        self.kind = kind
        self.raw_bits: Optional[int] = None
        self.implicit_end = False
        if payload is None:
            payload = default_payload(kind)

        if kind is TagKind.LIST:
            self.payload, self.element_kind = _check_list(payload, element_kind)
            return

        if element_kind not in (None, TagKind.END):
            raise ValidationError("only LIST values declare an element kind")
        self.element_kind = TagKind.END

        if kind in INT_RANGES:
            self.payload = check_int(kind, payload)
        elif kind is TagKind.FLOAT:
            self.payload = float32(payload)
        elif kind is TagKind.DOUBLE:
            if isinstance(payload, bool) or not isinstance(payload, (int, float)):
                raise TagValueError("DOUBLE payload must be a number")
            try:
                self.payload = float(payload)
            except OverflowError:
                raise TagValueError("{} does not fit a 64-bit float".format(payload))
        elif kind is TagKind.STRING:
            self.payload = check_string(payload)
        elif kind in ARRAY_ITEM_KINDS:
            self.payload = _check_array(kind, payload)
        else:
            self.payload = _check_compound(payload)

    @classmethod
    def _trusted(cls, kind: TagKind, payload: Any,
                 element_kind: TagKind = TagKind.END,
                 raw_bits: Optional[int] = None) -> "TagValue":
        """Build without validation.  Only for callers that already checked."""
        self = cls.__new__(cls)
        self.kind = kind
        self.payload = payload
        self.element_kind = element_kind
        self.raw_bits = raw_bits
        self.implicit_end = False
        return self

    # ── Accessors ──

    def children(self) -> List["TagNode"]:
        """Child nodes in stored order (empty for non-containers)."""
        if self.kind is TagKind.COMPOUND:
            return list(self.payload.values())
        if self.kind is TagKind.LIST:
            return list(self.payload)
        return []

    def float_bits(self) -> int:
        """IEEE-754 bit pattern of a FLOAT/DOUBLE payload."""
        if self.raw_bits is not None and math.isnan(self.payload):
            return self.raw_bits
        if self.kind is TagKind.FLOAT:
            return struct.unpack(">I", struct.pack(">f", self.payload))[0]
        return struct.unpack(">Q", struct.pack(">d", self.payload))[0]

    def copy(self) -> "TagValue":
        """Deep copy; the copy shares no nodes with the original."""
        if self.kind is TagKind.COMPOUND:
            payload: Any = {name: node.copy() for name, node in self.payload.items()}
        elif self.kind is TagKind.LIST:
            payload = [node.copy() for node in self.payload]
        elif self.kind in ARRAY_ITEM_KINDS:
            payload = list(self.payload)
        else:
            payload = self.payload
        clone = TagValue._trusted(self.kind, payload, self.element_kind, self.raw_bits)
        clone.implicit_end = self.implicit_end
        return clone

    # ── Comparison ──

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagValue):
            return NotImplemented
        if self.kind is not other.kind or self.element_kind is not other.element_kind:
            return False
        if self.kind in (TagKind.FLOAT, TagKind.DOUBLE):
            # Compare bits so NaN == NaN and 0.0 != -0.0, as on the wire.
            return self.float_bits() == other.float_bits()
        if self.kind is TagKind.COMPOUND:
            # dict equality ignores order; child order is part of the value.
            return list(self.payload.items()) == list(other.payload.items())
        return self.payload == other.payload

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.kind is TagKind.LIST:
            return "TagValue(LIST[{}], {!r})".format(self.element_kind.name, self.payload)
        return "TagValue({}, {!r})".format(self.kind.name, self.payload)


def _check_compound(payload: Any) -> Dict[str, "TagNode"]:
    out: Dict[str, TagNode] = {}
    if isinstance(payload, Mapping):
        items: Iterable[Any] = payload.items()
    elif isinstance(payload, Iterable) and not isinstance(payload, (str, bytes)):
        items = ((getattr(node, "name", None), node) for node in payload)
    else:
        raise TagValueError("COMPOUND payload must be a mapping or node sequence")
    for name, child in items:
        # Children are copied so no node ends up under two parents.
        if isinstance(child, TagValue):
            child = TagNode(name, child.copy())
        elif isinstance(child, TagNode):
            child = child.copy()
        else:
            raise TagValueError("COMPOUND children must be TagNode or TagValue")
        if child.name != name:
            raise ValidationError("child name {!r} does not match key {!r}".format(
                child.name, name))
        if name in out:
            raise ValidationError("duplicate child name {!r}".format(name))
        out[name] = child
    return out


def _check_list(payload: Any,
                element_kind: Optional[Union[TagKind, int]]) -> Tuple[List["TagNode"], TagKind]:
    if isinstance(payload, (str, bytes, Mapping)) or not isinstance(payload, Iterable):
        raise TagValueError("LIST payload must be a sequence")
    nodes: List[TagNode] = []
    for item in payload:
        if isinstance(item, TagValue):
            item = TagNode("", item.copy())
        elif isinstance(item, TagNode):
            item = item.copy()
        else:
            raise TagValueError("LIST items must be TagValue or TagNode")
        if item.name:
            raise ValidationError("LIST items are unnamed")
        nodes.append(item)
    if len(nodes) > MAX_COUNT:
        raise TagValueError("LIST has too many items")

    declared = None if element_kind is None else parse_kind(element_kind)
    if nodes:
        first = nodes[0].value.kind
        if declared not in (None, TagKind.END, first):
            raise ValidationError("LIST declares {} but holds {}".format(
                declared.name, first.name))
        for node in nodes[1:]:
            if node.value.kind is not first:
                raise ValidationError("LIST mixes {} and {}".format(
                    first.name, node.value.kind.name))
        return nodes, first
    return nodes, declared if declared is not None else TagKind.END


# ── TagNode ───────────────────────────────────────────────────

class TagNode:
    """A named tag.  The name is empty for list items."""

    __slots__ = ("name", "value")

    def __init__(self, name: str, value: TagValue) -> None:
        if not isinstance(value, TagValue):
            raise TagValueError("node value must be a TagValue")
        self.name = check_string(name, "tag name")
        self.value = value

    @classmethod
    def _trusted(cls, name: str, value: TagValue) -> "TagNode":
        node = cls.__new__(cls)
        node.name = name
        node.value = value
        return node

    @property
    def kind(self) -> TagKind:
        return self.value.kind

    def children(self) -> List["TagNode"]:
        return self.value.children()

    def copy(self) -> "TagNode":
        return TagNode._trusted(self.name, self.value.copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagNode):
            return NotImplemented
        return self.name == other.name and self.value == other.value

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "TagNode({!r}, {!r})".format(self.name, self.value)


def new_root(name: str = "") -> TagNode:
    """An empty root compound."""
    return TagNode(name, TagValue(TagKind.COMPOUND))
