"""Read-only views of a tree for display code.

flatten() enumerates nodes depth-first in pre-order with their depth;
walk() adds the pointer path of each node.  describe() renders the
one-line summary a tree browser shows per row.
"""

from __future__ import annotations

from typing import Iterator, List, Tuple

from ._model import TagKind, TagNode, TagValue
from ._pointer import Path

_ARRAY_UNITS = {
    TagKind.BYTE_ARRAY: "bytes",
    TagKind.INT_ARRAY: "ints",
    TagKind.LONG_ARRAY: "longs",
}


def walk(root: TagNode) -> Iterator[Tuple[Path, TagNode, int]]:
    """Yield (path, node, depth) in pre-order, children in stored order.

    Iterative, so tree depth is not limited by the interpreter stack.
    The tree must not be edited while a walk is in progress.
    """
    stack: List[Tuple[Path, TagNode, int]] = [((), root, 0)]
    while stack:
        path, node, depth = stack.pop()
        yield path, node, depth
        value = node.value
        if value.kind is TagKind.COMPOUND:
            pending = [(path + (name,), child, depth + 1)
                       for name, child in value.payload.items()]
        elif value.kind is TagKind.LIST:
            pending = [(path + (i,), child, depth + 1)
                       for i, child in enumerate(value.payload)]
        else:
            continue
        stack.extend(reversed(pending))


class FlatView:
    """Lazy, restartable (node, depth) sequence; each iteration re-walks."""

    __slots__ = ("_root",)

    def __init__(self, root: TagNode) -> None:
        self._root = root

    def __iter__(self) -> Iterator[Tuple[TagNode, int]]:
        for _path, node, depth in walk(self._root):
            yield node, depth


def flatten(root: TagNode) -> FlatView:
    return FlatView(root)


def format_value(value: TagValue) -> str:
    """Short display form: 5L, 1.5f, "text", [3 ints], {2 entries}."""
    kind = value.kind
    if kind is TagKind.LONG:
        return "{}L".format(value.payload)
    if kind is TagKind.FLOAT:
        return "{!r}f".format(value.payload)
    if kind is TagKind.STRING:
        return '"{}"'.format(value.payload)
    if kind in _ARRAY_UNITS:
        return "[{} {}]".format(len(value.payload), _ARRAY_UNITS[kind])
    if kind is TagKind.LIST:
        return "[{} items]".format(len(value.payload))
    if kind is TagKind.COMPOUND:
        return "{{{} entries}}".format(len(value.payload))
    return repr(value.payload) if kind is TagKind.DOUBLE else str(value.payload)


def edit_text(value: TagValue) -> str:
    """Text that parse_value() turns back into the same value."""
    kind = value.kind
    if kind is TagKind.STRING:
        return value.payload
    if kind.is_container:
        return format_value(value)
    if kind in _ARRAY_UNITS:
        return ", ".join(str(n) for n in value.payload)
    if kind in (TagKind.FLOAT, TagKind.DOUBLE):
        return repr(value.payload)
    return str(value.payload)


def describe(node: TagNode, depth: int = 0) -> str:
    """One display line, e.g. '  SHORT("id"): 276'."""
    line = "  " * depth + node.kind.name
    if node.name:
        line += '("{}")'.format(node.name)
    return line + ": " + format_value(node.value)
