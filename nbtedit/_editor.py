"""Tree editor — structural edits that keep every tree invariant.

Each operation validates everything first and only then mutates, so a
failed call leaves the tree exactly as it was:

    insert               add a named child to a compound
    delete               remove a child (and its subtree) from its parent
    rename               rename a compound child, keeping its position
    set_value            parse text into the node's current kind
    insert_list_element  add an item to a list (must match its kind)
    remove_list_element  remove a list item by index
    change_kind          reset a node to the zero value of another kind

Operations are not safe to run concurrently against one tree.
"""

from __future__ import annotations

import math
from typing import List, Optional, Union

from ._errors import TagValueError, ValidationError
from ._model import (
    ARRAY_ITEM_KINDS,
    INT_RANGES,
    TagKind,
    TagNode,
    TagValue,
    check_int,
    check_string,
    float32,
    parse_kind,
)

# Optional type suffixes accepted on numeric input ("12b", "300s", "5L", "1.5f").
_SUFFIXES = {
    TagKind.BYTE: "b",
    TagKind.SHORT: "s",
    TagKind.LONG: "l",
    TagKind.FLOAT: "f",
    TagKind.DOUBLE: "d",
}


# ── Text → value ──────────────────────────────────────────────

def _strip_suffix(kind: TagKind, s: str) -> str:
    suffix = _SUFFIXES.get(kind)
    if suffix and len(s) > 1 and s[-1].lower() == suffix:
        return s[:-1]
    return s


def _parse_int(kind: TagKind, text: str) -> int:
    s = _strip_suffix(kind, text.strip())
    # int() and float() also take "1_000"; plain digits only here.
    if "_" in s:
        raise TagValueError("{!r} is not a {} value".format(text, kind.name))
    try:
        n = int(s, 10)
    except ValueError:
        raise TagValueError("{!r} is not a {} value".format(text, kind.name))
    # Out-of-range input is rejected, never wrapped or truncated.
    return check_int(kind, n)


def _parse_float(kind: TagKind, text: str) -> float:
    s = text.strip()
    if "_" in s:
        raise TagValueError("{!r} is not a {} value".format(text, kind.name))
    try:
        x = float(s)
    except ValueError:
        # Only strip a suffix when needed: "inf" itself ends in "f".
        s = _strip_suffix(kind, s)
        try:
            x = float(s)
        except ValueError:
            raise TagValueError("{!r} is not a {} value".format(text, kind.name))
    if math.isinf(x) and "inf" not in s.lower():
        # float() turns "1e400" into inf without complaint.
        raise TagValueError("{!r} overflows {}".format(text, kind.name))
    if kind is TagKind.FLOAT:
        return float32(x)
    return x


def _parse_array(kind: TagKind, text: str) -> List[int]:
    s = text.strip()
    if s.startswith("[") and s.endswith("]"):
        s = s[1:-1].strip()
    if not s:
        return []
    item_kind = ARRAY_ITEM_KINDS[kind]
    return [_parse_int(item_kind, part) for part in s.split(",")]


def parse_value(kind: Union[TagKind, int, str], text: str) -> TagValue:
    """Parse user text into a value of `kind`.

    Raises TagValueError if the text does not parse or does not fit the
    kind's width.  Compounds and lists have no text form.
    """
    kind = parse_kind(kind)
    if not isinstance(text, str):
        raise TagValueError("input must be text")
    if kind in INT_RANGES:
        return TagValue(kind, _parse_int(kind, text))
    if kind in (TagKind.FLOAT, TagKind.DOUBLE):
        return TagValue(kind, _parse_float(kind, text))
    if kind is TagKind.STRING:
        return TagValue(kind, text)
    if kind in ARRAY_ITEM_KINDS:
        return TagValue(kind, _parse_array(kind, text))
    raise TagValueError("{} values cannot be set from text".format(kind.name))


# ── Compound edits ────────────────────────────────────────────

def _require(node: Optional[TagNode], kind: TagKind, op: str) -> None:
    if node is None or node.kind is not kind:
        got = "nothing" if node is None else node.kind.name
        raise ValidationError("{} needs a {}, got {}".format(op, kind.name, got))


def insert(parent: TagNode, name: str, value: TagValue) -> TagNode:
    """Add `value` under `parent` as `name` and return the new node.

    The value is copied, so nothing the caller holds becomes part of
    the tree.
    """
    _require(parent, TagKind.COMPOUND, "insert")
    children = parent.value.payload
    if name in children:
        raise ValidationError("{!r} already exists".format(name))
    if not isinstance(value, TagValue):
        raise TagValueError("insert needs a TagValue")
    node = TagNode(name, value.copy())
    children[name] = node
    return node


def delete(parent: Optional[TagNode], child: Union[str, int, TagNode]) -> None:
    """Remove `child` and its whole subtree from `parent`.

    `child` is a name (compound parent), an index (list parent), or the
    child node itself.  The root has no parent and cannot be deleted.
    """
    if parent is None:
        raise ValidationError("the root cannot be deleted")

    if parent.kind is TagKind.COMPOUND:
        children = parent.value.payload
        name = child.name if isinstance(child, TagNode) else child
        if name not in children:
            raise ValidationError("no child named {!r}".format(name))
        if isinstance(child, TagNode) and children[name] is not child:
            raise ValidationError("{!r} is not a child of this compound".format(name))
        del children[name]
        return

    if parent.kind is TagKind.LIST:
        if isinstance(child, TagNode):
            for index, item in enumerate(parent.value.payload):
                if item is child:
                    break
            else:
                raise ValidationError("node is not an item of this list")
        else:
            index = child
        remove_list_element(parent, index)
        return

    raise ValidationError("{} has no children".format(parent.kind.name))


def rename(parent: TagNode, old_name: str, new_name: str) -> None:
    """Rename a compound child in place; it keeps its position."""
    _require(parent, TagKind.COMPOUND, "rename")
    children = parent.value.payload
    if old_name not in children:
        raise ValidationError("no child named {!r}".format(old_name))
    check_string(new_name, "tag name")
    if new_name == old_name:
        return
    if new_name in children:
        raise ValidationError("{!r} already exists".format(new_name))

    reordered = {}
    for name, node in children.items():
        reordered[new_name if name == old_name else name] = node
    children[old_name].name = new_name
    children.clear()
    children.update(reordered)


# ── Value edits ───────────────────────────────────────────────

def set_value(node: TagNode, raw: str) -> None:
    """Replace the node's payload with `raw` parsed as its current kind."""
    node.value = parse_value(node.kind, raw)


def change_kind(node: TagNode, new_kind: Union[TagKind, int, str],
                parent: Optional[TagNode] = None) -> None:
    """Reset `node` to the zero value of `new_kind`.

    A list item may change kind only while it is the list's only item;
    the list's declared element kind follows it.  Pass the list as
    `parent` in that case.
    """
    new_kind = parse_kind(new_kind)
    if new_kind is TagKind.END:
        raise ValidationError("END is not a value kind")
    in_list = parent is not None and parent.kind is TagKind.LIST
    if in_list and len(parent.value.payload) != 1:
        raise ValidationError("list items share one kind; cannot retype one of many")
    node.value = TagValue(new_kind)
    if in_list:
        parent.value.element_kind = new_kind


# ── List edits ────────────────────────────────────────────────

def insert_list_element(list_node: TagNode, value: TagValue,
                        index: Optional[int] = None) -> TagNode:
    """Insert a copy of `value` into a list (at the end by default).

    The first item into an empty list fixes the list's element kind.
    """
    _require(list_node, TagKind.LIST, "insert_list_element")
    if not isinstance(value, TagValue):
        raise TagValueError("insert_list_element needs a TagValue")
    lst = list_node.value
    items = lst.payload
    if items and value.kind is not lst.element_kind:
        raise ValidationError("cannot add {} to a list of {}".format(
            value.kind.name, lst.element_kind.name))
    if index is None:
        index = len(items)
    if isinstance(index, bool) or not 0 <= index <= len(items):
        raise ValidationError("list index {} out of range".format(index))
    node = TagNode("", value.copy())
    lst.element_kind = value.kind
    items.insert(index, node)
    return node


def remove_list_element(list_node: TagNode, index: int) -> None:
    """Remove the item at `index`.  An emptied list keeps its element kind."""
    _require(list_node, TagKind.LIST, "remove_list_element")
    items = list_node.value.payload
    if isinstance(index, bool) or not isinstance(index, int) \
            or not 0 <= index < len(items):
        raise ValidationError("list index {} out of range".format(index))
    del items[index]
