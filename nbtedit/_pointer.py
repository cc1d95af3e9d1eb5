"""Tag pointers — address a node by its path from the root.

A pointer is written like an RFC 6901 JSON Pointer: "" is the root and
"/inventory/items/0/id" walks compound names and list indices.  In a
name, "~0" stands for "~" and "~1" for "/".

Presentation layers keep pointers, never node references, and resolve
them again on every access.  A deleted node then fails to resolve
instead of being edited through a stale reference.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple, Union

from ._errors import ValidationError
from ._model import TagKind, TagNode

PathItem = Union[str, int]
Path = Tuple[PathItem, ...]


def parse_pointer(ptr: str) -> Tuple[str, ...]:
    """Parse a pointer into reference tokens.

    "" (empty string) → () (the root).  Otherwise must start with "/".
    Tokens stay strings; whether one is a name or an index depends on
    the node it is applied to.
    """
    if ptr == "":
        return ()
    if not ptr.startswith("/"):
        raise ValidationError("pointer must start with '/'")

    tokens: List[str] = []
    for raw in ptr.split("/")[1:]:
        # Decode character by character: "~01" must become "~1", not "/".
        decoded = ""
        i = 0
        while i < len(raw):
            if raw[i] != "~":
                decoded += raw[i]
                i += 1
                continue
            if i + 1 >= len(raw):
                raise ValidationError("dangling ~ in pointer")
            nxt = raw[i + 1]
            if nxt == "0":
                decoded += "~"
            elif nxt == "1":
                decoded += "/"
            else:
                raise ValidationError("bad ~{} escape in pointer".format(nxt))
            i += 2
        tokens.append(decoded)
    return tuple(tokens)


def format_pointer(path: Iterable[PathItem]) -> str:
    """Inverse of parse_pointer."""
    return "".join(
        "/" + str(tok).replace("~", "~0").replace("/", "~1") for tok in path
    )


def as_path(path: Union[str, Iterable[PathItem]]) -> Path:
    """Accept a pointer string or an already-split path."""
    if isinstance(path, str):
        return parse_pointer(path)
    return tuple(path)


def _step(node: TagNode, tok: PathItem) -> TagNode:
    kind = node.kind
    if kind is TagKind.COMPOUND:
        name = str(tok)
        try:
            return node.value.payload[name]
        except KeyError:
            raise ValidationError("no child named {!r}".format(name))
    if kind is TagKind.LIST:
        if isinstance(tok, bool):
            raise ValidationError("bad list index {!r}".format(tok))
        if isinstance(tok, str):
            if not (tok.isascii() and tok.isdigit()):
                raise ValidationError("bad list index {!r}".format(tok))
            tok = int(tok)
        items = node.value.payload
        if tok < 0 or tok >= len(items):
            raise ValidationError("list index {} out of range".format(tok))
        return items[tok]
    raise ValidationError("cannot descend into {}".format(kind.name))


def resolve(root: TagNode, path: Union[str, Iterable[PathItem]]) -> TagNode:
    """Return the node `path` addresses under `root`."""
    node = root
    for tok in as_path(path):
        node = _step(node, tok)
    return node


def resolve_parent(root: TagNode,
                   path: Union[str, Iterable[PathItem]]) -> Tuple[TagNode, PathItem]:
    """Return (parent node, last token) for a non-root path."""
    toks = as_path(path)
    if not toks:
        raise ValidationError("the root has no parent")
    parent = resolve(root, toks[:-1])
    last = toks[-1]
    _step(parent, last)
    if parent.kind is TagKind.LIST:
        last = int(last)
    return parent, last
