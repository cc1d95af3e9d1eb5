"""nbtedit — read, edit and write NBT tag trees.

NBT is the named, typed binary tag format used to persist game state.
This package decodes a raw (already decompressed) byte stream into a
tree of TagNode objects, edits it in place while keeping every
structural invariant, and encodes it back byte-for-byte.

Quick start:
    >>> from nbtedit import TagKind, TagValue, new_root, insert, encode
    >>> root = new_root()
    >>> _ = insert(root, "id", TagValue(TagKind.SHORT, 276))
    >>> encode(root).hex()
    '0a00000200026964011400'

Files, including gzip/zlib envelopes and atomic saves, go through
Document:
    >>> doc = Document.load("level.dat")             # doctest: +SKIP
    >>> doc.set_value("/Data/GameType", "1")          # doctest: +SKIP
    >>> doc.save()                                    # doctest: +SKIP
"""

from __future__ import annotations

from ._codec import decode, encode, loads
from ._constants import MAX_DEPTH, MAX_STRING_BYTES
from ._document import (
    COMPRESSION_AUTO,
    COMPRESSION_GZIP,
    COMPRESSION_NONE,
    COMPRESSION_ZLIB,
    Document,
    atomic_write,
    detect_compression,
)
from ._editor import (
    change_kind,
    delete,
    insert,
    insert_list_element,
    parse_value,
    remove_list_element,
    rename,
    set_value,
)
from ._errors import (
    ERR_FORMAT,
    ERR_TRUNCATED,
    ERR_VALIDATION,
    ERR_VALUE,
    FormatError,
    NbtError,
    TagValueError,
    TruncatedError,
    ValidationError,
)
from ._model import (
    ARRAY_ITEM_KINDS,
    INT_RANGES,
    TagKind,
    TagNode,
    TagValue,
    new_root,
    parse_kind,
)
from ._pointer import format_pointer, parse_pointer, resolve
from ._view import FlatView, describe, edit_text, flatten, format_value, walk

__version__ = "1.0.0"

__all__ = [
    # Data model
    "TagKind",
    "TagValue",
    "TagNode",
    "new_root",
    "parse_kind",
    # Codec
    "decode",
    "encode",
    "loads",
    # Editor
    "insert",
    "delete",
    "rename",
    "set_value",
    "change_kind",
    "insert_list_element",
    "remove_list_element",
    "parse_value",
    # Pointers and views
    "parse_pointer",
    "format_pointer",
    "resolve",
    "flatten",
    "walk",
    "FlatView",
    "describe",
    "format_value",
    "edit_text",
    # Files
    "Document",
    "atomic_write",
    "detect_compression",
    "COMPRESSION_AUTO",
    "COMPRESSION_NONE",
    "COMPRESSION_GZIP",
    "COMPRESSION_ZLIB",
    # Limits
    "MAX_DEPTH",
    "MAX_STRING_BYTES",
    "INT_RANGES",
    "ARRAY_ITEM_KINDS",
    # Exceptions
    "NbtError",
    "TruncatedError",
    "FormatError",
    "ValidationError",
    "TagValueError",
    # Error codes
    "ERR_TRUNCATED",
    "ERR_FORMAT",
    "ERR_VALIDATION",
    "ERR_VALUE",
]
