"""Documents — one NBT file loaded for editing.

A Document owns the root of a tree plus what is needed to write it back:
the source path, the compression envelope it came in, and a `modified`
flag for the caller's status line.  All edits are addressed by pointer
(see _pointer.py) and resolved on every call.

Saving is all-or-nothing: the tree is encoded in memory first, written
to a temporary file next to the target, fsynced, and then moved over
the target with os.replace().  Readers of the target see either the old
file or the new one, never a partial write.
"""

from __future__ import annotations

import gzip
import os
import stat
import tempfile
import zlib
from typing import Iterator, Optional, Tuple, Union

from ._codec import encode, loads
from ._constants import GZIP_MAGIC, MAX_DEPTH, ZLIB_FIRST_BYTE
from ._errors import FormatError, TruncatedError, ValidationError
from . import _editor
from ._model import TagKind, TagNode, TagValue, check_string, new_root, parse_kind
from ._pointer import PathItem, as_path, format_pointer, resolve, resolve_parent
from ._view import walk

COMPRESSION_AUTO = "auto"
COMPRESSION_NONE = "none"
COMPRESSION_GZIP = "gzip"
COMPRESSION_ZLIB = "zlib"

_ENVELOPES = (COMPRESSION_NONE, COMPRESSION_GZIP, COMPRESSION_ZLIB)

Pointer = Union[str, Tuple[PathItem, ...]]


# ── Compression envelope ──────────────────────────────────────

def detect_compression(data: bytes) -> str:
    """Guess the envelope from magic bytes.  Raw NBT starts with 0x0A."""
    if data[:2] == GZIP_MAGIC:
        return COMPRESSION_GZIP
    # zlib header: CMF=0x78 and (CMF*256 + FLG) divisible by 31.
    if len(data) >= 2 and data[0] == ZLIB_FIRST_BYTE and (data[0] * 256 + data[1]) % 31 == 0:
        return COMPRESSION_ZLIB
    return COMPRESSION_NONE


def unwrap(data: bytes, compression: str) -> bytes:
    """Strip the compression envelope, returning the raw tag stream."""
    if compression == COMPRESSION_NONE:
        return data
    try:
        if compression == COMPRESSION_GZIP:
            return gzip.decompress(data)
        if compression == COMPRESSION_ZLIB:
            return zlib.decompress(data)
    except EOFError:
        raise TruncatedError("truncated {} stream".format(compression))
    except (OSError, zlib.error) as e:
        raise FormatError("bad {} stream: {}".format(compression, e))
    raise ValidationError("unknown compression {!r}".format(compression))


def wrap(data: bytes, compression: str) -> bytes:
    """Apply a compression envelope to a raw tag stream."""
    if compression == COMPRESSION_NONE:
        return data
    if compression == COMPRESSION_GZIP:
        # mtime=0 keeps output identical for identical trees.
        return gzip.compress(data, mtime=0)
    if compression == COMPRESSION_ZLIB:
        return zlib.compress(data)
    raise ValidationError("unknown compression {!r}".format(compression))


def atomic_write(path: str, data: bytes) -> None:
    """Replace `path` with `data` so no reader ever sees a partial file."""
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp = tempfile.mkstemp(
        dir=directory, prefix="." + os.path.basename(path) + ".", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600; keep the target's permissions.
        try:
            os.chmod(tmp, stat.S_IMODE(os.stat(path).st_mode))
        except FileNotFoundError:
            pass
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


# ── Document ──────────────────────────────────────────────────

class Document:
    """An editable tree with its file path, envelope and modified flag."""

    def __init__(self, root: Optional[TagNode] = None, path: Optional[str] = None,
                 compression: str = COMPRESSION_NONE) -> None:
        if root is None:
            root = new_root()
        if root.kind is not TagKind.COMPOUND:
            raise ValidationError("the root must be a COMPOUND")
        if compression not in _ENVELOPES:
            raise ValidationError("unknown compression {!r}".format(compression))
        self.root = root
        self.path = path
        self.compression = compression
        self.modified = False

    @classmethod
    def from_bytes(cls, data: bytes, compression: str = COMPRESSION_AUTO, *,
                   path: Optional[str] = None,
                   max_depth: int = MAX_DEPTH) -> "Document":
        if compression == COMPRESSION_AUTO:
            compression = detect_compression(data)
        root = loads(unwrap(data, compression), max_depth=max_depth)
        return cls(root, path, compression)

    @classmethod
    def load(cls, path: str, compression: str = COMPRESSION_AUTO, *,
             max_depth: int = MAX_DEPTH) -> "Document":
        """Read and decode a file.  Nothing is returned if decoding fails."""
        with open(path, "rb") as f:
            data = f.read()
        return cls.from_bytes(data, compression, path=path, max_depth=max_depth)

    def to_bytes(self) -> bytes:
        return wrap(encode(self.root), self.compression)

    def save(self, path: Optional[str] = None) -> None:
        """Encode and atomically write to `path` (default: where it was loaded)."""
        target = path or self.path
        if not target:
            raise ValidationError("no path to save to")
        # Encode first: an unencodable tree must not touch the file.
        data = self.to_bytes()
        atomic_write(target, data)
        self.path = target
        self.modified = False

    # ── Reading ──

    def node(self, pointer: Pointer) -> TagNode:
        return resolve(self.root, pointer)

    def rows(self) -> Iterator[Tuple[str, TagNode, int]]:
        """(pointer, node, depth) for every node, in display order."""
        for path, node, depth in walk(self.root):
            yield format_pointer(path), node, depth

    # ── Editing ──
    # Each method either applies fully and sets `modified`, or raises.

    def insert(self, pointer: Pointer, name: str, value: TagValue) -> TagNode:
        node = _editor.insert(self.node(pointer), name, value)
        self.modified = True
        return node

    def append(self, pointer: Pointer, value: TagValue,
               index: Optional[int] = None) -> TagNode:
        node = _editor.insert_list_element(self.node(pointer), value, index)
        self.modified = True
        return node

    def delete(self, pointer: Pointer) -> None:
        if not as_path(pointer):
            raise ValidationError("the root cannot be deleted")
        parent, last = resolve_parent(self.root, pointer)
        _editor.delete(parent, last)
        self.modified = True

    def rename(self, pointer: Pointer, new_name: str) -> None:
        if not as_path(pointer):
            # The root's own name is not held by any compound.
            self.root.name = check_string(new_name, "tag name")
            self.modified = True
            return
        parent, last = resolve_parent(self.root, pointer)
        if parent.kind is not TagKind.COMPOUND:
            raise ValidationError("list items are unnamed")
        _editor.rename(parent, last, new_name)
        self.modified = True

    def set_value(self, pointer: Pointer, raw: str) -> None:
        _editor.set_value(self.node(pointer), raw)
        self.modified = True

    def change_kind(self, pointer: Pointer, kind: Union[TagKind, int, str]) -> None:
        if not as_path(pointer):
            if parse_kind(kind) is not TagKind.COMPOUND:
                raise ValidationError("the root must stay a COMPOUND")
            _editor.change_kind(self.root, kind)
        else:
            parent, _last = resolve_parent(self.root, pointer)
            node = resolve(self.root, pointer)
            _editor.change_kind(node, kind, parent)
        self.modified = True
