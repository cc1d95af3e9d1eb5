"""nbtedit command-line interface.

Usage:
    python3 -m nbtedit dump level.dat
    python3 -m nbtedit get level.dat /Data/GameType
    python3 -m nbtedit set level.dat /Data/GameType 1 [--output FILE]
    python3 -m nbtedit version

Compressed files (gzip or zlib) are detected automatically and written
back in the same envelope unless --compression says otherwise.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from . import (
    COMPRESSION_AUTO,
    COMPRESSION_GZIP,
    COMPRESSION_NONE,
    COMPRESSION_ZLIB,
    Document,
    NbtError,
    __version__,
    describe,
    edit_text,
)

_COMPRESSIONS = [COMPRESSION_AUTO, COMPRESSION_NONE, COMPRESSION_GZIP, COMPRESSION_ZLIB]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nbtedit",
        description="nbtedit — inspect and edit NBT files",
    )
    sub = parser.add_subparsers(dest="command")

    def add_file(p: argparse.ArgumentParser) -> None:
        p.add_argument("file", help="NBT file")
        p.add_argument("--compression", "-c", choices=_COMPRESSIONS,
                       default=COMPRESSION_AUTO,
                       help="Envelope of FILE (default: detect)")

    # ── dump ──
    dump_p = sub.add_parser("dump", help="Print the tree, one tag per line")
    add_file(dump_p)
    dump_p.add_argument("--pointers", action="store_true",
                        help="Prefix each line with its pointer")

    # ── get ──
    get_p = sub.add_parser("get", help="Print one tag's value")
    add_file(get_p)
    get_p.add_argument("pointer", help='Tag pointer, e.g. /Data/GameType ("" for root)')

    # ── set ──
    set_p = sub.add_parser("set", help="Set one tag's value and save")
    add_file(set_p)
    set_p.add_argument("pointer", help="Tag pointer, e.g. /Data/GameType")
    set_p.add_argument("value", help="New value, parsed as the tag's current kind")
    set_p.add_argument("--output", "-o", metavar="FILE",
                       help="Write to FILE instead of replacing the input")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def _cmd_dump(args: argparse.Namespace) -> None:
    doc = Document.load(args.file, args.compression)
    for pointer, node, depth in doc.rows():
        line = describe(node, depth)
        if args.pointers:
            line = "{}\t{}".format(pointer or "/", line)
        print(line)


def _cmd_get(args: argparse.Namespace) -> None:
    doc = Document.load(args.file, args.compression)
    node = doc.node(args.pointer)
    if node.kind.is_container:
        print(describe(node))
    else:
        print(edit_text(node.value))


def _cmd_set(args: argparse.Namespace) -> None:
    doc = Document.load(args.file, args.compression)
    doc.set_value(args.pointer, args.value)
    doc.save(args.output)


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "version":
        print(f"nbtedit {__version__}")
        return

    try:
        if args.command == "dump":
            _cmd_dump(args)
        elif args.command == "get":
            _cmd_get(args)
        elif args.command == "set":
            _cmd_set(args)
    except NbtError as e:
        print(f"nbtedit: error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"nbtedit: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
