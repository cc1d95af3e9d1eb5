#!/usr/bin/env python3
# tools/roundtrip_runner.py
#
# Codec round-trip invariants (property tests) plus mutation fuzzing.
#
# This runner:
# - generates random tag trees covering every kind within limits
# - checks decode(encode(tree)) == tree and encode(decode(b)) == b
# - truncates and corrupts valid encodings and checks the decoder only
#   ever fails with an NbtError (never IndexError, struct.error, ...)
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, random, struct
from typing import Any, Dict

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from nbtedit import (
    ARRAY_ITEM_KINDS,
    INT_RANGES,
    NbtError,
    TagKind,
    TagNode,
    TagValue,
    decode,
    encode,
    flatten,
    loads,
)

SEED = int(os.environ.get("NBT_SEED", "1337"))
TRIALS = int(os.environ.get("NBT_TRIALS", "2000"))
MAX_GEN_DEPTH = int(os.environ.get("NBT_GEN_MAX_DEPTH", "6"))
MAX_KEYS = int(os.environ.get("NBT_GEN_MAX_KEYS", "6"))
MAX_LIST = int(os.environ.get("NBT_GEN_MAX_LIST", "6"))
MAX_STR = int(os.environ.get("NBT_GEN_MAX_STR", "24"))
MUTATIONS = int(os.environ.get("NBT_MUTATIONS", "8"))

random.seed(SEED)

SCALARS = [
    TagKind.BYTE, TagKind.SHORT, TagKind.INT, TagKind.LONG,
    TagKind.FLOAT, TagKind.DOUBLE, TagKind.STRING,
    TagKind.BYTE_ARRAY, TagKind.INT_ARRAY, TagKind.LONG_ARRAY,
]

def rand_utf8_string() -> str:
    # Unicode scalar values only; surrogates are not encodable.
    out = []
    for _ in range(random.randint(0, MAX_STR)):
        r = random.random()
        if r < 0.70:
            out.append(chr(random.randint(0x20, 0x7E)))
        elif r < 0.85:
            out.append(chr(random.randint(0xA0, 0xFF)))
        elif r < 0.95:
            out.append(chr(random.randint(0x0100, 0xD7FF)))
        else:
            out.append(chr(random.randint(0x10000, 0x10FFFF)))
    return "".join(out)

def rand_int(kind: TagKind) -> int:
    lo, hi = INT_RANGES[kind]
    if random.random() < 0.2:
        return random.choice([lo, hi, 0, -1])
    return random.randint(lo, hi)

def rand_float(kind: TagKind) -> float:
    r = random.random()
    if r < 0.1:
        return random.choice([0.0, -0.0, float("inf"), float("-inf")])
    v = random.uniform(-1e6, 1e6)
    if kind is TagKind.FLOAT:
        v = struct.unpack(">f", struct.pack(">f", v))[0]
    return v

def gen_scalar(kind: TagKind) -> TagValue:
    if kind in INT_RANGES:
        return TagValue(kind, rand_int(kind))
    if kind in (TagKind.FLOAT, TagKind.DOUBLE):
        return TagValue(kind, rand_float(kind))
    if kind is TagKind.STRING:
        return TagValue(kind, rand_utf8_string())
    item = ARRAY_ITEM_KINDS[kind]
    return TagValue(kind, [rand_int(item) for _ in range(random.randint(0, MAX_LIST))])

def gen_value(depth: int) -> TagValue:
    r = random.random()
    if depth >= MAX_GEN_DEPTH or r < 0.5:
        return gen_scalar(random.choice(SCALARS))
    if r < 0.75:
        return gen_compound(depth + 1)
    n = random.randint(0, MAX_LIST)
    if n == 0:
        # Empty lists may declare any element kind, END included.
        return TagValue(TagKind.LIST, [], random.choice(list(TagKind)))
    if random.random() < 0.3:
        items = [gen_compound(depth + 1) for _ in range(n)]
    else:
        kind = random.choice(SCALARS)
        items = [gen_scalar(kind) for _ in range(n)]
    return TagValue(TagKind.LIST, items)

def gen_compound(depth: int) -> TagValue:
    names = list(dict.fromkeys(rand_utf8_string() for _ in range(random.randint(0, MAX_KEYS))))
    children: Dict[str, Any] = {}
    for name in names:
        children[name] = gen_value(depth)
    return TagValue(TagKind.COMPOUND, children)

def gen_root() -> TagNode:
    return TagNode(rand_utf8_string(), gen_compound(0))

def mutate(data: bytes) -> bytes:
    buf = bytearray(data)
    r = random.random()
    if r < 0.4:
        return bytes(buf[:random.randint(0, len(buf) - 1)])
    for _ in range(random.randint(1, 3)):
        buf[random.randrange(len(buf))] = random.getrandbits(8)
    return bytes(buf)

def fail(label: str, context: Any) -> int:
    print("INVARIANT FAIL:", label)
    print("CTX:", repr(context)[:2000])
    return 1

def main() -> int:
    for t in range(TRIALS):
        root = gen_root()

        # (1) Encode stability
        b1 = encode(root)
        if encode(root) != b1:
            return fail("encode stability", {"trial": t})

        # (2) decode(encode(tree)) == tree
        back = loads(b1)
        if back != root:
            return fail("tree round trip", {"trial": t, "bytes": b1.hex()})

        # (3) encode(decode(b)) == b
        if encode(back) != b1:
            return fail("byte round trip", {"trial": t, "bytes": b1.hex()})

        # (4) flatten visits every node exactly once
        if len(list(flatten(root))) != len(list(flatten(back))):
            return fail("flatten count", {"trial": t})

        # (5) Mutations fail cleanly or decode to something that re-encodes
        for _ in range(MUTATIONS):
            m = mutate(b1)
            try:
                got, end = decode(m)
            except NbtError:
                continue
            except Exception as e:
                return fail("non-NbtError from decoder: {!r}".format(e),
                            {"trial": t, "bytes": m.hex()})
            if encode(got) != m[:end]:
                return fail("mutated byte round trip", {"trial": t, "bytes": m.hex()})

    print(f"OK: round-trip invariants passed for TRIALS={TRIALS} seed={SEED}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
