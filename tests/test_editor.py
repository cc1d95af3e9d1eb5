"""Editor tests: each operation either applies fully or leaves the tree alone."""

from __future__ import annotations

import math
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nbtedit import (
    ERR_VALIDATION,
    ERR_VALUE,
    TagKind,
    TagNode,
    TagValue,
    TagValueError,
    ValidationError,
    change_kind,
    delete,
    encode,
    flatten,
    insert,
    insert_list_element,
    loads,
    new_root,
    parse_value,
    remove_list_element,
    rename,
    set_value,
)


def _abc_root() -> TagNode:
    root = new_root()
    for name in ("A", "B", "C"):
        insert(root, name, TagValue(TagKind.INT, ord(name)))
    return root


def _names(root: TagNode):
    return [node.name for node, depth in flatten(root) if depth == 1]


# ── Construction invariants ───────────────────────────────────

class TestConstruction(unittest.TestCase):
    def test_integer_widths(self):
        for kind, lo, hi in [
            (TagKind.BYTE, -128, 127),
            (TagKind.SHORT, -(2**15), 2**15 - 1),
            (TagKind.INT, -(2**31), 2**31 - 1),
            (TagKind.LONG, -(2**63), 2**63 - 1),
        ]:
            with self.subTest(kind=kind):
                self.assertEqual(TagValue(kind, lo).payload, lo)
                self.assertEqual(TagValue(kind, hi).payload, hi)
                with self.assertRaises(TagValueError):
                    TagValue(kind, hi + 1)
                with self.assertRaises(TagValueError):
                    TagValue(kind, lo - 1)

    def test_bool_is_not_an_int(self):
        with self.assertRaises(TagValueError):
            TagValue(TagKind.BYTE, True)

    def test_float_rounds_to_single_precision(self):
        self.assertEqual(TagValue(TagKind.FLOAT, 0.1).payload,
                         0.10000000149011612)

    def test_float_overflow_rejected(self):
        with self.assertRaises(TagValueError):
            TagValue(TagKind.FLOAT, 1e39)

    def test_string_65535_bytes_ok_65536_rejected(self):
        self.assertEqual(len(TagValue(TagKind.STRING, "a" * 65535).payload), 65535)
        with self.assertRaises(TagValueError) as ctx:
            TagValue(TagKind.STRING, "a" * 65536)
        self.assertEqual(ctx.exception.code, ERR_VALUE)

    def test_lone_surrogate_rejected(self):
        with self.assertRaises(TagValueError):
            TagValue(TagKind.STRING, "\ud800")

    def test_end_holds_no_value(self):
        with self.assertRaises(ValidationError):
            TagValue(TagKind.END)

    def test_defaults(self):
        self.assertEqual(TagValue(TagKind.SHORT).payload, 0)
        self.assertEqual(TagValue(TagKind.DOUBLE).payload, 0.0)
        self.assertEqual(TagValue(TagKind.STRING).payload, "")
        self.assertEqual(TagValue(TagKind.INT_ARRAY).payload, [])
        self.assertEqual(TagValue(TagKind.COMPOUND).payload, {})
        self.assertIs(TagValue(TagKind.LIST).element_kind, TagKind.END)

    def test_heterogeneous_list_rejected(self):
        with self.assertRaises(ValidationError):
            TagValue(TagKind.LIST, [TagValue(TagKind.INT, 1), TagValue(TagKind.SHORT, 1)])

    def test_list_declared_kind_must_match(self):
        with self.assertRaises(ValidationError):
            TagValue(TagKind.LIST, [TagValue(TagKind.INT, 1)], TagKind.BYTE)

    def test_empty_list_may_declare_any_kind(self):
        self.assertIs(TagValue(TagKind.LIST, [], TagKind.COMPOUND).element_kind,
                      TagKind.COMPOUND)

    def test_compound_duplicate_names_rejected(self):
        with self.assertRaises(ValidationError):
            TagValue(TagKind.COMPOUND, [
                TagNode("a", TagValue(TagKind.BYTE, 1)),
                TagNode("a", TagValue(TagKind.BYTE, 2)),
            ])

    def test_compound_from_mapping_keeps_order(self):
        value = TagValue(TagKind.COMPOUND, {
            "z": TagValue(TagKind.BYTE, 1),
            "a": TagValue(TagKind.BYTE, 2),
        })
        self.assertEqual(list(value.payload), ["z", "a"])

    def test_list_never_holds_one_node_twice(self):
        item = TagNode("", TagValue(TagKind.INT, 1))
        value = TagValue(TagKind.LIST, [item, item])
        first, second = value.payload
        self.assertIsNot(first, second)
        self.assertIsNot(first, item)
        first.value = TagValue(TagKind.INT, 9)
        self.assertEqual(second.value.payload, 1)
        self.assertEqual(item.value.payload, 1)

    def test_list_items_from_one_value_are_separate(self):
        shared = TagValue(TagKind.INT, 1)
        first, second = TagValue(TagKind.LIST, [shared, shared]).payload
        self.assertIsNot(first.value, second.value)

    def test_compound_never_shares_a_child_with_another(self):
        owner = TagValue(TagKind.COMPOUND, {"a": TagValue(TagKind.BYTE, 1)})
        other = TagValue(TagKind.COMPOUND, [owner.payload["a"]])
        self.assertIsNot(other.payload["a"], owner.payload["a"])
        set_value(owner.payload["a"], "7")
        self.assertEqual(other.payload["a"].value.payload, 1)

    def test_nested_construction_shares_nothing(self):
        inner = TagValue(TagKind.COMPOUND, {"x": TagValue(TagKind.SHORT, 2)})
        outer = TagValue(TagKind.LIST, [inner, inner])
        ids = [id(node) for node, _depth in flatten(TagNode("", outer))]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertIsNot(outer.payload[0].value, inner)

    def test_equality_includes_child_order(self):
        one = TagValue(TagKind.COMPOUND, {"a": TagValue(TagKind.BYTE, 1),
                                          "b": TagValue(TagKind.BYTE, 2)})
        two = TagValue(TagKind.COMPOUND, {"b": TagValue(TagKind.BYTE, 2),
                                          "a": TagValue(TagKind.BYTE, 1)})
        self.assertNotEqual(one, two)


# ── insert / delete / rename ──────────────────────────────────

class TestCompoundEdits(unittest.TestCase):
    def test_insert_appends(self):
        root = _abc_root()
        self.assertEqual(_names(root), ["A", "B", "C"])

    def test_insert_duplicate_fails_unchanged(self):
        root = _abc_root()
        before = encode(root)
        with self.assertRaises(ValidationError) as ctx:
            insert(root, "B", TagValue(TagKind.STRING, "x"))
        self.assertEqual(ctx.exception.code, ERR_VALIDATION)
        self.assertEqual(encode(root), before)

    def test_insert_into_non_compound_fails(self):
        root = _abc_root()
        with self.assertRaises(ValidationError):
            insert(root.value.payload["A"], "x", TagValue(TagKind.BYTE, 1))

    def test_insert_copies_value(self):
        root = new_root()
        shared = TagValue(TagKind.COMPOUND)
        first = insert(root, "one", shared)
        second = insert(root, "two", shared)
        insert(first, "x", TagValue(TagKind.BYTE, 1))
        self.assertEqual(second.children(), [])
        self.assertEqual(shared.payload, {})

    def test_delete_then_insert_order(self):
        root = _abc_root()
        delete(root, "B")
        insert(root, "D", TagValue(TagKind.INT, 4))
        self.assertEqual(_names(root), ["A", "C", "D"])
        self.assertEqual(list(loads(encode(root)).value.payload), ["A", "C", "D"])

    def test_delete_removes_from_serialization(self):
        root = _abc_root()
        delete(root, root.value.payload["C"])
        self.assertNotIn(b"C", encode(root)[3:])

    def test_delete_missing_fails(self):
        root = _abc_root()
        with self.assertRaises(ValidationError):
            delete(root, "Z")
        self.assertEqual(_names(root), ["A", "B", "C"])

    def test_delete_foreign_node_fails(self):
        root = _abc_root()
        impostor = TagNode("A", TagValue(TagKind.INT, 65))
        with self.assertRaises(ValidationError):
            delete(root, impostor)
        self.assertEqual(_names(root), ["A", "B", "C"])

    def test_delete_root_fails(self):
        root = _abc_root()
        with self.assertRaises(ValidationError):
            delete(None, root)

    def test_delete_from_leaf_fails(self):
        root = _abc_root()
        with self.assertRaises(ValidationError):
            delete(root.value.payload["A"], "x")

    def test_rename_keeps_position(self):
        root = _abc_root()
        rename(root, "B", "Bee")
        self.assertEqual(_names(root), ["A", "Bee", "C"])
        self.assertEqual(root.value.payload["Bee"].name, "Bee")

    def test_rename_collision_fails_unchanged(self):
        root = _abc_root()
        with self.assertRaises(ValidationError):
            rename(root, "A", "C")
        self.assertEqual(_names(root), ["A", "B", "C"])

    def test_rename_missing_fails(self):
        with self.assertRaises(ValidationError):
            rename(_abc_root(), "Q", "R")

    def test_rename_to_same_name_is_noop(self):
        root = _abc_root()
        rename(root, "A", "A")
        self.assertEqual(_names(root), ["A", "B", "C"])


# ── set_value / parse_value ───────────────────────────────────

class TestSetValue(unittest.TestCase):
    def _node(self, kind: TagKind, payload=None) -> TagNode:
        root = new_root()
        return insert(root, "n", TagValue(kind, payload))

    def test_byte_300_rejected_unchanged(self):
        node = self._node(TagKind.BYTE, 7)
        with self.assertRaises(TagValueError) as ctx:
            set_value(node, "300")
        self.assertIsInstance(ctx.exception, ValueError)
        self.assertEqual(node.value.payload, 7)

    def test_integer_kinds(self):
        for kind, text, expected in [
            (TagKind.BYTE, "-128", -128),
            (TagKind.BYTE, "12b", 12),
            (TagKind.SHORT, "276", 276),
            (TagKind.SHORT, "300s", 300),
            (TagKind.INT, " 70000 ", 70000),
            (TagKind.LONG, "9223372036854775807L", 2**63 - 1),
        ]:
            with self.subTest(kind=kind, text=text):
                node = self._node(kind)
                set_value(node, text)
                self.assertEqual(node.value.payload, expected)

    def test_integer_overflow_never_wraps(self):
        for kind, text in [
            (TagKind.SHORT, "32768"),
            (TagKind.INT, "-2147483649"),
            (TagKind.LONG, "9223372036854775808"),
        ]:
            with self.subTest(kind=kind):
                node = self._node(kind, 1)
                with self.assertRaises(TagValueError):
                    set_value(node, text)
                self.assertEqual(node.value.payload, 1)

    def test_garbage_rejected(self):
        for kind in (TagKind.INT, TagKind.FLOAT, TagKind.DOUBLE, TagKind.INT_ARRAY):
            with self.subTest(kind=kind):
                with self.assertRaises(TagValueError):
                    set_value(self._node(kind), "twelve")

    def test_digit_group_underscores_rejected(self):
        for kind, text in [
            (TagKind.INT, "1_000"),
            (TagKind.LONG, "1_000L"),
            (TagKind.DOUBLE, "1_000.5"),
            (TagKind.FLOAT, "1_0f"),
            (TagKind.INT_ARRAY, "1, 2_0"),
        ]:
            with self.subTest(kind=kind, text=text):
                node = self._node(kind)
                before = node.value.copy()
                with self.assertRaises(TagValueError):
                    set_value(node, text)
                self.assertEqual(node.value, before)

    def test_floats(self):
        node = self._node(TagKind.FLOAT)
        set_value(node, "20.5f")
        self.assertEqual(node.value.payload, 20.5)
        set_value(node, "inf")
        self.assertTrue(math.isinf(node.value.payload))
        node = self._node(TagKind.DOUBLE)
        set_value(node, "-200.75")
        self.assertEqual(node.value.payload, -200.75)

    def test_float_overflow_rejected(self):
        node = self._node(TagKind.FLOAT, 1.0)
        with self.assertRaises(TagValueError):
            set_value(node, "1e39")
        self.assertEqual(node.value.payload, 1.0)
        node = self._node(TagKind.DOUBLE, 1.0)
        with self.assertRaises(TagValueError):
            set_value(node, "1e400")

    def test_string_replaced_verbatim(self):
        node = self._node(TagKind.STRING, "old")
        set_value(node, "  Test Player  ")
        self.assertEqual(node.value.payload, "  Test Player  ")

    def test_string_too_long_rejected(self):
        node = self._node(TagKind.STRING, "old")
        with self.assertRaises(TagValueError):
            set_value(node, "x" * 65536)
        self.assertEqual(node.value.payload, "old")

    def test_arrays(self):
        node = self._node(TagKind.BYTE_ARRAY)
        set_value(node, "[1, -2, 127]")
        self.assertEqual(node.value.payload, [1, -2, 127])
        node = self._node(TagKind.LONG_ARRAY)
        set_value(node, "")
        self.assertEqual(node.value.payload, [])
        with self.assertRaises(TagValueError):
            set_value(self._node(TagKind.BYTE_ARRAY), "1, 128")

    def test_containers_have_no_text_form(self):
        for kind in (TagKind.COMPOUND, TagKind.LIST):
            with self.subTest(kind=kind):
                with self.assertRaises(TagValueError):
                    set_value(self._node(kind), "1")

    def test_parse_value_by_kind_name(self):
        self.assertEqual(parse_value("short", "5"), TagValue(TagKind.SHORT, 5))


# ── Lists ─────────────────────────────────────────────────────

class TestListEdits(unittest.TestCase):
    def _list(self, *values: TagValue) -> TagNode:
        root = new_root()
        return insert(root, "l", TagValue(TagKind.LIST, list(values)))

    def test_empty_list_adopts_first_kind(self):
        lst = self._list()
        insert_list_element(lst, TagValue(TagKind.DOUBLE, 1.0))
        self.assertIs(lst.value.element_kind, TagKind.DOUBLE)

    def test_heterogeneous_insert_fails_unchanged(self):
        lst = self._list(TagValue(TagKind.INT, 1), TagValue(TagKind.INT, 2))
        with self.assertRaises(ValidationError):
            insert_list_element(lst, TagValue(TagKind.STRING, "3"))
        self.assertEqual([n.value.payload for n in lst.children()], [1, 2])
        self.assertIs(lst.value.element_kind, TagKind.INT)

    def test_insert_at_index(self):
        lst = self._list(TagValue(TagKind.INT, 1), TagValue(TagKind.INT, 3))
        insert_list_element(lst, TagValue(TagKind.INT, 2), 1)
        self.assertEqual([n.value.payload for n in lst.children()], [1, 2, 3])

    def test_insert_bad_index(self):
        lst = self._list(TagValue(TagKind.INT, 1))
        with self.assertRaises(ValidationError):
            insert_list_element(lst, TagValue(TagKind.INT, 2), 5)

    def test_insert_into_non_list(self):
        root = new_root()
        with self.assertRaises(ValidationError):
            insert_list_element(root, TagValue(TagKind.INT, 1))

    def test_remove_keeps_element_kind(self):
        lst = self._list(TagValue(TagKind.SHORT, 1))
        remove_list_element(lst, 0)
        self.assertEqual(lst.children(), [])
        self.assertIs(lst.value.element_kind, TagKind.SHORT)

    def test_remove_out_of_range(self):
        with self.assertRaises(ValidationError):
            remove_list_element(self._list(), 0)

    def test_delete_by_index_and_node(self):
        lst = self._list(*(TagValue(TagKind.INT, i) for i in range(4)))
        delete(lst, 0)
        delete(lst, lst.children()[-1])
        self.assertEqual([n.value.payload for n in lst.children()], [1, 2])

    def test_list_of_compounds_edits(self):
        root = new_root()
        lst = insert(root, "items", TagValue(TagKind.LIST))
        item = insert_list_element(lst, TagValue(TagKind.COMPOUND))
        insert(item, "id", TagValue(TagKind.SHORT, 264))
        self.assertEqual(item.name, "")
        decoded = loads(encode(root)).value.payload["items"].children()[0]
        self.assertEqual(decoded.value.payload["id"].value.payload, 264)


# ── change_kind ───────────────────────────────────────────────

class TestChangeKind(unittest.TestCase):
    def test_resets_to_zero_value(self):
        root = new_root()
        node = insert(root, "n", TagValue(TagKind.STRING, "hello"))
        change_kind(node, TagKind.LONG)
        self.assertEqual(node.value, TagValue(TagKind.LONG, 0))
        change_kind(node, "compound")
        self.assertEqual(node.children(), [])

    def test_end_rejected(self):
        root = new_root()
        node = insert(root, "n", TagValue(TagKind.INT, 3))
        with self.assertRaises(ValidationError):
            change_kind(node, TagKind.END)
        self.assertEqual(node.value.payload, 3)

    def test_unknown_kind_rejected(self):
        root = new_root()
        node = insert(root, "n", TagValue(TagKind.INT, 3))
        with self.assertRaises(TagValueError):
            change_kind(node, 42)

    def test_list_node_kind_change_is_not_element_kind(self):
        root = new_root()
        node = insert(root, "l", TagValue(TagKind.LIST, [TagValue(TagKind.INT, 1)]))
        change_kind(node, TagKind.LIST)
        self.assertEqual(node.children(), [])
        self.assertIs(node.value.element_kind, TagKind.END)

    def test_sole_list_item_carries_list_kind(self):
        root = new_root()
        lst = insert(root, "l", TagValue(TagKind.LIST, [TagValue(TagKind.INT, 1)]))
        change_kind(lst.children()[0], TagKind.STRING, parent=lst)
        self.assertIs(lst.value.element_kind, TagKind.STRING)
        self.assertEqual(loads(encode(root)), root)

    def test_one_of_many_list_items_rejected(self):
        root = new_root()
        lst = insert(root, "l", TagValue(TagKind.LIST, [
            TagValue(TagKind.INT, 1), TagValue(TagKind.INT, 2)]))
        with self.assertRaises(ValidationError):
            change_kind(lst.children()[0], TagKind.STRING, parent=lst)
        self.assertEqual(lst.children()[0].value.payload, 1)


if __name__ == "__main__":
    unittest.main()
