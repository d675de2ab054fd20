"""
Utils module behavioral tests.

Scope
- Validate the Unset sentinel (singleton, falsy, copy identity, finality, unions).
- Validate coalesce/rename/mirror/pluralize helpers.

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import unittest
from types import MappingProxyType
from unittest import TestCase

from keel.utils import *


class TestUnset(TestCase):
    """Semantic guarantees of the Unset sentinel."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsyAndRepr(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testCopyPreservesIdentity(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy([Unset])[0], Unset)

    def testCannotSubclass(self):
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})

    def testUnionInIsinstance(self):
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("text", str | Unset))
        self.assertFalse(isinstance(1, str | Unset))


class TestHelpers(TestCase):
    """Behavior of the small helper functions."""

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)

    def testRenameBothForms(self):
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__name__, "decorated")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 1)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorReturnsImmutableSnapshots(self):
        class Holder:
            items = mirror("items")
            table = mirror("table")
            pair = mirror("pair")

            def __init__(self):
                self._items = ["a", "b"]
                self._table = {"k": ["v"]}
                self._pair = (1, 2)

        holder = Holder()
        self.assertEqual(holder.items, ("a", "b"))
        self.assertIsInstance(holder.table, MappingProxyType)
        self.assertEqual(holder.table["k"], ("v",))
        self.assertIs(holder.pair, holder._pair)
        with self.assertRaises(AttributeError):
            holder.items = ()

    def testPluralize(self):
        self.assertEqual(pluralize("option"), "options")
        self.assertEqual(pluralize("required parameter"), "required parameters")
        self.assertEqual(pluralize("Entry"), "Entries")
        self.assertEqual(pluralize("index"), "indices")
        self.assertEqual(pluralize("match"), "matches")


if __name__ == "__main__":
    unittest.main()
