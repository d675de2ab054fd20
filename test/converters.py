"""
Converters module behavioral tests.

Scope
- Validate the builtin converters (booleans, prefixed integers, enums, paths, ...).
- Validate ConverterRegistry lookup order, registration forms and copy-on-write.

Conventions
- Test method names follow CamelCase per project convention.
"""
import enum
import pathlib
import unittest
from decimal import Decimal
from fractions import Fraction
from unittest import TestCase

from keel.converters import *


class Color(enum.Enum):
    RED = "r"
    GREEN = "g"


class Level(enum.IntEnum):
    LOW = 1
    HIGH = 2


class TestBuiltinConverters(TestCase):
    """Conversions provided by the default registry."""

    def testBooleans(self):
        self.assertIs(registry.convert(bool, "true"), True)
        self.assertIs(registry.convert(bool, "FALSE"), False)
        with self.assertRaises(ValueError):
            registry.convert(bool, "yes")

    def testIntegers(self):
        self.assertEqual(registry.convert(int, "42"), 42)
        self.assertEqual(registry.convert(int, "-7"), -7)
        self.assertEqual(registry.convert(int, "0x10"), 16)
        self.assertEqual(registry.convert(int, "0b101"), 5)
        self.assertEqual(registry.convert(int, "0o17"), 15)
        with self.assertRaises(ValueError):
            registry.convert(int, "4.2")

    def testScalars(self):
        self.assertEqual(registry.convert(float, "1.5"), 1.5)
        self.assertEqual(registry.convert(Decimal, "1.10"), Decimal("1.10"))
        self.assertEqual(registry.convert(bytes, "abc"), b"abc")
        self.assertEqual(registry.convert(str, "text"), "text")

    def testPathSubclassesResolveThroughBase(self):
        self.assertEqual(registry.convert(pathlib.Path, "a/b"), pathlib.Path("a/b"))
        self.assertEqual(registry.convert(type(pathlib.Path()), "a"), pathlib.Path("a"))

    def testEnumByNameThenValue(self):
        self.assertIs(registry.convert(Color, "RED"), Color.RED)
        self.assertIs(registry.convert(Color, "g"), Color.GREEN)
        self.assertIs(registry.convert(Level, "2"), Level.HIGH)
        with self.assertRaises(ValueError):
            registry.convert(Color, "blue")

    def testCallableTypeFallback(self):
        self.assertEqual(registry.convert(Fraction, "1/3"), Fraction(1, 3))


class TestRegistry(TestCase):
    """Registration and lookup on private registries."""

    def setUp(self):
        self.registry = registry.copy()

    def testCopyIsIndependent(self):
        self.registry.register(complex, lambda text: complex(text.replace(" ", "")))
        self.assertEqual(self.registry.convert(complex, "1 + 2j"), 1 + 2j)
        with self.assertRaises(ValueError):
            registry.convert(complex, "1 + 2j")

    def testDecoratorForm(self):
        @self.registry.register(Color)
        def tocolor(text):
            return Color.RED

        self.assertEqual(tocolor.__name__, "tocolor")
        self.assertIn(Color, self.registry)
        self.assertIs(self.registry.convert(Color, "anything"), Color.RED)

    def testRegisterRequiresCallable(self):
        with self.assertRaises(TypeError):
            self.registry.register(int, 1)
        with self.assertRaises(TypeError):
            self.registry.register()

    def testUnregister(self):
        converter = self.registry.unregister(bool)
        self.assertNotIn(bool, self.registry)
        self.assertTrue(callable(converter))
        with self.assertRaises(KeyError):
            self.registry.unregister(bool)

    def testTypesSnapshotIsImmutable(self):
        types = self.registry.types
        self.registry.register(Fraction, Fraction)
        self.assertNotIn(Fraction, types)
        self.assertIn(Fraction, self.registry.types)

    def testLookupFailsForNonCallables(self):
        with self.assertRaises(TypeError):
            self.registry.lookup("not-a-type")

    def testConstructorValidatesConverters(self):
        with self.assertRaises(TypeError):
            ConverterRegistry({int: "int"})


if __name__ == "__main__":
    unittest.main()
