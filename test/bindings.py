"""
Bindings module behavioral tests.

Scope
- Validate the binding variants (value, attribute, item, callback) and the
  wrapping of storage failures into BindingAccessError.
- Validate type classification (kindof/factoryof) and the aggregation policy.

Conventions
- Test method names follow CamelCase per project convention.
"""
import collections
import collections.abc
import unittest
from types import SimpleNamespace
from unittest import TestCase

from keel.bindings import *
from keel.faults import BindingAccessError


class TestBindings(TestCase):
    """Get/set semantics of every binding variant."""

    def testValueBindingReturnsPrevious(self):
        binding = ValueBinding(1)
        self.assertEqual(binding.get(), 1)
        self.assertEqual(binding.set(2), 1)
        self.assertEqual(binding.get(), 2)

    def testValueBindingDefaultsToNone(self):
        self.assertIsNone(ValueBinding().get())

    def testAttributeBinding(self):
        target = SimpleNamespace(level=3)
        binding = AttributeBinding(target, "level")
        self.assertEqual(binding.get(), 3)
        self.assertEqual(binding.set(4), 3)
        self.assertEqual(target.level, 4)

    def testAttributeBindingMissingAttributeIsWrapped(self):
        binding = AttributeBinding(SimpleNamespace(), "level")
        with self.assertRaises(BindingAccessError) as context:
            binding.get()
        self.assertIsInstance(context.exception.cause, AttributeError)
        self.assertIs(context.exception.__cause__, context.exception.cause)

    def testAttributeBindingSetterFailureIsWrapped(self):
        class Frozen:
            __slots__ = ()

        with self.assertRaises(BindingAccessError) as context:
            AttributeBinding(Frozen(), "level").set(1)
        self.assertIsInstance(context.exception.cause, AttributeError)

    def testAttributeBindingGetterFailureOnSetIsWrapped(self):
        class Target:
            @property
            def level(self):
                raise ValueError("boom")

        with self.assertRaises(BindingAccessError) as context:
            AttributeBinding(Target(), "level").set(3)
        self.assertIsInstance(context.exception.cause, ValueError)
        self.assertIs(context.exception.__cause__, context.exception.cause)

    def testAttributeBindingValidatesName(self):
        with self.assertRaises(TypeError):
            AttributeBinding(object(), 1)
        with self.assertRaises(ValueError):
            AttributeBinding(object(), "not an identifier")

    def testItemBinding(self):
        mapping = {}
        binding = ItemBinding(mapping, "key")
        self.assertIsNone(binding.get())
        self.assertIsNone(binding.set("value"))
        self.assertEqual(mapping, {"key": "value"})
        self.assertEqual(binding.set("other"), "value")

    def testItemBindingOnReadOnlyMappingIsWrapped(self):
        from types import MappingProxyType

        with self.assertRaises(BindingAccessError) as context:
            ItemBinding(MappingProxyType({}), "key").set(1)
        self.assertIsInstance(context.exception.cause, TypeError)

    def testCallbackBinding(self):
        store = []
        binding = CallbackBinding(lambda: store[-1] if store else None, store.append)
        self.assertIsNone(binding.get())
        self.assertIsNone(binding.set(5))
        self.assertEqual(binding.get(), 5)

    def testCallbackBindingFailureIsWrapped(self):
        def setter(value):
            raise RuntimeError("read-only")

        with self.assertRaises(BindingAccessError) as context:
            CallbackBinding(lambda: None, setter).set(1)
        self.assertIsInstance(context.exception.cause, RuntimeError)

    def testCallbackBindingRequiresCallables(self):
        with self.assertRaises(TypeError):
            CallbackBinding(None, print)

    def testStructuralBindingProtocol(self):
        class Custom:
            def get(self):
                return None

            def set(self, value):
                return None

        self.assertIsInstance(Custom(), Binding)
        self.assertNotIsInstance(object(), Binding)


class TestKinds(TestCase):
    """Classification of type descriptors."""

    def testScalars(self):
        for type in (str, bytes, int, bool, float, object):
            self.assertIs(kindof(type), Kind.SCALAR, type)
        self.assertIs(kindof(lambda text: text), Kind.SCALAR)

    def testArrays(self):
        self.assertIs(kindof(tuple), Kind.ARRAY)
        self.assertIs(kindof(frozenset), Kind.ARRAY)

    def testCollections(self):
        for type in (list, set, collections.deque, collections.abc.Sequence, collections.abc.Iterable):
            self.assertIs(kindof(type), Kind.COLLECTION, type)

    def testMaps(self):
        self.assertIs(kindof(dict), Kind.MAP)
        self.assertIs(kindof(collections.abc.Mapping), Kind.MAP)
        self.assertIs(kindof(collections.OrderedDict), Kind.MAP)

    def testFactories(self):
        self.assertIs(factoryof(collections.abc.Sequence), list)
        self.assertIs(factoryof(collections.abc.Set), set)
        self.assertIs(factoryof(collections.abc.MutableMapping), dict)
        self.assertIs(factoryof(collections.deque), collections.deque)


class TestAggregate(TestCase):
    """Aggregation policy per container kind."""

    def testScalarLastWins(self):
        binding = ValueBinding()
        for value in (1, 2, 3):
            aggregate(binding, Kind.SCALAR, value)
        self.assertEqual(binding.get(), 3)

    def testArrayRebuildsContainer(self):
        binding = ValueBinding()
        aggregate(binding, Kind.ARRAY, 1, factory=tuple)
        first = binding.get()
        aggregate(binding, Kind.ARRAY, 2, factory=tuple)
        self.assertEqual(first, (1,))
        self.assertEqual(binding.get(), (1, 2))

    def testCollectionAppendsInOrder(self):
        binding = ValueBinding(["seed"])
        for index, value in enumerate(("v1", "v2", "v3")):
            aggregate(binding, Kind.COLLECTION, value, fresh=index == 0)
        self.assertEqual(binding.get(), ["v1", "v2", "v3"])

    def testCollectionExtendsExistingWhenNotFresh(self):
        binding = ValueBinding(["seed"])
        aggregate(binding, Kind.COLLECTION, "v1")
        self.assertEqual(binding.get(), ["seed", "v1"])

    def testSetCollectionUsesAdd(self):
        binding = ValueBinding()
        aggregate(binding, Kind.COLLECTION, "a", factory=set)
        aggregate(binding, Kind.COLLECTION, "a", factory=set)
        self.assertEqual(binding.get(), {"a"})

    def testMapInsertsPairs(self):
        binding = ValueBinding({"old": "x"})
        aggregate(binding, Kind.MAP, ("a", 1), factory=dict, fresh=True)
        aggregate(binding, Kind.MAP, ("b", 2), factory=dict)
        self.assertEqual(binding.get(), {"a": 1, "b": 2})

    def testCollectionWritesBackThroughBinding(self):
        target = SimpleNamespace(files=None)
        aggregate(AttributeBinding(target, "files"), Kind.COLLECTION, "a")
        self.assertEqual(target.files, ["a"])

    def testUnknownKindRejected(self):
        with self.assertRaises(TypeError):
            aggregate(ValueBinding(), "scalar", 1)


if __name__ == "__main__":
    unittest.main()
