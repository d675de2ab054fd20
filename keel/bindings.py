"""
Keel value bindings and multi-value aggregation.

A binding is the read/write indirection point for the current value of one
option or positional parameter. The matcher never stores values itself; it
reads and writes through the binding its spec owns, so the same algorithm can
feed an internal slot, an attribute on a caller's object, a key in a caller's
mapping, or a pair of callbacks.

Protocol
- get() -> current value
- set(value) -> previous value (best effort; CallbackBinding returns None)
- Any exception raised by the underlying storage is re-raised as a
  BindingAccessError chained to the original exception.

Aggregation (aggregate)
- SCALAR: every value overwrites the previous one (last match wins).
- ARRAY: a new immutable container is built with the value appended.
- COLLECTION: the value is appended (or added) in place; the container is
  created when absent and always written back through the binding.
- MAP: the value is a (key, item) pair inserted into the mapping.
With fresh=True the current value is ignored and a new empty container is
used, which is how the first value of a parse replaces defaults.
"""
import builtins
import collections
import collections.abc
from abc import ABC, abstractmethod
from enum import Enum

from .faults import *
from .utils import Unset


class Kind(Enum):
    """
    Shape of the value a spec aggregates into.
    """
    SCALAR = "scalar"
    ARRAY = "array"
    COLLECTION = "collection"
    MAP = "map"


# abstract descriptors are mapped to the concrete container they create
_abstracts = {
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
}


def kindof(type, /):
    """
    Classify a type descriptor into a Kind.

    - str, bytes and bytearray are scalars even though they are sequences.
    - tuple and frozenset (and their subclasses) are arrays.
    - mappings are maps.
    - list, set, deque, mutable sequences/sets and the abstract descriptors
      (Sequence, Set, Collection, Iterable, ...) are collections.
    - everything else is a scalar.
    """
    if not isinstance(type, builtins.type):
        return Kind.SCALAR
    if issubclass(type, (str, bytes, bytearray)):
        return Kind.SCALAR
    if issubclass(type, (tuple, frozenset)):
        return Kind.ARRAY
    if issubclass(type, collections.abc.Mapping):
        return Kind.MAP
    if type in _abstracts or issubclass(type, (collections.abc.MutableSequence, collections.abc.MutableSet)):
        return Kind.COLLECTION
    return Kind.SCALAR


def factoryof(type, /):
    """
    Return the callable that builds an empty (or populated) container of `type`.
    """
    return _abstracts.get(type, type)


class Binding(ABC):
    """
    Read/write access to one logical value.

    Any object with callable get() and set(value) methods is accepted as a
    binding (see __subclasshook__), so callers do not have to inherit from it.
    """

    @abstractmethod
    def get(self): ...

    @abstractmethod
    def set(self, value, /): ...

    @classmethod
    def __subclasshook__(cls, subclass):
        if cls is not Binding:
            return NotImplemented
        if all(callable(getattr(subclass, name, None)) for name in ("get", "set")):
            return True
        return NotImplemented


def _fail(message, exception, /):
    trigger(BindingAccessError(
        message,
        title="binding access failed",
        code=FaultCode.BINDING_ACCESS,
        hint="the value storage raised %s: %s" % (type(exception).__name__, exception),
        docs=getdoc(FaultCode.BINDING_ACCESS),
    ), cause=exception)


class ValueBinding(Binding):
    """
    Binding that keeps the value in itself; used when no storage is supplied.
    """

    def __init__(self, initial=None, /):
        self._value = initial

    def get(self):
        return self._value

    def set(self, value, /):
        previous, self._value = self._value, value
        return previous

    def __repr__(self):
        return f"value-binding({self._value!r})"


class AttributeBinding(Binding):
    """
    Binding over an attribute of a caller-owned object.

    The binding does not own the target; it only reads and writes the named
    attribute. A missing attribute is a BindingAccessError on get().
    """

    def __init__(self, target, name, /):
        if not isinstance(name, str):
            raise TypeError("attribute-binding 'name' must be a string")
        elif not name.isidentifier():
            raise ValueError("attribute-binding 'name' must be a valid identifier")
        self._target = target
        self._name = name

    @property
    def target(self):
        return self._target

    @property
    def name(self):
        return self._name

    def get(self):
        try:
            return getattr(self._target, self._name)
        except Exception as exception:
            _fail("cannot read attribute %r of %s" % (self._name, type(self._target).__name__), exception)

    def set(self, value, /):
        try:
            previous = getattr(self._target, self._name, None)
        except Exception as exception:
            _fail("cannot read attribute %r of %s" % (self._name, type(self._target).__name__), exception)
        try:
            setattr(self._target, self._name, value)
        except Exception as exception:
            _fail("cannot write attribute %r of %s" % (self._name, type(self._target).__name__), exception)
        return previous

    def __repr__(self):
        return f"attribute-binding({type(self._target).__name__}.{self._name})"


class ItemBinding(Binding):
    """
    Binding over a key of a caller-owned mutable mapping.

    A missing key reads as None.
    """

    def __init__(self, mapping, key, /):
        self._mapping = mapping
        self._key = key

    @property
    def mapping(self):
        return self._mapping

    @property
    def key(self):
        return self._key

    def get(self):
        try:
            return self._mapping[self._key]
        except KeyError:
            return None
        except Exception as exception:
            _fail("cannot read key %r" % (self._key,), exception)

    def set(self, value, /):
        previous = self.get()
        try:
            self._mapping[self._key] = value
        except Exception as exception:
            _fail("cannot write key %r" % (self._key,), exception)
        return previous

    def __repr__(self):
        return f"item-binding({self._key!r})"


class CallbackBinding(Binding):
    """
    Binding over a getter callable and a setter callable.
    """

    def __init__(self, getter, setter, /):
        if not callable(getter) or not callable(setter):
            raise TypeError("callback-binding getter and setter must be callable")
        self._getter = getter
        self._setter = setter

    def get(self):
        try:
            return self._getter()
        except Exception as exception:
            _fail("cannot read value through %r" % getattr(self._getter, "__name__", self._getter), exception)

    def set(self, value, /):
        try:
            self._setter(value)
        except Exception as exception:
            _fail("cannot write value through %r" % getattr(self._setter, "__name__", self._setter), exception)

    def __repr__(self):
        return f"callback-binding({getattr(self._getter, '__name__', '?')}, {getattr(self._setter, '__name__', '?')})"


def aggregate(binding, kind, value, /, *, factory=list, fresh=False):
    """
    Combine a newly converted `value` with the binding's current value.

    Parameters
    - binding: the Binding of the option or positional.
    - kind: Kind of the declared type (see kindof).
    - value: the converted value; a (key, item) pair for maps.
    - factory: container constructor for ARRAY/COLLECTION/MAP (see factoryof).
    - fresh: ignore the current value and start from an empty container.

    Returns the value now held by the binding.
    """
    match kind:
        case Kind.SCALAR:
            binding.set(value)
            return value
        case Kind.ARRAY:
            current = () if fresh else binding.get()
            if current is None or current is Unset:
                current = ()
            binding.set(result := factory((*current, value)))
            return result
        case Kind.COLLECTION:
            current = None if fresh else binding.get()
            if current is None or current is Unset:
                current = factory()
            if isinstance(current, collections.abc.MutableSet):
                current.add(value)
            else:
                current.append(value)
            binding.set(current)
            return current
        case Kind.MAP:
            key, item = value
            current = None if fresh else binding.get()
            if current is None or current is Unset:
                current = factory()
            current[key] = item
            binding.set(current)
            return current
    raise TypeError(f"aggregate() kind must be a Kind, not {type(kind).__name__}")


__all__ = (
    # Kinds
    "Kind",
    "kindof",
    "factoryof",

    # Bindings
    "Binding",
    "ValueBinding",
    "AttributeBinding",
    "ItemBinding",
    "CallbackBinding",

    # Aggregation
    "aggregate",
)
