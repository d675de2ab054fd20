"""
Keel value converters.

A converter is a plain callable that takes one token string and returns a typed
value, raising any exception when the text does not fit. The registry maps type
descriptors to converters; the matcher wraps whatever a converter raises into a
TypeConversionError carrying the original exception as its cause.

Lookup order (ConverterRegistry.lookup)
- exact registration for the type;
- Enum subclasses → member lookup by name, then by value;
- the closest registered base class along the MRO;
- the type itself when it is callable (str-accepting constructors such as
  fractions.Fraction or user classes);
- otherwise TypeError.

Concurrency
- The table is a read-only MappingProxyType that register()/unregister() replace
  wholesale under a lock, so concurrent lookups never lock and never observe a
  half-updated table. Registration is expected to happen before parsing starts.

Quick example
    >>> registry = ConverterRegistry()
    >>> registry.convert(int, "0x10")
    16
    >>> @registry.register(complex)
    ... def tocomplex(text):
    ...     return complex(text.replace(" ", ""))
"""
import builtins
import datetime
import decimal
import enum
import functools
import ipaddress
import pathlib
import re
import uuid
from threading import Lock
from types import MappingProxyType

from .utils import rename


def _toboolean(text, /):
    match text.lower():
        case "true":
            return True
        case "false":
            return False
    raise ValueError("'%s' is not a boolean, expected 'true' or 'false'" % text)


def _tointeger(text, /):
    # prefixed literals (0x.., 0o.., 0b..) with an optional sign
    if re.fullmatch(r"[+-]?0[xXoObB][0-9a-fA-F_]+", text):
        return int(text, 0)
    return int(text)


def _tobytes(text, /):
    return text.encode()


def _toenum(cls, text, /):
    try:
        return cls[text]
    except KeyError:
        pass
    for member in cls:
        if str(member.value) == text:
            return member
    raise ValueError("'%s' is not one of %s" % (text, ", ".join(cls.__members__)))


_builtins = {
    str: str,
    bool: _toboolean,
    int: _tointeger,
    float: float,
    complex: complex,
    bytes: _tobytes,
    decimal.Decimal: decimal.Decimal,
    pathlib.Path: pathlib.Path,
    pathlib.PurePath: pathlib.PurePath,
    uuid.UUID: uuid.UUID,
    datetime.date: datetime.date.fromisoformat,
    datetime.time: datetime.time.fromisoformat,
    datetime.datetime: datetime.datetime.fromisoformat,
    re.Pattern: re.compile,
    ipaddress.IPv4Address: ipaddress.IPv4Address,
    ipaddress.IPv6Address: ipaddress.IPv6Address,
}


class ConverterRegistry:
    """
    Read-many registry of value converters keyed by type descriptor.
    """

    def __init__(self, converters=_builtins, /):
        for type, converter in converters.items():
            if not callable(converter):
                raise TypeError(f"converter for {type!r} must be callable")
        self._converters = MappingProxyType(dict(converters))
        self._lock = Lock()

    @property
    def types(self):
        return tuple(self._converters.keys())

    def __contains__(self, type, /):
        return type in self._converters

    def register(self, *parameters):
        """
        Register a converter for a type, or return a decorator that will.

        Forms
        - register(type, converter) -> converter
        - register(type) -> decorator: @registry.register(Color)
        """
        match len(parameters):
            case 2:
                type, converter = parameters
                if not callable(converter):
                    raise TypeError("register() converter must be callable")
                with self._lock:
                    self._converters = MappingProxyType(self._converters | {type: converter})
                return converter
            case 1:
                type, = parameters

                def wrapper(converter):
                    return self.register(type, converter)

                return rename(wrapper, "register")
            case _:
                raise TypeError("register takes 1 to 2 arguments but %d were given" % len(parameters))

    def unregister(self, type, /):
        with self._lock:
            converters = dict(self._converters)
            try:
                converter = converters.pop(type)
            except KeyError:
                raise KeyError(f"no converter registered for {type!r}") from None
            self._converters = MappingProxyType(converters)
        return converter

    def lookup(self, type, /):
        """
        Return the converter for `type` (see module docstring for the order).
        """
        converters = self._converters
        try:
            return converters[type]
        except (KeyError, TypeError):
            pass
        if isinstance(type, builtins.type) and issubclass(type, enum.Enum):
            return functools.partial(_toenum, type)
        for base in getattr(type, "__mro__", ())[1:]:
            if base is object:
                break
            if base in converters:
                return converters[base]
        if callable(type):
            return type
        raise TypeError(f"no converter registered for {type!r}")

    def convert(self, type, text, /):
        return self.lookup(type)(text)

    def copy(self):
        return type(self)(self._converters)

    def __repr__(self):
        return f"converter-registry(types={len(self._converters)})"


registry = ConverterRegistry()
"""
Process-wide default registry; CommandSpec uses it unless given another one.
"""


__all__ = (
    "ConverterRegistry",
    "registry",
)
