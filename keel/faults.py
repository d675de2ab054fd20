"""
Keel faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault the engine reports.
- CommandException / CommandWarning: base types that carry a message plus a
  read-only mapping of context options, and know how to render themselves.
- trigger(): central entry point to surface any fault with extra context.
- getdoc(): optional description lookup for a code from the host application.

Context options
- command: the CommandSpec frame the fault belongs to (usage for the right
  subcommand can be shown from it).
- argument: the OptionSpec/PositionalParamSpec that triggered the fault, if any.
- cause: the wrapped original exception, if any. Errors are raised chained to it.
- title, code, hint: presentation data used by __rich__.
- input, index, and fault-specific payload (missing, suggestions, names, ...).

Host configuration
- __styles__ in __main__ overrides rendering styles.
- __codes__ in __main__ relabels fault codes (see FaultCode.normalize).
- __docs__ in __main__ maps fault codes to documentation strings (see getdoc).
"""
import inspect
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - model (1110x): DUPLICATE_NAME
    - matching (1111x/1112x): UNMATCHED_ARGUMENT, MISSING_PARAMETER
    - values (1113x/1114x): TYPE_CONVERSION, BINDING_ACCESS
    - warnings (12xxx): UNMATCHED_ARGUMENT_ALLOWED
    """
    # --- model errors ---
    DUPLICATE_NAME              = 11101

    # --- matching errors ---
    UNMATCHED_ARGUMENT          = 11111
    MISSING_PARAMETER           = 11121

    # --- value errors ---
    TYPE_CONVERSION             = 11131
    BINDING_ACCESS              = 11141

    # --- warnings ---
    UNMATCHED_ARGUMENT_ALLOWED  = 12111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _route(options):
    command = options.get("command")
    if command is None:
        return "keel"
    return " ".join(step.name or "<command>" for step in command.path) or "<command>"


def _render(fault, kind, palette):
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = fault.options.get("colorful", True)
    fancy = fault.options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style] if colorful else "")

    code = fault.options.get("code")
    header = Text.assemble(
        "[ ",
        text(_route(fault.options), "prog-name"),
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else "?", "code"),
        " | ",
        text(str(fault.options.get("title", kind)).title(), kind + "-title"),
        " ]"
    )
    message = text(fault.message, kind + "-message")
    hint = Text.assemble(text(" → ", "hint-arrow"), text(fault.options.get("hint"), "hint"))

    if fancy:
        width = console.width - 4
        try:
            width = int(width * fault.options["ratio"])
        except KeyError:
            width = None
        return Panel(Group(message, hint), title=header, title_align="left", width=width)

    return Group(header, message, hint)


class CommandException(Exception):
    """
    Base of every error the engine reports.

    The message is the human-readable sentence; everything else travels in the
    read-only `options` mapping. Instances are replaced (never mutated) when
    context is added, see __replace__ and trigger().
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def command(self):
        return self.options.get("command")

    @property
    def argument(self):
        return self.options.get("argument")

    @property
    def cause(self):
        return self.options.get("cause")

    def __rich__(self):
        return _render(self, "error", {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

    def __trigger__(self) -> None:
        raise self from self.cause

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DuplicateNameError(CommandException): ...
class UnmatchedArgumentError(CommandException): ...
class MissingParameterError(CommandException): ...
class TypeConversionError(CommandException): ...
class BindingAccessError(CommandException): ...


class CommandWarning(ABC, Warning):
    """
    Base of every non-fatal fault; surfaced through the warnings machinery.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def command(self):
        return self.options.get("command")

    def __rich__(self):
        return _render(self, "warning", {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        })

    def __trigger__(self) -> None:
        warnings.warn(self, stacklevel=len(inspect.stack()))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnmatchedArgumentWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given context options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering;
      later options win over the ones the fault already carries.
    - errors are raised (chained to their 'cause'); warnings are emitted.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings. when
    not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "DuplicateNameError",
    "UnmatchedArgumentError",
    "MissingParameterError",
    "TypeConversionError",
    "BindingAccessError",
    "CommandWarning",
    "UnmatchedArgumentWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
