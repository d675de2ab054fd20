r"""
Keel specification model.

Overview
- Specs
  • OptionSpec: named, value-bearing option with one or more names (e.g., -f/--file).
  • PositionalParamSpec: positional parameter eligible for a range of positional indices.
  • CommandSpec: a command frame owning options, positionals, subcommands and mixins.
- Configuration
  • ParserBehavior: immutable matching rules (prefixes, separator, case handling, ...).
  • UsageMessageSpec: heading/section text that mixins merge into.
  • Range: closed or open integer range used for arities and positional indices.

- Introspection & representation
  • SpecType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__/__displayable__.

Metadata (sanitized on construction)
- Shared (options and positionals)
  • param_label: display label; defaults to the upper-cased longest option name without
    its prefix ("--file" → "FILE"), or "PARAM" for positionals.
  • description: Unset | str | Text, non-empty when provided.
  • type / auxiliary_types: the declared type and element types; parameterised generics
    (list[int], dict[str, int], tuple[int, ...]) are unpacked into both.
  • split: optional regex applied to each raw value before conversion.
  • default_value: a string applied at the start of every parse of the frame.
  • initial_value / binding: where the value lives (a ValueBinding when no binding is given).
  • converter: optional callable that replaces the registry lookup.
- Options only
  • names: non-empty strings without whitespace, unique.
  • arity: Range; 0 for booleans, otherwise 1 when unset.
  • required, help, usage_help, version_help.
- Positionals only
  • index: Range of positional indices, "0..*" by default.
  • required.

Lifecycle
- Specs are immutable once built except for the value behind their binding.
- A CommandSpec accepts options, positionals, mixins and subcommands until it is parsed
  for the first time; afterwards every shape mutation raises TypeError.

Quick example:
    >>> from keel.model import CommandSpec, OptionSpec, PositionalParamSpec
    >>> command = CommandSpec("tool")
    >>> command.add_option(OptionSpec("-v", "--verbose"))
    >>> command.add_option(OptionSpec("-f", "--file", type=list[str]))
    >>> command.add_positional(PositionalParamSpec("0..*", type=list[str]))
    >>> result = command.parse(["-v", "--file=a", "x", "y"])
    >>> result.matched_option_value("file")
    ['a']
"""
import builtins
import copy
import functools
import logging
import operator
import re
import typing
from typing import NamedTuple

from rich.text import Text

from .bindings import *
from .converters import ConverterRegistry, registry
from .faults import *
from .matcher import parse
from .utils import *

logger = logging.getLogger(__name__)


class Range(NamedTuple):
    """
    Integer range with an inclusive minimum and an inclusive (or unbounded) maximum.

    max is None for unbounded ranges ("1..*").
    """
    min: int
    max: int | None = None

    @classmethod
    def valueof(cls, value, /):
        """
        Build a Range from an int, a "min..max" string, a (min, max) pair or a Range.

        Examples
        - Range.valueof(2)       -> Range(min=2, max=2)
        - Range.valueof("1..*")  -> Range(min=1, max=None)
        - Range.valueof("0..3")  -> Range(min=0, max=3)
        - Range.valueof("*")     -> Range(min=0, max=None)
        """
        match value:
            case Range():
                return value
            case bool():
                raise TypeError("range value must be an integer, a string or a pair")
            case int():
                minimum, maximum = value, value
            case str():
                match = re.fullmatch(r"\s*(?:(\d+)\s*\.\.\s*(\d+|\*)|(\d+)|(\*))\s*", value)
                if not match:
                    raise ValueError(f"invalid range {value!r}, expected 'n', 'n..m', 'n..*' or '*'")
                if match[3]:
                    minimum = maximum = int(match[3])
                elif match[4]:
                    minimum, maximum = 0, None
                else:
                    minimum, maximum = int(match[1]), None if match[2] == "*" else int(match[2])
            case (minimum, maximum):
                pass
            case _:
                raise TypeError("range value must be an integer, a string or a pair")
        if not isinstance(minimum, int) or not isinstance(maximum, int | None):
            raise TypeError("range bounds must be integers")
        if minimum < 0:
            raise ValueError("range minimum cannot be negative")
        if maximum is not None and maximum < minimum:
            raise ValueError("range maximum cannot be lower than its minimum")
        return cls(minimum, maximum)

    @property
    def bounded(self):
        return self.max is not None

    def __contains__(self, index, /):
        return self.min <= index and (self.max is None or index <= self.max)

    def __str__(self):
        if self.max == self.min:
            return str(self.min)
        return "%d..%s" % (self.min, "*" if self.max is None else self.max)


class SpecType(type):
    """
    Metaclass that turns specs into introspectable descriptors.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and fault messages.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option-spec(names=('-v', '--verbose'), param_label='VERBOSE', ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield a sequence of (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate metadata shared by options and positionals.

    - param_label: Unset | str, non-empty after trimming.
    - description: Unset | str | Text, non-empty after trimming; Unset becomes None.
    - hidden/required: coerced to bool by the caller.
    """
    if not isinstance(label := metadata["param_label"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'param_label' must be a string")
    elif isinstance(label, str) and not (label := label.strip()):
        raise ValueError(f"{cls.__typename__} 'param_label' cannot be empty")
    metadata["param_label"] = label

    if not isinstance(description := metadata["description"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'description' must be a string")
    elif isinstance(description, str) and not (description := description.strip()):
        raise ValueError(f"{cls.__typename__} 'description' cannot be empty")
    metadata["description"] = coalesce(description)


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate option names.

    Names must be non-empty strings without whitespace, and unique within the option.
    Prefix and separator rules depend on the owning command's parser and are
    checked by CommandSpec.add_option.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not name:
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif re.search(r"\s", name):
            raise ValueError(f"{cls.__typename__} names cannot contain whitespace")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)
    # Default label: longest name without its prefix, upper-cased
    if metadata["param_label"] is Unset:
        longest = max(names, key=len)
        metadata["param_label"] = (re.sub(r"^\W+", "", longest) or longest).upper()


def _sanitize_typed_metadata(cls, metadata, /):
    """
    Internal: validate type descriptors, arity, split and value storage.

    Responsibilities
    - type: unpack parameterised generics (list[int] → list + (int,)); without a
      declared type an option is boolean unless an arity with a maximum above 0
      says otherwise (then str); positionals default to str.
    - auxiliary_types: default to (str,) for containers, (str, str) for maps and
      (type,) for scalars; maps need exactly two.
    - arity (options only): Range; 0 for booleans, 1 otherwise. A maximum of 0 is
      only valid for booleans.
    - split: compiled regex or None.
    - converter: callable or None.
    - default_value: Unset | str.
    - binding: any Binding; a ValueBinding holding initial_value when Unset.
    """
    type = metadata["type"]
    auxiliary = metadata["auxiliary_types"]

    if (origin := typing.get_origin(type)) is not None:
        if not isinstance(origin, builtins.type):
            raise TypeError(f"{cls.__typename__} 'type' {type!r} is not supported")
        if auxiliary:
            raise TypeError(f"{cls.__typename__} cannot combine a parameterised 'type' and 'auxiliary_types'")
        auxiliary = tuple(argument for argument in typing.get_args(type) if argument is not Ellipsis)
        type = origin

    if not isinstance(auxiliary, tuple | list):
        raise TypeError(f"{cls.__typename__} 'auxiliary_types' must be a sequence")
    for element in auxiliary:
        if not callable(element):
            raise TypeError(f"{cls.__typename__} 'auxiliary_types' must be types or callables")

    option = "arity" in metadata
    if option:
        arity = metadata["arity"]
        if arity is not Unset:
            arity = Range.valueof(arity)
        if type is Unset:
            type = bool if arity is Unset or arity.max == 0 else str
        if arity is Unset:
            arity = Range(0, 0) if type is bool else Range(1, 1)
        if arity.max == 0 and type is not bool:
            raise ValueError(f"{cls.__typename__} arity {str(arity)!r} is only valid for booleans")
        metadata["arity"] = arity
    elif type is Unset:
        type = str

    if not callable(type):
        raise TypeError(f"{cls.__typename__} 'type' must be a type or a callable")

    match kindof(type):
        case Kind.MAP:
            auxiliary = tuple(auxiliary) or (str, str)
            if len(auxiliary) != 2:
                raise ValueError(f"{cls.__typename__} map 'auxiliary_types' must be a (key, value) pair")
        case Kind.ARRAY | Kind.COLLECTION:
            auxiliary = tuple(auxiliary) or (str,)
        case _:
            auxiliary = tuple(auxiliary) or (type,)

    metadata["type"] = type
    metadata["auxiliary_types"] = auxiliary

    match split := metadata["split"]:
        case UnsetType():
            metadata["split"] = None
        case str():
            if not split:
                raise ValueError(f"{cls.__typename__} 'split' cannot be empty")
            metadata["split"] = re.compile(split)
        case re.Pattern():
            pass
        case _:
            raise TypeError(f"{cls.__typename__} 'split' must be a string or a compiled pattern")

    if (converter := metadata["converter"]) is not Unset and not callable(converter):
        raise TypeError(f"{cls.__typename__} 'converter' must be callable")
    metadata["converter"] = coalesce(converter)

    if not isinstance(default := metadata["default_value"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'default_value' must be a string")
    metadata["default_value"] = coalesce(default)

    binding = metadata["binding"]
    initial = metadata.pop("initial_value")
    if binding is Unset:
        binding = ValueBinding(coalesce(initial))
    elif initial is not Unset:
        raise ValueError(f"{cls.__typename__} cannot combine 'binding' and 'initial_value'")
    elif not isinstance(binding, Binding):
        raise TypeError(f"{cls.__typename__} 'binding' must provide get() and set() methods")
    metadata["binding"] = binding


class ArgSpec(metaclass=SpecType):
    """
    Shared behavior of options and positionals: value shape and binding reset.
    """

    @property
    def kind(self):
        """
        Aggregation shape of the declared type (see bindings.Kind).
        """
        return kindof(self._type)

    @property
    def factory(self):
        """
        Container constructor used when aggregating into the declared type.
        """
        return factoryof(self._type)

    @property
    def boolean(self):
        return self._type is bool

    def reset(self):
        """
        Restore the binding to the value it held before the first parse.

        The value is captured on the first call and written back as a shallow
        copy every time, so in-place aggregation never leaks into later parses.
        """
        if self._snapshot is Unset:
            self._snapshot = self._binding.get()
        previous = self._binding.set(copy.copy(self._snapshot))
        logger.debug("%s binding reset (was %r)", self, previous)


class OptionSpec(ArgSpec):
    """
    Named, value-bearing option specification.

    OptionSpec declares the names an option answers to, how many value tokens
    one match consumes (arity), how each raw value is split and converted, and
    where the resulting value is stored (binding).

    Highlights
    - An option without a declared type is a boolean flag (arity 0): matching it
      stores True, and "--flag=false" stores False.
    - Container types aggregate one value per match (or per split piece).
    - help/usage_help/version_help options suppress required validation of the
      frame they are matched in.
    """

    __introspectable__ = (
        "names",
        "param_label",
        "type",
        "auxiliary_types",
        "arity",
        "required",
        "split",
        "description",
        "hidden",
        "help",
        "usage_help",
        "version_help",
        "default_value",
        "binding",
        "converter",
    )

    __displayable__ = (
        "names",
        "param_label",
        "type",
        "auxiliary_types",
        "arity",
        "required",
    )

    def __new__(
            cls,
            *names,
            param_label=Unset,
            type=Unset,
            auxiliary_types=(),
            arity=Unset,
            required=False,
            split=Unset,
            description=Unset,
            hidden=False,
            help=False,
            usage_help=False,
            version_help=False,
            default_value=Unset,
            initial_value=Unset,
            binding=Unset,
            converter=Unset
    ):
        """
        Construct an OptionSpec with the provided metadata.

        Parameters
        - names: str
          One or more names, e.g. "-f", "--file". The first is the primary name.
        - param_label: Unset | str
          Display label for the value; derived from the longest name when Unset.
        - type: Unset | type | generic alias
          Declared type. Unset means boolean (or str with an explicit arity > 0).
        - auxiliary_types: Sequence[type]
          Element types for containers, (key, value) types for maps.
        - arity: Unset | int | str | Range
          Number of value tokens per match ("1", "0..1", "2..*").
        - split: Unset | str | re.Pattern
          Regex used to split each raw value before conversion.
        - default_value: Unset | str
          Raw text applied at the start of every parse.
        - initial_value / binding
          Initial value of the internal ValueBinding, or an external Binding.
        - converter: Unset | Callable[[str], Any]
          Replaces the registry lookup for element conversion.

        Raises
        - TypeError/ValueError on invalid metadata.
        """
        metadata = {
            "names": names,
            "param_label": param_label,
            "type": type,
            "auxiliary_types": auxiliary_types,
            "arity": arity,
            "required": bool(required),
            "split": split,
            "description": description,
            "hidden": bool(hidden),
            "help": bool(help),
            "usage_help": bool(usage_help),
            "version_help": bool(version_help),
            "default_value": default_value,
            "initial_value": initial_value,
            "binding": binding,
            "converter": converter,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_typed_metadata(cls, metadata)

        self = super().__new__(cls)
        self._snapshot = Unset
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def longest_name(self):
        return max(self._names, key=len)

    @property
    def initial_value(self):
        """
        Value captured from the binding before the first parse (Unset until then).
        """
        return self._snapshot

    def __str__(self):
        return self.longest_name


class PositionalParamSpec(ArgSpec):
    """
    Positional parameter specification.

    A positional spec is eligible for every positional index inside its `index`
    range; among several specs the first one declared whose range contains the
    index consumes the token.
    """

    __introspectable__ = (
        "index",
        "param_label",
        "type",
        "auxiliary_types",
        "required",
        "split",
        "description",
        "hidden",
        "default_value",
        "binding",
        "converter",
    )

    __displayable__ = (
        "index",
        "param_label",
        "type",
        "auxiliary_types",
        "required",
    )

    def __new__(
            cls,
            index="0..*",
            /,
            *,
            param_label="PARAM",
            type=Unset,
            auxiliary_types=(),
            required=False,
            split=Unset,
            description=Unset,
            hidden=False,
            default_value=Unset,
            initial_value=Unset,
            binding=Unset,
            converter=Unset
    ):
        metadata = {
            "index": Range.valueof(index),
            "param_label": param_label,
            "type": type,
            "auxiliary_types": auxiliary_types,
            "required": bool(required),
            "split": split,
            "description": description,
            "hidden": bool(hidden),
            "default_value": default_value,
            "initial_value": initial_value,
            "binding": binding,
            "converter": converter,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_typed_metadata(cls, metadata)

        self = super().__new__(cls)
        self._snapshot = Unset
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def initial_value(self):
        return self._snapshot

    def __str__(self):
        return "%s[%s]" % (self._param_label, self._index)


class ParserBehavior(metaclass=SpecType):
    """
    Immutable matching rules of one command frame.

    Use __replace__(**changes) (or copy.replace on Python 3.13+) to derive a
    modified behavior.
    """

    __introspectable__ = (
        "prefixes",
        "separator",
        "end_of_options",
        "overwritten_options_allowed",
        "unmatched_arguments_allowed",
        "case_insensitive_options",
        "case_insensitive_subcommands",
        "posix_clustered_short_options",
        "stop_at_positional",
        "stop_at_unmatched",
    )

    def __new__(
            cls,
            *,
            prefixes=("--", "-"),
            separator="=",
            end_of_options="--",
            overwritten_options_allowed=False,
            unmatched_arguments_allowed=False,
            case_insensitive_options=False,
            case_insensitive_subcommands=False,
            posix_clustered_short_options=True,
            stop_at_positional=False,
            stop_at_unmatched=False
    ):
        if isinstance(prefixes, str) or not all(isinstance(prefix, str) for prefix in prefixes):
            raise TypeError(f"{cls.__typename__} 'prefixes' must be a sequence of strings")
        if not (prefixes := tuple(prefixes)) or not all(prefixes):
            raise ValueError(f"{cls.__typename__} 'prefixes' must be non-empty strings")
        if not isinstance(separator, str):
            raise TypeError(f"{cls.__typename__} 'separator' must be a string")
        elif not separator or re.search(r"\s", separator):
            raise ValueError(f"{cls.__typename__} 'separator' must be a non-blank string")
        if not isinstance(end_of_options, str | None):
            raise TypeError(f"{cls.__typename__} 'end_of_options' must be a string or None")

        self = super().__new__(cls)
        self._prefixes = prefixes
        self._separator = separator
        self._end_of_options = end_of_options
        self._overwritten_options_allowed = bool(overwritten_options_allowed)
        self._unmatched_arguments_allowed = bool(unmatched_arguments_allowed)
        self._case_insensitive_options = bool(case_insensitive_options)
        self._case_insensitive_subcommands = bool(case_insensitive_subcommands)
        self._posix_clustered_short_options = bool(posix_clustered_short_options)
        self._stop_at_positional = bool(stop_at_positional)
        self._stop_at_unmatched = bool(stop_at_unmatched)
        return self

    def __replace__(self, **changes):
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | changes)

    def __eq__(self, other):
        if not isinstance(other, ParserBehavior):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)

    def __hash__(self):
        return hash(tuple(getattr(self, name) for name in type(self).__introspectable__))


class UsageMessageSpec(metaclass=SpecType):
    """
    Heading and section text of a command's usage message.

    Rendering is left to the host; mixins merge their text into the target
    command through merge().
    """

    __introspectable__ = (
        "synopsis_heading",
        "description_heading",
        "parameter_list_heading",
        "option_list_heading",
        "command_list_heading",
        "header",
        "description",
        "footer",
    )

    def __new__(
            cls,
            *,
            synopsis_heading="",
            description_heading="",
            parameter_list_heading="",
            option_list_heading="",
            command_list_heading="",
            header=(),
            description=(),
            footer=()
    ):
        self = super().__new__(cls)
        for name, object in {
            "synopsis_heading": synopsis_heading,
            "description_heading": description_heading,
            "parameter_list_heading": parameter_list_heading,
            "option_list_heading": option_list_heading,
            "command_list_heading": command_list_heading,
        }.items():
            if not isinstance(object, str):
                raise TypeError(f"{cls.__typename__} {name!r} must be a string")
            setattr(self, "_" + name, object)
        for name, object in {
            "header": header,
            "description": description,
            "footer": footer,
        }.items():
            if isinstance(object, str):
                object = (object,)
            if not all(isinstance(line, str | Text) for line in object):
                raise TypeError(f"{cls.__typename__} {name!r} must contain strings")
            setattr(self, "_" + name, tuple(object))
        return self

    def merge(self, other, /):
        """
        Return a new usage spec with each heading and section of `other` appended.
        """
        if not isinstance(other, UsageMessageSpec):
            raise TypeError("merge() argument must be a usage-message-spec")
        return type(self)(**{
            name: getattr(self, name) + getattr(other, name) for name in type(self).__introspectable__
        })


def _casefold(name):
    return name.casefold()


class CommandSpec(metaclass=SpecType):
    """
    A command frame: options, positionals, subcommands and mixins.

    Responsibilities
    - Registration: add_option/add_positional/add_subcommand/add_mixin enforce name
      uniqueness (DuplicateNameError) and return the receiver for chaining.
    - Lookup: find_option (any name, prefix-stripped, case-insensitive when allowed)
      and subcommand (name or alias).
    - Composition: parent/root/path model the subcommand hierarchy.
    - Parsing: parse(prompt) runs the matcher and returns a ParseResult tree.

    Lifecycle
    - The first parse freezes the command; later shape mutations raise TypeError.
    """

    __introspectable__ = (
        "name",
        "version",
        "aliases",
        "options",
        "positionals",
        "subcommands",
        "mixins",
        "parser",
        "usage",
        "converters",
        "parent",
        "frozen",
    )

    # Never show the parent here: its repr would list this command again.
    __displayable__ = (
        "name",
        "version",
        "aliases",
        "options",
        "positionals",
        "parser",
    )

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    def __new__(
            cls,
            name="",
            version=(),
            /,
            *,
            parser=Unset,
            usage=Unset,
            converters=registry
    ):
        """
        Construct an empty CommandSpec.

        Parameters
        - name: str, may be empty (filled by add_subcommand or a mixin).
        - version: str | Iterable[str], lines of version information.
        - parser: ParserBehavior | Unset (defaults to ParserBehavior()).
        - usage: UsageMessageSpec | Unset (defaults to an empty one).
        - converters: ConverterRegistry used to convert values of this frame.
        """
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif re.search(r"\s", name):
            raise ValueError(f"{cls.__typename__} 'name' cannot contain whitespace")
        if isinstance(version, str):
            version = (version,)
        if not all(isinstance(line, str) for line in version):
            raise TypeError(f"{cls.__typename__} 'version' must contain strings")
        if not isinstance(parser := coalesce(parser, ParserBehavior()), ParserBehavior):
            raise TypeError(f"{cls.__typename__} 'parser' must be a parser-behavior")
        if not isinstance(usage := coalesce(usage, UsageMessageSpec()), UsageMessageSpec):
            raise TypeError(f"{cls.__typename__} 'usage' must be a usage-message-spec")
        if not isinstance(converters, ConverterRegistry):
            raise TypeError(f"{cls.__typename__} 'converters' must be a converter-registry")

        self = super().__new__(cls)
        self._name = name
        self._version = tuple(version)
        self._aliases = []
        self._options = []
        self._names = {}
        self._positionals = []
        self._subcommands = {}
        self._mixins = {}
        self._parser = parser
        self._usage = usage
        self._converters = converters
        self._parent = None
        self._frozen = False
        return self

    def _mutable(self):
        if self._frozen:
            raise TypeError(f"{type(self).__typename__} {self._name!r} cannot be changed after it was parsed")

    def _option(self, name):
        try:
            return self._names[name]
        except KeyError:
            pass
        if self._parser.case_insensitive_options:
            folded = _casefold(name)
            for candidate, spec in self._names.items():
                if _casefold(candidate) == folded:
                    return spec
        return None

    def find_option(self, name, /, *, stripped=True):
        """
        Look up an option by any of its names.

        Resolution
        - exact name, then case-insensitive name when the parser allows it;
        - with stripped=True, a name without its prefix is tried with every parser
          prefix ("f" finds "-f", "file" finds "--file").

        Returns None when nothing matches.
        """
        if not isinstance(name, str):
            raise TypeError("find_option() argument must be a string")
        if (spec := self._option(name)) is not None:
            return spec
        if stripped:
            for prefix in self._parser.prefixes:
                if (spec := self._option(prefix + name)) is not None:
                    return spec
        return None

    def subcommand(self, name, /):
        """
        Look up a subcommand by name or alias; None when absent.
        """
        try:
            return self._subcommands[name]
        except KeyError:
            pass
        if self._parser.case_insensitive_subcommands:
            folded = _casefold(name)
            for candidate, child in self._subcommands.items():
                if _casefold(candidate) == folded:
                    return child
        return None

    def _remove_option(self, spec):
        self._options.remove(spec)
        for name in [name for name, owner in self._names.items() if owner is spec]:
            del self._names[name]

    def _collisions(self, spec):
        """
        Validate the names of `spec` against this command's parser and return the
        registered options they collide with, as {owner: [names]}.
        """
        if spec in self._options:
            raise ValueError(f"{type(spec).__typename__} {str(spec)!r} was already added")

        for name in spec.names:
            if not name.startswith(self._parser.prefixes) or name in self._parser.prefixes:
                raise ValueError("option name %r must start with one of %s" % (name, ", ".join(map(repr, self._parser.prefixes))))
            elif self._parser.separator in name:
                raise ValueError("option name %r cannot contain the separator %r" % (name, self._parser.separator))

        collisions = {}
        for name in spec.names:
            if (owner := self._option(name)) is not None:
                collisions.setdefault(owner, []).append(name)
        return collisions

    def _duplicate_options(self, names, /, **options):
        trigger(DuplicateNameError(
            "option %s %s already in use in %s" % (
                pluralize("name") if len(names) > 1 else "name",
                ", ".join(map(repr, names)),
                "command %r" % self._name if self._name else "this command",
            ),
            title="duplicate option name",
            code=FaultCode.DUPLICATE_NAME,
            hint="rename the option or enable 'overwritten_options_allowed' on the parser",
            names=tuple(names),
            docs=getdoc(FaultCode.DUPLICATE_NAME),
        ), command=self, **options)

    def _duplicate_subcommands(self, routes, /, hint):
        trigger(DuplicateNameError(
            "subcommand %s %s already in use in %s" % (
                pluralize("name") if len(routes) > 1 else "name",
                ", ".join(map(repr, routes)),
                "command %r" % self._name if self._name else "this command",
            ),
            title="duplicate subcommand name",
            code=FaultCode.DUPLICATE_NAME,
            hint=hint,
            names=tuple(routes),
            docs=getdoc(FaultCode.DUPLICATE_NAME),
        ), command=self)

    def add_option(self, spec, /):
        """
        Register an option.

        Raises
        - TypeError: not an option-spec, or the command was already parsed.
        - ValueError: a name lacks a parser prefix or contains the separator, or the
          spec was already added.
        - DuplicateNameError: a name collides and overwriting is not allowed. When it
          is allowed, the previous owner of the name is removed entirely.
        """
        self._mutable()
        if not isinstance(spec, OptionSpec):
            raise TypeError("add_option() argument must be an option-spec")

        collisions = self._collisions(spec)
        if collisions and not self._parser.overwritten_options_allowed:
            self._duplicate_options([name for taken in collisions.values() for name in taken], argument=spec)

        for owner, names in collisions.items():
            logger.debug("option %s overwrites %s (names %s)", spec, owner, ", ".join(names))
            self._remove_option(owner)

        self._options.append(spec)
        for name in spec.names:
            self._names[name] = spec
        return self

    def add_positional(self, spec, /):
        """
        Append a positional parameter; the same spec cannot be added twice.
        """
        self._mutable()
        if not isinstance(spec, PositionalParamSpec):
            raise TypeError("add_positional() argument must be a positional-param-spec")
        if spec in self._positionals:
            raise ValueError(f"{type(spec).__typename__} {str(spec)!r} was already added")
        self._positionals.append(spec)
        return self

    def add_subcommand(self, name, child, /, *aliases):
        """
        Attach `child` under `name` (and every alias).

        Behavior
        - child.parent becomes this command; an empty child name is filled with `name`.
        - DuplicateNameError when the name or an alias is already routed.
        - ValueError when the child already has a parent or is an ancestor of this
          command.
        """
        self._mutable()
        if not isinstance(child, CommandSpec):
            raise TypeError("add_subcommand() child must be a command-spec")
        for route in (name, *aliases):
            if not isinstance(route, str):
                raise TypeError("add_subcommand() names must be strings")
            elif not route or re.search(r"\s", route):
                raise ValueError("add_subcommand() names must be non-blank strings without whitespace")
        if child.parent is not None:
            raise ValueError(f"{type(child).__typename__} {child.name!r} is already attached to {child.parent.name!r}")
        if child in self.path:
            raise ValueError(f"{type(child).__typename__} {child.name!r} cannot be attached to itself or a descendant")

        routes = (name, *aliases)
        if len(set(routes)) != len(routes):
            raise ValueError("add_subcommand() names cannot contain duplicates")
        if taken := [route for route in routes if self.subcommand(route) is not None]:
            self._duplicate_subcommands(taken, hint="choose another name or alias for the subcommand")

        child._parent = self
        if not child._name:
            child._name = name
        child._aliases.extend(route for route in routes if route != child._name)
        for route in routes:
            self._subcommands[route] = child
        logger.debug("subcommand %r attached to %r", child._name, self._name)
        return self

    def add_mixin(self, name, mixin, /):
        """
        Merge a reusable command fragment into this command.

        - options are added through add_option (collisions follow its rules);
        - positionals are appended;
        - subcommands are routed from this command too;
        - usage text is merged by concatenation;
        - an empty name or version is filled from the mixin.

        Every collision is checked before anything is merged, so a rejected
        mixin leaves the command unchanged.
        """
        self._mutable()
        if not isinstance(name, str):
            raise TypeError("add_mixin() name must be a string")
        elif not name:
            raise ValueError("add_mixin() name cannot be empty")
        if not isinstance(mixin, CommandSpec):
            raise TypeError("add_mixin() mixin must be a command-spec")
        if mixin is self:
            raise ValueError("add_mixin() cannot mix a command into itself")
        overwrite = self._parser.overwritten_options_allowed
        if name in self._mixins and not overwrite:
            trigger(DuplicateNameError(
                "mixin name %r already in use" % name,
                title="duplicate mixin name",
                code=FaultCode.DUPLICATE_NAME,
                hint="choose another mixin name or enable 'overwritten_options_allowed' on the parser",
                names=(name,),
                docs=getdoc(FaultCode.DUPLICATE_NAME),
            ), command=self)

        fold = _casefold if self._parser.case_insensitive_options else str
        pending, taken = set(), []
        for spec in mixin._options:
            collisions = self._collisions(spec)
            for option in spec.names:
                if any(option in names for names in collisions.values()) or fold(option) in pending:
                    taken.append(option)
                pending.add(fold(option))
        if taken and not overwrite:
            self._duplicate_options(taken)
        for spec in mixin._positionals:
            if spec in self._positionals:
                raise ValueError(f"{type(spec).__typename__} {str(spec)!r} was already added")
        if routes := [route for route in mixin._subcommands if self.subcommand(route) is not None]:
            self._duplicate_subcommands(routes, hint="rename the subcommand in the mixin %r" % name)

        for spec in mixin._options:
            self.add_option(spec)
        self._positionals.extend(mixin._positionals)
        self._subcommands.update(mixin._subcommands)

        self._usage = self._usage.merge(mixin._usage)
        if not self._name:
            self._name = mixin._name
        if not self._version:
            self._version = mixin._version
        self._mixins[name] = mixin
        logger.debug("mixin %r merged into %r", name, self._name)
        return self

    def mixin_standard_help_options(self, enabled=True, /):
        """
        Add (or with enabled=False remove) the standard -h/--help and -V/--version options.
        """
        self._mutable()
        if enabled:
            if _STANDARD_HELP in self._mixins:
                return self
            mixin = CommandSpec(parser=self._parser.__replace__(overwritten_options_allowed=False))
            mixin.add_option(OptionSpec(
                "-h", "--help", usage_help=True, description="Show this help message and exit."
            ))
            mixin.add_option(OptionSpec(
                "-V", "--version", version_help=True, description="Print version information and exit."
            ))
            return self.add_mixin(_STANDARD_HELP, mixin)
        try:
            mixin = self._mixins.pop(_STANDARD_HELP)
        except KeyError:
            return self
        for spec in mixin._options:
            if spec in self._options:
                self._remove_option(spec)
        logger.debug("standard help options removed from %r", self._name)
        return self

    def parse(self, prompt=Unset, /):
        """
        Parse `prompt` (sys.argv[1:] when Unset, a shell-like string, or an
        iterable of strings) against this command and return a ParseResult.
        """
        return parse(self, prompt)


_STANDARD_HELP = "mixinStandardHelpOptions"


__all__ = (
    # Helpers
    "Range",

    # Specs
    "OptionSpec",
    "PositionalParamSpec",
    "CommandSpec",

    # Configuration
    "ParserBehavior",
    "UsageMessageSpec",
)
