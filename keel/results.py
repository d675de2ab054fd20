"""
Keel parse results.

A ParseResult is the read-only record of one command frame of a parse: which
options and positionals matched (in order), the raw strings they consumed, the
values their bindings held when the frame completed, the tokens that were
skipped, and the result of the invoked subcommand if any.

ResultBuilder is the mutable half used by the matcher while a frame is being
parsed; build() freezes it into a ParseResult.

Keys
- Options are looked up by any name, through CommandSpec.find_option, so a
  prefix-stripped name works too ("f" for "-f").
- Positionals are looked up by the positional index they occupied.

Values
- Values are shallow copies taken when the frame completes, and every query
  returns a fresh shallow copy; mutating a returned container or the bound
  storage never changes the result.
"""
import copy
from types import MappingProxyType
from typing import NamedTuple


class MatchedPositional(NamedTuple):
    index: int
    spec: object


class ParseResult:
    """
    Immutable result of one command frame (and, through `subcommand`, of every
    nested frame that was invoked).
    """

    def __init__(
            self,
            command,
            options,
            positionals,
            strings,
            originals,
            values,
            unmatched,
            original_args,
            subcommand=None,
            *,
            usage_help_requested=False,
            version_help_requested=False
    ):
        self._command = command
        self._options = tuple(options)
        self._positionals = tuple(positionals)
        self._strings = MappingProxyType({spec: tuple(pieces) for spec, pieces in strings.items()})
        self._originals = MappingProxyType({spec: tuple(raw) for spec, raw in originals.items()})
        self._values = MappingProxyType(dict(values))
        self._unmatched = tuple(unmatched)
        self._original_args = tuple(original_args)
        self._subcommand = subcommand
        self._usage_help_requested = usage_help_requested
        self._version_help_requested = version_help_requested

    @property
    def command(self):
        return self._command

    @property
    def matched_options(self):
        """
        Matched option specs in match order; an option matched twice appears twice.
        """
        return self._options

    @property
    def matched_positionals(self):
        return self._positionals

    @property
    def original_args(self):
        return self._original_args

    @property
    def unmatched(self):
        return self._unmatched

    @property
    def subcommand(self):
        return self._subcommand

    @property
    def has_subcommand(self):
        return self._subcommand is not None

    @property
    def usage_help_requested(self):
        return self._usage_help_requested

    @property
    def version_help_requested(self):
        return self._version_help_requested

    @property
    def path(self):
        """
        This result followed by every nested subcommand result.
        """
        path = [result := self]
        while result.subcommand is not None:
            path.append(result := result.subcommand)
        return tuple(path)

    def matched_option(self, name, /):
        """
        Return the option spec matched under `name` (any of its names), or None.
        """
        if not isinstance(name, str):
            raise TypeError("matched_option() argument must be a string")
        spec = self._command.find_option(name)
        if spec is None or spec not in self._originals:
            return None
        return spec

    def has_matched_option(self, name, /):
        return self.matched_option(name) is not None

    def matched_option_value(self, name, /, default=None):
        if (spec := self.matched_option(name)) is None:
            return default
        return copy.copy(self._values[spec])

    def matched_positional(self, index, /):
        """
        Return the positional spec that consumed positional `index`, or None.
        """
        if not isinstance(index, int):
            raise TypeError("matched_positional() argument must be an integer")
        for matched in self._positionals:
            if matched.index == index:
                return matched.spec
        return None

    def has_matched_positional(self, index, /):
        return self.matched_positional(index) is not None

    def matched_positional_value(self, index, /, default=None):
        if (spec := self.matched_positional(index)) is None:
            return default
        return copy.copy(self._values[spec])

    def _spec(self, key):
        match key:
            case bool():
                raise TypeError("key must be an option name or a positional index")
            case int():
                return self.matched_positional(key)
            case str():
                return self.matched_option(key)
        raise TypeError("key must be an option name or a positional index")

    def string_values(self, key, /):
        """
        Post-split, pre-conversion strings of the option or positional under `key`, in match order.
        """
        if (spec := self._spec(key)) is None:
            return ()
        return self._strings[spec]

    def original_string_values(self, key, /):
        """
        Raw strings of the option or positional under `key` as they appeared on the command line.
        """
        if (spec := self._spec(key)) is None:
            return ()
        return self._originals[spec]

    def __repr__(self):
        return "parse-result(command=%r, options=%d, positionals=%d, unmatched=%d, subcommand=%r)" % (
            self._command.name,
            len(self._options),
            len(self._positionals),
            len(self._unmatched),
            self._subcommand.command.name if self._subcommand is not None else None,
        )


class ResultBuilder:
    """
    Mutable accumulator for one frame; see ParseResult for the frozen shape.
    """

    def __init__(self, command, original_args, /):
        self._command = command
        self._original_args = tuple(original_args)
        self._options = []
        self._positionals = []
        self._strings = {}
        self._originals = {}
        self._values = {}
        self._unmatched = []
        self._subcommand = None
        self._usage_help_requested = False
        self._version_help_requested = False
        self._help_requested = False

    @property
    def help_requested(self):
        """
        True once an option with help, usage_help or version_help matched.
        """
        return self._help_requested

    def has(self, spec, /):
        return spec in self._originals

    def option(self, spec, raw, pieces, /):
        self._options.append(spec)
        self._originals.setdefault(spec, []).extend(raw)
        self._strings.setdefault(spec, []).extend(pieces)
        self._usage_help_requested |= spec.usage_help
        self._version_help_requested |= spec.version_help
        self._help_requested |= spec.help or spec.usage_help or spec.version_help

    def positional(self, index, spec, raw, pieces, /):
        self._positionals.append(MatchedPositional(index, spec))
        self._originals.setdefault(spec, []).extend(raw)
        self._strings.setdefault(spec, []).extend(pieces)

    def unmatched(self, *tokens):
        self._unmatched.extend(tokens)

    def subcommand(self, result, /):
        self._subcommand = result

    def snapshot(self):
        """
        Record a shallow copy of the current binding value of every matched spec.
        """
        for spec in self._originals:
            self._values[spec] = copy.copy(spec.binding.get())

    def build(self):
        return ParseResult(
            self._command,
            self._options,
            self._positionals,
            self._strings,
            self._originals,
            self._values,
            self._unmatched,
            self._original_args,
            self._subcommand,
            usage_help_requested=self._usage_help_requested,
            version_help_requested=self._version_help_requested,
        )


__all__ = (
    "MatchedPositional",
    "ParseResult",
    "ResultBuilder",
)
