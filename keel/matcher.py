"""
Keel matcher: consumes raw tokens against a CommandSpec frame.

phases (per frame)
- enter
  • freeze the command, reset the bindings of its options and positionals,
    then apply their default values.
- loop
  • classify each token: end-of-options delimiter, option-like, or positional
    candidate.
  • options: exact name, then case-insensitive name, then short option with an
    adjoined value or a POSIX cluster ("-vf file", "-n1,2"); anything else is
    unmatched.
  • positionals: the first positional spec whose index range contains the
    running positional index; otherwise a subcommand name; otherwise unmatched.
  • subcommands: validate this frame, then hand every remaining token to a new
    Matcher for the child; the parent loop ends there.
- leave
  • validate required options and positionals (skipped when a help option
    matched), snapshot the matched values and build the ParseResult.

messages
- every user-facing fault leads with the ordinal position of the token
  ("unknown option '--x' at third position") and unknown names come with
  close-match suggestions.
"""
import collections
import difflib
import functools
import logging
import shlex
import sys

from .bindings import *
from .faults import *
from .results import ResultBuilder
from .utils import *

logger = logging.getLogger(__name__)


@functools.cache
def _ordinal(number):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, 113th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _route(command):
    return " ".join(step.name for step in command.path if step.name) or "<command>"


class Matcher:
    """
    Token matcher for one command frame.

    A Matcher is single-use: match() runs it once over a token deque that it
    shares with the matchers of nested subcommands.
    """

    def __init__(self, command, original_args=(), /, *, index=0):
        self._command = command
        self._parser = command.parser
        self._builder = ResultBuilder(command, original_args)
        self._original_args = tuple(original_args)
        # ordinal (1-based) of the token being looked at
        self._index = index
        # running count of positional candidates in this frame
        self._position = 0
        self._touched = set()
        self._positional_only = False

    def trigger(self, fault, /, **options):
        """
        Trigger a fault with this frame attached as its command.
        """
        trigger(fault, command=self._command, **options)

    def match(self, tokens, /):
        """
        Consume `tokens` (a deque of strings) for this frame and return its ParseResult.
        """
        logger.debug("entering frame %r with %d token(s)", _route(self._command), len(tokens))
        self._command._frozen = True
        self._enter()

        while tokens:
            token = tokens.popleft()
            self._index += 1

            if not self._positional_only and self._parser.end_of_options is not None and token == self._parser.end_of_options:
                logger.debug("end of options at %s position", _ordinal(self._index))
                self._positional_only = True
                continue

            if not self._positional_only and self._optionlike(token):
                if (resolved := self._resolve(token)) is not None:
                    for spec, name, inline in resolved:
                        self._consume(spec, name, inline, tokens)
                    continue
                logger.debug("option-like token %r did not resolve", token)
                if self._unmatched(token, tokens, option=True):
                    break
                continue

            position = self._position
            self._position += 1

            if (spec := self._positional(position)) is not None:
                if self._parser.stop_at_positional:
                    self._positional_only = True
                logger.debug("positional %r at index %d matched %s", token, position, spec)
                self._store(spec, [token], index=position)
                continue

            if not self._positional_only and (child := self._command.subcommand(token)) is not None:
                logger.debug("subcommand %r matched at %s position", token, _ordinal(self._index))
                self._leave()
                result = Matcher(child, self._original_args, index=self._index).match(tokens)
                self._builder.subcommand(result)
                return self._builder.build()

            if self._parser.stop_at_positional:
                self._positional_only = True
            if self._unmatched(token, tokens, option=False):
                break

        self._leave()
        return self._builder.build()

    def _enter(self):
        for spec in (*self._command.options, *self._command.positionals):
            try:
                spec.reset()
            except BindingAccessError as fault:
                self.trigger(fault, argument=spec)
            if spec.default_value is not None:
                logger.debug("applying default %r to %s", spec.default_value, spec)
                fresh = True
                for piece in self._split(spec, spec.default_value):
                    self._aggregate(spec, self._convert(spec, piece, default=True), fresh=fresh)
                    fresh = False

    def _leave(self):
        self._validate()
        try:
            self._builder.snapshot()
        except BindingAccessError as fault:
            self.trigger(fault)

    def _optionlike(self, token):
        prefix = self._prefix(token)
        return bool(prefix) and len(token) > len(prefix)

    def _prefix(self, token):
        return max((prefix for prefix in self._parser.prefixes if token.startswith(prefix)), key=len, default="")

    def _resolve(self, token):
        """
        resolve an option-like token into [(spec, name, inline_value_or_None), ...].

        returns None when the token (or any character of a short-option cluster)
        does not name a known option.
        """
        name, separator, inline = token.partition(self._parser.separator)
        if (spec := self._command.find_option(name, stripped=False)) is not None:
            return [(spec, name, inline if separator else None)]

        prefix = self._prefix(token)
        if len(prefix) != 1:
            return None

        resolved = []
        body = token[1:]
        for position, character in enumerate(body):
            if (spec := self._command.find_option(prefix + character, stripped=False)) is None:
                return None
            rest = body[position + 1:]
            if spec.arity.max != 0:
                if rest.startswith(self._parser.separator):
                    rest = rest[len(self._parser.separator):]
                resolved.append((spec, prefix + character, rest or None))
                return resolved
            resolved.append((spec, prefix + character, None))
            if not rest:
                return resolved
            if not self._parser.posix_clustered_short_options:
                return None
        return resolved

    def _stops(self, token, *, required):
        """
        True when `token` cannot be consumed as a value of the current option.
        """
        if self._parser.end_of_options is not None and token == self._parser.end_of_options:
            return True
        if self._optionlike(token) and self._resolve(token) is not None:
            return True
        if not required and self._command.subcommand(token) is not None:
            return True
        return False

    def _consume(self, spec, name, inline, tokens):
        """
        collect the raw values of one option match and store them.
        """
        start = self._index
        arity = spec.arity
        raw = []

        # only booleans have a zero arity, and they still take "=true"/"=false"
        if inline is not None:
            raw.append(inline)

        while len(raw) < arity.min:
            if not tokens or self._stops(tokens[0], required=True):
                missing = arity.min - len(raw)
                self.trigger(MissingParameterError(
                    "option %r at %s position expects %d more %s" % (
                        name, _ordinal(start), missing, pluralize("value") if missing > 1 else "value"
                    ),
                    title="missing option value",
                    code=FaultCode.MISSING_PARAMETER,
                    hint="pass %s after %r (for example: %s %s)" % (spec.param_label, name, name, spec.param_label),
                    input=name,
                    index=start,
                    missing=(spec,),
                    docs=getdoc(FaultCode.MISSING_PARAMETER),
                ), argument=spec)
            raw.append(tokens.popleft())
            self._index += 1

        while tokens and (arity.max is None or len(raw) < arity.max) and not self._stops(tokens[0], required=False):
            if spec.boolean and tokens[0].lower() not in ("true", "false"):
                break
            raw.append(tokens.popleft())
            self._index += 1

        logger.debug("option %r at %s position matched %s with %r", name, _ordinal(start), spec, raw)
        if not raw and spec.boolean:
            self._aggregate(spec, True, fresh=spec not in self._touched)
            self._touched.add(spec)
            self._builder.option(spec, (), ())
            return
        self._store(spec, raw, name=name)

    def _positional(self, position):
        for spec in self._command.positionals:
            if position in spec.index:
                return spec
        return None

    def _split(self, spec, text):
        if spec.split is None:
            return [text]
        return spec.split.split(text)

    def _store(self, spec, raw, *, name=None, index=None):
        """
        split, convert and aggregate raw values, then record the match.
        """
        pieces = [piece for text in raw for piece in self._split(spec, text)]
        for piece in pieces:
            self._aggregate(spec, self._convert(spec, piece), fresh=spec not in self._touched)
            self._touched.add(spec)
        if index is None:
            self._builder.option(spec, raw, pieces)
        else:
            self._builder.positional(index, spec, raw, pieces)

    def _convert(self, spec, text, *, default=False):
        """
        convert one piece with the argument's converter or the frame's registry.

        map pieces are split on the first '=' into a (key, value) pair. with
        default=True the text comes from the argument's default_value, not a token.
        """
        try:
            if spec.kind is Kind.MAP:
                key, separator, value = text.partition("=")
                if not separator:
                    raise ValueError("%r is not a key=value pair" % text)
                keytype, valuetype = spec.auxiliary_types
                return (
                    self._command.converters.convert(keytype, key),
                    spec.converter(value) if spec.converter else self._command.converters.convert(valuetype, value),
                )
            if spec.converter:
                return spec.converter(text)
            return self._command.converters.convert(spec.auxiliary_types[0], text)
        except Exception as exception:
            if default:
                message = "invalid default value %r for %s" % (text, spec)
            else:
                message = "invalid value %r for %s at %s position" % (text, spec, _ordinal(self._index))
            self.trigger(TypeConversionError(
                message,
                title="invalid default value" if default else "invalid value",
                code=FaultCode.TYPE_CONVERSION,
                hint=str(exception) or type(exception).__name__,
                input=text,
                index=self._index,
                docs=getdoc(FaultCode.TYPE_CONVERSION),
            ), argument=spec, cause=exception)

    def _aggregate(self, spec, value, *, fresh):
        try:
            aggregate(spec.binding, spec.kind, value, factory=spec.factory, fresh=fresh)
        except BindingAccessError as fault:
            self.trigger(fault, argument=spec, index=self._index)

    def _unmatched(self, token, tokens, *, option):
        """
        handle a token nothing matched; returns True when the frame must stop.
        """
        index = self._index
        if self._parser.stop_at_unmatched:
            rest = [token, *tokens]
            tokens.clear()
            self._builder.unmatched(*rest)
            logger.info("stopped at unmatched %r at %s position, %d token(s) left unparsed", token, _ordinal(index), len(rest))
            self.trigger(UnmatchedArgumentWarning(
                "stopped at unmatched argument %r at %s position" % (token, _ordinal(index)),
                title="unmatched argument",
                code=FaultCode.UNMATCHED_ARGUMENT_ALLOWED,
                hint="%d remaining %s recorded as unmatched" % (len(rest), pluralize("token") if len(rest) > 1 else "token"),
                input=token,
                index=index,
                docs=getdoc(FaultCode.UNMATCHED_ARGUMENT_ALLOWED),
            ))
            return True

        if option:
            name = token.partition(self._parser.separator)[0]
            candidates = sorted({name for spec in self._command.options for name in spec.names})
            suggestions = difflib.get_close_matches(name, candidates, 5)
            message = "unknown option %r at %s position" % (name, _ordinal(index))
        else:
            suggestions = difflib.get_close_matches(token, list(self._command.subcommands), 5)
            message = "unexpected argument %r at %s position" % (token, _ordinal(index))
        try:
            hint = "did you mean %r?" % suggestions[0]
        except IndexError:
            hint = "remove it or check the usage of '%s'" % _route(self._command)

        if not self._parser.unmatched_arguments_allowed:
            self.trigger(UnmatchedArgumentError(
                message,
                title="unknown option" if option else "unmatched argument",
                code=FaultCode.UNMATCHED_ARGUMENT,
                hint=hint,
                input=token,
                index=index,
                suggestions=tuple(suggestions),
                docs=getdoc(FaultCode.UNMATCHED_ARGUMENT),
            ))

        self._builder.unmatched(token)
        logger.info("%s, recorded as unmatched", message)
        self.trigger(UnmatchedArgumentWarning(
            message,
            title="unmatched argument",
            code=FaultCode.UNMATCHED_ARGUMENT_ALLOWED,
            hint=hint,
            input=token,
            index=index,
            suggestions=tuple(suggestions),
            docs=getdoc(FaultCode.UNMATCHED_ARGUMENT_ALLOWED),
        ))
        return False

    def _validate(self):
        if self._builder.help_requested:
            logger.debug("help requested, required validation of %r skipped", _route(self._command))
            return
        missing = [spec for spec in self._command.options if spec.required and not self._builder.has(spec)]
        missing += [spec for spec in self._command.positionals if spec.required and not self._builder.has(spec)]
        if not missing:
            return
        labels = ", ".join(repr(str(spec)) for spec in missing)
        self.trigger(MissingParameterError(
            "missing required %s: %s" % (
                pluralize("parameter") if len(missing) > 1 else "parameter", labels
            ),
            title="missing required parameter",
            code=FaultCode.MISSING_PARAMETER,
            hint="run '%s' again with %s" % (_route(self._command), labels),
            missing=tuple(missing),
            index=self._index,
            docs=getdoc(FaultCode.MISSING_PARAMETER),
        ))


def parse(command, prompt=Unset, /):
    """
    Parse `prompt` against `command` and return the root ParseResult.

    prompt
    - Unset: sys.argv[1:]
    - str: split with shell-like rules (shlex.split)
    - Iterable[str]: used as-is
    """
    match prompt:
        case UnsetType():
            arguments = sys.argv[1:]
        case str():
            arguments = shlex.split(prompt)
        case _:
            arguments = list(prompt)
    if not all(isinstance(argument, str) for argument in arguments):
        raise TypeError("parse() prompt must contain only strings")
    return Matcher(command, arguments).match(collections.deque(arguments))


__all__ = (
    "Matcher",
    "parse",
)
