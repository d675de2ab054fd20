"""
Faults module behavioral tests.

Scope
- Validate the exception/warning taxonomy and its context options.
- Validate trigger() (raise chained to cause, warn for warnings) and getdoc().
- Validate rich rendering of faults (plain and fancy).

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
import warnings
from unittest import TestCase

from rich.console import Console

from keel import CommandSpec
from keel.faults import *


class TestFaultTaxonomy(TestCase):
    """Shape of the fault classes."""

    def testErrorsShareBase(self):
        for error in (
                DuplicateNameError,
                UnmatchedArgumentError,
                MissingParameterError,
                TypeConversionError,
                BindingAccessError,
        ):
            self.assertTrue(issubclass(error, CommandException))

    def testWarningIsAWarning(self):
        self.assertTrue(issubclass(UnmatchedArgumentWarning, CommandWarning))
        self.assertTrue(issubclass(UnmatchedArgumentWarning, Warning))

    def testOptionsAreReadOnly(self):
        fault = MissingParameterError("missing", code=FaultCode.MISSING_PARAMETER)
        with self.assertRaises(TypeError):
            fault.options["code"] = None  # type: ignore[index]

    def testContextProperties(self):
        command = CommandSpec("tool")
        cause = ValueError("boom")
        fault = TypeConversionError("bad", command=command, argument="spec", cause=cause)
        self.assertIs(fault.command, command)
        self.assertEqual(fault.argument, "spec")
        self.assertIs(fault.cause, cause)

    def testReplaceMergesOptions(self):
        fault = UnmatchedArgumentError("unknown", input="--x")
        replaced = fault.__replace__(index=3)
        self.assertIsNot(replaced, fault)
        self.assertIsInstance(replaced, UnmatchedArgumentError)
        self.assertEqual(replaced.message, "unknown")
        self.assertEqual(replaced.options["input"], "--x")
        self.assertEqual(replaced.options["index"], 3)
        self.assertNotIn("index", fault.options)


class TestTrigger(TestCase):
    """Behavior of the trigger() entry point."""

    def testRaisesChainedToCause(self):
        cause = KeyError("missing")
        with self.assertRaises(BindingAccessError) as context:
            trigger(BindingAccessError("cannot read"), cause=cause)
        self.assertIs(context.exception.__cause__, cause)
        self.assertIs(context.exception.cause, cause)

    def testWarningsAreEmitted(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            trigger(UnmatchedArgumentWarning("skipped"), input="x")
        self.assertEqual(len(caught), 1)
        self.assertIsInstance(caught[0].message, UnmatchedArgumentWarning)
        self.assertEqual(caught[0].message.options["input"], "x")

    def testRejectsNonTriggerable(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


class TestFaultCodes(TestCase):
    """Fault code normalization and documentation lookup."""

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.DUPLICATE_NAME.normalize(), "11101")

    def testGetdocRequiresFaultCode(self):
        with self.assertRaises(TypeError):
            getdoc(11101)

    def testGetdocWithoutHostDocs(self):
        self.assertIsNone(getdoc(FaultCode.TYPE_CONVERSION))


class TestRendering(TestCase):
    """Rich rendering of faults."""

    def render(self, fault):
        console = Console(record=True, width=100, color_system=None)
        console.print(fault)
        return console.export_text()

    def testPlainRendering(self):
        command = CommandSpec("tool")
        fault = UnmatchedArgumentError(
            "unknown option '--x' at first position",
            command=command,
            title="unknown option",
            code=FaultCode.UNMATCHED_ARGUMENT,
            hint="did you mean '--y'?",
        )
        text = self.render(fault)
        self.assertIn("tool", text)
        self.assertIn("11111", text)
        self.assertIn("Unknown Option", text)
        self.assertIn("unknown option '--x' at first position", text)
        self.assertIn("did you mean '--y'?", text)

    def testFancyRendering(self):
        fault = UnmatchedArgumentWarning(
            "skipped 'x'",
            title="unmatched argument",
            code=FaultCode.UNMATCHED_ARGUMENT_ALLOWED,
            fancy=True,
            colorful=False,
        )
        text = self.render(fault)
        self.assertIn("keel", text)
        self.assertIn("skipped 'x'", text)


if __name__ == "__main__":
    unittest.main()
