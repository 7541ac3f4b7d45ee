"""
Execution tests (lifecycle, states, exit codes, faults, settings).

Scope
- Validate the lifecycle states and exit codes of execute().
- Validate binding of options and arguments onto fresh instances.
- Validate how runtime faults end a run (FAILED, exit code 1, no instance)
  and how parse_args() surfaces them instead.
- Validate application settings (name, help, unexpected, shell).

Conventions
- Test method names follow CamelCase per project convention.
- Schemas are declared at module level so their annotations resolve.
"""
import contextlib
import io
import pathlib
import unittest
from typing import Annotated
from unittest import TestCase

from tether import (
    Argument,
    ExecutionContext,
    InitializationError,
    InvalidValueError,
    MissingValueError,
    Option,
    OptionType,
    OptionTypeMapper,
    State,
    UnexpectedArgumentError,
    UnresolvedOptionTypeError,
    ValidationError,
    application,
    build,
    execute,
    parse_args,
)
from tether.faults import FaultCode


@application(help="-?|-h|--help")
class Greet:
    """
    Greets a subject.
    """
    Count: Annotated[int, Option()]
    Subject: Annotated[str, Option()] = "world"
    Verbose: Annotated[bool, Option()]

    def on_execute(self):
        self.greeting = " ".join(["hello %s" % self.Subject] * self.Count)


class Copy:
    source: Annotated[str, Argument(0, required=True)]
    targets: Annotated[list[str], Argument(1, multiple=True)]
    mode: Annotated[int | None, Option()]

    def on_execute(self, context):
        return len(context.tokens)


class Positive:
    count: Annotated[int, Option()]
    name: Annotated[str, Option(required=True)]

    def on_validate(self):
        if self.count < 0:
            return "count must be positive"


class Exiting:
    code: Annotated[int, Option()]

    def on_execute(self):
        return self.code


class Rejecting:
    port: Annotated[int, Option()]

    def on_execute(self):
        raise InvalidValueError("port %d is reserved" % self.port, code=FaultCode.INVALID_VALUE, input="--port")


class Collecting:
    files: Annotated[list[str], Argument(0, multiple=True)] = []


class Fragile:
    def __init__(self, value):
        self.value = value


class Located:
    where: Annotated[pathlib.Path, Option()]


@application(unexpected="keep")
class Lenient:
    value: Annotated[str, Option()]

    def on_execute(self, context):
        self.rest = context.result.remaining


@application(name="shellish", shell=True)
class Shellish:
    count: Annotated[int, Option()]


class TestLifecycle(TestCase):

    def testRoundTrip(self):
        result = execute(Greet, ["--count", "3", "--subject", "world"])
        self.assertIs(result.state, State.EXECUTED)
        self.assertEqual(result.code, 0)
        self.assertEqual(result.instance.Count, 3)
        self.assertEqual(result.instance.Subject, "world")
        self.assertIsNone(result.fault)

    def testDefaults(self):
        instance = execute(Greet, []).instance
        self.assertEqual(instance.Count, 0)
        self.assertEqual(instance.Subject, "world")
        self.assertEqual(instance.greeting, "")

    def testFlag(self):
        self.assertIs(execute(Greet, []).instance.Verbose, False)
        self.assertIs(execute(Greet, ["--verbose"]).instance.Verbose, True)

    def testFreshInstances(self):
        first, second = execute(Greet, "-c 1"), execute(Greet, "-c 2")
        self.assertIsNot(first.instance, second.instance)
        self.assertEqual((first.instance.Count, second.instance.Count), (1, 2))

    def testPromptString(self):
        instance = execute(Greet, "--count 2 --subject 'big world'").instance
        self.assertEqual(instance.greeting, "hello big world hello big world")

    def testPromptMustHoldStrings(self):
        with self.assertRaises(TypeError):
            execute(Greet, ["--count", 3])
        with self.assertRaises(TypeError):
            execute(Greet, 3)

    def testArguments(self):
        result = execute(Copy, ["a.txt", "out", "backup", "--mode", "644"])
        self.assertEqual(result.code, 5)
        self.assertEqual(result.instance.source, "a.txt")
        self.assertEqual(result.instance.targets, ["out", "backup"])
        self.assertEqual(result.instance.mode, 644)

    def testOptionalMemberStartsAtNone(self):
        instance = execute(Copy, ["a.txt"]).instance
        self.assertIsNone(instance.mode)
        self.assertEqual(instance.targets, [])

    def testListDefaultNotShared(self):
        execute(Collecting, []).instance.files.append("x")
        self.assertEqual(execute(Collecting, []).instance.files, [])
        self.assertEqual(Collecting.files, [])

    def testExitCode(self):
        self.assertEqual(execute(Exiting, "--code 3").code, 3)
        self.assertEqual(execute(Exiting, []).code, 0)

    def testHelp(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            result = execute(Greet, ["--count", "2", "--help"])
        self.assertIs(result.state, State.HELP)
        self.assertEqual(result.code, 0)
        self.assertIsNone(result.instance)
        self.assertIn("Usage: greet [options]", stdout.getvalue())
        self.assertIn("Greets a subject.", stdout.getvalue())

    def testUnexpectedKept(self):
        instance = execute(Lenient, ["--value", "v", "--other", "x"]).instance
        self.assertEqual(instance.value, "v")
        self.assertEqual(instance.rest, ["--other", "x"])

    def testCustomMapper(self):
        with self.assertRaises(UnresolvedOptionTypeError):
            build(Located)
        mapper = OptionTypeMapper.default.copy().register(pathlib.Path, OptionType.SINGLE_VALUE)
        instance = execute(Located, "--where /tmp", mapper=mapper).instance
        self.assertEqual(instance.where, pathlib.Path("/tmp"))


class TestFailures(TestCase):

    def assertFailed(self, result, kind, code):
        self.assertIs(result.state, State.FAILED)
        self.assertEqual(result.code, 1)
        self.assertIsNone(result.instance)
        self.assertIsInstance(result.fault, kind)
        self.assertEqual(result.fault.code, code)

    def testInvalidValue(self):
        result = execute(Greet, ["--count", "abc"])
        self.assertFailed(result, InvalidValueError, FaultCode.INVALID_VALUE)
        self.assertEqual(result.fault.options["prog"], "greet")

    def testUnexpectedArgument(self):
        self.assertFailed(execute(Greet, ["extra"]), UnexpectedArgumentError, FaultCode.UNEXPECTED_ARGUMENT)

    def testMissingValue(self):
        self.assertFailed(execute(Greet, ["--count"]), MissingValueError, FaultCode.MISSING_VALUE)

    def testValidation(self):
        result = execute(Positive, ["--count", "-1", "--name", "x"])
        self.assertFailed(result, ValidationError, FaultCode.VALIDATION)
        self.assertEqual(result.fault.violations, ("count must be positive",))

    def testRequired(self):
        result = execute(Positive, [])
        self.assertFailed(result, ValidationError, FaultCode.VALIDATION)
        self.assertEqual(result.fault.violations, ("the option --name is required",))
        result = execute(Copy, [])
        self.assertEqual(result.fault.violations, ("the argument source is required",))

    def testFaultFromOnExecute(self):
        result = execute(Rejecting, ["--port", "80"])
        self.assertFailed(result, InvalidValueError, FaultCode.INVALID_VALUE)
        self.assertEqual(result.fault.message, "port 80 is reserved")
        self.assertEqual(result.fault.options["prog"], "rejecting")

    def testConstructorFailure(self):
        result = execute(Fragile, [])
        self.assertFailed(result, InitializationError, FaultCode.INITIALIZATION)
        self.assertIsInstance(result.fault.__cause__, TypeError)

    def testCallbackFailure(self):
        def boom(instance):
            raise RuntimeError("boom")

        class Failing:
            def apply(self, context):
                context.on_initialized(boom)

        result = execute(Greet, [], conventions=[Failing()])
        self.assertFailed(result, InitializationError, FaultCode.INITIALIZATION)
        self.assertIsInstance(result.fault.__cause__, RuntimeError)
        self.assertIn("boom", result.fault.message)

    def testShellPrintsFault(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            result = execute(Shellish, ["--count", "abc"])
        self.assertIs(result.state, State.FAILED)
        self.assertIn("shellish", stderr.getvalue())
        self.assertIn("invalid value 'abc' given for --count", stderr.getvalue())


class TestParseArgs(TestCase):

    def testReturnsInstance(self):
        instance = parse_args(Greet, "--count", "2")
        self.assertEqual(instance.Count, 2)
        self.assertFalse(hasattr(instance, "greeting"))

    def testRaisesFaults(self):
        with self.assertRaises(InvalidValueError) as context:
            parse_args(Greet, "--count", "abc")
        self.assertEqual(context.exception.options["prog"], "greet")

    def testHelpReturnsNone(self):
        with contextlib.redirect_stdout(io.StringIO()):
            self.assertIsNone(parse_args(Greet, "-h"))

    def testShellExits(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                parse_args(Shellish, "--count", "abc")


class TestApplicationSettings(TestCase):

    def testDefaultName(self):
        self.assertEqual(build(Copy).application.name, "copy")
        self.assertEqual(build(Greet).application.name, "greet")

    def testDescrFromDocstring(self):
        self.assertEqual(build(Greet).application.descr, "Greets a subject.")

    def testUnknownSetting(self):
        with self.assertRaises(TypeError):
            application(colour=True)

    def testInvalidSetting(self):
        with self.assertRaises(ValueError):
            application(unexpected="ignore")

    def testExecutionContext(self):
        context = ExecutionContext(build(Greet).application, Greet, ["--count", "1"])
        self.assertEqual(context.tokens, ("--count", "1"))
        self.assertIsNone(context.result)


if __name__ == "__main__":
    unittest.main()
