"""
Tether execution: build a schema, run its lifecycle against tokens.

Lifecycle
    CREATED → INITIALIZED → PARSED → VALIDATED → EXECUTED
    (terminal alternates: FAILED, HELP)

1. build(schema): the schema builder and the conventions populate a fresh
   BuildContext. Structural errors (SchemaError) propagate immediately.
2. a fresh instance is created; members without a value get their zero
   value; TargetInitialized callbacks run in registration order.
3. the tokens are parsed; the help option stops the run (HELP, exit code 0).
4. write-backs are applied in registration order.
5. ParsingComplete callbacks run, then the application validates the bound
   instance (required descriptors, validators, the schema's on_validate()).
6. the schema's on_execute() runs; an integer return is the exit code and
   None means 0.

Runtime faults (CommandException) never escape execute(): they end the run
in FAILED with exit code 1. parse_args() stops after validation and raises
them instead.

Quick example:
    >>> from typing import Annotated
    >>> @application(help="-?|-h|--help")
    ... class Greet:
    ...     count: Annotated[int, Option()]
    ...     subject: Annotated[str, Option()] = "world"
    ...     def on_execute(self):
    ...         print(("hello %s\\n" % self.subject) * self.count, end="")
    >>> execute(Greet, "--count 2").code
    hello world
    hello world
    0
"""
import collections
import copy
import enum
import inspect
import logging
import shlex
import sys
from collections.abc import Iterable
from types import MappingProxyType

from .binding import Binder
from .conventions import BuildContext, apply_conventions, discover
from .faults import *
from .introspection import SchemaBuilder
from .mapping import OptionTypeMapper
from .model import *
from .utils import *

log = logging.getLogger(__name__)


class State(enum.Enum):
    """
    Lifecycle state of one execution.
    """
    CREATED = "created"
    INITIALIZED = "initialized"
    PARSED = "parsed"
    VALIDATED = "validated"
    EXECUTED = "executed"
    FAILED = "failed"
    HELP = "help"


ExecutionResult = collections.namedtuple("ExecutionResult", ("code", "instance", "state", "fault"), defaults=(None,))


class ExecutionContext:
    """
    What ParsingComplete callbacks and on_execute() get to see of a run.
    """

    def __init__(self, application, schema, tokens, /):
        self.application = application
        self.schema = schema
        self.tokens = tuple(tokens)
        self.result = None

    def __repr__(self):
        return "execution-context(schema=%s, tokens=%r)" % (self.schema.__name__, self.tokens)


_settings = frozenset(inspect.signature(Application).parameters)


def application(**settings):
    """
    Class decorator attaching application-level settings to a schema.

    Settings are the parameters of Application: name, descr, help,
    unexpected, shell, colorful and fancy. The name defaults to the
    kebab-cased class name and descr to the class docstring.
    """
    if unknown := settings.keys() - _settings:
        raise TypeError("application() got unexpected settings: %s" % ", ".join(sorted(unknown)))
    Application(settings.get("name", "tether"), **{key: value for key, value in settings.items() if key != "name"})

    def decorator(schema):
        if not isinstance(schema, type):
            raise TypeError("@application() must be applied to a class")
        schema.__application__ = MappingProxyType(settings)
        return schema

    return rename(decorator, "application")


def _application(schema, settings, /):
    settings = dict(settings)
    name = settings.pop("name", Unset)
    if name is Unset:
        name = kebabize(schema.__name__)
    if (descr := settings.pop("descr", Unset)) is Unset and schema.__dict__.get("__doc__"):
        descr = inspect.getdoc(schema) or Unset
    return Application(name, descr, **settings)


def build(schema, /, *, conventions=Unset, mapper=Unset):
    """
    Turn a schema class into a populated BuildContext.

    conventions attached with @convention run first (base classes first),
    followed by the explicit ones. mapper defaults to OptionTypeMapper.default.
    """
    if not isinstance(schema, type):
        raise TypeError("build() argument must be a class")

    context = BuildContext(
        schema,
        _application(schema, getattr(schema, "__application__", {})),
        Binder(schema),
        coalesce(mapper, OptionTypeMapper.default),
    )
    SchemaBuilder(context).build()
    apply_conventions(context, discover(schema) + list(coalesce(conventions, ())))
    return context


def _tokenize(prompt, /):
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("execute() prompt must be a string or an iterable of strings")
        return tokens
    raise TypeError("execute() prompt must be a string or an iterable of strings")


class Execution:
    """
    One run of a built schema against a token sequence.
    """

    def __init__(self, context, tokens, /):
        self.context = context
        self.tokens = tuple(tokens)
        self.state = State.CREATED
        self.instance = None
        self.execution = ExecutionContext(context.application, context.schema, self.tokens)

    def _transition(self, state):
        log.debug("%s: %s → %s", self.context.schema.__name__, self.state.name, state.name)
        self.state = state

    def _callback(self, callback, /, *args):
        try:
            callback(*args)
        except CommandException:
            raise
        except Exception as exception:
            name = getattr(callback, "__name__", repr(callback))
            raise InitializationError(
                "%s failed while preparing %s: %s" % (name, self.context.schema.__name__, exception),
                title="initialization failed",
                code=FaultCode.INITIALIZATION,
                hint="this is a problem of the program, not of its arguments",
                cause=exception,
            ) from exception

    def _initialize(self):
        try:
            instance = self.context.binder.instantiate()
        except Exception as exception:
            raise InitializationError(
                "could not create %s: %s" % (self.context.schema.__name__, exception),
                title="initialization failed",
                code=FaultCode.INITIALIZATION,
                cause=exception,
            ) from exception
        for callback in self.context.initialized:
            self._callback(callback, instance)
        self._transition(State.INITIALIZED)
        return instance

    def advance(self):
        """
        run the lifecycle up to VALIDATED and return the bound instance.

        returns None when help was requested; runtime faults are raised.
        """
        application = self.context.application
        instance = self._initialize()

        match application.parse(self.tokens):
            case HelpRequested(result):
                self.execution.result = result
                self._transition(State.HELP)
                return None
            case Failed(fault):
                raise fault
            case Parsed(result):
                self.execution.result = result
        self._transition(State.PARSED)

        self.context.binder.apply(instance, result)
        for callback in self.context.completed:
            self._callback(callback, instance, self.execution)

        match application.validate(instance, result):
            case Invalid(violations):
                raise ValidationError(
                    "%s received invalid input" % application.name,
                    title="validation failed",
                    code=FaultCode.VALIDATION,
                    hint="fix the issues above and try again",
                    violations=violations,
                )
        self._transition(State.VALIDATED)
        self.instance = instance
        return instance

    def decorate(self, fault, /):
        """
        fill in the rendering options of a fault from the application settings.
        """
        application = self.context.application
        defaults = {
            "prog": application.name,
            "shell": application.shell,
            "colorful": application.colorful,
            "fancy": application.fancy,
        }
        return copy.replace(fault, **{key: value for key, value in defaults.items() if key not in fault.options})

    def run(self):
        try:
            instance = self.advance()
            if self.state is not State.HELP:
                code = self._execute(instance)
        except CommandException as fault:
            self._transition(State.FAILED)
            fault = self.decorate(fault)
            log.debug("%s failed: %s", self.context.schema.__name__, fault)
            if fault.options["shell"]:
                trigger(fault, deferred=True)
            return ExecutionResult(1, None, self.state, fault)

        if self.state is State.HELP:
            self.context.application.print_help()
            return ExecutionResult(0, None, self.state)

        self._transition(State.EXECUTED)
        return ExecutionResult(code, instance, self.state)

    def _execute(self, instance):
        if (hook := getattr(instance, "on_execute", None)) is None:
            return 0
        if not callable(hook):
            raise TypeError("%s.on_execute must be callable" % self.context.schema.__name__)
        code = hook(self.execution) if inspect.signature(hook).parameters else hook()
        if code is None:
            return 0
        if not isinstance(code, int) or isinstance(code, bool):
            raise TypeError("%s.on_execute() must return an integer or None" % self.context.schema.__name__)
        return code


def execute(schema, prompt=Unset, /, *, conventions=Unset, mapper=Unset):
    """
    Build a schema and run it against a prompt.

    Parameters
    - prompt:
      • Unset: read sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: used as the tokens.
    - conventions: extra conventions applied after the attached ones.
    - mapper: OptionTypeMapper to use instead of OptionTypeMapper.default.

    Returns ExecutionResult(code, instance, state, fault).
    """
    tokens = _tokenize(prompt)
    return Execution(build(schema, conventions=conventions, mapper=mapper), tokens).run()


def parse_args(schema, /, *tokens, conventions=Unset, mapper=Unset):
    """
    Build a schema, bind the tokens and return the validated instance.

    Runtime faults are surfaced through trigger(): raised, or printed before
    exiting when the schema runs in shell mode. Returns None after printing
    the help text when help was requested.
    """
    execution = Execution(build(schema, conventions=conventions, mapper=mapper), _tokenize(tokens))
    try:
        instance = execution.advance()
    except CommandException as fault:
        trigger(execution.decorate(fault))
        return None
    if execution.state is State.HELP:
        execution.context.application.print_help()
    return instance


__all__ = (
    "State",
    "ExecutionContext",
    "ExecutionResult",
    "Execution",
    "application",
    "build",
    "execute",
    "parse_args",
)
