"""
Tether conventions: pluggable rules that rewrite a build.

Overview
- Convention: abstract rule with apply(context). A convention runs once per
  build, after the annotated members have been turned into options and
  arguments, and may:
  • add options/arguments through context.application;
  • register write-backs through context.binder;
  • register TargetInitialized callbacks (context.on_initialized), invoked
    with the fresh instance before any token is parsed;
  • register ParsingComplete callbacks (context.on_complete), invoked with
    (instance, execution context) after the write-backs, before validation.
- @convention(Type, *args, **kwargs): attaches a convention to a schema
  class. Several decorators may be stacked; they apply top to bottom, base
  classes first.
- BuildContext: the mutable state of one build (schema, application, binder,
  mapper, callbacks). Created fresh for every execution.
- EnvironmentConvention: fills value-bearing options from environment variables.

Quick example:
    >>> class Strings(Convention):
    ...     def apply(self, context):
    ...         for member in context.members:
    ...             if member.type is str and not member.roles:
    ...                 option = context.application.option("--" + kebabize(member.name))
    ...                 ...
"""
import abc
import logging
import os
import re

from .introspection import members
from .utils import *

log = logging.getLogger(__name__)


class BuildContext:
    """
    Everything a convention may read or extend during one build.
    """

    def __init__(self, schema, application, binder, mapper, /):
        self.schema = schema
        self.application = application
        self.binder = binder
        self.mapper = mapper
        self._initialized = []
        self._completed = []

    @property
    def members(self):
        return members(self.schema)

    @property
    def initialized(self):
        return tuple(self._initialized)

    @property
    def completed(self):
        return tuple(self._completed)

    def on_initialized(self, callback, /):
        """
        register a TargetInitialized callback (usable as a decorator).

        the callback receives the fresh instance, before parsing.
        """
        if not callable(callback):
            raise TypeError("on_initialized() argument must be callable")
        self._initialized.append(callback)
        return callback

    def on_complete(self, callback, /):
        """
        register a ParsingComplete callback (usable as a decorator).

        the callback receives the bound instance and the execution context.
        """
        if not callable(callback):
            raise TypeError("on_complete() argument must be callable")
        self._completed.append(callback)
        return callback

    def __repr__(self):
        return "build-context(schema=%s, options=%d, arguments=%d, write-backs=%d)" % (
            self.schema.__name__,
            len(self.application.options),
            len(self.application.arguments),
            len(self.binder.actions),
        )


class Convention(abc.ABC):
    """
    A rule applied to every build of the schemas it is attached to.
    """

    @abc.abstractmethod
    def apply(self, context, /):
        raise NotImplementedError


def convention(factory, /, *args, **kwargs):
    """
    Class decorator attaching a convention to a schema.

    The convention is instantiated as factory(*args, **kwargs) for every
    build, so conventions never share state across executions.
    """
    if not callable(factory):
        raise TypeError("convention() first argument must be callable")

    def decorator(schema):
        if not isinstance(schema, type):
            raise TypeError("@convention() must be applied to a class")
        # decorators run bottom-up, prepending keeps the written order
        schema.__conventions__ = ((factory, args, kwargs),) + schema.__dict__.get("__conventions__", ())
        return schema

    return rename(decorator, "convention")


def discover(schema, /):
    """
    Instantiate the conventions attached to a schema and its base classes.
    """
    conventions = []
    for cls in reversed(schema.__mro__):
        for factory, args, kwargs in cls.__dict__.get("__conventions__", ()):
            conventions.append(factory(*args, **kwargs))
    return conventions


def apply_conventions(context, conventions, /):
    """
    Apply every convention once, in order.
    """
    for each in conventions:
        if not callable(getattr(each, "apply", None)):
            raise TypeError("convention %r has no apply() method" % (each,))
        log.debug("Applying %r to %s", each, context.schema.__name__)
        each.apply(context)
    return context


class EnvironmentConvention(Convention):
    """
    Fills value-bearing options from environment variables.

    The variable of an option is PREFIX_LONG_NAME: the upper-cased prefix and
    long name, with hyphens turned into underscores. The prefix defaults to
    the program name ("my-tool" → MY_TOOL_COUNT); an empty prefix means none.
    Multiple-value options split the variable on ','.

    Values are written when the target is initialized, so command-line values
    given for the same option still win.
    """

    def __init__(self, prefix=Unset, /, environ=Unset):
        if not isinstance(prefix, str | Unset):
            raise TypeError("EnvironmentConvention 'prefix' must be a string")
        self.prefix = prefix
        self.environ = environ

    @staticmethod
    def envize(name, /):
        return re.sub(r"[^a-zA-Z0-9]+", "_", name).strip("_").upper()

    def variable(self, prefix, option, /):
        return "_".join(filter(None, (prefix, self.envize(option.long))))

    def apply(self, context, /):
        prefix = self.envize(coalesce(self.prefix, context.application.name))

        @context.on_initialized
        @rename("environment")
        def environment(instance):
            environ = coalesce(self.environ, os.environ)
            for action in context.binder.actions:
                if action.kind not in ("single", "multiple") or not getattr(action.source, "long", None):
                    continue
                if not (value := environ.get(variable := self.variable(prefix, action.source))):
                    continue
                values = [value] if action.kind == "single" else [item.strip() for item in value.split(",")]
                log.debug("Binding %s from %s", action.member, variable)
                setattr(instance, action.member, action.convert(values))

    def __repr__(self):
        return "environment-convention(prefix=%r)" % (self.prefix,)


__all__ = (
    "BuildContext",
    "Convention",
    "convention",
    "discover",
    "apply_conventions",
    "EnvironmentConvention",
)
