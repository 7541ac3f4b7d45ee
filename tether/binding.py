"""
Binding: deferred write-backs from parsed values onto a schema instance.

Overview
- WriteBack: a tagged action {member, source, kind, apply(instance, result)}.
  • "flag": writes whether the flag appeared (always written).
  • "single": converts the single value (written only when one was given).
  • "multiple": converts every value into the member's container (written
    only when at least one value was given).
  • "custom": forwards (instance, result) to a callback registered by a convention.
- Binder: owns the write-backs of one build, in registration order, and
  materializes fresh schema instances.

Errors
- A converter raising ValueError or TypeError becomes an InvalidValueError
  naming the offending option or argument. Other exceptions propagate.
"""
import copy
import inspect
import logging

from .faults import FaultCode, InvalidValueError
from .mapping import zero

log = logging.getLogger(__name__)


class WriteBack:
    """
    One deferred assignment of a parsed value onto a schema member.
    """

    kinds = ("flag", "single", "multiple", "custom")

    def __init__(self, kind, member, source, /, converter=None, container=list, callback=None):
        if kind not in self.kinds:
            raise ValueError("write-back kind must be one of %s" % ", ".join(self.kinds))
        if kind == "custom" and not callable(callback):
            raise TypeError("custom write-backs require a callable callback")
        self.kind = kind
        self.member = member
        self.source = source
        self.converter = converter
        self.container = container
        self.callback = callback

    @classmethod
    def custom(cls, callback, /, source=None, member=None):
        return cls("custom", member, source, callback=callback)

    def convert(self, values, /):
        """
        turn raw strings into the value written onto the member.
        """
        match self.kind:
            case "flag":
                return bool(values)
            case "single":
                return self._convert(values[0])
            case "multiple":
                return self.container(map(self._convert, values))
            case _:
                raise TypeError("custom write-backs do not convert values")

    def _convert(self, value):
        try:
            return self.converter(value)
        except (TypeError, ValueError):
            if self.converter in (int, float):
                expected = "a valid number"
            else:
                expected = "a valid %s" % getattr(self.converter, "__name__", "value")
            raise InvalidValueError(
                "invalid value %r given for %s, expected %s" % (value, self.source, expected),
                title="invalid value",
                code=FaultCode.INVALID_VALUE,
                hint="pass %s to %s" % (expected, self.source),
                input=str(self.source),
            ) from None

    def apply(self, instance, result, /):
        match self.kind:
            case "custom":
                self.callback(instance, result)
            case "flag":
                setattr(instance, self.member, result.has_value(self.source))
            case "single" | "multiple":
                if values := result.values(self.source):
                    setattr(instance, self.member, self.convert(values))

    def __repr__(self):
        return "write-back(kind=%r, member=%r, source=%s)" % (self.kind, self.member, self.source)


class Binder:
    """
    Registry of write-backs for one build, applied in registration order.

    The binder also tracks every writable schema member so that fresh
    instances start with each member at its default or zero value.
    """

    def __init__(self, schema, /):
        self.schema = schema
        self._actions = []
        self._members = {}

    @property
    def actions(self):
        return tuple(self._actions)

    def track(self, name, type, /):
        self._members.setdefault(name, type)

    def register(self, action, /):
        if not isinstance(action, WriteBack):
            raise TypeError("register() argument must be a write-back")
        self._actions.append(action)
        log.debug("Registered %r", action)
        return action

    def bind(self, callback, /, source=None):
        """
        register a custom write-back (usable as a decorator).
        """
        self.register(WriteBack.custom(callback, source))
        return callback

    def instantiate(self):
        """
        create a fresh schema instance with unset members at their zero value.

        mutable class defaults (lists, sets, dicts) are copied onto the instance.
        """
        instance = self.schema()
        own = getattr(instance, "__dict__", {})
        for name, type in self._members.items():
            if not hasattr(instance, name):
                setattr(instance, name, zero(type))
                continue
            default = inspect.getattr_static(self.schema, name, None)
            if name not in own and isinstance(default, list | set | dict):
                setattr(instance, name, copy.copy(default))
        return instance

    def apply(self, instance, result, /):
        for action in self._actions:
            action.apply(instance, result)
        return instance


__all__ = (
    "WriteBack",
    "Binder",
)
