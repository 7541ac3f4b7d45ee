"""
Type mapping: declared member types → option categories and converters.

Overview
- OptionTypeMapper: registry consulted by the schema builder when an Option
  marker does not state its category explicitly.
  • built-ins: bool → FLAG; str, int, float → SINGLE_VALUE.
  • sequences (list[X], tuple[X, ...], Sequence[X], set[X], frozenset[X])
    whose element type X maps to SINGLE_VALUE → MULTIPLE_VALUE.
  • Optional[X] / X | None resolve like X.
  • register(type, option_type, converter) adds custom mappings.
- OptionTypeMapper.default: the process-wide mapper. Configure it once at
  start-up; pass a copy() to a single build to override without side effects.
- zero(type): the value a member holds before anything is bound.

Converters
- A converter turns one raw string into the member's value. Numeric
  converters raise ValueError on bad input, which the binder reports to the
  end user as an InvalidValueError.
"""
import collections.abc
import logging
import types
import typing

from .roles import OptionType
from .utils import Unset

log = logging.getLogger(__name__)

_sequences = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Collection: list,
    collections.abc.Iterable: list,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}


def unwrap(type, /):
    """
    Strip Annotated[...] and Optional[...] wrappers from a declared type.
    """
    while True:
        origin = typing.get_origin(type)
        if origin is typing.Annotated:
            type = typing.get_args(type)[0]
        elif origin is typing.Union or origin is types.UnionType:
            arguments = [argument for argument in typing.get_args(type) if argument is not types.NoneType]
            if len(arguments) != 1:
                return type
            type = arguments[0]
        else:
            return type


def optional(type, /):
    """
    Whether the declared type admits None (Optional[X] or X | None).
    """
    origin = typing.get_origin(type)
    if origin is typing.Annotated:
        return optional(typing.get_args(type)[0])
    if origin is typing.Union or origin is types.UnionType:
        return types.NoneType in typing.get_args(type)
    return False


def container(type, /):
    """
    Return the concrete container used to hold values of a sequence type, or None.
    """
    type = unwrap(type)
    return _sequences.get(typing.get_origin(type) or type)


def element(type, /):
    """
    Return the element type of a sequence type, or Unset when it is not one.

    Unparameterized sequences (plain `list`) hold strings.
    """
    type = unwrap(type)
    if (origin := typing.get_origin(type) or type) not in _sequences:
        return Unset
    arguments = typing.get_args(type)
    if not arguments:
        return str
    if origin is tuple:
        if len(arguments) == 2 and arguments[1] is Ellipsis:
            return arguments[0]
        return Unset
    return arguments[0]


def zero(type, /):
    """
    The zero value of a declared type.

    - Optional[...] → None
    - FLAG-like bool → False, int → 0, float → 0.0
    - sequences → a fresh, empty container of the right kind
    - anything else → None
    """
    if optional(type):
        return None
    type = unwrap(type)
    if (factory := container(type)) is not None:
        return factory()
    if type is bool:
        return False
    if type is int:
        return 0
    if type is float:
        return 0.0
    return None


class _SharedMapper:
    """
    class-level accessor for the process-wide mapper, created on first use.
    """

    def __set_name__(self, owner, name):
        self.attribute = "_shared_" + name

    def __get__(self, instance, owner):
        if (mapper := vars(owner).get(self.attribute)) is None:
            mapper = owner()
            setattr(owner, self.attribute, mapper)
        return mapper


class OptionTypeMapper:
    """
    Maps declared member types to option categories and value converters.
    """

    default = _SharedMapper()

    def __init__(self):
        self._mappings = {}
        self.register(bool, OptionType.FLAG, None)
        self.register(str, OptionType.SINGLE_VALUE, str)
        self.register(int, OptionType.SINGLE_VALUE, int)
        self.register(float, OptionType.SINGLE_VALUE, float)

    def register(self, type, option_type, converter=Unset, /):
        """
        Register (or replace) the category and converter of a type.

        The converter defaults to the type itself; pass None for types that are
        never converted from a string (presence-only flags).
        """
        if not isinstance(option_type, OptionType):
            raise TypeError("register() second argument must be an OptionType")
        if converter is Unset:
            converter = type
        if converter is not None and not callable(converter):
            raise TypeError("register() third argument must be callable")
        log.debug("Registering type %r as %s", type, option_type.name)
        self._mappings[type] = option_type, converter
        return self

    def resolve(self, type, /):
        """
        Return the OptionType for a declared type, or None when none applies.
        """
        if (mapping := self._lookup(type)) is not None:
            return mapping[0]
        if (item := element(type)) is not Unset and self.resolve(item) is OptionType.SINGLE_VALUE:
            return OptionType.MULTIPLE_VALUE
        return None

    def converter(self, type, /):
        """
        Return the converter for a scalar declared type, or None when the type
        cannot be converted from a string.
        """
        if (mapping := self._lookup(type)) is not None:
            return mapping[1]
        return None

    def copy(self):
        """
        Return an independent mapper with the same registrations.
        """
        mapper = object.__new__(type(self))
        mapper._mappings = dict(self._mappings)
        return mapper

    def _lookup(self, type):
        for candidate in (type, unwrap(type)):
            try:
                return self._mappings[candidate]
            except (KeyError, TypeError):
                continue
        return None

    def __repr__(self):
        return "option-type-mapper(%s)" % ", ".join(
            "%s=%s" % (getattr(type, "__name__", repr(type)), option_type.name)
            for type, (option_type, _) in self._mappings.items()
        )


__all__ = (
    "OptionTypeMapper",
    "unwrap",
    "optional",
    "container",
    "element",
    "zero",
)
