"""
Tether utilities shared by the schema, binding and execution layers.

Contents
- Unset: the "nothing was given" sentinel. It is falsey, prints as Unset and
  can be combined with types in isinstance checks (str | Unset).
- coalesce(object, default=None): Unset → default, everything else unchanged.
- rename(callable, name) / @rename(name): give generated callables a readable
  name, so tracebacks show "environment" rather than "<lambda>".
- kebabize(identifier) / derive_names(identifier): option names from member
  identifiers, "MaxRetryCount" → ("m", "max-retry-count").
- ordinal(number): 1-based positions for messages ("first", "second", "11th").

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> derive_names("MaxRetryCount")
    ('m', 'max-retry-count')
"""
import builtins
import functools
import re
from typing import final


def _union(left, right):
    try:
        return left | right
    except TypeError:
        return NotImplemented


@final
class UnsetType:
    """
    Type of the Unset sentinel; there is exactly one instance.

    Unset stands for an omitted argument where None is a meaningful value of
    its own. It is falsey, but never equal to None, 0 or "".
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __or__(self, other, /):
        return _union(UnsetType, other)

    def __ror__(self, other, /):
        return _union(other, UnsetType)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    Return 'default' when 'object' is Unset, 'object' otherwise.

    Only Unset is replaced: None, 0, "" and [] are legitimate values.
    """
    return default if object is Unset else object


def _rename(callable, name):
    if not builtins.callable(callable):
        raise TypeError("rename() target must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() target does not accept a new name") from None
    return callable


def rename(*parameters):
    """
    rename(callable, name) renames in place and returns the callable;
    rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 2:
        return _rename(*parameters)
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() argument must be a string")
        return _rename(lambda callable: _rename(callable, name), "rename")
    raise TypeError("rename() takes 1 or 2 arguments (%d given)" % len(parameters))


@functools.cache
def kebabize(identifier, /):
    """
    Convert a member identifier into a kebab-case long option name.

    Rules
    - leading/trailing underscores are ignored ("_name" → "name").
    - a hyphen is inserted before every uppercase letter except the first one.
    - underscores become hyphens; runs of separators collapse into one.
    - the result is lowercased.

    Examples
    - kebabize("MaxCount")      -> "max-count"
    - kebabize("max_count")     -> "max-count"
    - kebabize("MaxRetryCount") -> "max-retry-count"
    """
    if not isinstance(identifier, str):
        raise TypeError("kebabize() argument must be a string")
    if not (stripped := identifier.strip("_")):
        raise ValueError("kebabize() argument must contain at least one character besides underscores")

    hyphened = re.sub(r"(?<!^)(?=[A-Z])", r"-", stripped).replace("_", "-")
    return re.sub(r"-{2,}", "-", hyphened).lower()


@functools.cache
def derive_names(identifier, /):
    """
    Return the default (short, long) option names for a member identifier.

    The short name is the lowercased first character and the long name is
    the kebab-cased identifier (see kebabize).
    """
    long = kebabize(identifier)
    return long[0], long


@functools.cache
def ordinal(number, /):
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

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


Unset = UnsetType()


__all__ = (
    "Unset",
    "UnsetType",
    "coalesce",
    "rename",
    "kebabize",
    "derive_names",
    "ordinal",
)
