r"""
Tether role markers.

Overview
- OptionType: the three option categories understood by the parsing model.
  • FLAG: presence-only switch (no value), e.g. --verbose.
  • SINGLE_VALUE: named option carrying exactly one value, e.g. --count 3.
  • MULTIPLE_VALUE: named option that may repeat, collecting every value.

- Markers (placed inside typing.Annotated on a schema member)
  • Option(...): the member is bound to a named option.
  • Argument(order, ...): the member is bound to a positional argument.
  A member carries at most one marker; carrying two is a structural error
  reported while the schema is built.

Metadata (sanitized on construction)
- Shared
  • descr: Unset | str (short help), non-empty when provided.
  • hidden: bool (suppresses from help).
  • required: bool (a value must be given, checked during validation).
- Option only
  • template: Unset | str such as "-n|--count <N>"; excludes short/long/valuename.
  • short: Unset | str, a single non-hyphen character.
  • long: Unset | str matching r"[^\W\d_](-?[^\W_]+)*".
  • type: Unset | OptionType (explicit category; otherwise the type mapper decides).
  • valuename: Unset | str (label in help).
  • inherited: bool.
- Argument only
  • order: int, the positional rank (sort key).
  • name: Unset | str (defaults to the kebab-cased member name).
  • multiple: bool, the argument collects every remaining value.

Quick example:
    >>> from typing import Annotated
    >>> class Program:
    ...     subject: Annotated[str, Option(descr="The subject")]
    ...     count: Annotated[int, Option(short="n")] = 1
    ...     files: Annotated[list[str], Argument(0, multiple=True)]
"""
import enum
import re

from .utils import *


class OptionType(enum.Enum):
    """
    Category of a named option, deciding how many values it consumes.
    """
    FLAG = "flag"
    SINGLE_VALUE = "single-value"
    MULTIPLE_VALUE = "multiple-value"


def _readonly(name):
    @rename(name)
    def getter(self):
        return getattr(self, "_" + name)

    return property(getter)


def _rich_repr(self):
    for name in type(self).__introspectable__:
        if (value := getattr(self, name)) is not Unset:
            yield name, value


def _repr(self):
    return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % field for field in self.__rich_repr__()))


class SpecType(type):
    """
    Metaclass for role markers and parsing-model descriptors.

    Responsibilities
    - Derive __typename__ from the class name for messages ("option", "argument").
    - Expose every name listed in __introspectable__ as a read-only property
      backed by the private "_<name>" field.
    - Provide __repr__/__rich_repr__ listing the fields that were given.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        namespace = dict(namespace, __typename__=kebabize(name))
        for field in namespace.get("__introspectable__", ()):
            namespace[field] = _readonly(field)
        namespace.setdefault("__repr__", rename(_repr, "__repr__"))
        namespace.setdefault("__rich_repr__", rename(_rich_repr, "__rich_repr__"))
        return super().__new__(cls, name, bases, namespace, **options)


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by Option and Argument.

    Raises
    - TypeError: if 'descr' is not a string or Unset.
    - ValueError: if 'descr' is a string but empty after trimming.
    """
    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = descr

    metadata["hidden"] = bool(metadata["hidden"])
    metadata["required"] = bool(metadata["required"])


def _sanitize_option_metadata(cls, metadata, /):
    r"""
    Internal: validate names and categories of an Option marker.

    Notes
    - Long name regex: r"[^\W\d_](-?[^\W_]+)*" (no leading hyphens; those are
      added by the parsing model).
    - A template already carries the names and value name, so it cannot be
      combined with explicit 'short', 'long' or 'valuename'.
    """
    if not isinstance(template := metadata["template"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'template' must be a string")
    elif isinstance(template, str) and not (template := template.strip()):
        raise ValueError(f"{cls.__typename__} 'template' cannot be empty")
    metadata["template"] = template

    if template and any(metadata[name] is not Unset for name in ("short", "long", "valuename")):
        raise TypeError(f"{cls.__typename__} cannot combine a 'template' with 'short', 'long' or 'valuename'")

    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str) and (len(short) != 1 or short in "- =" or short.isspace()):
        raise ValueError(f"{cls.__typename__} 'short' must be a single character")

    if not isinstance(long := metadata["long"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'long' must be a string")
    elif isinstance(long, str) and not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", long):
        raise ValueError(f"{cls.__typename__} 'long' must be a valid kebab-case name (without leading hyphens)")

    if not isinstance(valuename := metadata["valuename"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'valuename' must be a string")
    elif isinstance(valuename, str) and not (valuename := valuename.strip()):
        raise ValueError(f"{cls.__typename__} 'valuename' cannot be empty")
    metadata["valuename"] = valuename

    if not isinstance(metadata["type"], OptionType | Unset):
        raise TypeError(f"{cls.__typename__} 'type' must be an OptionType")

    metadata["inherited"] = bool(metadata["inherited"])


class Option(metaclass=SpecType):
    """
    Marks a schema member as a named option.

    The option category comes from 'type' when given, otherwise from the type
    mapper applied to the member's declared type. Names come from 'template'
    when given, otherwise they are derived from the member identifier
    ("MaxCount" → -m/--max-count), with 'short' and 'long' overriding the
    derived parts.
    """

    __introspectable__ = (
        "template",
        "descr",
        "short",
        "long",
        "type",
        "valuename",
        "inherited",
        "hidden",
        "required",
    )

    def __new__(
            cls,
            template=Unset,
            /,
            descr=Unset,
            *,
            short=Unset,
            long=Unset,
            type=Unset,
            valuename=Unset,
            inherited=False,
            hidden=False,
            required=False,
    ):
        metadata = {
            "template": template,
            "descr": descr,
            "short": short,
            "long": long,
            "type": type,
            "valuename": valuename,
            "inherited": inherited,
            "hidden": hidden,
            "required": required,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_option_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


class Argument(metaclass=SpecType):
    """
    Marks a schema member as a positional argument.

    Arguments are ranked by 'order' (ascending); only the argument with the
    greatest order may collect multiple values.
    """

    __introspectable__ = (
        "order",
        "name",
        "descr",
        "multiple",
        "hidden",
        "required",
    )

    def __new__(
            cls,
            order,
            /,
            name=Unset,
            descr=Unset,
            *,
            multiple=False,
            hidden=False,
            required=False,
    ):
        if not isinstance(order, int) or isinstance(order, bool):
            raise TypeError(f"{cls.__typename__} 'order' must be an integer")
        if not isinstance(name, str | Unset):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif isinstance(name, str) and not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")

        metadata = {
            "order": order,
            "name": name,
            "descr": descr,
            "multiple": bool(multiple),
            "hidden": hidden,
            "required": required,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


__all__ = (
    "OptionType",
    "Option",
    "Argument",
)
