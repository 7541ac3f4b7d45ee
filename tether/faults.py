"""
Tether faults (structural errors, runtime faults) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every issue the engine
  can report. Codes are grouped by tier so logs and searches stay predictable.
- SchemaError: structural, build-time errors. They describe a misconfigured
  schema (programmer error) and are raised immediately, before any token is
  parsed. They are never turned into exit codes.
- CommandException: runtime, user-input faults. They carry a message plus
  read-only options and know how to render themselves for the end user.
- trigger(): central entry point to surface a runtime fault (respecting shell/deferred/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Tiers
- structural (21xxx)
  • DUPLICATE_ROLE, DUPLICATE_ORDER, UNRESOLVED_OPTION_TYPE, DUPLICATE_OPTION_NAME,
    TRAILING_MULTI_VALUE_ARGUMENT, UNSUPPORTED_MEMBER_TYPE, NON_WRITABLE_MEMBER,
    MALFORMED_TEMPLATE
- runtime (11xxx)
  • UNEXPECTED_ARGUMENT, MISSING_VALUE, INVALID_VALUE, VALIDATION, INITIALIZATION

Integration
- The execution layer catches CommandException subclasses and maps them to a
  non-zero exit code; in shell mode they are printed through rich first.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    numeric ranges encode the tier: 11xxx for runtime faults reported to the
    end user, 21xxx for structural errors reported to the schema author.
    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- runtime faults (11xxx) ---
    UNEXPECTED_ARGUMENT           = 11101
    MISSING_VALUE                 = 11102
    INVALID_VALUE                 = 11103
    VALIDATION                    = 11111
    INITIALIZATION                = 11121

    # --- structural errors (21xxx) ---
    DUPLICATE_ROLE                = 21101
    DUPLICATE_ORDER               = 21102
    UNRESOLVED_OPTION_TYPE        = 21103
    DUPLICATE_OPTION_NAME         = 21104
    TRAILING_MULTI_VALUE_ARGUMENT = 21105
    UNSUPPORTED_MEMBER_TYPE       = 21106
    NON_WRITABLE_MEMBER           = 21107
    MALFORMED_TEMPLATE            = 21108

    def normalize(self):
        """
        label shown for this code: the entry of __main__.__codes__ when the
        host defines one, the number otherwise.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _qualify(schema, member):
    return "%s.%s" % (getattr(schema, "__name__", schema), member)


class SchemaError(Exception):
    """
    base type for structural (build-time) errors.

    every instance exposes its `code` and the keyword details it was built
    with as read-only attributes (e.g. `error.member`).
    """
    code = Unset

    def __init__(self, message, /, **details):
        super().__init__(message)
        self.message = message
        self.details = MappingProxyType(details)

    def __getattr__(self, name):
        try:
            return self.__dict__["details"][name]
        except KeyError:
            raise AttributeError(name) from None


class DuplicateRoleError(SchemaError):
    code = FaultCode.DUPLICATE_ROLE

    def __init__(self, schema, member):
        super().__init__(
            "member %s carries more than one role marker" % _qualify(schema, member),
            schema=schema,
            member=member,
        )


class DuplicateOrderError(SchemaError):
    code = FaultCode.DUPLICATE_ORDER

    def __init__(self, argument, order, other):
        super().__init__(
            "argument order %d of %r is already used by argument %r" % (order, argument, other),
            argument=argument,
            order=order,
            other=other,
        )


class UnresolvedOptionTypeError(SchemaError):
    code = FaultCode.UNRESOLVED_OPTION_TYPE

    def __init__(self, schema, member, type):
        super().__init__(
            "could not automatically determine the option type of member %s for type %r" % (
                _qualify(schema, member), type
            ),
            schema=schema,
            member=member,
            type=type,
        )


class DuplicateOptionNameError(SchemaError):
    code = FaultCode.DUPLICATE_OPTION_NAME

    def __init__(self, name, option, other):
        super().__init__(
            "option name %r of %s is already used by %s" % (name, option, other),
            name=name,
            option=option,
            other=other,
        )


class TrailingMultiValueArgumentError(SchemaError):
    code = FaultCode.TRAILING_MULTI_VALUE_ARGUMENT

    def __init__(self, argument, following):
        super().__init__(
            "the argument %r accepts multiple values, so no argument can follow it (found %r)" % (argument, following),
            argument=argument,
            following=following,
        )


class UnsupportedMemberTypeError(SchemaError):
    code = FaultCode.UNSUPPORTED_MEMBER_TYPE

    def __init__(self, schema, member, type, role):
        super().__init__(
            "not sure how to bind a %s to member %s of type %r" % (role, _qualify(schema, member), type),
            schema=schema,
            member=member,
            type=type,
            role=role,
        )


class NonWritableMemberError(SchemaError):
    code = FaultCode.NON_WRITABLE_MEMBER

    def __init__(self, schema, member):
        super().__init__(
            "member %s carries a role but cannot be written" % _qualify(schema, member),
            schema=schema,
            member=member,
        )


class MalformedTemplateError(SchemaError):
    code = FaultCode.MALFORMED_TEMPLATE

    def __init__(self, template, reason):
        super().__init__(
            "invalid option template %r: %s" % (template, reason),
            template=template,
            reason=reason,
        )


_palette = {
    # header parts
    "prog-name": "bold #E6E6F0",  # near-white program name
    "code": "bold #00E5FF",  # neon cyan fault code
    "error-title": "bold #FF4DA6",  # friendly pinky title

    # body
    "error-message": "#C8C8D0",  # soft light gray message
    "violation-dot": "#FF4DA6 dim",
    "violation": "#C8C8D0",
    "hint-arrow": "#9CE19C dim",  # gentle green arrow
    "hint": "italic #9CE19C",  # gentle green hint text
}


class CommandException(Exception):
    """
    base type for runtime faults reported to the end user.

    options (read-only, merged through copy.replace)
    - code, title, hint: what to show in the header and below the message.
    - input: the offending option or argument, when there is one.
    - prog: program name used in the header.
    - shell, deferred, fancy, colorful: rendering switches (see trigger()).
    - cause: the underlying exception, exposed as __cause__.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)
        if "cause" in options:
            self.__cause__ = options["cause"]

    @property
    def code(self):
        return self.options.get("code", Unset)

    @property
    def input(self):
        return self.options.get("input")

    def __str__(self):
        return str(self.message) if self.message is not Unset else ""

    def __rich_body__(self, text, styler):
        return [text(self.message, styler("error-message"))]

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, _palette | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "tether")), styler("prog-name"))
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if isinstance(code, FaultCode) else "?", styler("code")),
            " | ",
            text(str(self.options.get("title", type(self).__name__)).title(), styler("error-title")),
            " ]"
        )
        body = self.__rich_body__(text, styler)
        if hint := self.options.get("hint"):
            body.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if fancy:
            return Panel(Group(*body), title=header, title_align="left")

        return Group(header, *body)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from self.__cause__
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnexpectedArgumentError(CommandException): ...
class MissingValueError(CommandException): ...
class InvalidValueError(CommandException): ...
class InitializationError(CommandException): ...


class ValidationError(CommandException):
    """
    validation failed: `violations` lists every rule that was not satisfied.
    """

    @property
    def violations(self):
        return tuple(self.options.get("violations", ()))

    def __rich_body__(self, text, styler):
        body = super().__rich_body__(text, styler)
        for violation in self.violations:
            body.append(Text.assemble(text("  • ", styler("violation-dot")), text(violation, styler("violation"))))
        return body


def trigger(fault, /, **options):
    """
    surface a runtime fault with the given rendering options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode the fault is printed to stderr through rich (and sys.exit(1)
      is called unless deferred); otherwise the fault is raised.
    """
    if not all(callable(getattr(fault, name, None)) for name in ("__trigger__", "__replace__")):
        raise TypeError("trigger() argument must be a fault (__trigger__ and __replace__ are required)")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "SchemaError",
    "DuplicateRoleError",
    "DuplicateOrderError",
    "UnresolvedOptionTypeError",
    "DuplicateOptionNameError",
    "TrailingMultiValueArgumentError",
    "UnsupportedMemberTypeError",
    "NonWritableMemberError",
    "MalformedTemplateError",
    "CommandException",
    "UnexpectedArgumentError",
    "MissingValueError",
    "InvalidValueError",
    "InitializationError",
    "ValidationError",
    "trigger",
    "getdoc",
)
