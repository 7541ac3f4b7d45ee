"""
Tether parsing model: descriptors, token parsing, validation and help text.

What this module provides
- CommandOption: a named option (flag, single-value or multiple-value) with
  its short/long/symbol names, value name and help metadata.
- CommandArgument: a positional argument ranked by 'order'.
- Application: the parsing model assembled by the schema builder and the
  conventions. It is append-only: options, arguments and validators can be
  added, never removed.
  • add_option / add_argument: register descriptors (structural checks included).
  • option / argument: convenience builders from a template or a name.
  • parse(tokens) → Parsed(result) | HelpRequested(result) | Failed(fault)
  • validate(instance) → Valid() | Invalid(violations)
  • help() / print_help(): plain help text.
- ParseResult: values collected per descriptor handle.

Token grammar
- "--name value" and "--name=value" for value-bearing options, "-n value" and
  "-n=value" for their short names.
- flags take no value; multiple-value options may repeat.
- "--" ends option processing; every following token is positional.
- tokens shaped like negative numbers ("-1", "-0.5") are values, not options.
"""
import bisect
import collections
import difflib
import logging
import re

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .faults import *
from .roles import OptionType, SpecType
from .utils import *

log = logging.getLogger(__name__)

Parsed = collections.namedtuple("Parsed", ("result",))
HelpRequested = collections.namedtuple("HelpRequested", ("result",))
Failed = collections.namedtuple("Failed", ("fault",))

Valid = collections.namedtuple("Valid", ())
Invalid = collections.namedtuple("Invalid", ("violations",))


def parse_template(template, /):
    """
    split an option template into its parts.

    grammar
    - names separated by '|', optionally followed by a value name in angle brackets:
      "-?|-h|--help", "-n|--count <N>", "--name <VALUE>"
    - '-x' with a letter or digit is the short name, '-x' with any other single
      character is the symbol name, '--xyz' is the long name.

    returns
    - dict with 'short', 'long', 'symbol' and 'valuename' (Unset when absent).
    """
    if not isinstance(template, str):
        raise TypeError("parse_template() argument must be a string")

    match = re.fullmatch(r"\s*(?P<names>\S+)(\s+<(?P<valuename>[^<>\s]+)>)?\s*", template)
    if not match:
        raise MalformedTemplateError(template, "expected names separated by '|' and an optional <VALUE>")

    parts = {"short": Unset, "long": Unset, "symbol": Unset, "valuename": coalesce(match["valuename"], Unset)}
    for name in match["names"].split("|"):
        if name.startswith("--") and re.fullmatch(r"--[^\W\d_](-?[^\W_]+)*", name):
            slot = "long"
        elif re.fullmatch(r"-[^\W_]", name):
            slot = "short"
        elif re.fullmatch(r"-[^\w\s\-=]", name):
            slot = "symbol"
        else:
            raise MalformedTemplateError(template, "%r is not a valid option name" % name)
        if parts[slot] is not Unset:
            raise MalformedTemplateError(template, "more than one %s name" % slot)
        parts[slot] = name.lstrip("-")

    return parts


class CommandOption(metaclass=SpecType):
    """
    Named option descriptor; instances are the handles used to read parsed values.
    """

    __introspectable__ = (
        "type",
        "short",
        "long",
        "symbol",
        "valuename",
        "descr",
        "hidden",
        "inherited",
        "required",
    )

    def __new__(
            cls,
            type,
            template=Unset,
            /,
            descr=Unset,
            *,
            short=Unset,
            long=Unset,
            symbol=Unset,
            valuename=Unset,
            hidden=False,
            inherited=False,
            required=False,
    ):
        if not isinstance(type, OptionType):
            raise TypeError(f"{cls.__typename__} 'type' must be an OptionType")

        if template is not Unset:
            parts = parse_template(template)
            short = coalesce(short, parts["short"])
            long = coalesce(long, parts["long"])
            symbol = coalesce(symbol, parts["symbol"])
            valuename = coalesce(valuename, parts["valuename"])

        if not any((short, long, symbol)):
            raise TypeError(f"{cls.__typename__} must have at least one name")

        self = super().__new__(cls)
        self._type = type
        self._short = short
        self._long = long
        self._symbol = symbol
        self._valuename = valuename
        self._descr = descr
        self._hidden = bool(hidden)
        self._inherited = bool(inherited)
        self._required = bool(required)
        return self

    @property
    def names(self):
        """
        the spellings accepted on the command line, long name first.
        """
        names = []
        if self.long:
            names.append("--" + self.long)
        if self.short:
            names.append("-" + self.short)
        if self.symbol:
            names.append("-" + self.symbol)
        return tuple(names)

    @property
    def template(self):
        template = "|".join(reversed(self.names))
        if self.type is not OptionType.FLAG:
            template += " <%s>" % coalesce(self.valuename, "VALUE")
        return template

    def __str__(self):
        return self.names[0]


class CommandArgument(metaclass=SpecType):
    """
    Positional argument descriptor; instances are the handles used to read parsed values.
    """

    __introspectable__ = (
        "name",
        "descr",
        "order",
        "multiple",
        "hidden",
        "required",
    )

    def __new__(cls, name, /, descr=Unset, *, order=0, multiple=False, hidden=False, required=False):
        if not isinstance(name, str) or not name.strip():
            raise TypeError(f"{cls.__typename__} 'name' must be a non-empty string")
        if not isinstance(order, int) or isinstance(order, bool):
            raise TypeError(f"{cls.__typename__} 'order' must be an integer")

        self = super().__new__(cls)
        self._name = name.strip()
        self._descr = descr
        self._order = order
        self._multiple = bool(multiple)
        self._hidden = bool(hidden)
        self._required = bool(required)
        return self

    def __str__(self):
        return self.name


class ParseResult:
    """
    values collected by Application.parse, keyed by descriptor handle.

    - flags that appeared map to an empty tuple (has_value() is True).
    - single-value options and single arguments map to a one-item tuple.
    - multiple-value options and multiple arguments keep every value in order.
    - remaining: unexpected tokens kept when the application tolerates them.
    """

    def __init__(self, tokens=()):
        self.tokens = tuple(tokens)
        self.remaining = []
        self._values = {}

    def add(self, handle, value=Unset, /):
        values = self._values.setdefault(handle, [])
        if value is not Unset:
            values.append(value)

    def has_value(self, handle, /):
        return handle in self._values

    def values(self, handle, /):
        return tuple(self._values.get(handle, ()))

    def value(self, handle, /):
        values = self._values.get(handle)
        return values[0] if values else None

    def __repr__(self):
        return "parse-result(%s)" % ", ".join("%s=%r" % (handle, values) for handle, values in self._values.items())


class Application:
    """
    The parsing model assembled for one build.

    Options
    - name: program name used in help and fault headers.
    - descr: one-line description shown in help.
    - help: template of the help option (e.g. "-?|-h|--help"); None disables it.
    - unexpected: "raise" fails on unknown tokens, "keep" collects them into
      ParseResult.remaining.
    - shell, colorful, fancy: fault rendering switches (see faults.trigger).
    """

    def __init__(
            self,
            name="tether",
            /,
            descr=Unset,
            *,
            help=None,
            unexpected="raise",
            shell=False,
            colorful=False,
            fancy=False,
    ):
        if unexpected not in ("raise", "keep"):
            raise ValueError("application 'unexpected' must be 'raise' or 'keep'")

        self.name = name
        self.descr = descr
        self.unexpected = unexpected
        self.shell = bool(shell)
        self.colorful = bool(colorful)
        self.fancy = bool(fancy)

        self._options = []
        self._arguments = []
        self._validators = []
        self._switches = {}
        self.result = Unset

        self.helper = self.option(help, "Show help information", OptionType.FLAG) if help else None

    @property
    def options(self):
        return tuple(self._options)

    @property
    def arguments(self):
        return tuple(self._arguments)

    @property
    def validators(self):
        return tuple(self._validators)

    def add_option(self, option, /):
        """
        register an option descriptor; every spelling must be unused.
        """
        if not isinstance(option, CommandOption):
            raise TypeError("add_option() argument must be a command option")
        for name in option.names:
            if (other := self._switches.get(name)) is not None:
                raise DuplicateOptionNameError(name, option.template, other.template)
        for name in option.names:
            self._switches[name] = option
        self._options.append(option)
        log.debug("Added option %s", option.template)
        return option

    def add_argument(self, argument, /):
        """
        register an argument descriptor at the position given by its order.

        orders are unique and only the last argument may collect multiple values.
        """
        if not isinstance(argument, CommandArgument):
            raise TypeError("add_argument() argument must be a command argument")
        for other in self._arguments:
            if other.order == argument.order:
                raise DuplicateOrderError(argument.name, argument.order, other.name)

        index = bisect.bisect([other.order for other in self._arguments], argument.order)
        if index and (previous := self._arguments[index - 1]).multiple:
            raise TrailingMultiValueArgumentError(previous.name, argument.name)
        if argument.multiple and index < len(self._arguments):
            raise TrailingMultiValueArgumentError(argument.name, self._arguments[index].name)

        self._arguments.insert(index, argument)
        log.debug("Added argument %s at position %d", argument.name, index + 1)
        return argument

    def option(self, template, /, descr=Unset, type=OptionType.SINGLE_VALUE, **options):
        return self.add_option(CommandOption(type, template, descr, **options))

    def argument(self, name, /, descr=Unset, multiple=False, **options):
        options.setdefault("order", max((argument.order + 1 for argument in self._arguments), default=0))
        return self.add_argument(CommandArgument(name, descr, multiple=multiple, **options))

    def validator(self, callback, /):
        """
        register a validation rule (usable as a decorator).

        the rule receives the bound instance and returns None when satisfied,
        or a message (or an iterable of messages) describing the violations.
        """
        if not callable(callback):
            raise TypeError("validator() argument must be callable")
        self._validators.append(callback)
        return callback

    def _fault(self, kind, message, /, **options):
        return kind(message, prog=self.name, shell=self.shell, colorful=self.colorful, fancy=self.fancy, **options)

    def _unexpected(self, token, index, hint):
        return self._fault(
            UnexpectedArgumentError,
            "unrecognized %s %r at %s position" % (
                "option" if token.startswith("-") else "command or argument", token, ordinal(index)
            ),
            title="unexpected argument",
            code=FaultCode.UNEXPECTED_ARGUMENT,
            hint=hint,
            input=token,
            docs=getdoc(FaultCode.UNEXPECTED_ARGUMENT),
        )

    def _suggest(self, name):
        suggestions = difflib.get_close_matches(name, self._switches.keys(), 1)
        if suggestions:
            return "did you mean %r?" % suggestions[0]
        if self.helper:
            return "try '%s %s' to see all available options" % (self.name, self.helper)
        return "remove it or check the spelling"

    def parse(self, tokens, /):
        """
        consume a token sequence and collect values per descriptor.

        returns
        - Parsed(result) when every token was understood (or kept as remaining).
        - HelpRequested(result) as soon as the help option is seen.
        - Failed(fault) on an unexpected token, a missing or repeated value.
        """
        self.result = result = ParseResult(tokens)
        tokens = collections.deque(result.tokens)
        arguments = collections.deque(self._arguments)
        ended = False
        index = 0

        while tokens:
            token = tokens.popleft()
            index += 1

            if not ended and token == "--":
                ended = True
                continue

            name, separator, value = token.partition("=")
            if (
                not ended and token.startswith("-") and len(token) > 1 and
                (name in self._switches or not re.fullmatch(r"-\d[\d.]*", token))
            ):
                if (option := self._switches.get(name)) is None:
                    fault = self._unexpected(token, index, self._suggest(name))
                    if self.unexpected == "raise":
                        return Failed(fault)
                    result.remaining.append(token)
                    continue

                if option is self.helper:
                    log.debug("Help requested at position %d", index)
                    return HelpRequested(result)

                if option.type is OptionType.FLAG:
                    if separator:
                        return Failed(self._fault(
                            UnexpectedArgumentError,
                            "flag %r at %s position cannot have a value" % (name, ordinal(index)),
                            title="flag cannot take a value",
                            code=FaultCode.UNEXPECTED_ARGUMENT,
                            hint="remove everything from '=' (for example: %s)" % name,
                            input=name,
                        ))
                    result.add(option)
                    continue

                if not separator:
                    if not tokens:
                        return Failed(self._fault(
                            MissingValueError,
                            "missing value for option %r at %s position" % (name, ordinal(index)),
                            title="missing value",
                            code=FaultCode.MISSING_VALUE,
                            hint="pass a value after it (for example: %s <%s>)" % (
                                name, coalesce(option.valuename, "VALUE")
                            ),
                            input=name,
                        ))
                    value = tokens.popleft()
                    index += 1

                if option.type is OptionType.SINGLE_VALUE and result.has_value(option):
                    return Failed(self._fault(
                        UnexpectedArgumentError,
                        "unexpected value %r for option %r at %s position" % (value, name, ordinal(index)),
                        title="option given more than once",
                        code=FaultCode.UNEXPECTED_ARGUMENT,
                        hint="%s accepts a single value" % name,
                        input=name,
                    ))
                result.add(option, value)
                continue

            if arguments:
                argument = arguments[0]
                result.add(argument, token)
                if not argument.multiple:
                    arguments.popleft()
                continue

            fault = self._unexpected(token, index, "this command takes no more arguments")
            if self.unexpected == "raise":
                return Failed(fault)
            result.remaining.append(token)

        log.debug("Parsed %d tokens: %r", index, result)
        return Parsed(result)

    def validate(self, instance, result=Unset, /):
        """
        check required descriptors and registered validators against a bound instance.

        returns
        - Valid() when nothing was violated.
        - Invalid(violations) with one human-readable message per violated rule.
        """
        result = coalesce(result, self.result)
        violations = []

        for option in self._options:
            if option.required and not (result and result.has_value(option)):
                violations.append("the option %s is required" % option)
        for argument in self._arguments:
            if argument.required and not (result and result.has_value(argument)):
                violations.append("the argument %s is required" % argument)

        for validator in self._validators:
            match validator(instance):
                case None:
                    pass
                case str() as message:
                    violations.append(message)
                case messages:
                    violations.extend(map(str, messages))

        if violations:
            return Invalid(tuple(violations))
        return Valid()

    def help(self):
        """
        return the plain help text (usage, arguments, options).
        """
        console = Console(width=100, color_system=None, highlight=False)
        with console.capture() as capture:
            self.print_help(console)
        return capture.get()

    def print_help(self, console=Unset, /):
        if console is Unset:
            console = Console(highlight=False)

        usage = [self.name]
        if self._arguments:
            usage.append("[arguments]")
        if self._options:
            usage.append("[options]")
        console.print("Usage: " + " ".join(usage), markup=False)

        if self.descr:
            console.print()
            console.print(self.descr, markup=False)

        for title, rows in (
            ("Arguments", [
                (argument.name + ("..." if argument.multiple else ""), coalesce(argument.descr, ""))
                for argument in self._arguments if not argument.hidden
            ]),
            ("Options", [
                (option.template, coalesce(option.descr, ""))
                for option in self._options if not option.hidden
            ]),
        ):
            if not rows:
                continue
            table = Table.grid(padding=(0, 2))
            table.add_column(no_wrap=True)
            table.add_column()
            for name, descr in rows:
                table.add_row(Text(name), Text(descr))
            console.print()
            console.print(title + ":", markup=False)
            console.print(table, markup=False)


__all__ = (
    "parse_template",
    "CommandOption",
    "CommandArgument",
    "ParseResult",
    "Application",
    "Parsed",
    "HelpRequested",
    "Failed",
    "Valid",
    "Invalid",
)
