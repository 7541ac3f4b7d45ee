"""
Schema introspection: annotated members → options, arguments and write-backs.

Overview
- Member: one annotated attribute of a schema class (name, declared type,
  role markers, writability).
- members(schema): every annotated member, base classes first, then
  declaration order. The enumeration is computed once per class.
- SchemaBuilder(context).build(): classifies each member, inserts the
  descriptors into context.application and registers write-backs on
  context.binder.

Build steps
1. every member is classified first: two markers → DuplicateRoleError,
   a marker on a non-writable member → NonWritableMemberError. Nothing is
   registered when a member fails here.
2. options and arguments are inserted in declaration order (option names
   derived or taken from the template). The application keeps arguments
   sorted by 'order', rejects reused orders and allows only the last
   argument to be multiple.

Non-writable members
- ClassVar[...] and Final[...] annotations.
- properties without a setter.
- members of frozen dataclasses.
"""
import functools
import inspect
import logging
import typing

from .binding import WriteBack
from .faults import *
from .mapping import container, element, unwrap
from .model import CommandArgument, CommandOption
from .roles import Argument, Option, OptionType
from .utils import *

log = logging.getLogger(__name__)


class Member:
    """
    An annotated attribute of a schema class.
    """

    def __init__(self, schema, name, annotation, /):
        self.schema = schema
        self.name = name
        self.annotation = annotation
        self.qualifiers = set()

        metadata = []
        while True:
            origin = typing.get_origin(annotation)
            if origin is typing.Annotated:
                annotation, *extras = typing.get_args(annotation)
                metadata.extend(extras)
            elif origin is typing.ClassVar or origin is typing.Final:
                self.qualifiers.add(origin)
                annotation, = typing.get_args(annotation)
            elif annotation is typing.ClassVar or annotation is typing.Final:
                self.qualifiers.add(annotation)
                annotation = typing.Any
            else:
                break

        self.type = annotation
        self.roles = tuple(marker for marker in metadata if isinstance(marker, Option | Argument))

    @property
    def role(self):
        return self.roles[0] if self.roles else None

    @functools.cached_property
    def writable(self):
        if self.qualifiers:
            return False
        params = getattr(self.schema, "__dataclass_params__", None)
        if params is not None and params.frozen:
            return False
        attribute = inspect.getattr_static(self.schema, self.name, Unset)
        if isinstance(attribute, property):
            return attribute.fset is not None
        return True

    def __repr__(self):
        return "member(%s.%s: %r)" % (self.schema.__name__, self.name, self.type)


@functools.cache
def _members(schema):
    hints = typing.get_type_hints(schema, include_extras=True)
    return tuple(Member(schema, name, annotation) for name, annotation in hints.items())


def members(schema, /):
    """
    Return the annotated members of a schema class in a stable order.
    """
    if not isinstance(schema, type):
        raise TypeError("members() argument must be a class")
    return _members(schema)


class SchemaBuilder:
    """
    Populates a build context from the annotations of its target schema.

    The context must provide 'schema', 'application', 'binder' and 'mapper'
    (see conventions.BuildContext).
    """

    def __init__(self, context, /):
        self.context = context

    @property
    def schema(self):
        return self.context.schema

    def build(self):
        schema = self.schema
        bound = []
        for member in members(schema):
            if len(member.roles) > 1:
                raise DuplicateRoleError(schema, member.name)
            if member.roles and not member.writable:
                raise NonWritableMemberError(schema, member.name)
            if member.writable:
                bound.append(member)

        for member in bound:
            self.context.binder.track(member.name, member.type)
            match member.role:
                case Option() as role:
                    self._option(member, role)
                case Argument() as role:
                    self._argument(member, role)

        if callable(getattr(schema, "on_validate", None)):
            self.context.application.validator(rename(lambda instance: instance.on_validate(), "on_validate"))

        log.debug(
            "Built %s: %d options, %d arguments, %d write-backs",
            schema.__name__,
            len(self.context.application.options),
            len(self.context.application.arguments),
            len(self.context.binder.actions),
        )
        return self.context

    def _converter(self, member, type, role):
        if (converter := self.context.mapper.converter(type)) is None:
            raise UnsupportedMemberTypeError(self.schema, member.name, member.type, role)
        return converter

    def _option(self, member, role):
        mapper = self.context.mapper
        if (option_type := coalesce(role.type, None) or mapper.resolve(member.type)) is None:
            raise UnresolvedOptionTypeError(self.schema, member.name, member.type)

        options = {
            "hidden": role.hidden,
            "inherited": role.inherited,
            "required": role.required,
        }
        if role.template:
            option = CommandOption(option_type, role.template, role.descr, **options)
        else:
            short, long = derive_names(member.name)
            option = CommandOption(
                option_type,
                descr=role.descr,
                short=coalesce(role.short, short),
                long=coalesce(role.long, long),
                valuename=coalesce(role.valuename, member.name),
                **options,
            )

        match option_type:
            case OptionType.FLAG:
                if unwrap(member.type) not in (bool, typing.Any) and mapper.resolve(member.type) is not OptionType.FLAG:
                    raise UnsupportedMemberTypeError(self.schema, member.name, member.type, "flag")
                action = WriteBack("flag", member.name, option)
            case OptionType.SINGLE_VALUE:
                action = WriteBack("single", member.name, option, self._converter(member, member.type, "single-value option"))
            case OptionType.MULTIPLE_VALUE:
                if (item := element(member.type)) is Unset:
                    raise UnsupportedMemberTypeError(self.schema, member.name, member.type, "multiple-value option")
                action = WriteBack(
                    "multiple",
                    member.name,
                    option,
                    self._converter(member, item, "multiple-value option"),
                    container(member.type),
                )

        self.context.application.add_option(option)
        self.context.binder.register(action)

    def _argument(self, member, role):
        argument = CommandArgument(
            coalesce(role.name, kebabize(member.name)),
            role.descr,
            order=role.order,
            multiple=role.multiple,
            hidden=role.hidden,
            required=role.required,
        )

        if role.multiple:
            if (item := element(member.type)) is Unset:
                raise UnsupportedMemberTypeError(self.schema, member.name, member.type, "multiple-value argument")
            action = WriteBack("multiple", member.name, argument, self._converter(member, item, "argument"), container(member.type))
        else:
            action = WriteBack("single", member.name, argument, self._converter(member, member.type, "argument"))

        self.context.application.add_argument(argument)
        self.context.binder.register(action)
        return argument


__all__ = (
    "Member",
    "members",
    "SchemaBuilder",
)
