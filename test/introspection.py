"""
Schema introspection tests (members, classification, structural errors).

Scope
- Validate member enumeration and writability.
- Validate option/argument inference (names, categories, converters).
- Validate every structural error and that a failing build registers nothing.
- Validate that introspection is idempotent.

Conventions
- Test method names follow CamelCase per project convention.
- Schemas are declared at module level so their annotations resolve.
"""
import dataclasses
import unittest
from typing import Annotated, ClassVar, Final
from unittest import TestCase

from tether import Application, Argument, Option, OptionType, OptionTypeMapper, build
from tether.binding import Binder
from tether.conventions import BuildContext
from tether.faults import *
from tether.introspection import SchemaBuilder, members


class Program:
    MaxRetryCount: Annotated[int, Option()]
    Verbose: Annotated[bool, Option(descr="Print more")]
    subject: Annotated[str, Option("-s|--subject <SUBJECT>", "The subject")] = "world"
    tags: Annotated[list[str], Option(short="t", valuename="TAG")]
    factor: Annotated[float | None, Option(long="scale")]
    target: Annotated[str, Argument(1)]
    source: Annotated[str, Argument(0, "origin")]
    rest: Annotated[tuple[int, ...], Argument(2, multiple=True)]
    note: str = ""


class Derived(Program):
    extra: Annotated[int, Option(short="x")]


class Both:
    value: Annotated[str, Option(), Argument(0)]
    other: Annotated[int, Option()]


class TwoOptions:
    value: Annotated[str, Option(), Option(short="x")]


class SameOrder:
    first: Annotated[str, Argument(0)]
    second: Annotated[str, Argument(0)]


class TrailingMultiple:
    files: Annotated[list[str], Argument(0, multiple=True)]
    output: Annotated[str, Argument(1)]


class Unresolved:
    data: Annotated[dict[str, str], Option()]


class Unconvertible:
    value: Annotated[complex, Option(type=OptionType.SINGLE_VALUE)]


class CountedFlag:
    count: Annotated[int, Option(type=OptionType.FLAG)]


class ScalarMultiple:
    files: Annotated[int, Argument(0, multiple=True)]


class Colliding:
    count: Annotated[int, Option()]
    color: Annotated[str, Option()]


class ReadOnly:
    total: Annotated[int, Option()]

    @property
    def total(self):
        return 1


class Constant:
    limit: ClassVar[Annotated[int, Option()]] = 3


class Fixed:
    limit: Final[Annotated[int, Option()]] = 3


@dataclasses.dataclass(frozen=True)
class Frozen:
    value: Annotated[int, Option()] = 0


def context(schema):
    return BuildContext(schema, Application(), Binder(schema), OptionTypeMapper.default)


class TestMembers(TestCase):

    def testDeclarationOrder(self):
        self.assertEqual(
            [member.name for member in members(Program)],
            ["MaxRetryCount", "Verbose", "subject", "tags", "factor", "target", "source", "rest", "note"],
        )

    def testBaseClassesFirst(self):
        self.assertEqual([member.name for member in members(Derived)][-1], "extra")
        self.assertEqual([member.name for member in members(Derived)][0], "MaxRetryCount")

    def testRoles(self):
        member = {member.name: member for member in members(Program)}
        self.assertIsInstance(member["subject"].role, Option)
        self.assertIsInstance(member["target"].role, Argument)
        self.assertIsNone(member["note"].role)
        self.assertIs(member["subject"].type, str)

    def testWritable(self):
        self.assertTrue(members(Program)[0].writable)
        self.assertFalse(members(ReadOnly)[0].writable)
        self.assertFalse(members(Constant)[0].writable)
        self.assertFalse(members(Fixed)[0].writable)
        self.assertFalse(members(Frozen)[0].writable)

    def testRequiresClass(self):
        with self.assertRaises(TypeError):
            members(Program())


class TestSchemaBuilder(TestCase):

    def setUp(self):
        self.context = build(Program)
        self.options = {option.long: option for option in self.context.application.options}

    def testDerivedNames(self):
        option = self.options["max-retry-count"]
        self.assertEqual(option.names, ("--max-retry-count", "-m"))
        self.assertIs(option.type, OptionType.SINGLE_VALUE)

    def testFlag(self):
        option = self.options["verbose"]
        self.assertIs(option.type, OptionType.FLAG)
        self.assertEqual(option.descr, "Print more")

    def testTemplate(self):
        option = self.options["subject"]
        self.assertEqual(option.names, ("--subject", "-s"))
        self.assertEqual(option.valuename, "SUBJECT")
        self.assertEqual(option.descr, "The subject")

    def testExplicitNames(self):
        self.assertEqual(self.options["tags"].names, ("--tags", "-t"))
        self.assertIs(self.options["tags"].type, OptionType.MULTIPLE_VALUE)
        self.assertEqual(self.options["tags"].valuename, "TAG")
        self.assertEqual(self.options["scale"].names, ("--scale", "-f"))

    def testArgumentsSortedByOrder(self):
        arguments = self.context.application.arguments
        self.assertEqual([argument.name for argument in arguments], ["origin", "target", "rest"])
        self.assertTrue(arguments[-1].multiple)

    def testWriteBacks(self):
        self.assertEqual(
            [(action.kind, action.member) for action in self.context.binder.actions],
            [
                ("single", "MaxRetryCount"),
                ("flag", "Verbose"),
                ("single", "subject"),
                ("multiple", "tags"),
                ("single", "factor"),
                ("single", "target"),
                ("single", "source"),
                ("multiple", "rest"),
            ],
        )

    def testIdempotent(self):
        other = build(Program)
        self.assertEqual(
            [repr(option) for option in other.application.options],
            [repr(option) for option in self.context.application.options],
        )
        self.assertEqual(
            [repr(argument) for argument in other.application.arguments],
            [repr(argument) for argument in self.context.application.arguments],
        )
        self.assertEqual(
            [repr(action) for action in other.binder.actions],
            [repr(action) for action in self.context.binder.actions],
        )

    def testInheritedMembers(self):
        self.assertIn("--extra", [str(option) for option in build(Derived).application.options])


class TestStructuralErrors(TestCase):

    def testDuplicateRoleRegistersNothing(self):
        built = context(Both)
        with self.assertRaises(DuplicateRoleError) as error:
            SchemaBuilder(built).build()
        self.assertEqual(error.exception.member, "value")
        self.assertEqual(built.binder.actions, ())
        self.assertEqual(built.application.options, ())

    def testDuplicateOptionMarkers(self):
        with self.assertRaises(DuplicateRoleError) as error:
            build(TwoOptions)
        self.assertEqual(str(error.exception), "member TwoOptions.value carries more than one role marker")

    def testDuplicateOrder(self):
        with self.assertRaises(DuplicateOrderError) as error:
            build(SameOrder)
        self.assertEqual(error.exception.order, 0)
        self.assertEqual(error.exception.argument, "second")
        self.assertEqual(error.exception.other, "first")

    def testTrailingMultiValueArgument(self):
        with self.assertRaises(TrailingMultiValueArgumentError):
            build(TrailingMultiple)

    def testUnresolvedOptionType(self):
        with self.assertRaises(UnresolvedOptionTypeError) as error:
            build(Unresolved)
        self.assertEqual(error.exception.type, dict[str, str])

    def testUnsupportedMemberType(self):
        for schema in (Unconvertible, CountedFlag, ScalarMultiple):
            with self.subTest(schema=schema.__name__):
                with self.assertRaises(UnsupportedMemberTypeError):
                    build(schema)

    def testDuplicateDerivedShortName(self):
        with self.assertRaises(DuplicateOptionNameError) as error:
            build(Colliding)
        self.assertEqual(error.exception.name, "-c")

    def testNonWritableMember(self):
        for schema in (ReadOnly, Constant, Fixed, Frozen):
            with self.subTest(schema=schema.__name__):
                with self.assertRaises(NonWritableMemberError):
                    build(schema)


if __name__ == "__main__":
    unittest.main()
