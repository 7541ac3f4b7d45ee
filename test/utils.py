"""
Utilities tests (sentinel, coalesce, rename, name derivation, ordinals).

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import unittest
from unittest import TestCase

from tether.utils import *


class TestUnset(TestCase):

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.copy(Unset), Unset)

    def testFalsey(self):
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertEqual(repr(Unset), "Unset")

    def testNotSubclassable(self):
        with self.assertRaises(TypeError):
            class Derived(UnsetType):  # NOQA: F-841
                pass

    def testUnionWithTypes(self):
        self.assertIsInstance("text", str | Unset)
        self.assertIsInstance(Unset, str | Unset)
        self.assertNotIsInstance(1, str | Unset)


class TestCoalesce(TestCase):

    def testReplacesUnsetOnly(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertEqual(coalesce("value", "fallback"), "value")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)

    def testDefaultIsNone(self):
        self.assertIsNone(coalesce(Unset))


class TestRename(TestCase):

    def testDirectForm(self):
        function = rename(lambda: None, "bind:count")
        self.assertEqual(function.__name__, "bind:count")
        self.assertEqual(function.__qualname__, "bind:count")

    def testDecoratorForm(self):
        @rename("renamed")
        def function():
            pass

        self.assertEqual(function.__name__, "renamed")

    def testRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            rename(1, "name")

    def testRejectsWrongArity(self):
        with self.assertRaises(TypeError):
            rename()


class TestNameDerivation(TestCase):

    def testPascalCase(self):
        self.assertEqual(derive_names("MaxRetryCount"), ("m", "max-retry-count"))

    def testSnakeCase(self):
        self.assertEqual(derive_names("max_count"), ("m", "max-count"))

    def testSingleWord(self):
        self.assertEqual(derive_names("Verbose"), ("v", "verbose"))

    def testLeadingUnderscoresIgnored(self):
        self.assertEqual(derive_names("_name"), ("n", "name"))
        self.assertEqual(kebabize("__private__"), "private")

    def testSeparatorsCollapse(self):
        self.assertEqual(kebabize("max__Count"), "max-count")

    def testDeterministic(self):
        self.assertEqual(derive_names("MaxRetryCount"), derive_names("MaxRetryCount"))

    def testEmptyIdentifierRejected(self):
        with self.assertRaises(ValueError):
            kebabize("")
        with self.assertRaises(ValueError):
            kebabize("___")

    def testNonStringRejected(self):
        with self.assertRaises(TypeError):
            kebabize(1)


class TestOrdinal(TestCase):

    def testWords(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")

    def testSuffixes(self):
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(113), "113th")


if __name__ == "__main__":
    unittest.main()
