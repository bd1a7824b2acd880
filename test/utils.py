"""
Tests for the shared utilities.

This module verifies:
- The Unset sentinel: singleton identity, falsy semantics, copying, pickling
  and finality.
- coalesce() keeping legitimate falsy values.
- rename() in both call forms.
- IntrospectiveType: mirrored read-only properties, copies of containers,
  and the derived repr.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from clamshell.utils import *


class Record(metaclass=IntrospectiveType):
    __introspectable__ = ("name", "tags")

    def __init__(self, name, tags):
        self._name = name
        self._tags = tags


class Unsettled(metaclass=IntrospectiveType):
    __introspectable__ = ("name", "tags")
    __displayable__ = ("name",)

    def __init__(self, name):
        self._name = name
        self._tags = []


class TestUnset(TestCase):
    """
    Test suite for the Unset sentinel.
    """

    def testSingleton(self):
        self.assertIs(Unset, UnsetType())
        self.assertIsInstance(Unset, UnsetType)

    def testFalsy(self):
        self.assertFalse(Unset)
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, False)  # noqa: E712

    def testRepr(self):
        self.assertEqual(repr(Unset), "Unset")

    def testUnionInIsinstance(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("text", str | Unset)
        self.assertNotIsInstance(1, str | Unset)

    def testCopyDeepcopyPreserveSingleton(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testPickleRoundTrip(self):
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFinalClass(self):
        with self.assertRaises(TypeError):
            type("UnsetType", (UnsetType,), {})


class TestHelpers(TestCase):
    """
    coalesce() and rename().
    """

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        for value in (None, 0, "", []):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "fallback"), value)

    def testRenameDirect(self):
        function = rename(lambda: None, "handler")
        self.assertEqual((function.__name__, function.__qualname__), ("handler", "handler"))

    def testRenameDecorator(self):
        @rename("handler")
        def function():
            pass

        self.assertEqual(function.__name__, "handler")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename()


class TestIntrospectiveType(TestCase):
    """
    Mirrored properties and derived representations.
    """

    def testMirroredPropertiesAreReadOnly(self):
        record = Record("a", ["x"])
        self.assertEqual(record.name, "a")
        with self.assertRaises(AttributeError):
            record.name = "b"

    def testContainersAreCopied(self):
        record = Record("a", ["x"])
        record.tags.append("y")
        self.assertEqual(record.tags, ["x"])

    def testTypename(self):
        self.assertEqual(Record.__typename__, "record")
        self.assertEqual(IntrospectiveType("ArgumentOption", (), {}).__typename__, "argument-option")

    def testDisplayableDefaultsToUnset(self):
        self.assertIs(IntrospectiveType.__displayable__, Unset)
        self.assertIs(Record.__displayable__, Unset)

    def testRepr(self):
        self.assertEqual(repr(Record("a", ("x",))), "record(name='a', tags=['x'])")
        self.assertEqual(repr(Unsettled("a")), "unsettled(name='a')")

    def testRichRepr(self):
        self.assertEqual(list(Record("a", []).__rich_repr__()), [("name", "a"), ("tags", [])])


if __name__ == "__main__":
    unittest.main()
