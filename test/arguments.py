"""
Argument schema compiler tests.

Scope
- Prefixes (? and *), type codes, numeric ranges, enum options and aliases.
- Configuration errors for malformed declarations.
- Mapping and list schema shapes.

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from clamshell.arguments import *
from clamshell.faults import ConfigurationError, FaultCode


class TestCompileOption(TestCase):
    """Behavioral tests for compile_option()."""

    def testPlainNameIsRequiredString(self):
        option = compile_option("abc")
        self.assertEqual(option.name, "abc")
        self.assertIs(option.kind, ArgumentKind.STRING)
        self.assertEqual(option.label, "string")
        self.assertFalse(option.optional)
        self.assertFalse(option.expanding)
        self.assertEqual(option.forms, ["abc"])

    def testPrefixes(self):
        option = compile_option("?*rest")
        self.assertTrue(option.optional)
        self.assertTrue(option.expanding)
        self.assertEqual(option.name, "rest")

    def testNumericRange(self):
        option = compile_option("?a:n:1~100")
        self.assertIs(option.kind, ArgumentKind.NUMBER)
        self.assertEqual((option.minimum, option.maximum), (1, 100))

    def testExactNumericConstraint(self):
        option = compile_option("a:i:3")
        self.assertEqual(option.label, "integer")
        self.assertEqual((option.minimum, option.maximum), (3, 3))

    def testOpenEndedRange(self):
        option = compile_option("a:n:0.5~")
        self.assertEqual((option.minimum, option.maximum), (0.5, None))

    def testLabels(self):
        expected = {
            "n": "number", "i": "integer", "bn": "integer", "b": "boolean", "s": "string",
            "t": "string", "f": "file", "c": "command", "m": "matrix", "sm": "square-matrix",
        }
        for code, label in expected.items():
            with self.subTest(code=code):
                self.assertEqual(compile_option("x:" + code).label, label)

    def testEnumOptions(self):
        option = compile_option("mode:e:fast|safe", "one of <enum>")
        self.assertEqual(option.choices, ["fast", "safe"])
        self.assertEqual(option.descr, "one of fast | safe")

    def testAliases(self):
        option = compile_option("?f=force:b")
        self.assertEqual(option.name, "force")
        self.assertEqual(option.forms, ["f", "force"])
        self.assertEqual(option.full_name, "f|force")
        self.assertTrue(option.matches("f"))
        self.assertTrue(option.matches("force"))
        self.assertFalse(option.matches("x"))

    def testHelpDetection(self):
        self.assertTrue(compile_option("?help:b").is_help)
        self.assertTrue(compile_option("?h:b").is_help)
        self.assertFalse(compile_option("?hello:b").is_help)

    def testFreshResolutionState(self):
        option = compile_option("a:n")
        self.assertIsNone(option.value)
        self.assertFalse(option.manual)
        self.assertIsNone(option.token_index)
        self.assertEqual(option.token_span, 0)

    def testUnknownTypeCode(self):
        with self.assertRaises(ConfigurationError) as context:
            compile_option("a:zz")
        self.assertEqual(context.exception.code, FaultCode.UNKNOWN_TYPE_CODE)
        self.assertEqual(context.exception.message, "Invalid argument type: zz")

    def testEnumWithoutOptions(self):
        with self.assertRaises(ConfigurationError) as context:
            compile_option("a:e")
        self.assertEqual(context.exception.code, FaultCode.MISSING_ENUM_OPTIONS)

    def testMalformedRange(self):
        with self.assertRaises(ConfigurationError) as context:
            compile_option("a:n:one~two")
        self.assertEqual(context.exception.code, FaultCode.MALFORMED_RANGE)

    def testEmptyName(self):
        with self.assertRaises(ConfigurationError):
            compile_option("?:n")

    def testNonStringSpec(self):
        with self.assertRaises(TypeError):
            compile_option(42)  # type: ignore[arg-type]

    def testRepr(self):
        self.assertEqual(
            repr(compile_option("?a:b")),
            "argument-option(name='a', kind=<ArgumentKind.BOOLEAN: 'b'>, optional=True, expanding=False, value=None)",
        )


class TestCompileSchema(TestCase):
    """Behavioral tests for compile_schema()."""

    def testListShape(self):
        options = compile_schema(["a:n:1~100", "?b:b"])
        self.assertEqual([option.name for option in options], ["a", "b"])
        self.assertEqual([option.descr for option in options], ["", ""])

    def testMappingShapeKeepsOrderAndDescriptions(self):
        options = compile_schema({"a:n": "first", "b:n": "second"})
        self.assertEqual([(option.name, option.descr) for option in options], [("a", "first"), ("b", "second")])

    def testCompilesFreshOptionsEachTime(self):
        schema = ["a:n"]
        first, = compile_schema(schema)
        second, = compile_schema(schema)
        self.assertIsNot(first, second)

    def testDuplicateNames(self):
        with self.assertRaises(ConfigurationError) as context:
            compile_schema(["a", "?b=a:b"])
        self.assertEqual(context.exception.code, FaultCode.DUPLICATED_ARGUMENT)

    def testRejectsStrings(self):
        with self.assertRaises(TypeError):
            compile_schema("a:n")


if __name__ == "__main__":
    unittest.main()
