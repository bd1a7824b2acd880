"""
Argument resolution tests.

Scope
- Named pass: long flags, short flags, clusters, value consumption.
- Positional pass: declaration order, expanding options, leftovers.
- Kind coercion for every argument kind, including the file/command predicates.
- Error positions (token_index, token_span) reported for each failure.

Conventions
- Test method names follow CamelCase per project convention.
- Token indices count argument tokens only; the command name is never included.
"""
import unittest
from unittest import TestCase

from clamshell.arguments import compile_schema
from clamshell.faults import ConfigurationError, FaultCode
from clamshell.resolver import *


def run(tokens, schema, defaults=None, **predicates):
    return resolve(tokens, compile_schema(schema), defaults, **predicates)


class TestResolve(TestCase):
    """End-to-end resolution over compiled schemas."""

    schema = ["a:n:1~100", "?b:b"]

    def testPositionalNumber(self):
        result = run(["50"], self.schema)
        self.assertTrue(result.ok)
        self.assertEqual(result.arguments, {"a": 50, "b": None})

    def testNumberAboveMaximum(self):
        result = run(["150"], self.schema)
        self.assertFalse(result.ok)
        self.assertEqual(result.error.message, 'At property "a": Number must be at most 100')
        self.assertEqual(result.error.token_index, 0)
        self.assertEqual(result.error.code, FaultCode.OUT_OF_RANGE)

    def testNumberBelowMinimum(self):
        result = run(["0"], self.schema)
        self.assertEqual(result.error.message, 'At property "a": Number must be at least 1')

    def testFlagBeforePositional(self):
        result = run(["-b", "50"], self.schema)
        self.assertTrue(result.ok)
        self.assertEqual(result.arguments, {"a": 50, "b": True})

    def testMissingArgument(self):
        result = run([], ["a:n"])
        self.assertEqual(result.error.message, 'argument "a" (number) is missing')
        self.assertEqual(result.error.token_index, 0)
        self.assertEqual(result.error.code, FaultCode.MISSING_ARGUMENT)

    def testMissingArgumentPointsPastLastToken(self):
        result = run(["1"], ["a:n", "b:n"])
        self.assertEqual(result.error.message, 'argument "b" (number) is missing')
        self.assertEqual(result.error.token_index, 1)

    def testTooManyArguments(self):
        result = run(["1", "2"], ["a:n"])
        self.assertEqual(result.error.message, "Too many arguments")
        self.assertEqual((result.error.token_index, result.error.token_span), (1, 0))

    def testTooManyArgumentsSpansTheRest(self):
        result = run(["1", "2", "3", "4"], ["a:n"])
        self.assertEqual((result.error.token_index, result.error.token_span), (1, 2))

    def testResolutionIsRepeatable(self):
        first = run(["-b", "50"], self.schema)
        second = run(["-b", "50"], self.schema)
        self.assertEqual(first.arguments, second.arguments)
        self.assertEqual(first.error, second.error)

    def testErrorIsFalsyOnSuccess(self):
        self.assertFalse(ParsingError())
        self.assertFalse(run(["1"], ["a:n"]).error)


class TestNamedPass(TestCase):
    """Flags, aliases and clusters."""

    def testLongFlagConsumesValue(self):
        result = run(["--name", "bob"], ["?name:s"])
        self.assertEqual(result.arguments, {"name": "bob"})
        option, = result.options
        self.assertEqual((option.token_index, option.token_span), (0, 1))

    def testAliases(self):
        for flag in ("-f", "--force"):
            with self.subTest(flag=flag):
                result = run([flag], ["?f=force:b"])
                self.assertEqual(result.arguments, {"f": True, "force": True})

    def testUnexpectedProperty(self):
        result = run(["--zz"], ["?a:b"])
        self.assertEqual(result.error.message, 'Unexpected property "zz"')
        self.assertEqual(result.error.token_index, 0)
        self.assertEqual(result.error.code, FaultCode.UNEXPECTED_PROPERTY)

    def testRequiredCannotBeFlagged(self):
        result = run(["--a", "5"], ["a:n"])
        self.assertEqual(result.error.message, 'Property "a" is not optional, must be passed directly')
        self.assertEqual((result.error.token_index, result.error.token_span), (0, 1))

    def testFlagExpectsValue(self):
        result = run(["--n"], ["?n:n"])
        self.assertEqual(result.error.message, 'property "n" (number) expects a value')
        self.assertEqual(result.error.token_index, 1)
        self.assertEqual(result.error.code, FaultCode.VALUE_REQUIRED)

    def testClusterOfBooleans(self):
        result = run(["-ab"], ["?a:b", "?b:b"])
        self.assertEqual(result.arguments, {"a": True, "b": True})

    def testClusterLastMemberTakesValue(self):
        result = run(["-ab", "x"], ["?a:b", "?b:s"])
        self.assertEqual(result.arguments, {"a": True, "b": "x"})

    def testClusterMemberMustBeBoolean(self):
        result = run(["-xy", "1"], ["?x:n", "?y:n"])
        self.assertEqual(result.error.message, 'Property "x" is not a boolean and must be assigned a value')
        self.assertEqual(result.error.code, FaultCode.NOT_BOOLEAN)

    def testClusterMemberMustExist(self):
        result = run(["-qa"], ["?a:b"])
        self.assertEqual(result.error.message, 'Unexpected property "q"')

    def testConsumedValueIsNotAFlag(self):
        result = run(["--name", "-v"], ["?name:s", "?v:b"])
        self.assertTrue(result.ok)
        self.assertEqual(result.arguments, {"name": "-v", "v": None})

    def testNegativeNumberIsPositional(self):
        result = run(["-5"], ["a:n"])
        self.assertEqual(result.arguments, {"a": -5})

    def testTrailingNewlineIsNotAFlag(self):
        result = run(["-a\n"], ["?text:s", "?a:b"])
        self.assertTrue(result.ok)
        self.assertEqual(result.arguments, {"text": "-a\n", "a": None})

    def testPositionalSkipsFlaggedOptions(self):
        result = run(["--a", "2", "1"], ["?a:n", "?b:n"])
        self.assertEqual(result.arguments, {"a": 2, "b": 1})


class TestPositionalPass(TestCase):
    """Declaration-order assignment and expanding options."""

    def testExpandingJoinsTokens(self):
        result = run(["hello", "big", "world"], ["*message"])
        self.assertEqual(result.arguments, {"message": "hello big world"})
        option, = result.options
        self.assertEqual((option.token_index, option.token_span), (0, 2))

    def testExpandingAfterRequired(self):
        result = run(["ls", "-r", "home"], ["c:s", "?*rest"])
        self.assertFalse(result.ok)  # "-r" is read as a flag
        result = run(["ls", "home", "away"], ["c:s", "?*rest"])
        self.assertEqual(result.arguments, {"c": "ls", "rest": "home away"})

    def testOptionalLeftUnset(self):
        result = run([], ["?a:n"])
        self.assertTrue(result.ok)
        self.assertEqual(result.arguments, {"a": None})


class TestKinds(TestCase):
    """Coercion of raw tokens into each argument kind."""

    def testExpressionsAreEvaluated(self):
        self.assertEqual(run(["2*(3+4)"], ["a:n"]).arguments, {"a": 14})

    def testInvalidNumber(self):
        result = run(["abc"], ["a:n"])
        self.assertEqual(result.error.message, 'At property "a": Invalid number')
        self.assertEqual(result.error.token_index, 0)

    def testInfinityIsRejected(self):
        result = run(["10^400"], ["a:n"])
        self.assertEqual(result.error.message, 'At property "a": Infinity isn\'t a number')
        self.assertEqual(result.error.code, FaultCode.NOT_FINITE)

    def testNaNIsRejected(self):
        result = run(["10^400-10^400"], ["a:n"])
        self.assertEqual(result.error.message, 'At property "a": Not a number')
        self.assertEqual(result.error.code, FaultCode.NOT_A_NUMBER)

    def testInteger(self):
        value = run(["4/2"], ["n:i"]).arguments["n"]
        self.assertEqual(value, 2)
        self.assertIsInstance(value, int)
        result = run(["2.5"], ["n:i"])
        self.assertEqual(result.error.message, 'At property "n": Expected an integer')

    def testBigint(self):
        self.assertEqual(run(["123456789012345678901234567890"], ["n:bn"]).arguments["n"], 123456789012345678901234567890)
        self.assertEqual(run(["0x1f"], ["n:bn"]).arguments["n"], 31)
        result = run(["abc"], ["n:bn"])
        self.assertEqual(result.error.message, 'At property "n": Expected an integer')

    def testBoolean(self):
        self.assertIs(run(["true"], ["?v:b"]).arguments["v"], True)
        self.assertIs(run(["0"], ["?v:b"]).arguments["v"], False)
        result = run(["maybe"], ["?v:b"])
        self.assertEqual(result.error.message, 'At property "v": Expected a boolean')

    def testEnum(self):
        self.assertEqual(run(["fast"], ["m:e:fast|safe"]).arguments, {"m": "fast"})
        result = run(["slow"], ["m:e:fast|safe"])
        self.assertEqual(result.error.message, 'Invalid Option: "slow"')
        self.assertEqual(result.error.code, FaultCode.INVALID_CHOICE)

    def testMatrix(self):
        self.assertEqual(run(["[1,2/a,4.5]"], ["m:m"]).arguments["m"], [[1, 2], ["a", 4.5]])
        self.assertEqual(run(["[1,2;3]"], ["m:m"]).error.message, "Invalid matrix. Use syntax: [1,2/a,4]")
        self.assertEqual(run(["[1,2/3]"], ["m:m"]).error.message, "Matrix must have equal sized rows.")

    def testSquareMatrix(self):
        self.assertEqual(run(["[1,0/0,1]"], ["m:sm"]).arguments["m"], [[1, 0], [0, 1]])
        self.assertEqual(run(["[1,2]"], ["m:sm"]).error.message, "Matrix must be square.")

    def testFilePredicate(self):
        exists = {"a.txt"}.__contains__
        self.assertEqual(run(["a.txt"], ["p:f"], file_exists=exists).arguments, {"p": "a.txt"})
        result = run(["b.txt"], ["p:f"], file_exists=exists)
        self.assertEqual(result.error.message, 'File not found: "b.txt"')
        self.assertEqual(result.error.code, FaultCode.FILE_NOT_FOUND)

    def testCommandPredicate(self):
        exists = {"ls"}.__contains__
        self.assertEqual(run(["ls"], ["c:c"], command_exists=exists).arguments, {"c": "ls"})
        result = run(["rm"], ["c:c"], command_exists=exists)
        self.assertEqual(result.error.message, 'Command not found: "rm"')

    def testCommandPredicateDefaultsToNothing(self):
        self.assertFalse(run(["ls"], ["c:c"]).ok)


class TestDefaults(TestCase):
    """Command-level default values."""

    def testDefaultIsStartingValue(self):
        result = run([], ["?a:n"], {"a": 7})
        option, = result.options
        self.assertEqual(result.arguments, {"a": 7})
        self.assertEqual(option.default, 7)
        self.assertFalse(option.manual)

    def testExplicitValueOverridesDefault(self):
        result = run(["3"], ["?a:n"], {"a": 7})
        self.assertEqual(result.arguments, {"a": 3})

    def testDefaultDoesNotSatisfyRequired(self):
        result = run([], ["a:n"], {"a": 7})
        self.assertEqual(result.error.message, 'argument "a" (number) is missing')

    def testUnknownDefault(self):
        with self.assertRaises(ConfigurationError) as context:
            run([], ["?a:n"], {"b": 1})
        self.assertEqual(context.exception.code, FaultCode.UNKNOWN_DEFAULT)


if __name__ == "__main__":
    unittest.main()
