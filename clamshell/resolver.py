"""
clamshell argument resolution: map argument tokens onto compiled options.

Algorithm
1. Defaults: every entry of the command's defaults becomes both the option's
   default and its starting value.
2. Named pass (left to right). A token matching --?[A-Za-z][A-Za-z0-9_:.-]* is a flag:
   - "--name" and two-character "-x" address one option by name or alias.
   - "-abc" is a cluster of short flags. Every character but the last must be a
     boolean option (set to True); the last one is handled like "-c" and may
     consume the next token as its value.
   - Only optional arguments can be passed as flags.
   - Boolean options never consume a value; other options consume exactly the
     next token. A consumed value is never rescanned as a flag.
3. Positional pass: the tokens left over are assigned in declaration order to
   the options not already set by a flag. An expanding option keeps absorbing
   tokens (space-joined) instead of advancing.
4. Any required option that was not explicitly set is missing.

Error policy
- Nothing here raises for user input. The first failure is recorded in a
  ParsingError (message, token_index, token_span, code) and resolution stops.
- token_index counts argument tokens only (the command name is not included);
  a missing argument points one past the last token.
- token_span is the number of further tokens the error covers.
"""
import math
import os.path
import re
from dataclasses import dataclass

from .arguments import ArgumentKind
from .expressions import Success, Failure, evaluate
from .faults import ConfigurationError, FaultCode

_FLAG = re.compile(r"--?[A-Za-z][A-Za-z0-9_:.\-]*")
_MATRIX = re.compile(
    r"\[((-?[0-9]+(\.[0-9]+)?)|[a-z])(,((-?[0-9]+(\.[0-9]+)?)|[a-z]))*"
    r"(/((-?[0-9]+(\.[0-9]+)?)|[a-z])(,((-?[0-9]+(\.[0-9]+)?)|[a-z]))*)*\]"
)
_CELL = re.compile(r"-?[0-9]+(\.[0-9]+)?")

_TRUTHY = ("true", "1")
_FALSY = ("false", "0")


@dataclass(slots=True)
class ParsingError:
    """
    First failure of a resolution attempt; falsy while no message is set.
    """
    message: str | None = None
    token_index: int | None = None
    token_span: int = 0
    code: FaultCode | None = None

    def __bool__(self):
        return self.message is not None


@dataclass(frozen=True, slots=True)
class Resolution:
    options: list
    error: ParsingError

    @property
    def ok(self):
        return not self.error

    @property
    def arguments(self):
        """
        Resolved values keyed by every form of every option.
        """
        return {form: option.value for option in self.options for form in option.forms}


def format_number(number):
    return str(int(number)) if isinstance(number, float) and number.is_integer() else str(number)


def _cell(text):
    if not _CELL.fullmatch(text):
        return text
    return float(text) if "." in text else int(text)


def _nothing(name, /):
    return False


class Resolver:
    """
    Single-use resolution state over a freshly compiled option list.

    Predicates
    - file_exists(path) -> bool: consulted for file arguments.
    - command_exists(name) -> bool: consulted for command arguments.
    """

    def __init__(self, options, /, *, file_exists=os.path.exists, command_exists=_nothing):
        self.options = list(options)
        self.error = ParsingError()
        self.file_exists = file_exists
        self.command_exists = command_exists

    def lookup(self, name, /):
        return next((option for option in self.options if option.matches(name)), None)

    def fail(self, message, code, /, index=None, span=0):
        self.error.message = message
        self.error.token_index = index
        self.error.token_span = span
        self.error.code = code

    def apply(self, defaults, /):
        for name, value in (defaults or {}).items():
            if (option := self.lookup(name)) is None:
                raise ConfigurationError(f"default value given for unknown argument {name!r}", FaultCode.UNKNOWN_DEFAULT)
            option.default = option.value = value

    def resolve(self, tokens, /):
        tokens = list(tokens)
        consumed = self._named(tokens)
        if not self.error:
            self._positional(tokens, consumed)
        if not self.error:
            self._missing(tokens)
        return Resolution(self.options, self.error)

    def _named(self, tokens):
        consumed = set()
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if not _FLAG.fullmatch(token):
                index += 1
                continue

            if token.startswith("--"):
                taken = self._handle(token[2:], tokens, index)
            elif len(token) == 2:
                taken = self._handle(token[1:], tokens, index)
            else:
                taken = self._cluster(token[1:], tokens, index)

            if self.error:
                return consumed

            consumed.add(index)
            if taken:
                consumed.add(index + 1)
            index += 1 + taken
        return consumed

    def _cluster(self, cluster, tokens, index):
        taken = 0
        for position, char in enumerate(cluster):
            if char == "-":
                continue
            if position == len(cluster) - 1:
                return self._handle(char, tokens, index)

            option = self.lookup(char)
            if option is None:
                self.fail(f'Unexpected property "{char}"', FaultCode.UNEXPECTED_PROPERTY, index)
            elif option.kind is not ArgumentKind.BOOLEAN:
                self.fail(
                    f'Property "{char}" is not a boolean and must be assigned a value',
                    FaultCode.NOT_BOOLEAN,
                    index,
                )
            else:
                taken = self._handle(char, tokens, index)
            if self.error:
                return 0
        return taken

    def _handle(self, name, tokens, index):
        """
        Apply one named flag at tokens[index]; return the number of value tokens consumed.
        """
        if (option := self.lookup(name)) is None:
            self.fail(f'Unexpected property "{name}"', FaultCode.UNEXPECTED_PROPERTY, index)
            return 0

        option.token_index = index
        if not option.optional:
            self.fail(
                f'Property "{option.name}" is not optional, must be passed directly',
                FaultCode.NOT_OPTIONAL,
                index,
                1,
            )
            return 0

        if option.kind is ArgumentKind.BOOLEAN:
            self.assign(option, True)
            return 0

        if index + 1 >= len(tokens):
            self.fail(
                f'property "{option.name}" ({option.label}) expects a value',
                FaultCode.VALUE_REQUIRED,
                index + 1,
            )
            return 0

        option.token_span = 1
        self.assign(option, tokens[index + 1])
        return 1

    def _positional(self, tokens, consumed):
        flagged = {id(option) for option in self.options if option.manual}
        cursor = 0
        for index, token in enumerate(tokens):
            if index in consumed:
                continue

            while cursor < len(self.options) and id(self.options[cursor]) in flagged:
                cursor += 1
            if cursor >= len(self.options):
                self.fail("Too many arguments", FaultCode.TOO_MANY_ARGUMENTS, index, len(tokens) - index - 1)
                return

            option = self.options[cursor]
            if not option.expanding:
                option.token_index = index
                cursor += 1
            elif not option.expanded:
                option.token_index = index
                option.token_span = 0
            else:
                option.token_span = index - option.token_index

            self.assign(option, token)
            if self.error:
                return

    def _missing(self, tokens):
        for option in self.options:
            if not option.optional and not option.manual:
                self.fail(
                    f'argument "{option.name}" ({option.label}) is missing',
                    FaultCode.MISSING_ARGUMENT,
                    len(tokens),
                )
                return

    def assign(self, option, raw, /):
        """
        Coerce raw into option's kind and store it; record a failure instead on error.
        """

        def fail(message, code):
            self.fail(message, code, option.token_index, option.token_span)

        def store(value):
            if option.expanding and option.expanded:
                value = f"{option.value} {value}"
            option.value = value
            option.manual = True
            option.expanded = option.expanding

        prefix = f'At property "{option.name}": '

        match option.kind:
            case ArgumentKind.NUMBER | ArgumentKind.INTEGER:
                match evaluate(raw, option.name):
                    case Failure(message, code):
                        return fail(message, code)
                    case Success(value):
                        pass
                if math.isnan(value):
                    return fail(prefix + "Not a number", FaultCode.NOT_A_NUMBER)
                if math.isinf(value):
                    return fail(prefix + "Infinity isn't a number", FaultCode.NOT_FINITE)
                if option.kind is ArgumentKind.INTEGER:
                    if isinstance(value, float) and not value.is_integer():
                        return fail(prefix + "Expected an integer", FaultCode.NOT_AN_INTEGER)
                    value = int(value)
                if option.minimum is not None and value < option.minimum:
                    return fail(prefix + f"Number must be at least {format_number(option.minimum)}", FaultCode.OUT_OF_RANGE)
                if option.maximum is not None and value > option.maximum:
                    return fail(prefix + f"Number must be at most {format_number(option.maximum)}", FaultCode.OUT_OF_RANGE)
                store(value)

            case ArgumentKind.BOOLEAN:
                if raw is True or raw in _TRUTHY:
                    store(True)
                elif raw is False or raw in _FALSY:
                    store(False)
                else:
                    fail(prefix + "Expected a boolean", FaultCode.NOT_A_BOOLEAN)

            case ArgumentKind.BIGINT:
                for base in (10, 0):
                    try:
                        value = int(raw, base)
                    except ValueError:
                        continue
                    return store(value)
                fail(prefix + "Expected an integer", FaultCode.NOT_AN_INTEGER)

            case ArgumentKind.FILE:
                if not self.file_exists(raw):
                    return fail(f'File not found: "{raw}"', FaultCode.FILE_NOT_FOUND)
                store(raw)

            case ArgumentKind.COMMAND:
                if not self.command_exists(raw):
                    return fail(f'Command not found: "{raw}"', FaultCode.COMMAND_NOT_FOUND)
                store(raw)

            case ArgumentKind.ENUM:
                if raw not in option.choices:
                    return fail(f'Invalid Option: "{raw}"', FaultCode.INVALID_CHOICE)
                store(raw)

            case ArgumentKind.MATRIX | ArgumentKind.SQUARE_MATRIX:
                if not _MATRIX.fullmatch(raw):
                    return fail("Invalid matrix. Use syntax: [1,2/a,4]", FaultCode.INVALID_MATRIX)
                rows = [list(map(_cell, row.split(","))) for row in raw[1:-1].split("/")]
                if any(len(row) != len(rows[0]) for row in rows):
                    return fail("Matrix must have equal sized rows.", FaultCode.INVALID_MATRIX)
                if option.kind is ArgumentKind.SQUARE_MATRIX and len(rows) != len(rows[0]):
                    return fail("Matrix must be square.", FaultCode.INVALID_MATRIX)
                store(rows)

            case ArgumentKind.STRING | ArgumentKind.TEXT:
                store(raw)


def resolve(tokens, options, defaults=None, /, *, file_exists=os.path.exists, command_exists=_nothing):
    """
    Resolve argument tokens (command name excluded) against compiled options.

    Returns a Resolution whose options carry the resolved values and whose
    error is falsy on success. Raises ConfigurationError only when defaults
    name an unknown argument.

    Example
        >>> from clamshell.arguments import compile_schema
        >>> result = resolve(["-b", "50"], compile_schema(["a:n:1~100", "?b:b"]))
        >>> result.ok, result.arguments
        (True, {'a': 50, 'b': True})
    """
    resolver = Resolver(options, file_exists=file_exists, command_exists=command_exists)
    resolver.apply(defaults)
    return resolver.resolve(tokens)


__all__ = (
    "ParsingError",
    "Resolution",
    "Resolver",
    "resolve",
)
