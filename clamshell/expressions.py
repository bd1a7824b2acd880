"""
Numeric expression evaluation for number-typed arguments.

Grammar (informal)
    number  : "-" number | literal | constant | function "(" number ")" | "(" number ")"
            | number "+" number | number "-" number | number "*" number
            | number "/" number | number "^" number
    literal : int | int "." int | "0x" hex ["." hex] | "0b" bin ["." bin] | decimal "e" int
    constant: "pi" | "tau" | "phi" | "e"

Operator resolution
- Operators are not parsed by precedence climbing. The text is scanned once per
  operator, in the order + - * / ^, and split at the LAST occurrence of that
  operator outside parentheses. Both halves are evaluated recursively.
  "2+3+4" splits into "2+3" and "4"; "8/4/2" into "8/4" and "2" (giving 1).
- A leading "-" negates everything after it: "-2+3" is -(2+3).

Failure policy
- evaluate() never raises for user input. It returns Success(value) or
  Failure(message, code), and every recursive step propagates the first Failure.
  Input nested deeper than the interpreter's recursion limit is a Failure too.
- Messages are prefixed with the owning argument: 'At property "a": ...'.
- Results that IEEE double arithmetic would turn into Infinity/NaN
  (overflow, 0 ^ -1, sin(inf), ...) come back as math.inf/math.nan so the
  caller can reject them with its own finite-number check.
"""
import math
import re
from dataclasses import dataclass

from .faults import FaultCode


@dataclass(frozen=True, slots=True)
class Success:
    value: int | float


@dataclass(frozen=True, slots=True)
class Failure:
    message: str
    code: FaultCode = FaultCode.INVALID_NUMBER


type Result = Success | Failure


CONSTANTS = {
    "pi": math.pi,
    "tau": math.tau,
    "phi": (1 + math.sqrt(5)) / 2,
    "e": math.e,
}

# (name, function, domain check, domain description); "" is a bare parenthesis
FUNCTIONS = (
    ("sqrt", math.sqrt, lambda n: n < 0, "[0, inf)"),
    ("sin", math.sin, None, None),
    ("cos", math.cos, None, None),
    ("tan", math.tan, None, None),
    ("arcsin", math.asin, lambda n: n < -1 or n > 1, "[-1, 1]"),
    ("arccos", math.acos, lambda n: n < -1 or n > 1, "[-1, 1]"),
    ("arctan", math.atan, None, None),
    ("sinh", math.sinh, None, None),
    ("cosh", math.cosh, None, None),
    ("tanh", math.tanh, None, None),
    ("arcsinh", math.asinh, None, None),
    ("arccosh", math.acosh, lambda n: n < 1, "[1, inf)"),
    ("arctanh", math.atanh, lambda n: n <= -1 or n >= 1, "(-1, 1)"),
    ("", lambda n: n, None, None),
)

_INTEGER = re.compile(r"[0-9]+")
_HEX_INTEGER = re.compile(r"0x[0-9a-f]+")
_BIN_INTEGER = re.compile(r"0b[01]+")
_DECIMAL = re.compile(r"[0-9]+\.[0-9]+")
_HEX_DECIMAL = re.compile(r"0x[0-9a-f]+\.[0-9a-f]+")
_BIN_DECIMAL = re.compile(r"0b[01]+\.[01]+")
_SCIENTIFIC = re.compile(r"-?[0-9]+(\.[0-9]+)?e[0-9]+")


def _bounded(number):
    # integers beyond the float range behave like an overflowed double
    if isinstance(number, int) and number.bit_length() > 1024:
        return math.inf if number > 0 else -math.inf
    return number


def _safely(function, *arguments):
    try:
        return _bounded(function(*arguments))
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


def _divide(left, right):
    try:
        return left / right
    except OverflowError:
        return math.inf if (left > 0) == (right > 0) else -math.inf


def _power(base, exponent):
    if base == 0 and exponent < 0:
        return math.inf
    try:
        result = math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan
    if isinstance(base, int) and isinstance(exponent, int) and exponent >= 0 and abs(result) < 2 ** 53:
        return base ** exponent
    return result


def _add(left, right):
    try:
        return left + right
    except OverflowError:
        return math.inf if right > 0 else -math.inf


def _subtract(left, right):
    try:
        return left - right
    except OverflowError:
        return math.inf if right < 0 else -math.inf


def _multiply(left, right):
    try:
        return _bounded(left * right)
    except OverflowError:
        return math.inf if (left > 0) == (right > 0) else -math.inf


# anti-precedence: split on the loosest-binding operator first
OPERATORS = (
    ("+", _add),
    ("-", _subtract),
    ("*", _multiply),
    ("/", _divide),
    ("^", _power),
)


def _fraction(digits, base):
    return int(digits, base) / base ** len(digits)


def _literal(text):
    if _INTEGER.fullmatch(text):
        return _bounded(int(text))
    if _HEX_INTEGER.fullmatch(text):
        return _bounded(int(text[2:], 16))
    if _BIN_INTEGER.fullmatch(text):
        return _bounded(int(text[2:], 2))

    if _DECIMAL.fullmatch(text):
        return float(text)
    if _BIN_DECIMAL.fullmatch(text):
        whole, _, digits = text[2:].partition(".")
        return _safely(lambda: int(whole, 2) + _fraction(digits, 2))
    if _HEX_DECIMAL.fullmatch(text):
        whole, _, digits = text[2:].partition(".")
        return _safely(lambda: int(whole, 16) + _fraction(digits, 16))

    if _SCIENTIFIC.fullmatch(text):
        mantissa, _, exponent = text.partition("e")
        return _safely(lambda: float(mantissa) * 10.0 ** int(exponent))

    return None


def evaluate(text, name, /) -> Result:
    """
    Evaluate a numeric expression for the argument called name.

    Examples
    - evaluate("2+3+4", "a") -> Success(9)
    - evaluate("0x1f", "a") -> Success(31)
    - evaluate("1/0", "a") -> Failure('At property "a": Can\\'t divide by zero')
    """
    try:
        return _evaluate(text, name)
    except RecursionError:
        return Failure(f'At property "{name}": Expression too complex')


def _evaluate(text, name):
    def fail(message, code=FaultCode.INVALID_NUMBER):
        return Failure(f'At property "{name}": {message}', code)

    if text in CONSTANTS:
        return Success(CONSTANTS[text])

    if text == "inf":
        return fail("Infinity is not a number", FaultCode.NOT_FINITE)

    if text.startswith("-"):
        rest = text.lstrip("-")
        match _evaluate(rest, name):
            case Success(value):
                return Success(-value if (len(text) - len(rest)) % 2 else value)
            case failure:
                return failure

    for function, compute, outside, domain in FUNCTIONS:
        if not text.startswith(function + "("):
            continue

        # the closing parenthesis must belong to this call: "sin(1)+cos(2)" is not one
        inner = text[len(function) + 1:-1]
        depth = 0
        for char in inner:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            if depth < 0:
                break
        else:
            match _evaluate(inner, name):
                case Success(value):
                    if outside is not None and outside(value):
                        return fail(f"{function} is only defined on {domain}", FaultCode.OUT_OF_DOMAIN)
                    return Success(_safely(compute, value))
                case failure:
                    return failure

    if (value := _literal(text)) is not None:
        return Success(value)

    for symbol, operation in OPERATORS:
        depth = 0
        split = None
        for index, char in enumerate(text):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            if depth < 0:
                return fail("Unbalanced parentheses", FaultCode.UNBALANCED_PARENTHESES)
            if char == symbol and depth == 0:
                split = index

        if depth != 0:
            return fail("Unbalanced parentheses", FaultCode.UNBALANCED_PARENTHESES)
        if split is None:
            continue

        operands = []
        for part in (text[:split], text[split + 1:]):
            match _evaluate(part, name):
                case Success(value):
                    operands.append(value)
                case failure:
                    return failure

        left, right = operands
        if symbol == "/" and right == 0:
            return fail("Can't divide by zero", FaultCode.DIVISION_BY_ZERO)
        return Success(operation(left, right))

    return fail("Invalid number")


__all__ = (
    "Success",
    "Failure",
    "Result",
    "evaluate",
)
