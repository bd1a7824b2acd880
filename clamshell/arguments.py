r"""
clamshell argument schemas: compile compact spec strings into option descriptors.

Overview
- Spec strings
  • "a"            required string argument named a
  • "?a"           optional argument
  • "*a"           expanding argument (absorbs every remaining positional token)
  • "?*a"          optional and expanding (the prefixes are read in this order)
  • "a:n"          typed argument (see ArgumentKind for the codes)
  • "a:n:1~100"    numeric argument bounded to [1, 100] (inclusive)
  • "a:i:3"        numeric argument that must be exactly 3
  • "m:e:fast|safe" enum argument with its options
  • "?f=force:b"   aliased argument: long/short forms "f" and "force", named "force"

- Types
  • ArgumentKind: closed set of value kinds, keyed by their spec code.
  • ArgumentOption: compiled descriptor plus per-resolution state
    (value, manual, token_index, token_span, expanded).

- Functions
  • compile_option(spec, descr): compile a single spec string.
  • compile_schema(schema): normalize a mapping (spec -> description) or an
    ordered list of specs into a fresh list of ArgumentOption.

Validation highlights
- Unknown type codes, enums without options, unparsable numeric constraints,
  empty names and duplicated names raise ConfigurationError immediately:
  they are mistakes in a command declaration, not user input errors.
- Options are compiled fresh for every resolution; nothing here caches state.

Quick example:
    >>> option = compile_option("?a:n:1~100", "a percentage")
    >>> option.name, option.kind.label, option.minimum, option.maximum
    ('a', 'number', 1, 100)
"""
from collections.abc import Mapping, Sequence
from enum import StrEnum

from .faults import ConfigurationError, FaultCode
from .utils import *


class ArgumentKind(StrEnum):
    """
    Value kinds an argument can declare, keyed by their spec code.

    label is the human-facing type name used in usage blocks and messages;
    several kinds share a label (integer/bigint, string/text).
    """
    NUMBER = "n"
    INTEGER = "i"
    BIGINT = "bn"
    BOOLEAN = "b"
    STRING = "s"
    TEXT = "t"
    FILE = "f"
    COMMAND = "c"
    MATRIX = "m"
    SQUARE_MATRIX = "sm"
    ENUM = "e"

    @property
    def label(self):
        return _LABELS[self]

    @property
    def numeric(self):
        """
        True for kinds evaluated through the numeric expression evaluator.
        """
        return self in (ArgumentKind.NUMBER, ArgumentKind.INTEGER)


_LABELS = {
    ArgumentKind.NUMBER: "number",
    ArgumentKind.INTEGER: "integer",
    ArgumentKind.BIGINT: "integer",
    ArgumentKind.BOOLEAN: "boolean",
    ArgumentKind.STRING: "string",
    ArgumentKind.TEXT: "string",
    ArgumentKind.FILE: "file",
    ArgumentKind.COMMAND: "command",
    ArgumentKind.MATRIX: "matrix",
    ArgumentKind.SQUARE_MATRIX: "square-matrix",
    ArgumentKind.ENUM: "enum",
}


class ArgumentOption(metaclass=IntrospectiveType):
    """
    Compiled argument descriptor.

    Declaration (read-only, mirrored from private fields)
    - name: canonical name (the second form for aliased specs).
    - kind: ArgumentKind.
    - optional: may be omitted; only optional arguments can be passed as flags.
    - expanding: absorbs all remaining positional tokens, space-joined.
    - minimum / maximum: inclusive numeric bounds, or None.
    - choices: enum options (empty for other kinds).
    - forms: every name the argument answers to; always contains name.
    - descr: human description ("" when none).

    Resolution state (mutable, reset by compiling again)
    - default: value supplied through a command's defaults, or None.
    - value: resolved value (starts as the default).
    - manual: True once a token explicitly set the value.
    - token_index: index of the token that matched this option, or None.
    - token_span: number of extra tokens the match consumed.
    - expanded: True once an expanding option received its first token.
    """
    __introspectable__ = (
        "name",
        "kind",
        "optional",
        "expanding",
        "minimum",
        "maximum",
        "choices",
        "forms",
        "descr",
    )
    __displayable__ = (
        "name",
        "kind",
        "optional",
        "expanding",
        "value",
    )

    def __init__(
            self,
            name,
            /,
            kind=ArgumentKind.STRING,
            *,
            optional=False,
            expanding=False,
            minimum=None,
            maximum=None,
            choices=(),
            forms=Unset,
            descr="",
    ):
        if not isinstance(name, str) or not name:
            raise ConfigurationError("argument name must be a non-empty string")
        if not isinstance(kind, ArgumentKind):
            raise TypeError("argument 'kind' must be an ArgumentKind")

        forms = tuple(coalesce(forms, (name,)))
        if name not in forms:
            raise ConfigurationError(f"argument {name!r} must be one of its own forms")

        self._name = name
        self._kind = kind
        self._optional = bool(optional)
        self._expanding = bool(expanding)
        self._minimum = minimum
        self._maximum = maximum
        self._choices = tuple(choices)
        self._forms = forms
        self._descr = descr

        self.default = None
        self.value = None
        self.manual = False
        self.token_index = None
        self.token_span = 0
        self.expanded = False

    @property
    def label(self):
        return self._kind.label

    @property
    def full_name(self):
        """
        All forms joined with "|" (e.g. "f|force").
        """
        return "|".join(self._forms)

    @property
    def is_help(self):
        return self._name in ("help", "h")

    def matches(self, name, /):
        return name == self._name or name in self._forms


def _number(text, spec):
    try:
        value = float(text)
    except ValueError:
        raise ConfigurationError(
            f"invalid numeric constraint in {spec!r}: {text!r}",
            FaultCode.MALFORMED_RANGE,
        ) from None
    return int(value) if value.is_integer() else value


def compile_option(spec, /, descr=Unset):
    """
    Compile one spec string into a fresh ArgumentOption.

    Raises
    - TypeError: spec is not a string, descr is not a string.
    - ConfigurationError: unknown type code, enum without options, unparsable
      numeric constraint, empty name or empty alias form.
    """
    if not isinstance(spec, str):
        raise TypeError("compile_option() argument must be a string")
    if not isinstance(descr, str | Unset):
        raise TypeError("compile_option() 'descr' must be a string")

    body = spec.strip()
    optional = body.startswith("?")
    if optional:
        body = body[1:]
    expanding = body.startswith("*")
    if expanding:
        body = body[1:]

    name, *rest = body.split(":")
    code = rest[0] if rest else ArgumentKind.STRING.value
    constraint = rest[1] if len(rest) > 1 else None

    try:
        kind = ArgumentKind(code)
    except ValueError:
        raise ConfigurationError(f"Invalid argument type: {code}", FaultCode.UNKNOWN_TYPE_CODE) from None

    forms = name.split("=")
    if not all(forms):
        raise ConfigurationError(f"malformed argument name in {spec!r}", FaultCode.MALFORMED_SCHEMA)
    name = forms[1] if len(forms) > 1 else forms[0]

    minimum = maximum = None
    choices = ()
    if kind.numeric and constraint:
        if "~" in constraint:
            lower, _, upper = constraint.partition("~")
            minimum = _number(lower, spec) if lower else None
            maximum = _number(upper, spec) if upper else None
        else:
            minimum = maximum = _number(constraint, spec)
    elif kind is ArgumentKind.ENUM:
        if not constraint:
            raise ConfigurationError(f"enum argument {name!r} must list its options", FaultCode.MISSING_ENUM_OPTIONS)
        choices = tuple(constraint.split("|"))

    descr = coalesce(descr, "")
    if kind is ArgumentKind.ENUM:
        descr = descr.replace("<enum>", " | ".join(choices))

    return ArgumentOption(
        name,
        kind,
        optional=optional,
        expanding=expanding,
        minimum=minimum,
        maximum=maximum,
        choices=choices,
        forms=forms,
        descr=descr,
    )


def compile_schema(schema, /):
    """
    Normalize a command schema into an ordered list of fresh ArgumentOption.

    Accepted shapes
    - Mapping[str, str]: spec string -> description (declaration order kept).
    - Sequence[str]: spec strings without descriptions.

    Raises ConfigurationError when two arguments share a name or a form.
    """
    if isinstance(schema, Mapping):
        entries = schema.items()
    elif isinstance(schema, Sequence) and not isinstance(schema, str):
        entries = ((spec, Unset) for spec in schema)
    else:
        raise TypeError("schema must be a mapping of spec strings to descriptions or a list of spec strings")

    options = []
    seen = set()
    for spec, descr in entries:
        option = compile_option(spec, descr)
        if clashes := seen.intersection(option.forms):
            raise ConfigurationError(
                f"argument {sorted(clashes)[0]!r} is declared more than once",
                FaultCode.DUPLICATED_ARGUMENT,
            )
        seen.update(option.forms)
        options.append(option)
    return options


__all__ = (
    "ArgumentKind",
    "ArgumentOption",
    "compile_option",
    "compile_schema",
)
