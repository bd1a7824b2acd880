"""
clamshell faults (errors and control-flow signals) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep copy consistent and logs searchable.
- ConfigurationError: developer-facing, fatal; raised while compiling schemas or
  registering commands. Never shown to an end user as a recoverable problem.
- IntendedError / Interrupted: control-flow-only aborts. The dispatcher unwinds
  on them silently; they are never logged as defects.
- CommandException and subclasses: user-facing faults that know how to render
  themselves (plain "Category: message" lines or a rich Panel).
- trigger(): central entry point to surface a fault (print in shell mode, raise otherwise).

Integration
- The resolver never raises for user input; the command layer converts its
  ParsingError into a ParseError and triggers it through the shell.
- Host applications can restyle output through a __styles__ mapping in __main__,
  rename the header program through __prog__, and relabel codes through __codes__.
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the shell (stable identifiers).

    grouping (by high-level domain)
    - schema (100xx): configuration mistakes made while declaring commands.
    - resolver (110xx): flag/positional structure problems in a typed line.
    - values (111xx): coercion failures for a single argument value.
    - dispatch (120xx): routing, variables, handlers and interrupts.

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- schema errors (100xx) ---
    UNKNOWN_TYPE_CODE           = 10001
    MALFORMED_SCHEMA            = 10002
    MISSING_ENUM_OPTIONS        = 10003
    MALFORMED_RANGE             = 10004
    DUPLICATED_ARGUMENT         = 10005
    UNKNOWN_DEFAULT             = 10006
    DUPLICATED_COMMAND          = 10007

    # --- resolver errors (110xx) ---
    UNEXPECTED_PROPERTY         = 11001
    NOT_OPTIONAL                = 11002
    VALUE_REQUIRED              = 11003
    NOT_BOOLEAN                 = 11004
    TOO_MANY_ARGUMENTS          = 11005
    MISSING_ARGUMENT            = 11006

    # --- value errors (111xx) ---
    INVALID_NUMBER              = 11101
    UNBALANCED_PARENTHESES      = 11102
    DIVISION_BY_ZERO            = 11103
    OUT_OF_DOMAIN               = 11104
    NOT_FINITE                  = 11105
    NOT_A_NUMBER                = 11106
    NOT_AN_INTEGER              = 11107
    OUT_OF_RANGE                = 11108
    NOT_A_BOOLEAN               = 11109
    FILE_NOT_FOUND              = 11110
    COMMAND_NOT_FOUND           = 11111
    INVALID_CHOICE              = 11112
    INVALID_MATRIX              = 11113

    # --- dispatch errors (120xx) ---
    UNKNOWN_COMMAND             = 12001
    UNDEFINED_VARIABLE          = 12002
    HANDLER_MISSING             = 12003
    HANDLER_FAILURE             = 12004

    def normalize(self):
        """
        label shown in fancy fault headers: __main__.__codes__[self] when the
        host defines it, the numeric id otherwise.
        """
        labels = getattr(__import__("__main__"), "__codes__", {})
        return str(labels[self]) if self in labels else str(self.value)


class ConfigurationError(ValueError):
    """
    A command or argument declaration is malformed (a programming mistake).

    Raised immediately at compile/registration time so it surfaces during
    development; end users cannot recover from it.
    """

    def __init__(self, message, /, code=FaultCode.MALFORMED_SCHEMA):
        super().__init__(message)
        self.message = message
        self.code = code


class IntendedError(Exception):
    """
    Deliberate control-flow abort (e.g. declined confirmation, failed parse).

    The dispatcher unwinds on it without reporting a defect.
    """


class Interrupted(IntendedError):
    """
    The running command was interrupted while suspended.
    """


class CommandException(Exception):
    """
    base type for user-facing faults.

    carries a message plus free-form rendering options (title, code, hint,
    console, colorful, fancy, shell, ...), merged through copy.replace().
    """
    __category__ = "Error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # panel header
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # lines
            "error-category": "bold #FF5555",
            "error-message": "#FF8080",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), styler(style))

        lines = [Text.assemble(
            text(f"{self.__category__}: ", "error-category"),
            text(self.message or "", "error-message"),
        )]
        if hint := self.options.get("hint"):
            lines.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy"):
            code = self.options.get("code")
            header = Text.assemble(
                "[ ",
                text(getattr(main, "__prog__", self.options.get("prog", "clamshell")), "prog-name"),
                " — ",
                text(code.normalize() if code else "-", "code"),
                " | ",
                text(str(self.options.get("title", self.__category__)).title(), "error-title"),
                " ]"
            )
            return Panel(Group(*lines), title=header, title_align="left")

        return Group(*lines)

    def __trigger__(self):
        if not self.options.get("shell"):
            raise self from None
        console = self.options.get("console") or Console(stderr=True)
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseError(CommandException):
    __category__ = "ParseError"


class UnknownCommandError(CommandException): ...
class UndefinedVariableError(CommandException): ...
class HandlerMissingError(CommandException): ...


class HandlerFailure(CommandException):
    """
    display wrapper for a defect raised inside a command handler.

    the category is the defect's type name, as the user should see it.
    """

    @property
    def __category__(self):
        return self.options.get("category", "Error")


def trigger(fault, /, **options):
    """
    merge options into a copy of fault, then let the copy surface itself.

    with shell=True the copy prints on options["console"]; without it, it is raised.
    """
    if not all(callable(getattr(fault, hook, None)) for hook in ("__trigger__", "__replace__")):
        raise TypeError(f"cannot trigger {type(fault).__name__}: __trigger__ and __replace__ are required")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "ConfigurationError",
    "IntendedError",
    "Interrupted",
    "CommandException",
    "ParseError",
    "UnknownCommandError",
    "UndefinedVariableError",
    "HandlerMissingError",
    "HandlerFailure",
    "trigger",
)
