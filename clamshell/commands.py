"""
clamshell command layer: declare commands, keep them in a registry, render usage.

What this module provides
- Command: a named command descriptor.
  • schema: argument spec strings (mapping spec -> description, or a plain list).
  • defaults: starting values for named options.
  • raw: raw-argument mode; the handler receives the unparsed remainder of the line.
  • secret: hidden from listings and suggestions.
  • helper: optional callback run after the usage block by Command.help().
  • handler: callable(shell, arguments), an import reference "package.module:attribute"
    loaded on first dispatch, or Unset while the implementation is not attached yet.

- Registry: explicit command table (no process-wide singleton).
  • register(command) / command(...) decorator / reset().
  • exists(name), visible(), describe() for listings and predicates.

- usage(command, options): the rich rendering shown when a line fails to parse:
      $ add <a> <?b>
       > --a   [numeric] first
       > --b   [optional] [numeric: 1 to 10] second

Design notes
- Declarations are validated once, at construction: a malformed spec string or a
  default for an unknown argument raises ConfigurationError right away.
- Options are compiled fresh for every parse; a Command never holds resolution state.
- Dispatch itself (completion hook, interrupts, output capture) lives in clamshell.shell.
"""
import builtins
import importlib
import inspect
import logging
from collections import defaultdict
from collections.abc import Mapping

from rich.console import Group
from rich.text import Text

from .arguments import compile_schema
from .faults import *
from .resolver import Resolver, format_number
from .utils import *

logger = logging.getLogger(__name__)

AUTO_WRAP = 50


def _styles(colorful):
    styles = defaultdict(str, {
        "usage-prompt": "bold #00E5FF",
        "usage-arguments": "#FFD166",
        "usage-flag": "#FFD166",
        "usage-descr": "",
    } | getattr(__import__("__main__"), "__styles__", {}))
    return styles if colorful else defaultdict(str)


def _annotations(option):
    annotation = ""
    if option.default:
        annotation += f" [default: {option.default}]"
    elif option.optional:
        annotation += " [optional]"

    if option.kind.numeric:
        annotation += " [numeric"
        if option.minimum is not None or option.maximum is not None:
            lower = "-inf" if option.minimum is None else format_number(option.minimum)
            upper = "inf" if option.maximum is None else format_number(option.maximum)
            annotation += f": {lower} to {upper}"
        annotation += "]"
    return annotation


def usage(command, options=Unset, /, *, colorful=True):
    """
    Render the usage block of a command as a rich Group.

    Behavior
    - First line: "$ name" followed by every non-help argument as <name> (or <?name>),
      or "doesn't accept any arguments".
    - Then one line per argument with inferred annotations ([default: x], [optional],
      [numeric: min to max]) and its description; long lines wrap under the flag column.
    - Arguments with nothing to say are skipped.
    """
    styles = _styles(colorful)
    if options is Unset:
        resolver = Resolver(command.options())
        resolver.apply(command.defaults)
        options = resolver.options
    options = [option for option in options if not option.is_help]

    header = Text.assemble(("$ ", styles["usage-prompt"]), command.name + " ")
    if not options:
        header.append("doesn't accept any arguments")
    header.append(
        " ".join(f"<{"?" * option.optional}{option.name}>" for option in options),
        styles["usage-arguments"],
    )
    lines = [header]

    widest = max((len(option.full_name) for option in options), default=0)
    for option in options:
        annotation = _annotations(option)
        combined = annotation + " " + option.descr
        if not combined.strip():
            continue

        flag = ("--" if len(option.full_name) > 1 else "-") + option.full_name
        line = Text.assemble(" > ", (flag.ljust(widest + 3), styles["usage-flag"]))
        if len(combined) > AUTO_WRAP:
            line.append(annotation)
            lines.append(line)
            lines.append(Text(" " * (widest + 7) + option.descr, styles["usage-descr"]))
        else:
            line.append(combined)
            lines.append(line)

    return Group(*lines)


class Command(metaclass=IntrospectiveType):
    """
    Named command descriptor: schema, defaults, flags and a (possibly lazy) handler.

    Stages
    - declared: handler is Unset or an import reference string.
    - attached: handler is a callable (after construction with one, attach(), or load()).
    Dispatching a command whose handler cannot be attached raises HandlerMissingError.
    """
    __introspectable__ = (
        "name",
        "descr",
        "schema",
        "defaults",
        "raw",
        "secret",
    )
    __displayable__ = (
        "name",
        "descr",
        "schema",
        "raw",
        "secret",
    )

    def __init__(
            self,
            name,
            handler=Unset,
            /,
            *,
            descr=None,
            schema=(),
            defaults=None,
            raw=False,
            secret=False,
            helper=None,
    ):
        if not isinstance(name, str) or not name or any(char.isspace() for char in name):
            raise ConfigurationError(f"command name must be a non-empty word, got {name!r}")
        if not (handler is Unset or isinstance(handler, str) or builtins.callable(handler)):
            raise TypeError("command handler must be callable, an import reference string, or Unset")
        if isinstance(handler, str) and ":" not in handler:
            raise ConfigurationError(f"handler reference must look like 'package.module:attribute', got {handler!r}")
        if helper is not None and not builtins.callable(helper):
            raise TypeError("command 'helper' must be callable")
        if isinstance(schema, str):
            raise TypeError("command 'schema' must be a mapping or a list of spec strings")
        if not isinstance(defaults, Mapping | None):
            raise TypeError("command 'defaults' must be a mapping")

        self._name = name
        self._handler = handler
        self._descr = descr
        self._schema = dict(schema) if isinstance(schema, Mapping) else list(schema)
        self._defaults = dict(defaults or {})
        self._raw = bool(raw)
        self._secret = bool(secret)
        self._helper = helper

        # surface declaration mistakes at registration time
        Resolver(self.options()).apply(self._defaults)

    @property
    def handler(self):
        return self._handler

    @property
    def attached(self):
        return builtins.callable(self._handler)

    def attach(self, handler, /):
        """
        Fill in the implementation of a command declared without one.
        """
        if not builtins.callable(handler):
            raise TypeError("attach() argument must be callable")
        self._handler = handler
        return handler

    def load(self):
        """
        Return the callable handler, importing it first when declared by reference.
        """
        if self.attached:
            return self._handler
        if self._handler is Unset:
            raise HandlerMissingError(
                f'command "{self._name}" has no implementation attached',
                code=FaultCode.HANDLER_MISSING,
            )

        reference = self._handler
        module, _, attributes = reference.partition(":")
        logger.debug("loading handler %s for command %s", reference, self._name)
        try:
            target = importlib.import_module(module)
            for attribute in attributes.split("."):
                target = getattr(target, attribute)
        except (ImportError, AttributeError) as error:
            raise HandlerMissingError(
                f'command "{self._name}" could not load "{reference}": {error}',
                code=FaultCode.HANDLER_MISSING,
            ) from error
        if not builtins.callable(target):
            raise HandlerMissingError(
                f'command "{self._name}" handler "{reference}" is not callable',
                code=FaultCode.HANDLER_MISSING,
            )
        return self.attach(target)

    def options(self):
        """
        Compile a fresh option list from the schema.
        """
        return compile_schema(self._schema)

    def parse(self, arguments, /, *, file_exists, command_exists):
        """
        Resolve argument tokens (command name excluded) into a Resolution.
        """
        resolver = Resolver(self.options(), file_exists=file_exists, command_exists=command_exists)
        resolver.apply(self._defaults)
        return resolver.resolve(arguments)

    def usage(self, options=Unset, /, *, colorful=True):
        return usage(self, options, colorful=colorful)

    def help(self, shell, /):
        """
        Print the usage block (help options excluded), then run the helper callback.
        """
        shell.print(self.usage(colorful=shell.colorful))
        if self._helper is not None:
            if inspect.isawaitable(result := self._helper(shell)):
                return result
        return None


class Registry:
    """
    Explicit command table keyed by name.

    Lifecycle
    - Build one per application (or per test) and hand it to Shell.
    - reset() forgets every command; registering a name twice is a ConfigurationError
      unless replace=True is given.
    """

    def __init__(self, commands=(), /):
        self._commands = {}
        for command in commands:
            self.register(command)

    def register(self, command, /, *, replace=False):
        if not isinstance(command, Command):
            raise TypeError("register() argument must be a Command")
        if command.name in self._commands and not replace:
            raise ConfigurationError(
                f'command "{command.name}" is already registered',
                FaultCode.DUPLICATED_COMMAND,
            )
        self._commands[command.name] = command
        logger.info("registered command %s", command.name)
        return command

    def command(self, name=Unset, /, **metadata):
        """
        Decorator registering a handler as a command.

        The command name defaults to the handler's __name__; every other keyword
        is forwarded to Command (descr, schema, defaults, raw, secret, helper).
        """
        if builtins.callable(name):
            return self.command()(name)

        def decorator(handler):
            return self.register(Command(coalesce(name, handler.__name__), handler, **metadata))

        return rename(decorator, "command")

    def unregister(self, name, /):
        return self._commands.pop(name)

    def reset(self):
        self._commands.clear()

    def exists(self, name, /):
        return name in self._commands

    def get(self, name, default=None, /):
        return self._commands.get(name, default)

    def names(self):
        return list(self._commands)

    def visible(self):
        """
        Non-secret commands, sorted by name.
        """
        return sorted((command for command in self._commands.values() if not command.secret), key=lambda c: c.name)

    def describe(self):
        return {command.name: command.descr for command in self.visible()}

    def __contains__(self, name):
        return name in self._commands

    def __getitem__(self, name):
        return self._commands[name]

    def __iter__(self):
        return iter(self._commands.values())

    def __len__(self):
        return len(self._commands)

    def __repr__(self):
        return f"registry({", ".join(self._commands)})"


__all__ = (
    "Command",
    "Registry",
    "usage",
)
