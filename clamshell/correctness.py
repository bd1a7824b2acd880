"""
Live correctness feedback for a line that is still being typed.

Annotator re-runs argument resolution against partial input, without executing
anything, and answers three questions:

- annotate(line, caret): what should be drawn under the line? Either the
  resolver's error underlined at its exact columns, the description of the
  command, the info of the argument under the caret, or (after a trailing
  space) the list of arguments still to be given:

      $ add 2 x
            ┬
            |
            └ At property "b": Invalid number

- verdict(line): would this line parse? (memoized per exact input)
- rehearse(line): would this line run? (executed in a sandboxed shell, cut short
  at its first suspension point)
- complete(line): candidate completions for the word being typed.

Columns are recomputed by locating each token, in order, in the literal line,
so quoting does not shift the underline. Caches are per annotator and are
cleared by the shell whenever a line completes.
"""
import functools
import logging
import re
from dataclasses import dataclass

from rich.text import Text

from .arguments import ArgumentKind
from .tokens import *

logger = logging.getLogger(__name__)

CACHE_SIZE = 256
ENUM_PREVIEW = 30


@dataclass(frozen=True, slots=True)
class Annotation:
    column: int
    width: int
    message: str
    error: bool = False

    def render(self, indent=0, /):
        """
        Draw the underline: a ┬── marker, a | stem, then one ├/└ line per message line.
        """
        pad = " " * (indent + self.column)
        lines = [pad + "┬" + "─" * max(self.width - 1, 0), pad + "|"]
        messages = [line for line in self.message.split("\n") if line]
        for position, message in enumerate(messages):
            lines.append(pad + ("└" if position == len(messages) - 1 else "├") + " " + message)
        return "\n".join(lines)


def _offsets(line, tokens):
    offsets = []
    cursor = 0
    for token in tokens:
        found = line.find(token, cursor)
        if found < 0:
            found = cursor
        offsets.append(found)
        cursor = found + len(token)
    return offsets


def _info(option):
    info = ("-" if len(option.name) == 1 else "--") + option.name + " ("
    if option.optional:
        info += "optional, "
    info += f"{option.label}) "
    if option.kind is ArgumentKind.ENUM:
        choices = " | ".join(option.choices)
        return f"{info}: {choices[:40] + "..." if len(choices) > ENUM_PREVIEW else choices}"
    return info + option.descr


def _quote(path):
    if " " not in path:
        return path
    for quote in "\"'":
        if quote not in path:
            return quote + path + quote
    return path


class Annotator:
    """
    Side-effect free analysis of partial input against a shell's commands.

    indent is the width of whatever precedes the typed line on screen (a prompt
    or a path), so underlines line up with the input.
    """

    def __init__(self, shell, /, *, indent=0):
        self.shell = shell
        self.indent = indent
        self._verdicts = {}
        self._analyze = functools.lru_cache(maxsize=CACHE_SIZE)(self._analysis)

    def clear(self):
        self._verdicts.clear()
        self._analyze.cache_clear()

    def _parse(self, command, arguments):
        return command.parse(
            arguments,
            file_exists=self.shell.file_exists,
            command_exists=self.shell.registry.exists,
        )

    # --- annotations -------------------------------------------------------

    def analyze(self, line, /, caret=None):
        """
        Return the Annotation for line with the caret at the given column
        (end of line by default), or None when there is nothing to show.
        """
        return self._analyze(line, len(line) if caret is None else caret)

    def annotate(self, line, /, caret=None):
        """
        Return the rendered annotation as rich Text (empty when there is none).
        """
        if (annotation := self.analyze(line, caret)) is None:
            return Text("")
        style = "bold #FF5555" if annotation.error else "#9d64ff"
        return Text(annotation.render(self.indent), style if self.shell.colorful else "")

    def _analysis(self, line, caret):
        offset = 0
        if (assignment := extract_assignment(line)) is not None:
            offset = len(line) - len(assignment[1])
            line = assignment[1]
            caret -= offset

        tokens = tokenize(line)
        if not tokens:
            return None
        offsets = _offsets(line, tokens)

        def underline(index, span, message, error=False):
            if not message:
                return None
            if index >= len(tokens):
                return Annotation(offset + len(line) + (0 if line.endswith(" ") else 1), 3, message, error)
            span = max(0, min(span, len(tokens) - 1 - index))
            end = offsets[index + span] + len(tokens[index + span])
            return Annotation(offset + offsets[index], end - offsets[index], message, error)

        name = tokens[0]
        if (command := self.shell.registry.get(name)) is None:
            return Annotation(offset + offsets[0], len(name), "command not found", True)

        resolution = self._parse(command, tokens[1:])
        error = resolution.error
        if error and len(tokens) > 1 and not command.raw:
            return underline(error.token_index + 1, error.token_span, error.message, True)

        current = 0
        for index, start in enumerate(offsets):
            if caret >= start:
                current = index

        selected = None
        for option in resolution.options:
            if option.token_index is None:
                continue
            if option.token_index + 1 <= current <= option.token_index + 1 + option.token_span:
                selected = option
                break

        if (len(tokens) == 1 and not line.endswith(" ")) or not resolution.options or (current == 0 and len(tokens) > 1):
            return underline(0, 0, f'"{command.descr or ""}"')

        if line.endswith(" ") and caret == len(line):
            pending = [_info(option) for option in resolution.options if not option.manual]
            return underline(len(tokens), 1, "\n".join(pending))

        if selected is not None:
            return underline(selected.token_index + 1, selected.token_span, _info(selected))
        return None

    # --- verdicts ----------------------------------------------------------

    def verdict(self, line, /):
        """
        Would this line parse? Memoized per exact input string.
        """
        if not line.strip():
            return True
        if line in self._verdicts:
            logger.debug("correctness cache hit for %r", line)
            return self._verdicts[line]
        self._verdicts[line] = verdict = self._judge(line)
        return verdict

    def _judge(self, line):
        if is_variable(stripped := line.strip()):
            return variable_name(stripped) in self.shell.variables
        if (assignment := extract_assignment(line)) is not None:
            line = assignment[1]

        tokens = replace_variables(tokenize(line), self.shell.variables)
        name, arguments = split_command(tokens)
        if name is None:
            return True
        if (command := self.shell.registry.get(name)) is None:
            return False
        if command.raw:
            return True
        return not self._parse(command, arguments).error

    async def rehearse(self, line, /):
        """
        Would this line run? Executes it in a sandboxed shell with output discarded;
        reaching the first suspension point counts as success.
        """
        if not line.strip():
            return True
        key = ("rehearsal", line)
        if key in self._verdicts:
            return self._verdicts[key]
        sandbox = self.shell.sandbox()
        self._verdicts[key] = verdict = await sandbox.input(line)
        return verdict

    # --- completion --------------------------------------------------------

    def complete(self, line, /):
        """
        Candidate full lines completing the word under construction.
        """
        last = re.split(r"\s", line)[-1]

        def matching(candidates):
            return sorted((c for c in candidates if c.startswith(last)), key=lambda c: (len(c), c))

        def export(matches):
            head = line[:len(line) - len(last)]
            return [completion for match in matches if (completion := head + match) != line]

        commands = matching([command.name for command in self.shell.registry.visible()] + list(self.shell.aliases))
        if last == line.strip():
            return export(commands)

        tokens = tokenize(line)
        if (command := self.shell.registry.get(tokens[0])) is None:
            return []
        options = self._parse(command, tokens[1:]).options

        if not last:
            current = next((option for option in options if not option.manual), None)
        else:
            placed = [option for option in options if option.token_index is not None]
            current = max(placed, key=lambda option: option.token_index, default=None)
        if current is None:
            return []

        match current.kind:
            case ArgumentKind.BOOLEAN:
                flags = [("--" if len(o.name) > 1 else "-") + o.name for o in options if not o.manual]
                return export(matching(flags))
            case ArgumentKind.FILE:
                return export(matching(map(_quote, self.shell.paths(last))))
            case ArgumentKind.COMMAND:
                return export(commands)
            case ArgumentKind.ENUM:
                return export(matching(current.choices))
        return []


__all__ = (
    "Annotation",
    "Annotator",
)
