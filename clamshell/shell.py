"""
clamshell interpreter: dispatch typed lines to registered commands.

Shell is the explicit interpreter context. It owns the variables, the history,
the aliases and the output console, and it drives one line at a time through:

    submit(line)            history "!N"/"!!" and alias expansion, history recording
      -> input(line)        "$name" echo, "$name = ..." capture, tokenization, routing
        -> run(command)     argument resolution, handler call, fault reporting
      -> completion hook    fired exactly once per top-level line

Execution model
- Everything runs on one asyncio event loop. Handlers are called as
  handler(shell, arguments) and may be plain functions or coroutines; awaitable
  results are awaited before the completion hook fires.
- Suspension points (sleep, prompt, confirm, ask_number) honor interrupt(): the
  running handler task is cancelled, cleanup callbacks registered through
  when_interrupted() run, and the line still completes normally.
- Nested runs (a handler running another line through input(..., finish=False))
  never fire the completion hook themselves.

Error boundary
- ParseError and other CommandException faults are rendered on the console.
- IntendedError (including Interrupted) unwinds silently.
- Any other exception raised by a handler is logged with its traceback and shown
  as "TypeName: message"; the shell keeps running.
"""
import asyncio
import difflib
import glob
import inspect
import io
import logging
import math
import os.path

from rich.console import Console
from rich.text import Text

from .commands import Registry
from .correctness import Annotator
from .expressions import Success, Failure, evaluate
from .faults import *
from .tokens import *
from .utils import *

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
SUGGESTIONS = 5


def _paths(prefix, /):
    return sorted(glob.glob(prefix + "*"))


class Shell:
    """
    Interpreter context around a command registry.

    Parameters
    - registry: Registry of commands (a fresh, empty one when omitted).
    - console: rich Console receiving every output (stdout console when omitted).
    - reader: async callable(message) -> str used by prompt(); defaults to
      Console.input run in a worker thread.
    - file_exists: predicate for file-typed arguments (os.path.exists by default).
    - paths: callable(prefix) -> iterable of paths, used for completion.
    - aliases: mapping of alias -> expansion applied by submit().
    - history / variables: initial state (copied).
    - limit: maximum number of history entries kept.
    - colorful / fancy: fault rendering switches (see clamshell.faults).
    - indent: width of the prompt printed before typed lines (annotation offsets).
    - finish: completion callback(shell), sync or async.
    """

    def __init__(
            self,
            registry=Unset,
            /,
            *,
            console=Unset,
            reader=Unset,
            file_exists=os.path.exists,
            paths=_paths,
            aliases=None,
            history=None,
            variables=None,
            limit=HISTORY_LIMIT,
            colorful=True,
            fancy=False,
            indent=0,
            finish=Unset,
    ):
        if registry is not Unset and not isinstance(registry, Registry):
            raise TypeError("Shell() registry must be a Registry")
        if not isinstance(limit, int) or limit < 1:
            raise ValueError("Shell() history limit must be a positive integer")

        self.registry = coalesce(registry, Registry())
        self.console = coalesce(console, Console())
        self.reader = coalesce(reader, self._read)
        self.file_exists = file_exists
        self.paths = paths
        self.aliases = dict(aliases or {})
        self.history = list(history or ())
        self.variables = dict(variables or {})
        self.limit = limit
        self.colorful = colorful
        self.fancy = fancy
        self.annotator = Annotator(self, indent=indent)

        self._finishers = [] if finish is Unset else [finish]
        self._cleanups = []
        self._tasks = []
        self._expecting = False
        self._interrupted = False
        self._capture = None
        self._budget = None
        self._exhausted = False

    # --- lifecycle ---------------------------------------------------------

    def reset(self):
        """
        Forget variables, history and any in-flight state; commands and aliases stay.
        """
        self.variables.clear()
        self.history.clear()
        self.annotator.clear()
        self._cleanups.clear()
        self._tasks.clear()
        self._expecting = False
        self._interrupted = False
        self._capture = None
        self._exhausted = False

    def sandbox(self, *, budget=1):
        """
        Return a throwaway interpreter sharing the commands but none of the state.

        Output is discarded, prompts read nothing, and the run is cut short at
        the budget-th suspension point (which still counts as success).
        """
        shell = Shell(
            self.registry,
            console=Console(file=io.StringIO(), width=self.console.width),
            reader=_silence,
            file_exists=self.file_exists,
            paths=self.paths,
            aliases=self.aliases,
            history=self.history,
            variables=self.variables,
            limit=self.limit,
            colorful=False,
            indent=self.annotator.indent,
        )
        shell._budget = budget
        return shell

    def when_finished(self, callback, /):
        self._finishers.append(callback)
        return callback

    def when_interrupted(self, callback, /):
        """
        Register a cleanup callback for the running line; cleared when the line completes.
        """
        self._cleanups.append(callback)
        return callback

    # --- output ------------------------------------------------------------

    def print(self, *objects, **options):
        """
        Print on the console, appending the plain text to the captured variable if any.
        """
        if self._capture is not None:
            buffer = io.StringIO()
            Console(file=buffer, width=self.console.width, color_system=None).print(*objects, **options)
            self.variables[self._capture] += buffer.getvalue()
        self.console.print(*objects, **options)

    def fail(self, fault, /):
        """
        Render a user-facing fault through this shell's output.
        """
        trigger(fault, shell=True, console=self, colorful=self.colorful, fancy=self.fancy)

    # --- dispatch ----------------------------------------------------------

    def execute(self, line, /):
        """
        Synchronous convenience: run submit(line) on a new event loop.
        """
        return asyncio.run(self.submit(line))

    async def submit(self, line, /):
        """
        Expand history references and aliases, record the line, then run it.
        """
        line = expand_aliases(expand_history(line, self.history), self.aliases)
        if line.strip() and (not self.history or self.history[-1] != line):
            self.history.append(line)
            del self.history[:-self.limit]
        return await self.input(line)

    async def input(self, line, /, *, finish=True):
        """
        Run one line. Returns True when it ran without a reported fault.

        With finish=False (nested runs) the completion hook is left to the caller.
        """
        if finish:
            logger.debug("inputted text: %r", line)
            self._cleanups.clear()
            self._interrupted = False
            self._expecting = True
        try:
            return await self._dispatch(line)
        finally:
            if finish:
                await self.finish()

    async def _dispatch(self, line):
        if is_variable(stripped := line.strip()):
            name = variable_name(stripped)
            if name not in self.variables:
                self.fail(UndefinedVariableError(
                    f"Variable '{name}' is not defined",
                    code=FaultCode.UNDEFINED_VARIABLE,
                ))
                return False
            self.print(self.variables[name], markup=False, highlight=False)
            return True

        if (assignment := extract_assignment(line)) is not None:
            name, line = assignment
            self.variables[name] = ""
            self._capture = name

        tokens = replace_variables(tokenize(line), self.variables)
        name, arguments = split_command(tokens)
        if name is None:
            return True

        if (command := self.registry.get(name)) is None:
            self.fail(UnknownCommandError(
                f'command "{name}" not found',
                code=FaultCode.UNKNOWN_COMMAND,
                hint=self._suggest(name),
            ))
            return False

        return await self.run(command, arguments, remainder(line))

    def _suggest(self, name):
        candidates = [command.name for command in self.registry.visible()] + list(self.aliases)
        if not (suggestions := difflib.get_close_matches(name, candidates, SUGGESTIONS)):
            return None
        return "did you mean %s?" % ", ".join(map(repr, suggestions))

    async def run(self, command, arguments=(), raw="", /):
        """
        Resolve arguments for command and call its handler.

        Returns True on success. A failed run still counts as successful when it
        was cut short by an exhausted sandbox budget.
        """
        logger.debug("dispatching %s %r", command.name, list(arguments))
        try:
            handler = command.load()
            payload = raw if command.raw else self._arguments(command, arguments)
            result = handler(self, payload)
            if inspect.isawaitable(result):
                result = await self._await(result)
            if result is not None:
                self.print(result)
            return True
        except Interrupted:
            if self._interrupted:
                self.print(Text("Interrupt: Pressed [^c]", "bold #FF5555" if self.colorful else ""))
            return self._exhausted
        except IntendedError:
            return self._exhausted
        except CommandException as fault:
            self.fail(fault)
            return self._exhausted
        except Exception as error:
            logger.exception("command %s failed", command.name)
            self.fail(HandlerFailure(str(error), category=type(error).__name__, code=FaultCode.HANDLER_FAILURE))
            return self._exhausted

    def _arguments(self, command, arguments):
        resolution = command.parse(arguments, file_exists=self.file_exists, command_exists=self.registry.exists)
        if resolution.error:
            self.print(command.usage(resolution.options, colorful=self.colorful))
            self.fail(ParseError(resolution.error.message, code=resolution.error.code))
            raise IntendedError(resolution.error.message)
        return resolution.arguments

    async def _await(self, awaitable):
        task = asyncio.ensure_future(awaitable)
        self._tasks.append(task)
        try:
            return await task
        except asyncio.CancelledError:
            if self._interrupted:
                raise Interrupted("interrupted") from None
            raise
        finally:
            self._tasks.remove(task)

    async def finish(self):
        """
        Completion hook: runs once per top-level line, however the line ended.
        """
        if not self._expecting:
            return
        self._expecting = False

        if self._capture is not None:
            self.variables[self._capture] = self.variables[self._capture].rstrip("\n")
            self._capture = None
        self._cleanups.clear()
        self._interrupted = False
        self.annotator.clear()

        for callback in self._finishers:
            if inspect.isawaitable(result := callback(self)):
                await result

    # --- interrupts and suspension points ----------------------------------

    @property
    def running(self):
        return self._expecting

    def interrupt(self):
        """
        Abort the running handler at its current suspension point.
        """
        if not self._expecting:
            return
        self._interrupted = True
        cleanups, self._cleanups = self._cleanups, []
        for callback in cleanups:
            callback()
        for task in self._tasks:
            task.cancel()

    def _suspend(self):
        if self._interrupted:
            raise Interrupted("interrupted")
        if self._budget is not None:
            self._budget -= 1
            if self._budget <= 0:
                self._exhausted = True
                raise Interrupted("suspension budget exhausted")

    def _resume(self):
        if self._interrupted:
            raise Interrupted("interrupted")

    async def sleep(self, seconds, /):
        self._suspend()
        await asyncio.sleep(seconds)
        self._resume()

    async def prompt(self, message="", /):
        """
        Ask for a line of input while a handler runs.
        """
        self._suspend()
        answer = await self.reader(message)
        self._resume()
        return answer

    async def confirm(self, message, /, default=True):
        """
        Ask a yes/no question; anything but yes raises IntendedError.
        """
        answer = await self.prompt(message + (" [Y/n] " if default else " [y/N] "))
        if (not answer and default) or answer.strip().lower().startswith("y"):
            return True
        raise IntendedError("declined")

    async def ask_number(self, message="", /, *, minimum=None, maximum=None, integer=False):
        """
        Prompt until the answer evaluates to a number within the given bounds.
        """
        while True:
            match evaluate((await self.prompt(message)).strip(), "input"):
                case Failure():
                    self.fail(CommandException("You must supply a valid number"))
                    continue
                case Success(value) if not math.isfinite(value):
                    self.fail(CommandException("You must supply a valid number"))
                    continue
                case Success(value):
                    pass
            if minimum is not None and value < minimum:
                self.fail(CommandException(f"The number must be larger/equal than {minimum}"))
            elif maximum is not None and value > maximum:
                self.fail(CommandException(f"The number must be smaller/equal than {maximum}"))
            elif integer and value != int(value):
                self.fail(CommandException("The number must be an integer"))
            else:
                return value

    async def _read(self, message):
        return await asyncio.to_thread(self.console.input, message)

    def __repr__(self):
        return f"shell(commands={len(self.registry)}, variables={len(self.variables)}, history={len(self.history)})"


async def _silence(message, /):
    return ""


__all__ = (
    "Shell",
)
