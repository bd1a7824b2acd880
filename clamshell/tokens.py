"""
clamshell line tokenization and line-level rewriting.

Overview
- tokenize(line): split a typed line into word tokens, honoring ' and " quoting.
- split_command(tokens): separate the command name from its argument tokens.
- remainder(line): the raw text after the command name, for raw commands.
- Variables
  • is_variable(token): "$name" where name is a letter followed by letters/digits.
  • extract_assignment(line): recognize "$name = rest" output redirection.
  • replace_variables(tokens, variables): substitute known "$name" tokens.
- History and aliases (applied to the raw line, before tokenization)
  • expand_history(line, history): "!N" (1-indexed) and "!!" (last entry).
  • expand_aliases(line, aliases): replace a leading alias with its expansion.

Notes
- Tokenization is lenient: an unterminated quote never raises. Whatever was
  accumulated after the opening quote is emitted as a regular token at the end
  of input, and the quote character itself is dropped.
- A closing quote always emits a token, even an empty one ('' -> "").
"""
import re
from collections.abc import Mapping, Sequence

QUOTES = frozenset("'\"")
SEPARATORS = frozenset(" \t\n")

_VARIABLE = re.compile(r"\$([a-zA-Z][a-zA-Z0-9]*)")
_ASSIGNMENT = re.compile(r"^\$([a-zA-Z][a-zA-Z0-9]*)\s*=")
_BACKREFERENCE = re.compile(r"![0-9]+")


def tokenize(line, /):
    """
    Split a line into tokens.

    Examples
    - tokenize('a "b c" d') -> ["a", "b c", "d"]
    - tokenize("") -> []
    - tokenize('a "b') -> ["a", "b"]
    """
    if not isinstance(line, str):
        raise TypeError("tokenize() argument must be a string")

    tokens = []
    current = ""
    quote = None

    for char in line:
        if quote is not None:
            if char == quote:
                tokens.append(current)
                current = ""
                quote = None
            else:
                current += char
        elif char in QUOTES:
            quote = char
        elif char in SEPARATORS:
            if current:
                tokens.append(current)
                current = ""
        else:
            current += char

    if current:
        tokens.append(current)
    return tokens


def remainder(line, /):
    """
    Return the raw text following the first token, leading separators removed.

    The first token ends where tokenize() would emit it, so a quoted command
    name takes its closing quote along: remainder('"echo" a  b') -> "a  b".
    """
    quote = None
    started = False
    for index, char in enumerate(line):
        if quote is not None:
            if char == quote:
                return line[index + 1:].lstrip()
        elif char in QUOTES:
            quote = char
        elif char in SEPARATORS:
            if started:
                return line[index + 1:].lstrip()
        else:
            started = True
    return ""


def split_command(tokens, /):
    """
    Return (name, arguments) for a token sequence; name is None when it is empty.
    """
    if not tokens:
        return None, []
    return tokens[0], list(tokens[1:])


def is_variable(token, /):
    return isinstance(token, str) and _VARIABLE.fullmatch(token) is not None


def variable_name(token, /):
    """
    Return the bare name of a "$name" token, or None if it is not a variable.
    """
    if match := _VARIABLE.fullmatch(token):
        return match.group(1)
    return None


def extract_assignment(line, /):
    """
    Recognize an output redirection prefix.

    Returns (name, remainder) for lines like "$out = ls -r", where remainder is
    everything after the first "=" (leading whitespace is kept), or None.
    """
    if not (match := _ASSIGNMENT.match(line)):
        return None
    return match.group(1), line.partition("=")[2]


def replace_variables(tokens, variables, /):
    """
    Substitute "$name" tokens with their captured content. Unknown names stay literal.
    """
    assert isinstance(variables, Mapping)
    replaced = []
    for token in tokens:
        name = variable_name(token)
        replaced.append(variables[name] if name is not None and name in variables else token)
    return replaced


def expand_history(line, history, /):
    """
    Expand history back-references.

    - "!N" is replaced by the N-th recorded line (1-indexed); indices out of
      range are kept literally.
    - "!!" is replaced by the last recorded line, or by "" when history is empty.
    """
    assert isinstance(history, Sequence)

    def backreference(match):
        index = int(match.group(0)[1:]) - 1
        if 0 <= index < len(history):
            return history[index]
        return match.group(0)

    line = _BACKREFERENCE.sub(backreference, line)
    return line.replace("!!", history[-1] if history else "")


def expand_aliases(line, aliases, /):
    """
    Replace a leading alias with its expansion.

    The alias must be the whole first word: "tree -a" expands with an alias
    "tree", "trees" does not.
    """
    assert isinstance(aliases, Mapping)
    for alias, expansion in aliases.items():
        if re.match(rf"{re.escape(alias)}(?=\s|$)", line):
            return expansion + line[len(alias):]
    return line


__all__ = (
    "tokenize",
    "split_command",
    "remainder",
    "is_variable",
    "variable_name",
    "extract_assignment",
    "replace_variables",
    "expand_history",
    "expand_aliases",
)
