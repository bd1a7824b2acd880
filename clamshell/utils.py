"""
Small building blocks shared by the schema, resolver, command and shell layers.

- Unset: the "argument not given" marker, distinct from None (a legitimate
  value for several options, e.g. Command(descr=None)).
- coalesce(value, default): materialize Unset into a default.
- rename(...): give generated callables readable names in tracebacks.
- mirror(name): read-only property over "_name" that hands out copies.
- IntrospectiveType: metaclass for descriptor classes (ArgumentOption,
  Command) that publishes their declared fields and derives their reprs.

    >>> coalesce(Unset, 3), coalesce(None, 3)
    (3, None)
"""
import builtins
import functools
import re
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker. Calling it always returns the one instance.

    Unset is falsy, survives copy/deepcopy/pickle as itself, can appear in
    isinstance unions (str | Unset) and refuses to be subclassed.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return default when object is Unset, object otherwise (None, 0 and "" included).
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(callable, name) sets __name__ and __qualname__ in place and returns
    the callable; rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("rename() name must be a string")
        return functools.partial(_rename, name=name)
    if len(parameters) == 2:
        callable, name = parameters
        if not isinstance(name, str):
            raise TypeError("rename() name must be a string")
        return _rename(callable, name=name)
    raise TypeError(f"rename() takes 1 or 2 arguments ({len(parameters)} given)")


def _rename(callable, *, name):
    if not builtins.callable(callable):
        raise TypeError(f"cannot rename {callable!r}: not callable")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"cannot rename {callable!r}: attributes are read-only") from None
    return callable


def _detached(value):
    # containers come back as fresh builtins so callers never share internal state
    match value:
        case str() | bytes():
            return value
        case Mapping():
            return {key: _detached(item) for key, item in value.items()}
        case Set():
            return {_detached(item) for item in value}
        case Sequence():
            return [_detached(item) for item in value]
    return value


def mirror(name, /):
    """
    Read-only property exposing self._<name>; container values are copied.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _detached(getattr(self, f"_{name}"))

    return property(getter)


class IntrospectiveType(type):
    """
    Metaclass for descriptor classes.

    A class using it lists its public, read-only fields in __introspectable__
    (each backed by "_<field>") and may restrict its repr to __displayable__.
    The class also receives __typename__, its hyphenated lower-case name
    ("ArgumentOption" -> "argument-option"), used as the repr prefix.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        fields = namespace.get("__introspectable__", ())
        namespace = {
            **namespace,
            **{field: mirror(field) for field in fields},
            "__typename__": "-".join(part.lower() for part in re.findall(r"[A-Z][^A-Z]*|^[^A-Z]+", name)),
        }
        namespace.setdefault("__rich_repr__", _rich_repr)
        namespace.setdefault("__repr__", _repr)
        return super().__new__(cls, name, bases, namespace, **options)


@rename("__rich_repr__")
def _rich_repr(self):
    for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
        yield field, getattr(self, field)


@rename("__repr__")
def _repr(self):
    return f"{type(self).__typename__}({", ".join(f"{field}={value!r}" for field, value in self.__rich_repr__())})"


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "UnsetType",
    "IntrospectiveType",
    "Unset",
)
