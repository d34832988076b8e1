"""
Argoflags utilities (shared helpers used by every layer)

Overview
- UnsetType / Unset
  • Sentinel for "not provided" where None is a meaningful user value
    (an option default of None, an env lookup that returned nothing, ...).

- coalesce(value, default=None)
  • Materialize Unset into a concrete fallback; falsey values are kept.

- @rename("name")
  • Stable __name__/__qualname__ for generated callables (readable tracebacks).

- mirror("attr")
  • Read-only property over a private "_attr" backing field that hands out
    copies of containers.

- levenshtein(a, b) / closest(name, candidates)
  • Edit distance and the "did you mean" lookup used for unknown commands.

- conjoin(items)
  • "a", "a and b", "a, b and c" phrasing for messages.

Usage guidance
- Prefer Unset for API defaults, then coalesce() where a concrete value is needed.
- Names not in __all__ are internal.
"""
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Sentinel type for a value that was not provided.

    Characteristics
    - Falsey, but distinct from None/0/"".
    - repr() is "Unset".
    - Singleton and sealed against subclassing.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in annotations and isinstance() (str | Unset).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(name, /):
    """
    Decorator setting __name__/__qualname__ on generated callables.
    """
    if not isinstance(name, str):
        raise TypeError("rename() argument must be a string")

    def decorator(function):
        if not callable(function):
            raise TypeError("rename() must decorate a callable, not %s" % type(function).__name__)
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _copied(value):
    # Containers are copied recursively so callers cannot mutate descriptor state.
    match value:
        case str() | bytes():
            return value
        case tuple():
            return tuple(_copied(item) for item in value)
        case Mapping():
            return {key: _copied(item) for key, item in value.items()}
        case Set():
            return {_copied(item) for item in value}
        case Sequence():
            return [_copied(item) for item in value]
        case _:
            return value


def mirror(name, /):
    """
    Define a read-only property reading "_{name}" and copying containers.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _copied(getattr(self, "_" + name))

    return property(getter)



def levenshtein(source, target, /):
    """
    Return the edit distance (insertions, deletions, substitutions) between two strings.
    """
    if len(source) < len(target):
        source, target = target, source
    if not target:
        return len(source)

    previous = list(range(len(target) + 1))
    for row, left in enumerate(source, 1):
        current = [row]
        for column, right in enumerate(target, 1):
            current.append(min(
                previous[column] + 1,
                current[column - 1] + 1,
                previous[column - 1] + (left != right),
            ))
        previous = current
    return previous[-1]


def closest(name, candidates, /):
    """
    Return (candidate, distance) for the candidate nearest to name.

    Candidates are visited in sorted order so ties resolve alphabetically.
    Returns (None, -1) when there are no candidates.
    """
    match, distance = None, -1
    for candidate in sorted(candidates):
        score = levenshtein(name, candidate)
        if distance < 0 or score < distance:
            match, distance = candidate, score
    return match, distance


def conjoin(items, /):
    """
    Join items as "a", "a and b" or "a, b and c" (no serial comma).
    """
    items = list(items)
    if len(items) < 2:
        return "".join(items)
    return ", ".join(items[:-1]) + " and " + items[-1]


Unset = UnsetType()
"""
The single "not provided" sentinel (see UnsetType).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "levenshtein",
    "closest",
    "conjoin",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
