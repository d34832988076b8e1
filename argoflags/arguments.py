r"""
Argoflags argument declarations (options and positional cardinals).

Overview
- Declarations
  • Option: a named flag (-v / --verbose) controlling one typed field, or a
    callback when built through @option.
  • Cardinal: a positional slot controlling one typed field; a list-typed
    cardinal absorbs every remaining positional token.

- Decorators
  • @option(...): turn a method into a callback option (arity 0 or 1).

- Binding
  • Declarations are written once (usually as class attributes) and bound to a
    concrete target with __bind__(target, attribute, annotation). Binding
    returns a private copy, so one declaration never ends up owned by two
    groups. The bound copy reads and writes target.<attribute>.

- Introspection & representation
  • DescriptorType metaclass provides stable __repr__/__rich_repr__ and exposes
    the names in __introspectable__ as read-only properties (see mirror()).

Metadata (sanitized on construction)
- short: one character (longer raises ShortNameTooLongError).
- long: non-empty, no whitespace, no leading '-'.
- default / optional_value: str or iterable of str (other values are rendered
  with the codec).
- base: 0 or 2..36.
- terminator: non-empty string.
- choices: iterable of str.

Quick example:
    >>> class Settings:
    ...     verbose: list[bool] = Option("v", "verbose", "Show verbose debug information")
    ...     files: list[str] = Cardinal("FILE")
    ...
    ...     @option("c", "config", "Load settings from an ini file")
    ...     def config(self, path: str): ...
"""
import copy
import enum
import functools
import operator
import re
import types
from collections.abc import Iterable

from rich.text import Text

from . import codec
from .faults import ShortNameTooLongError, TagError
from .utils import *


class DescriptorType(type):
    """
    Metaclass for declarations and groups.

    Responsibilities
    - Derive __typename__ from the class name ("Option" → "option") for messages.
    - Publish read-only properties for the names in __introspectable__.
    - Provide compact __repr__/__rich_repr__ driven by __displayable__ (or
      __introspectable__ when unset).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Action(enum.Enum):
    """
    What an option does when it fires.
    """
    STORE = "store"
    BOOLEAN = "boolean"
    INVOKE = "invoke"


def _stringify(object):
    if isinstance(object, str):
        return object
    return codec.to_string(object)


def _sanitize_strings(cls, metadata, field, /):
    """
    normalize a str-or-iterable-of-str field into a tuple of strings.
    """
    if isinstance(values := metadata[field], str):
        metadata[field] = (values,)
    elif isinstance(values, Iterable):
        metadata[field] = tuple(map(_stringify, values))
    else:
        metadata[field] = (_stringify(values),)


def _sanitize_text(cls, metadata, field, /):
    if not isinstance(text := metadata[field], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} '{field}' must be a string")
    elif isinstance(text, str) and not (text := text.strip()):
        raise ValueError(f"{cls.__typename__} '{field}' cannot be empty")
    metadata[field] = coalesce(text)


def _sanitize_names(cls, metadata, /):
    """
    validate short/long identity of an option.

    rules
    - at least one of short/long must be given (TagError otherwise).
    - short is exactly one character; longer raises ShortNameTooLongError.
    - long has no whitespace and does not start with '-' (prefixes are added
      by the parser according to the option style).
    """
    short, long = metadata["short"], metadata["long"]
    if not isinstance(short, str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    if not isinstance(long, str | Unset):
        raise TypeError(f"{cls.__typename__} 'long' must be a string")
    if short is Unset and long is Unset:
        raise TagError(f"{cls.__typename__} must have at least one of 'short' or 'long'")
    if isinstance(short, str):
        if not short or short.isspace():
            raise ValueError(f"{cls.__typename__} 'short' cannot be empty")
        if len(short) > 1:
            raise ShortNameTooLongError(f"short names can only be 1 character long, not `{short}'")
        if short in "-=:/":
            raise ValueError(f"{cls.__typename__} 'short' cannot be {short!r}")
    if isinstance(long, str):
        if not long or re.search(r"\s", long) or long.startswith("-") or "=" in long:
            raise ValueError(f"{cls.__typename__} 'long' must be a non-empty name without '-' prefix, '=' or spaces")
    metadata["short"] = coalesce(short)
    metadata["long"] = coalesce(long)


class Option(metaclass=DescriptorType):
    """
    Named flag declaration bound to one typed field (or to a callback).

    Highlights
    - Identity: short (one character) and/or long name. Long names are matched
      case-insensitively and get the owning groups' namespaces prepended.
    - Arity comes from the bound annotation: bool and list[bool] take no
      argument, list[T] appends, dict[K, V] takes key:value entries,
      list[list[T]] collects terminated captures.
    - optional: the argument may be omitted (only attached forms like
      --name=value or -nvalue supply it); optional_value is then applied.
    - default: strings applied before every parse; env overrides them.
    - terminator: capture every following token until this exact token.

    State (per parse)
    - is_set: set by the command line or an ini file.
    - is_set_default: materialized from default or environment.
    """

    __introspectable__ = (
        "short",
        "long",
        "description",
        "required",
        "optional",
        "optional_value",
        "default",
        "default_mask",
        "value_name",
        "terminator",
        "base",
        "env",
        "env_delim",
        "ini_name",
        "no_ini",
        "hidden",
        "choices",
        "completer",
    )

    __displayable__ = (
        "short",
        "long",
        "description",
        "required",
        "default",
        "terminator",
    )

    def __new__(
            cls,
            short=Unset,
            long=Unset,
            description=Unset,
            *,
            required=False,
            optional=False,
            optional_value=(),
            default=(),
            default_mask=Unset,
            value_name=Unset,
            terminator=Unset,
            base=10,
            env=Unset,
            env_delim=Unset,
            ini_name=Unset,
            no_ini=False,
            hidden=False,
            choices=(),
            completer=Unset,
    ):
        """
        Construct an Option declaration.

        Parameters
        - short: Unset | str, one character, used as -x.
        - long: Unset | str, used as --name (matched case-insensitively).
        - description: Unset | str, help text.
        - required: bool, the parse fails unless the option is set or defaulted.
        - optional: bool, the argument may be omitted.
        - optional_value: str | Iterable, values applied when the argument is omitted.
        - default: str | Iterable, values applied before parsing.
        - default_mask: Unset | str, help text shown instead of the default ("-" hides it).
        - value_name: Unset | str, placeholder shown in help (--name=VALUE).
        - terminator: Unset | str, token that closes a capture.
        - base: int, radix for integer fields (0 detects 0x/0o/0b prefixes).
        - env: Unset | str, environment key that overrides default.
        - env_delim: Unset | str, splits an env value for list/map fields.
        - ini_name: Unset | str, key used in ini files.
        - no_ini: bool, exclude from ini read/write.
        - hidden: bool, suppress from help and completion.
        - choices: Iterable[str], allowed raw values.
        - completer: Unset | Callable[[str], list[str]], value completion hook.
        """
        metadata = {
            "short": short,
            "long": long,
            "description": description,
            "required": bool(required),
            "optional": bool(optional),
            "optional_value": optional_value,
            "default": default,
            "default_mask": default_mask,
            "value_name": value_name,
            "terminator": terminator,
            "base": base,
            "env": env,
            "env_delim": env_delim,
            "ini_name": ini_name,
            "no_ini": bool(no_ini),
            "hidden": bool(hidden),
            "choices": choices,
            "completer": completer,
        }

        _sanitize_names(cls, metadata)
        _sanitize_text(cls, metadata, "description")
        _sanitize_strings(cls, metadata, "default")
        _sanitize_strings(cls, metadata, "optional_value")
        _sanitize_strings(cls, metadata, "choices")

        for field in ("default_mask", "value_name", "terminator", "env", "env_delim", "ini_name"):
            if not isinstance(value := metadata[field], str | Unset):
                raise TypeError(f"{cls.__typename__} '{field}' must be a string")
            elif isinstance(value, str) and not value and field != "default_mask":
                raise ValueError(f"{cls.__typename__} '{field}' cannot be empty")
            metadata[field] = coalesce(value)

        if not isinstance(base, int) or isinstance(base, bool):
            raise TypeError(f"{cls.__typename__} 'base' must be an integer")
        elif base != 0 and not 2 <= base <= 36:
            raise TagError(f"{cls.__typename__} 'base' must be 0 or between 2 and 36, not {base}")

        if completer is not Unset and not callable(completer):
            raise TypeError(f"{cls.__typename__} 'completer' must be callable")
        metadata["completer"] = coalesce(completer)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        self._callback = Unset
        self._arity = 0
        self._target = Unset
        self._attribute = Unset
        self._annotation = Unset
        self._group = Unset
        self._pristine = Unset
        self._default_value = Unset
        self._set = False
        self._set_default = False
        return self

    def __copy__(self):
        # __new__ validates its tags, so clones bypass it.
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        return clone

    def __bind__(self, target, attribute=Unset, annotation=Unset):
        """
        Return a copy of this declaration bound to target.<attribute>.

        Value options need an annotation; callback options (@option) bind
        their function to target and ignore the annotation.
        """
        if self._group is not Unset:
            raise ValueError(f"{type(self).__typename__} `{self}' is already owned by a group")

        clone = copy.copy(self)
        clone._target = target
        clone._attribute = attribute

        if self._callback is not Unset:
            callback = self._callback
            if isinstance(callback, types.FunctionType) and target is not Unset:
                callback = callback.__get__(target)
                if isinstance(attribute, str):
                    setattr(target, attribute, callback)
            clone._callback = callback
            clone._arity = codec.arity(callback)
            if clone._terminator is not None:
                raise TagError(f"callback {type(self).__typename__} `{self}' cannot declare a terminator")
            return clone

        if target is Unset or not isinstance(attribute, str):
            raise TypeError(f"{type(self).__typename__} `{self}' must be bound to a target attribute")
        if annotation is Unset:
            raise TypeError(f"{type(self).__typename__} `{self}' needs a type annotation for {attribute!r}")

        clone._annotation = annotation
        value = getattr(target, attribute, Unset)
        if value is Unset or isinstance(value, Option):
            setattr(target, attribute, value := codec.zero(annotation))
        clone._pristine = copy.deepcopy(value)

        if clone._terminator is not None and clone.shape not in (codec.Shape.LIST, codec.Shape.NESTED, codec.Shape.MAP):
            raise TagError(f"terminated {type(self).__typename__} `{self}' must be a list or map field")
        if clone._optional and clone._terminator is not None:
            raise TagError(f"terminated {type(self).__typename__} `{self}' cannot be optional")
        return clone

    @property
    def action(self):
        if self._callback is not Unset:
            return Action.INVOKE
        if self.shape is codec.Shape.BOOLEAN:
            return Action.BOOLEAN
        return Action.STORE

    @property
    def shape(self):
        return codec.shape(self._annotation) if self._annotation is not Unset else codec.Shape.SCALAR

    @property
    def callback(self):
        return self._callback

    @property
    def arity(self):
        return self._arity

    @property
    def target(self):
        return self._target

    @property
    def attribute(self):
        return self._attribute

    @property
    def annotation(self):
        return self._annotation

    @property
    def group(self):
        return self._group

    @property
    def is_boolean(self):
        return self.action is Action.BOOLEAN

    @property
    def is_callback(self):
        return self.action is Action.INVOKE

    @property
    def is_repeatable(self):
        return not self.is_callback and isinstance(self.value, list)

    @property
    def is_map(self):
        return self.shape is codec.Shape.MAP

    @property
    def is_nested(self):
        return self.shape is codec.Shape.NESTED

    @property
    def is_terminated(self):
        return self._terminator is not None

    @property
    def can_argument(self):
        """
        Whether the option consumes an argument (booleans and zero-arity callbacks do not).
        """
        if self.is_callback:
            return self._arity > 0
        return not self.is_boolean

    @property
    def is_set(self):
        return self._set

    @property
    def is_set_default(self):
        return self._set_default

    @property
    def value(self):
        if self._target is Unset or not isinstance(self._attribute, str):
            return None
        return getattr(self._target, self._attribute)

    @value.setter
    def value(self, value):
        setattr(self._target, self._attribute, value)

    @property
    def pristine(self):
        """
        Field value the option was bound with (before defaults).
        """
        return self._pristine

    @property
    def default_value(self):
        """
        Field value right after defaults were materialized (used by ini writers).
        """
        return self._default_value

    @property
    def long_name(self):
        """
        Long name with every owning group's namespace prepended.
        """
        if self._long is None:
            return None
        if self._group is Unset:
            return self._long
        return self._group.namespace_prefix + self._long

    @property
    def env_key(self):
        if self._env is None:
            return None
        if self._group is Unset:
            return self._env
        return self._group.env_prefix + self._env

    @property
    def ini_key(self):
        return coalesce(self._ini_name, None) or (self._attribute if isinstance(self._attribute, str) else None) or self.long_name or self._short

    @property
    def label(self):
        return f"flag `{self}'"

    def set(self, raw):
        """
        Apply one occurrence from the command line or an ini file.

        The first real occurrence of a list/map field that only holds default
        values clears them first.
        """
        if not self._set and self._set_default and self.action is Action.STORE and isinstance(self.value, list | dict):
            self.value = type(self.value)()
        codec.set_value(self, raw)
        self._set = True

    def apply_optional(self):
        """
        Apply optional_value (or a bare occurrence when there is none).
        """
        if not self._optional_value:
            return self.set(None)
        for raw in self._optional_value:
            self.set(raw)

    def capture(self):
        """
        Open a new terminated capture: plain lists/maps are replaced, nested
        lists gain a new inner list.
        """
        if self.is_nested:
            if self.value is None or not self._set and self._set_default:
                self.value = []
            self.value.append([])
        else:
            self.value = {} if self.is_map else []
        self._set = True

    def reset(self, environ):
        """
        Restore the pristine field and materialize default/env values.
        """
        self._set = False
        self._set_default = False
        if self.is_callback:
            return

        self.value = copy.deepcopy(self._pristine)

        values = self._default
        if (key := self.env_key) is not None and (raw := environ.get(key)) is not None:
            if self._env_delim is not None and self.shape in (codec.Shape.LIST, codec.Shape.MAP):
                values = tuple(raw.split(self._env_delim))
            else:
                values = (raw,)

        for raw in values:
            codec.set_value(self, raw)
        self._set_default = bool(values)
        self._default_value = copy.deepcopy(self.value)

    def __str__(self):
        if self._group is not Unset:
            short, long = self._group.prefixes
        else:
            short, long = "-", "--"
        names = []
        if self._short is not None:
            names.append(short + self._short)
        if self._long is not None:
            names.append(long + self.long_name)
        return ", ".join(names)


class Cardinal(metaclass=DescriptorType):
    """
    Positional slot bound to one typed field.

    A list-typed cardinal is trailing: it keeps absorbing positional tokens and
    must be the last one of its command. When required, a trailing cardinal
    needs at least one token.
    """

    __introspectable__ = (
        "name",
        "description",
        "required",
        "hidden",
        "completer",
    )

    def __new__(cls, name=Unset, /, description=Unset, *, required=False, hidden=False, completer=Unset):
        metadata = {
            "name": name,
            "description": description,
            "required": bool(required),
            "hidden": bool(hidden),
            "completer": completer,
        }
        _sanitize_text(cls, metadata, "name")
        _sanitize_text(cls, metadata, "description")

        if completer is not Unset and not callable(completer):
            raise TypeError(f"{cls.__typename__} 'completer' must be callable")
        metadata["completer"] = coalesce(completer)

        self = super().__new__(cls)
        for field, object in metadata.items():
            setattr(self, "_" + field, object)

        self._target = Unset
        self._attribute = Unset
        self._group = Unset
        self._annotation = Unset
        self._pristine = Unset
        self._set = False
        return self

    def __copy__(self):
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        return clone

    def __bind__(self, target, attribute, annotation=str):
        clone = copy.copy(self)
        clone._target = target
        clone._attribute = attribute
        clone._annotation = coalesce(annotation, str)
        clone._name = coalesce(self._name, None) or attribute

        if clone.shape in (codec.Shape.NESTED, codec.Shape.MAP):
            raise TagError(f"{type(self).__typename__} `{clone._name}' must be a scalar or list field")

        value = getattr(target, attribute, Unset)
        if value is Unset or isinstance(value, Cardinal):
            setattr(target, attribute, value := codec.zero(clone._annotation))
        clone._pristine = copy.deepcopy(value)
        return clone

    # cardinals share the codec contract with options
    callback = Unset
    choices = ()
    base = 10

    @property
    def shape(self):
        return codec.shape(self._annotation)

    @property
    def annotation(self):
        return self._annotation

    @property
    def is_repeatable(self):
        return isinstance(self.value, list)

    @property
    def is_set(self):
        return self._set

    @property
    def value(self):
        return getattr(self._target, self._attribute)

    @value.setter
    def value(self, value):
        setattr(self._target, self._attribute, value)

    @property
    def label(self):
        return f"argument `{self._name}`"

    def set(self, raw):
        codec.set_value(self, raw)
        self._set = True

    def reset(self, environ):
        self._set = False
        self.value = copy.deepcopy(self._pristine)

    def __str__(self):
        return self._name


def option(*args, **kwargs):
    """
    Decorator for callback options.

    Usage
        class Settings:
            @option("c", "config", "Load an ini file")
            def config(self, path: str): ...

    Behavior
    - Builds an Option from the arguments and binds the decorated function as
      its callback; the callback takes zero arguments (a switch) or one
      argument converted from its annotation (str when missing).
    - A callback may raise ParseError (propagated as is) or any exception
      (wrapped into a ParseError of kind UNKNOWN).
    """
    declaration = Option(*args, **kwargs)

    @rename("option")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@option() must be applied to a callable")
        if declaration._callback is not Unset:
            raise TypeError("@option() must be applied only once")
        declaration._callback = callback
        return declaration

    return wrapper


__all__ = (
    "Action",
    "Option",
    "Cardinal",
    "option",
)
