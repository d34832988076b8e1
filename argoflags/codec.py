"""
Argoflags value codec (string tokens <-> typed fields).

Overview
- Shapes
  • Every bound annotation falls into one Shape: BOOLEAN (bool or list[bool]),
    SCALAR, LIST, NESTED (list[list[T]], filled by terminated captures) or MAP.
  • Optional[T] / T | None and Annotated[T, ...] are unwrapped first.

- Conversion
  • convert(text, annotation, base) parses one token: int (radix aware, bit
    width aware through Int8..UInt64), float, str, bool, timedelta (duration
    strings such as "1h30m" or "250ms"), Enum (by name, then by value), or any
    other callable type (Path, Filename, ...).
  • set_value(slot, raw) applies one token to an Option/Cardinal: assign,
    append, insert a map entry or invoke a callback. Conversion failures are
    wrapped into MarshalError with the flag name and expected type.

- Formatting
  • to_string(value, annotation, base) renders a value for help defaults.
  • to_strings(value, annotation, base) renders one string per ini line.

Notes
- The codec never decides arity on its own; the parser asks can_argument /
  shape questions through the bound Option.
"""
import datetime
import enum
import inspect
import re
import types
import typing
from typing import Annotated, Union, get_args, get_origin

from .faults import MarshalError, ParseError, TagError
from .utils import Unset, coalesce


class Bits:
    """
    Width marker for Annotated integer aliases (Annotated[int, Bits(16)]).
    """
    __slots__ = ("size", "signed")

    def __init__(self, size, signed=True):
        if size not in (8, 16, 32, 64):
            raise ValueError("bits size must be one of 8, 16, 32 or 64")
        self.size = size
        self.signed = bool(signed)

    @property
    def bounds(self):
        if self.signed:
            return -(1 << (self.size - 1)), (1 << (self.size - 1)) - 1
        return 0, (1 << self.size) - 1

    def __repr__(self):
        return f"{'int' if self.signed else 'uint'}{self.size}"


Int8 = Annotated[int, Bits(8)]
Int16 = Annotated[int, Bits(16)]
Int32 = Annotated[int, Bits(32)]
Int64 = Annotated[int, Bits(64)]
UInt8 = Annotated[int, Bits(8, signed=False)]
UInt16 = Annotated[int, Bits(16, signed=False)]
UInt32 = Annotated[int, Bits(32, signed=False)]
UInt64 = Annotated[int, Bits(64, signed=False)]


class Shape(enum.Enum):
    BOOLEAN = "boolean"
    SCALAR = "scalar"
    LIST = "list"
    NESTED = "nested"
    MAP = "map"


def unwrap(annotation, /):
    """
    Strip Annotated/Optional layers and return (annotation, bits).
    """
    bits = None
    if get_origin(annotation) is Annotated:
        annotation, *extras = get_args(annotation)
        bits = next((extra for extra in extras if isinstance(extra, Bits)), None)
    if get_origin(annotation) in (Union, types.UnionType):
        arguments = [argument for argument in get_args(annotation) if argument is not type(None)]
        if len(arguments) == 1:
            inner, nested = unwrap(arguments[0])
            return inner, bits or nested
    return annotation, bits


def shape(annotation, /):
    annotation, _ = unwrap(annotation)
    origin = get_origin(annotation)
    if annotation is bool:
        return Shape.BOOLEAN
    if origin is list or annotation is list:
        element = element_of(annotation)
        if unwrap(element)[0] is bool:
            return Shape.BOOLEAN
        if get_origin(unwrap(element)[0]) is list:
            return Shape.NESTED
        return Shape.LIST
    if origin is dict or annotation is dict:
        return Shape.MAP
    return Shape.SCALAR


def element_of(annotation, /):
    """
    Element type of list[T] (str when unparameterized).
    """
    annotation, _ = unwrap(annotation)
    arguments = get_args(annotation)
    return arguments[0] if arguments else str


def items_of(annotation, /):
    """
    (key, value) types of dict[K, V] (str, str when unparameterized).
    """
    annotation, _ = unwrap(annotation)
    arguments = get_args(annotation)
    return arguments if len(arguments) == 2 else (str, str)


def typename(annotation, /):
    """
    Readable type description used in error messages ("int", "uint8", "duration", "list[int]").
    """
    if annotation is Unset:
        return "value"
    inner, bits = unwrap(annotation)
    if bits is not None:
        return repr(bits)
    if inner is datetime.timedelta:
        return "duration"
    if get_origin(inner) in (list, dict):
        return "%s[%s]" % (get_origin(inner).__name__, ", ".join(map(typename, get_args(inner))))
    return getattr(inner, "__name__", str(inner))


def _container(annotation, /):
    inner, _ = unwrap(annotation)
    if inner is list or get_origin(inner) is list:
        return []
    if inner is dict or get_origin(inner) is dict:
        return {}
    return None


def zero(annotation, /):
    """
    Zero value for a field type: False, 0, 0.0, "", timedelta(0), [] or {}.
    Containers start empty even when Optional; other Optional and unknown
    types start as None.
    """
    if (container := _container(annotation)) is not None:
        return container
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    if get_origin(annotation) in (Union, types.UnionType) and type(None) in get_args(annotation):
        return None
    inner, _ = unwrap(annotation)
    if inner is bool:
        return False
    if inner in (int, float, str):
        return inner()
    if inner is datetime.timedelta:
        return datetime.timedelta(0)
    return None


_booleans = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}


def parse_bool(text, /):
    try:
        return _booleans[text]
    except KeyError:
        raise ValueError(f"invalid boolean {text!r}") from None


# microseconds per unit
_units = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "ms": 1000,
    "s": 1000000,
    "m": 60000000,
    "h": 3600000000,
}


def parse_duration(text, /):
    """
    Parse a duration such as "300ms", "-1.5h" or "2h45m30s" into a timedelta.

    A bare "0" is accepted; any other number needs a unit (ns, us, µs, ms, s, m, h).
    """
    sign, body = (-1, text[1:]) if text.startswith("-") else (1, text.removeprefix("+"))
    if body == "0":
        return datetime.timedelta(0)
    if not body or not re.fullmatch(r"((\d+\.?\d*|\.\d+)(ns|us|µs|ms|s|m|h))+", body):
        raise ValueError(f"invalid duration {text!r}")
    total = 0.0
    for number, unit in re.findall(r"(\d+\.?\d*|\.\d+)(ns|us|µs|ms|s|m|h)", body):
        total += _units[unit] * float(number)
    return datetime.timedelta(microseconds=round(total)) * sign


def format_duration(value, /):
    """
    Render a timedelta in the grammar parse_duration() reads ("1h30m0s", "1.5s", "250ms").
    """
    micros = (value.days * 86400 + value.seconds) * 1000000 + value.microseconds
    sign, micros = ("-" if micros < 0 else ""), abs(micros)
    if micros == 0:
        return "0s"
    if micros < 1000:
        return f"{sign}{micros}us"
    if micros < 1000000:
        return f"{sign}{_trim(micros, 1000)}ms"
    hours, micros = divmod(micros, 3600 * 1000000)
    minutes, micros = divmod(micros, 60 * 1000000)
    text = f"{_trim(micros, 1000000)}s"
    if hours or minutes:
        text = f"{minutes}m" + text
    if hours:
        text = f"{hours}h" + text
    return sign + text


def _trim(amount, scale):
    whole, fraction = divmod(amount, scale)
    if not fraction:
        return str(whole)
    return f"{whole}.{str(fraction).rjust(len(str(scale)) - 1, '0').rstrip('0')}"


def format_int(value, base=10, /):
    if base in (0, 10):
        return str(value)
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    sign, value = ("-" if value < 0 else ""), abs(value)
    text = ""
    while True:
        value, digit = divmod(value, base)
        text = digits[digit] + text
        if not value:
            return sign + text


def convert(text, annotation, base=10, /):
    """
    Convert one token into annotation; raises ValueError/TypeError/OverflowError.
    """
    inner, bits = unwrap(annotation)
    if inner is bool:
        return parse_bool(text)
    if inner is int:
        value = int(text.replace("_", "") if base == 0 else text, base)
        if bits is not None:
            low, high = bits.bounds
            if not low <= value <= high:
                raise OverflowError(f"value {text!r} out of range for {bits!r}")
        return value
    if inner is float:
        return float(text)
    if inner is str or inner is Unset or inner is typing.Any:
        return text
    if inner is datetime.timedelta:
        return parse_duration(text)
    if isinstance(inner, type) and issubclass(inner, enum.Enum):
        try:
            return inner[text]
        except KeyError:
            return inner(text)
    if callable(inner):
        return inner(text)
    raise TypeError(f"unsupported field type {typename(annotation)}")


def to_string(value, annotation=Unset, base=10, /):
    """
    Render a value for display (help defaults, ini scalars).
    """
    inner, _ = unwrap(annotation)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int) and not isinstance(value, enum.Enum):
        return format_int(value, base)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, datetime.timedelta):
        return format_duration(value)
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, list):
        element = element_of(annotation) if annotation is not Unset else Unset
        return "[%s]" % ", ".join(to_string(item, element, base) for item in value)
    if isinstance(value, dict):
        key, item = items_of(annotation) if annotation is not Unset else (Unset, Unset)
        return "{%s}" % ", ".join(
            f"{to_string(name, key, base)}:{to_string(entry, item, base)}" for name, entry in value.items()
        )
    return "" if value is None else str(value)


def to_strings(value, annotation=Unset, base=10, /):
    """
    Render a value as ini lines: one per list element, "key:value" per map entry.
    """
    if isinstance(value, list):
        element = element_of(annotation) if annotation is not Unset else Unset
        return [to_string(item, element, base) for item in value]
    if isinstance(value, dict):
        key, item = items_of(annotation) if annotation is not Unset else (Unset, Unset)
        return [f"{to_string(name, key, base)}:{to_string(entry, item, base)}" for name, entry in value.items()]
    return [to_string(value, annotation, base)]


def arity(callback, /):
    """
    Number of positional parameters a callback option takes (0 or 1).
    """
    parameters = [
        parameter for parameter in inspect.signature(callback).parameters.values()
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD)
    ]
    if len(parameters) > 1:
        raise TagError(f"callback {getattr(callback, '__name__', callback)!r} must take zero or one argument")
    return len(parameters)


def parameter_of(callback, /):
    """
    Annotation of a callback's single parameter (str when missing).
    """
    try:
        hints = typing.get_type_hints(callback, include_extras=True)
    except (NameError, TypeError):
        hints = {}
    for name, parameter in inspect.signature(callback).parameters.items():
        return hints.get(name, str if parameter.annotation is parameter.empty else parameter.annotation)
    return str


def _marshal(slot, annotation, text, exception):
    return MarshalError(
        f"invalid argument for {slot.label} (expected {typename(annotation)}): {exception}",
        value=text,
    )


def _convert(slot, text, annotation):
    try:
        return convert(text, annotation, slot.base)
    except (ValueError, TypeError, OverflowError) as exception:
        raise _marshal(slot, annotation, text, exception) from exception


def _invoke(slot, raw):
    callback = slot.callback
    if slot.arity == 0:
        arguments = ()
    else:
        annotation = parameter_of(callback)
        arguments = (zero(annotation) if raw is None else _convert(slot, raw, annotation),)

    try:
        result = callback(*arguments)
    except ParseError:
        raise
    except Exception as exception:
        raise ParseError(str(exception)) from exception

    if isinstance(result, ParseError):
        raise result
    if isinstance(result, Exception):
        raise ParseError(str(result)) from result


def set_value(slot, raw, /):
    """
    Apply one raw token (or None when no argument was attached) to a bound slot.

    behavior
    - callback: invoke with zero or one converted argument; errors propagate.
    - boolean: None/"" means true, otherwise the text is parsed; lists append.
    - list: append the converted element.
    - nested list: append to the innermost (current capture) list.
    - map: split once on ":"; a missing value part converts "".
    - scalar: assign; None leaves the field untouched.
    - choices: the raw text must be one of them.
    """
    if slot.callback is not Unset:
        return _invoke(slot, raw)

    annotation = slot.annotation
    if slot.value is None and (container := _container(annotation)) is not None:
        slot.value = container

    if raw is not None and slot.choices and raw not in slot.choices:
        raise MarshalError(
            f"invalid argument for {slot.label}: `{raw}' is not one of {', '.join(slot.choices)}",
            value=raw,
        )

    match shape(annotation):
        case Shape.BOOLEAN:
            if raw is None or raw == "":
                flag = True
            else:
                flag = _convert(slot, raw, bool)
            if isinstance(slot.value, list):
                slot.value.append(flag)
            else:
                slot.value = flag
        case Shape.LIST:
            if raw is not None:
                slot.value.append(_convert(slot, raw, element_of(annotation)))
        case Shape.NESTED:
            if raw is not None:
                if not slot.value:
                    slot.value.append([])
                slot.value[-1].append(_convert(slot, raw, element_of(element_of(annotation))))
        case Shape.MAP:
            if raw is not None:
                key, value = items_of(annotation)
                name, _, entry = raw.partition(":")
                slot.value[_convert(slot, name, key)] = _convert(slot, entry, value)
        case Shape.SCALAR:
            if raw is not None:
                slot.value = _convert(slot, raw, annotation)


__all__ = (
    # Width aliases
    "Bits",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",

    # Shapes
    "Shape",
    "shape",

    # Conversion
    "convert",
    "set_value",
    "parse_bool",
    "parse_duration",
    "format_duration",
    "to_string",
    "to_strings",
)
