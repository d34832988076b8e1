"""
Argoflags faults (parse errors) and rendering.

Scope
- ErrorKind: the stable taxonomy every parse failure belongs to. The numeric
  values are part of the public contract and are never reshuffled.
- ParseError and one subclass per kind: carry the user-facing message plus
  runtime options (program name, palette switches, ...) and know how to render
  themselves through rich.
- IniError: a ParseError that also knows the file and line it came from.
- trigger(): central entry point that merges runtime options into an error and
  surfaces it (print when running as a shell, then raise).

Message style
- Flags are quoted the way users typed them: "unknown flag `x'".
- Messages are one sentence, lowercase-first unless they start with a name.

Integration
- The parser builds errors at their origin and hands them to trigger() with
  prog/shell/colorful/fancy options. Errors never get re-wrapped on the way up.
- __main__ may expose __styles__ (palette overrides) and __codes__ (code labels).
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)


class ErrorKind(IntEnum):
    """
    canonical parse error kinds (stable identifiers).

    kinds
    - UNKNOWN: generic failure, also used for errors raised by callback options.
    - EXPECTED_ARGUMENT: an option needs an argument that was not supplied.
    - UNKNOWN_FLAG: an option name does not resolve in the active scope.
    - UNKNOWN_GROUP: an ini section does not match any group.
    - MARSHAL: a value could not be converted to the field type.
    - HELP: the built-in help flag was used; the message is the help text.
    - NO_ARGUMENT_FOR_BOOL: a boolean flag received an attached argument.
    - REQUIRED: a required option, argument or command is missing.
    - SHORT_NAME_TOO_LONG: a short name longer than one character was declared.
    - TAG: invalid declaration metadata.
    - TOO_MANY_ARGS: a strict command received surplus positional arguments.
    """
    UNKNOWN              = 0
    EXPECTED_ARGUMENT    = 1
    UNKNOWN_FLAG         = 2
    UNKNOWN_GROUP        = 3
    MARSHAL              = 4
    HELP                 = 5
    NO_ARGUMENT_FOR_BOOL = 6
    REQUIRED             = 7
    SHORT_NAME_TOO_LONG  = 8
    TAG                  = 9
    TOO_MANY_ARGS        = 10

    @property
    def title(self):
        """
        human label for headers ("unknown flag", "no argument for bool", ...).
        """
        return self.name.lower().replace("_", " ")

    def normalize(self):
        """
        return a host-normalized label for this kind.

        the host application can provide a __codes__ mapping in __main__ to
        override the default label (the lowercase kind name with hyphens).
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.name.lower().replace("_", "-")))


class ParseError(Exception):
    """
    base class of every error the parser reports.

    attributes
    - kind: ErrorKind of the failure (class level, one subclass per kind).
    - message: the user-facing sentence (also what str() returns).
    - options: read-only runtime context (prog, shell, colorful, fancy, hint).
    """
    kind = ErrorKind.UNKNOWN

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__}() message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __rich__(self):
        main = __import__("__main__")

        if self.kind is ErrorKind.HELP:
            return Text(self.message)

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            return Text(str(fragment), styles[style] if colorful else "")

        header = Text.assemble(
            "[ ",
            text(getattr(main, "__prog__", self.options.get("prog", "")), "prog-name"),
            " — ",
            text(self.kind.normalize(), "code"),
            " | ",
            text(self.kind.title, "error-title"),
            " ]",
        )
        message = text(self.message, "error-message")
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self):
        if self.options.get("shell", False):
            if self.kind is ErrorKind.HELP:
                Console().print(self)
            else:
                console.print(self)
        raise self

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        clone = type(self)(self.message, **{**self.options, **overrides})
        clone.__cause__ = self.__cause__
        return clone


class ExpectedArgumentError(ParseError):
    kind = ErrorKind.EXPECTED_ARGUMENT


class UnknownFlagError(ParseError):
    kind = ErrorKind.UNKNOWN_FLAG


class UnknownGroupError(ParseError):
    kind = ErrorKind.UNKNOWN_GROUP


class MarshalError(ParseError):
    kind = ErrorKind.MARSHAL


class HelpError(ParseError):
    kind = ErrorKind.HELP


class NoArgumentForBoolError(ParseError):
    kind = ErrorKind.NO_ARGUMENT_FOR_BOOL


class RequiredError(ParseError):
    kind = ErrorKind.REQUIRED


class ShortNameTooLongError(ParseError):
    kind = ErrorKind.SHORT_NAME_TOO_LONG


class TagError(ParseError):
    kind = ErrorKind.TAG


class TooManyArgsError(ParseError):
    kind = ErrorKind.TOO_MANY_ARGS


class IniError(ParseError):
    """
    ini syntax error with its origin.

    the file and line live in options so that __replace__ keeps them; str()
    renders as "file:line: message".
    """

    @property
    def file(self):
        return self.options.get("file", "")

    @property
    def line(self):
        return self.options.get("line", 0)

    def __str__(self):
        return f"{self.file}:{self.line}: {self.message}"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see ParseError).
    - options are merged through __replace__ before triggering; when shell is
      true the fault is printed via rich, and it is always raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "ErrorKind",
    "ParseError",
    "ExpectedArgumentError",
    "UnknownFlagError",
    "UnknownGroupError",
    "MarshalError",
    "HelpError",
    "NoArgumentForBoolError",
    "RequiredError",
    "ShortNameTooLongError",
    "TagError",
    "TooManyArgsError",
    "IniError",
    "trigger",
)
