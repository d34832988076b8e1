"""
Argoflags tokenizer (option-form classification of single arguments).

Forms
- POSIX style: "--name", "--name=value", "-x", "-xvalue", "-x=value", "-abc".
- Windows style: everything above plus "/name", "/name:value", "/x", "/x:value".

Reserved tokens
- "--" alone is never an option name (the parser treats it as the double-dash
  separator or as a plain positional).
- "-" alone is a positional (conventionally stdin).
"""
import enum
import os


class OptionStyle(enum.Enum):
    """
    Option prefix conventions understood by the tokenizer.
    """
    POSIX = "posix"
    WINDOWS = "windows"

    @classmethod
    def native(cls):
        return cls.WINDOWS if os.name == "nt" else cls.POSIX

    @property
    def prefixes(self):
        """
        (short prefix, long prefix) used when printing names.
        """
        return ("/", "/") if self is OptionStyle.WINDOWS else ("-", "--")


def is_option(argument, style=OptionStyle.POSIX, /):
    """
    Return whether argument is option-shaped.
    """
    if len(argument) < 2:
        return False
    if argument.startswith("-"):
        return True
    return style is OptionStyle.WINDOWS and argument.startswith("/")


def strip_prefix(argument, style=OptionStyle.POSIX, /):
    """
    Split argument into (prefix, body, is_long).

    - "--name" is long, "-x" is short.
    - "/name" is long when the name part (before ':') has more than one
      character, short otherwise.
    """
    if argument.startswith("--"):
        return "--", argument[2:], True
    if argument.startswith("-"):
        return "-", argument[1:], False
    if style is OptionStyle.WINDOWS and argument.startswith("/"):
        body = argument[1:]
        return "/", body, len(body.partition(":")[0]) > 1
    return "", argument, False


def split_name_value(prefix, body, is_long=False, /):
    """
    Split body once into (name, delimiter, value); value is None without delimiter.

    "/" forms use ':' as delimiter, "-" and "--" forms use '='.
    """
    delimiter = ":" if prefix == "/" else "="
    name, found, value = body.partition(delimiter)
    if not found:
        return body, "", None
    return name, delimiter, value


__all__ = (
    "OptionStyle",
    "is_option",
    "strip_prefix",
    "split_name_value",
)
