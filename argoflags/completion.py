"""
Argoflags shell completion.

Completion(parser).complete(args) replays args against the parser's name
tables (without touching any field or required check) and returns the sorted
candidates for the last argument:

- "--na"          long names starting with "na"
- "-"             every short name
- "-x" / "-xpar"  value completions when x takes an argument
- "--name=pa"     value completions, prefixed with "--name="
- "pa" after an argument-taking option, for a pending cardinal, or as a
  command name

Value completions come from the declaration's completer callable, or from a
__complete__(match) classmethod on the field type (see Filename).

Shell integration: when the environment variable ARGOFLAGS_COMPLETION is set,
parse_args() prints the candidates of its arguments one per line and exits.
With the value "verbose", descriptions are printed next to the names.
"""
import glob

from rich.console import Console
from rich.text import Text

from . import codec
from .parser import Options
from .tokens import is_option, split_name_value, strip_prefix


class Filename(str):
    """
    str field type completing to existing paths.
    """

    @classmethod
    def __complete__(cls, match):
        return glob.glob(glob.escape(match) + "*")


def _value_type(slot):
    if getattr(slot, "is_callback", False):
        return codec.parameter_of(slot.callback)
    annotation = slot.annotation
    match codec.shape(annotation):
        case codec.Shape.LIST:
            return codec.element_of(annotation)
        case codec.Shape.NESTED:
            return codec.element_of(codec.element_of(annotation))
    return annotation


def _consume(positionals, count, /):
    # a trailing list cardinal keeps absorbing tokens
    for _ in range(count):
        if not positionals or positionals[0].is_repeatable:
            break
        positionals.pop(0)


class Completion:
    """
    Candidate generator bound to one parser.
    """

    def __init__(self, parser):
        self.parser = parser

    def _values(self, slot, prefix, match):
        if slot.completer is not None:
            items = slot.completer(match)
        elif callable(complete := getattr(codec.unwrap(_value_type(slot))[0], "__complete__", None)):
            items = complete(match)
        else:
            items = ()
        return [(prefix + item, None) for item in items]

    def _longs(self, scope, prefix, match):
        return [
            (prefix + option.long_name, option.description)
            for option in scope.longs.values()
            if not option.hidden and option.long_name.startswith(match)
        ]

    def _shorts(self, scope, prefix, match):
        if match:
            return [(prefix + match, None)]
        return [
            (prefix + name, option.description)
            for name, option in scope.shorts.items()
            if not option.hidden
        ]

    def _candidates(self, args):
        args = list(args) or [""]
        style = self.parser.style
        double_dash = bool(self.parser.flags & Options.PASS_DOUBLE_DASH)
        after_non_option = bool(self.parser.flags & Options.PASS_AFTER_NON_OPTION)

        command = self.parser
        scope = command.scope()
        positionals = list(command.cardinals)
        pending = None

        index = 0
        while index < len(args) - 1:
            argument = args[index]
            index += 1
            pending = None

            if double_dash and argument == "--":
                _consume(positionals, len(args) - 1 - index)
                break

            if not is_option(argument, style):
                if positionals:
                    if not positionals[0].is_repeatable:
                        positionals.pop(0)
                elif (child := scope.commands.get(argument)) is not None:
                    command, scope, positionals = child, child.scope(), list(child.cardinals)
                continue

            prefix, body, is_long = strip_prefix(argument, style)
            name, _, value = split_name_value(prefix, body, is_long)
            if value is not None:
                continue

            option, attached = None, False
            if is_long:
                option = scope.longs.get(name.lower())
            else:
                for position, character in enumerate(name):
                    if (option := scope.shorts.get(character)) is None:
                        break
                    if position == 0 and option.can_argument and len(name) > 1:
                        attached = True
                        break

            if option is None and after_non_option:
                _consume(positionals, len(args) - 1 - index)
                break
            if option is not None and option.can_argument and not option.optional and not attached:
                if option.is_terminated:
                    continue
                if index < len(args) - 1:
                    index += 1
                else:
                    pending = option

        last = args[-1]
        if pending is not None:
            return self._values(pending, "", last)

        if last == style.prefixes[0] or is_option(last, style):
            prefix, body, is_long = strip_prefix(last, style)
            name, delimiter, value = split_name_value(prefix, body, is_long)
            if value is None and not is_long:
                option = scope.shorts.get(name[:1])
                if option is not None and option.can_argument:
                    return self._values(option, prefix + name[:1], name[1:])
                return self._shorts(scope, prefix, name)
            if value is not None:
                option = scope.longs.get(name.lower()) if is_long else scope.shorts.get(name)
                return [] if option is None else self._values(option, prefix + name + delimiter, value)
            return self._longs(scope, prefix, name)

        if positionals:
            return self._values(positionals[0], "", last)

        return [
            (child.name, child.description)
            for child in command.commands
            if not child.hidden and child.name.startswith(last)
        ]

    def complete(self, args):
        """
        Return the sorted candidates for the last element of args.
        """
        return sorted(item for item, _ in self._candidates(args))

    def print(self, args, *, verbose=False):
        """
        Print candidates one per line (with descriptions when verbose).
        """
        console = Console(highlight=False, soft_wrap=True)
        candidates = sorted(self._candidates(args), key=lambda candidate: candidate[0])
        width = max((len(item) for item, _ in candidates), default=0)
        for item, description in candidates:
            if verbose and description:
                console.print(Text.assemble(item.ljust(width), "  # ", str(description)))
            else:
                console.print(Text(item))


__all__ = (
    "Completion",
    "Filename",
)
