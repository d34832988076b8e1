r"""
Argoflags parser (the resolution and parse state machine).

Overview
- Parser is the root Command of a descriptor tree plus the parse-time settings:
  behavior flags (Options), option style, namespace delimiters, the environment
  mapping used for env defaults and rendering switches.
- parse_args() walks the argument vector once, left to right:

    token            action
    ---------------  -------------------------------------------------------
    "--"             passthrough (PASS_DOUBLE_DASH) or plain positional
    non-option       bind to the next cardinal, select a child command,
                     passthrough (PASS_AFTER_NON_OPTION) or collect as leftover
    --name[=value]   resolve in the active scope (case-insensitive)
    -abc[=value]     resolve a cluster of short names left to right

  then verifies required options, required cardinals and command selection,
  and finally calls __execute__(leftovers) on the selected command's target.

Errors
- Every failure is a ParseError raised at its origin. With PRINT_ERRORS it is
  also rendered through rich (help to stdout, everything else to stderr).
- IGNORE_UNKNOWN turns unknown flags into leftovers; nothing else recovers.

Quick example:
    >>> class Settings:
    ...     verbose: list[bool] = Option("v", "verbose", "Show verbose debug information")
    ...     name: str = Option("n", "name", "A name", required=True)
    ...
    >>> settings = Settings()
    >>> Parser(settings, Options.NONE).parse_args(["-vv", "--name=Sam", "rest"])
    ['rest']
"""
import datetime
import enum
import os
import shlex
import sys
from collections import deque

from . import codec
from .arguments import Cardinal, Option, option
from .commands import Command, Group
from .help import render_help
from .faults import (
    ExpectedArgumentError,
    HelpError,
    NoArgumentForBoolError,
    ParseError,
    RequiredError,
    TooManyArgsError,
    UnknownFlagError,
    trigger,
)
from .tokens import OptionStyle, is_option, split_name_value, strip_prefix
from .utils import *

COMPLETION_ENVIRON = "ARGOFLAGS_COMPLETION"


class Options(enum.IntFlag):
    """
    Parser behavior flags.

    - HELP_FLAG: add -h/--help (and /? under the Windows style).
    - PASS_DOUBLE_DASH: everything after "--" is left uninterpreted.
    - IGNORE_UNKNOWN: unknown flags become leftovers instead of errors.
    - PRINT_ERRORS: render errors through rich before raising them.
    - PASS_AFTER_NON_OPTION: the first unmatched non-option ends option parsing.
    """
    NONE = 0
    HELP_FLAG = 1 << 0
    PASS_DOUBLE_DASH = 1 << 1
    IGNORE_UNKNOWN = 1 << 2
    PRINT_ERRORS = 1 << 3
    PASS_AFTER_NON_OPTION = 1 << 4
    DEFAULT = HELP_FLAG | PRINT_ERRORS | PASS_DOUBLE_DASH


class ParseState:
    """
    Mutable state of one parse_args() call.

    - remaining: tokens not consumed yet.
    - positionals: cardinals of the active command still accepting tokens.
    - command: the active (innermost selected) command.
    - scope: name tables of the active command (see commands.Scope).
    - output: leftover tokens returned to the caller.
    - required: pending required options and cardinals, in declaration order.
    """
    __slots__ = ("remaining", "positionals", "command", "scope", "output", "required")

    def __init__(self, command, arguments):
        self.remaining = deque(arguments)
        self.positionals = deque()
        self.command = None
        self.scope = None
        self.output = []
        self.required = {}
        self.descend(command)

    def descend(self, command):
        """
        Make command the active one; its cardinals replace the pending ones.
        """
        self.command = command
        self.scope = command.scope()
        self.positionals = deque(command.cardinals)
        for option in command.iter_options():
            if option.required and not (option.is_set or option.is_set_default):
                self.required.setdefault(option)
        for cardinal in self.positionals:
            if cardinal.required:
                self.required.setdefault(cardinal)

    def take(self):
        """
        Pop the whole remaining vector.
        """
        tokens = list(self.remaining)
        self.remaining.clear()
        return tokens

    def satisfy(self, slot):
        self.required.pop(slot, None)


def _program():
    return getattr(__import__("__main__"), "__prog__", None) or os.path.basename(sys.argv[0] or "") or "program"


def _accepts_dash(option):
    """
    Whether a value starting with '-' is plausible for option (negative numbers).
    """
    if option.is_callback:
        annotation = codec.parameter_of(option.callback)
    elif option.shape in (codec.Shape.LIST, codec.Shape.NESTED):
        annotation = codec.element_of(option.annotation)
        if option.is_nested:
            annotation = codec.element_of(annotation)
    else:
        annotation = option.annotation
    inner, _ = codec.unwrap(annotation)
    return inner in (int, float, datetime.timedelta)


class Parser(Command):
    """
    Root command of a descriptor tree and entry point of parsing.

    Construction
    - Parser(target, options): fields declared on target's class form the
      "Application Options" group; commands declared there become top-level
      commands.
    - Parser(options=...) plus add_group()/add_command() builds the tree by hand.

    Settings
    - name: program name used in usage lines and error headers
      (defaults to __main__.__prog__ or the basename of sys.argv[0]).
    - usage: text after the program name in the usage line ("[OPTIONS]").
    - style: OptionStyle (native by default).
    - namespace_delimiter / env_namespace_delimiter: "." and "_" by default.
    - environ: mapping read for env defaults and the completion switch.
    - width / colorful / fancy: help and error rendering switches.
    """

    __introspectable__ = (
        "usage",
        "flags",
        "width",
        "colorful",
        "fancy",
    )

    def __new__(
            cls,
            target=Unset,
            /,
            options=Options.DEFAULT,
            *,
            name=Unset,
            usage=Unset,
            description=Unset,
            long_description=Unset,
            style=Unset,
            namespace_delimiter=".",
            env_namespace_delimiter="_",
            environ=Unset,
            width=80,
            colorful=False,
            fancy=False,
            subcommands_optional=False,
    ):
        if not isinstance(options, int):
            raise TypeError(f"{cls.__typename__} 'options' must be an Options flag")
        if not isinstance(style, OptionStyle | Unset):
            raise TypeError(f"{cls.__typename__} 'style' must be an OptionStyle")
        for field, value in (("namespace_delimiter", namespace_delimiter), ("env_namespace_delimiter", env_namespace_delimiter)):
            if not isinstance(value, str):
                raise TypeError(f"{cls.__typename__} '{field}' must be a string")
        if not isinstance(usage, str | Unset):
            raise TypeError(f"{cls.__typename__} 'usage' must be a string")
        if not isinstance(width, int) or width < 20:
            raise ValueError(f"{cls.__typename__} 'width' must be an integer of at least 20")

        self = super().__new__(
            cls,
            coalesce(name, None) or _program(),
            description,
            long_description=long_description,
            subcommands_optional=subcommands_optional,
        )
        self._settings.update(
            style=coalesce(style, None) or OptionStyle.native(),
            namespace_delimiter=namespace_delimiter,
            env_namespace_delimiter=env_namespace_delimiter,
        )
        self._flags = Options(options)
        self._usage = coalesce(usage)
        self._environ = os.environ if environ is Unset else environ
        self._width = width
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._state = None
        self._active = self
        self._helped = False

        if target is not Unset:
            self.add_group(Group("Application Options", target=target))
        return self

    @property
    def environ(self):
        return self._environ

    @property
    def style(self):
        return self._settings["style"]

    @property
    def active(self):
        """
        Active command of the running parse, or of the last one.
        """
        return self._state.command if self._state is not None else self._active

    @property
    def state(self):
        return self._state

    def _install_help(self):
        """
        Attach the "Help Options" group once, with the names nobody else uses.
        """
        if self._helped or not self._flags & Options.HELP_FLAG:
            return
        self._helped = True

        shorts, longs = set(), set()
        for command in self.iter_commands():
            scope = command.scope()
            shorts.update(scope.shorts)
            longs.update(scope.longs)

        names = (
            "h" if "h" not in shorts else Unset,
            "help" if "help" not in longs else Unset,
        )
        if names == (Unset, Unset):
            return

        group = self.add_group("Help Options")
        group.add_option(option(*names, "Show this help message")(self._help))
        if self.style is OptionStyle.WINDOWS and "?" not in shorts:
            group.add_option(option("?", hidden=True)(self._help))

    def _help(self):
        raise HelpError(render_help(self, self.active))

    def parse_args(self, arguments=Unset, /):
        """
        Parse arguments (sys.argv[1:] by default, a string is split with shlex).

        returns
        - the leftover arguments, or [] when the selected command's target
          defines __execute__ (which then receives the leftovers).

        raises
        - ParseError (one subclass per ErrorKind), rendered first when
          PRINT_ERRORS is set.
        - whatever __execute__ raises, unchanged.
        """
        if arguments is Unset:
            arguments = sys.argv[1:]
        elif isinstance(arguments, str):
            arguments = shlex.split(arguments)
        arguments = list(arguments)

        self._install_help()

        if (mode := self._environ.get(COMPLETION_ENVIRON)) is not None:
            from .completion import Completion
            Completion(self).print(arguments, verbose=mode == "verbose")
            sys.exit(0)

        self.store_defaults(self._environ)
        state = self._state = ParseState(self, arguments)

        fault = None
        try:
            self._scan(state)
            self._check(state)
        except ParseError as exception:
            fault = exception
        finally:
            self._state = None
            self._active = state.command

        if fault is not None:
            trigger(
                fault,
                prog=self.name,
                shell=bool(self._flags & Options.PRINT_ERRORS),
                colorful=self._colorful,
                fancy=self._fancy,
            )

        command = state.command
        if command is not self and callable(execute := getattr(command.target, "__execute__", None)):
            execute(list(state.output))
            return []
        return state.output

    def _scan(self, state):
        while state.remaining:
            argument = state.remaining.popleft()

            if argument == "--":
                if self._flags & Options.PASS_DOUBLE_DASH:
                    self._passthrough(state, state.take())
                    return
                self._parse_non_option(state, argument)
            elif not is_option(argument, self.style):
                self._parse_non_option(state, argument)
            else:
                try:
                    self._parse_token(state, argument)
                except UnknownFlagError:
                    if not self._flags & Options.IGNORE_UNKNOWN:
                        raise
                    state.output.append(argument)

    def _passthrough(self, state, tokens):
        for token in tokens:
            if state.positionals:
                self._bind_positional(state, token)
            else:
                state.output.append(token)

    def _parse_non_option(self, state, argument):
        if state.positionals:
            return self._bind_positional(state, argument)
        if (command := state.scope.commands.get(argument)) is not None:
            return state.descend(command)
        if self._flags & Options.PASS_AFTER_NON_OPTION:
            return self._passthrough(state, [argument, *state.take()])
        self._emit(state, argument)

    def _bind_positional(self, state, argument):
        cardinal = state.positionals[0]
        cardinal.set(argument)
        state.satisfy(cardinal)
        if not cardinal.is_repeatable:
            state.positionals.popleft()

    def _emit(self, state, argument):
        if state.command.strict:
            raise TooManyArgsError(
                f"too many arguments for command `{state.command.name}': unexpected `{argument}'"
            )
        state.output.append(argument)

    def _parse_token(self, state, argument):
        prefix, body, is_long = strip_prefix(argument, self.style)
        name, _, value = split_name_value(prefix, body, is_long)
        if not name:
            raise UnknownFlagError(f"unknown flag `{argument}'")

        if is_long:
            if (option := state.scope.longs.get(name.lower())) is None:
                raise UnknownFlagError(f"unknown flag `{name}'")
            return self._parse_option(state, option, value)

        # -abc: every character is a short name unless an argument-taking one
        # is followed by a character that does not resolve
        for index, character in enumerate(name):
            if (option := state.scope.shorts.get(character)) is None:
                raise UnknownFlagError(f"unknown flag `{character}'")
            rest = name[index + 1:]
            if not rest:
                return self._parse_option(state, option, value)
            if value is None and option.can_argument and rest[0] not in state.scope.shorts:
                return self._parse_option(state, option, rest)
            self._parse_option(state, option, None, last=False)

    def _parse_option(self, state, option, value, last=True):
        """
        Apply one occurrence of option.

        - value: attached argument ("--name=value", "-nvalue") or None.
        - last: whether the option may take the next token (end of a cluster).
        """
        if option.is_terminated:
            if value is not None or not last:
                raise ExpectedArgumentError(f"expected argument for flag `{option}'")
            option.capture()
            while state.remaining:
                if (token := state.remaining.popleft()) == option.terminator:
                    break
                option.set(token)
        elif not option.can_argument:
            if value is not None and not option.optional:
                raise NoArgumentForBoolError(f"bool flag `{option}' cannot have an argument")
            option.set(value)
        elif value is not None:
            option.set(value)
        elif option.optional:
            option.apply_optional()
        elif last and state.remaining:
            token = state.remaining[0]
            if token == "--" and self._flags & Options.PASS_DOUBLE_DASH:
                raise ExpectedArgumentError(f"expected argument for flag `{option}', but got double dash `--'")
            if is_option(token, self.style) and not _accepts_dash(option):
                raise ExpectedArgumentError(f"expected argument for flag `{option}', but got option `{token}'")
            option.set(state.remaining.popleft())
        else:
            raise ExpectedArgumentError(f"expected argument for flag `{option}'")
        state.satisfy(option)

    def _check(self, state):
        options = [f"`{slot}'" for slot in state.required if isinstance(slot, Option)]
        if len(options) == 1:
            raise RequiredError(f"the required flag {options[0]} was not specified")
        elif options:
            raise RequiredError(f"the required flags {conjoin(options)} were not specified")

        cardinals = [f"`{slot}`" for slot in state.required if isinstance(slot, Cardinal)]
        if len(cardinals) == 1:
            raise RequiredError(f"the required argument {cardinals[0]} was not provided")
        elif cardinals:
            raise RequiredError(f"the required arguments {conjoin(cardinals)} were not provided")

        command = state.command
        if not (children := command.commands) or command.subcommands_optional:
            return

        names = sorted(child.name for child in children)
        # flags passed through by IGNORE_UNKNOWN are not command candidates
        if (unknown := next((token for token in state.output if not is_option(token, self.style)), None)) is None:
            raise RequiredError(f"Please specify one command of: {', '.join(names)}")

        match, distance = closest(unknown, names)
        if match is not None and distance / len(match) < 0.5:
            raise RequiredError(f"Unknown command `{unknown}', did you mean `{match}'?")
        raise RequiredError(f"Unknown command `{unknown}'. Please specify one command of: {', '.join(names)}")


__all__ = (
    "Options",
    "ParseState",
    "Parser",
    "COMPLETION_ENVIRON",
)
