r"""
Argoflags ini files (read and write option values by section).

Format
    ; comment lines start with ';' or '#'
    [Application Options]
    verbose = true
    name = "  quoted values keep their spaces  "
    include = a
    include = b

    [remote.add]
    branch = main

Sections
- A top-level group is named after the group ("Application Options").
- A command's own options live in its dotted path ("remote.add"); the root
  command uses the program name.
- A group nested in a command is "path.Group name" ("remote.add.Add Options").
- Keys before the first section address the root command.

Keys
- Looked up case-insensitively by ini_name, attribute name, long name and
  short name (see Group.find_option); no_ini options are invisible.
- Repeated keys feed list/map options in file order.
- A terminated list[list[T]] option writes each capture as repeated keys
  closed by a key holding the terminator; the next key opens a new capture.

Parsing while parse_args() runs (e.g. from a --config callback) applies values
on top of the current state; otherwise defaults are stored first.
"""
import enum
import json

from .arguments import Action
from .commands import Command
from .faults import IniError, UnknownFlagError, UnknownGroupError
from .parser import Options
from .codec import element_of, to_string, to_strings


class IniOptions(enum.IntFlag):
    """
    Writer flags.

    - INCLUDE_DEFAULTS: also write options whose value equals the default.
    - INCLUDE_COMMENTS: write each option's description as a comment.
    - COMMENT_DEFAULTS: with INCLUDE_DEFAULTS, write default values commented out.
    """
    NONE = 0
    INCLUDE_DEFAULTS = 1 << 0
    INCLUDE_COMMENTS = 1 << 1
    COMMENT_DEFAULTS = 1 << 2
    DEFAULT = INCLUDE_COMMENTS


def read_ini(stream, filename="", /):
    """
    Read stream into {section: [(key, value, line), ...]} preserving order.

    raises
    - IniError: malformed section header, empty section name, malformed
      key=value or malformed quoted value (with file and line).
    """
    sections = {}
    section = sections.setdefault("", [])

    for number, line in enumerate(stream, 1):
        line = line.strip()
        if not line or line[0] in ";#":
            continue

        if line[0] == "[":
            if line[-1] != "]":
                raise IniError("malformed section header", file=filename, line=number)
            if not (name := line[1:-1].strip()):
                raise IniError("empty section name", file=filename, line=number)
            section = sections.setdefault(name, [])
            continue

        key, found, value = line.partition("=")
        if not found or not (key := key.strip()):
            raise IniError("malformed key=value", file=filename, line=number)

        value = value.strip()
        if value.startswith('"'):
            try:
                value = json.loads(value)
            except ValueError:
                raise IniError("malformed quoted value", file=filename, line=number) from None
            if not isinstance(value, str):
                raise IniError("malformed quoted value", file=filename, line=number)
        section.append((key, value, number))

    if not sections[""]:
        del sections[""]
    return sections


def _quote(value):
    if value != value.strip() or value.startswith('"') or not value.isprintable():
        return json.dumps(value, ensure_ascii=False)
    return value


def section_of(group, /):
    """
    Ini section name of a group or command.
    """
    if isinstance(group, Command):
        path = group.path
        return ".".join(node.name for node in path[1:]) or path[0].name
    owner = group.command
    if owner is None or owner.parent is None:
        return group.name
    return f"{section_of(owner)}.{group.name}"


class IniParser:
    """
    Reads and writes the option values of a parser as ini text.
    """

    def __init__(self, parser):
        self.parser = parser
        self._names = {}

    def _sections(self):
        sections = {}
        for command in self.parser.iter_commands():
            sections.setdefault(section_of(command), command)
            for group in command._groups:
                for nested in group.iter_groups():
                    sections.setdefault(section_of(nested), nested)
        return sections

    def parse_file(self, filename, /):
        with open(filename, encoding="utf-8") as stream:
            return self.parse(stream, filename)

    def parse(self, stream, filename="", /):
        """
        Apply the values of an ini stream.

        raises
        - IniError on syntax errors.
        - UnknownGroupError for a section that names no group.
        - UnknownFlagError for an unknown key (unless IGNORE_UNKNOWN).
        - MarshalError (and other ParseErrors) from the values themselves.
        """
        contents = read_ini(stream, filename)
        parser = self.parser
        state = parser.state
        if state is None:
            parser.store_defaults(parser.environ)

        sections = self._sections()
        captures = set()
        for name, entries in contents.items():
            if (group := parser if name == "" else sections.get(name)) is None:
                raise UnknownGroupError(f"could not find option group `{name}'")

            for key, value, _ in entries:
                if (option := group.find_option(key, ini=True)) is None:
                    if parser.flags & Options.IGNORE_UNKNOWN:
                        continue
                    raise UnknownFlagError(f"unknown option: {key}")

                if option.is_nested and option.is_terminated:
                    if option not in captures:
                        option.capture()
                        captures.add(option)
                    if value == option.terminator:
                        captures.discard(option)
                    else:
                        option.set(value)
                else:
                    option.set(None if option.is_boolean and value == "" else value)
                self._names[option] = key
                if state is not None:
                    state.satisfy(option)

    @staticmethod
    def _items(option, value):
        if not option.is_nested:
            return to_strings(value, option.annotation, option.base)
        element = element_of(element_of(option.annotation))
        items = []
        for capture in value:
            items.extend(to_string(item, element, option.base) for item in capture)
            if option.is_terminated:
                items.append(option.terminator)
        return items

    def _lines(self, option, options):
        value = option.value
        default = value == option.default_value
        if default and not options & IniOptions.INCLUDE_DEFAULTS:
            return []
        if value is None or not (items := self._items(option, value)):
            return []

        comment = "; " if default and options & IniOptions.COMMENT_DEFAULTS else ""
        key = self._names.get(option) or option.ini_key
        lines = []
        if options & IniOptions.INCLUDE_COMMENTS and option.description:
            lines.append(f"; {option.description}")
        for item in items:
            lines.append(f"{comment}{key} = {_quote(item)}")
        return lines

    def write(self, stream, options=IniOptions.DEFAULT, /):
        """
        Write every non-default option value (see IniOptions) to stream.
        """
        blocks = []
        for name, group in self._sections().items():
            lines = []
            for option in group._options:
                if option.action is Action.INVOKE or option.no_ini:
                    continue
                lines.extend(self._lines(option, options))
            if lines:
                blocks.append("\n".join([f"[{name}]", *lines]) + "\n")
        stream.write("\n".join(blocks))

    def write_file(self, filename, options=IniOptions.DEFAULT, /):
        with open(filename, "w", encoding="utf-8") as stream:
            self.write(stream, options)


__all__ = (
    "IniOptions",
    "IniParser",
    "read_ini",
    "section_of",
)
