r"""
Argoflags help, man page and markdown writers.

Help layout (render_help):

    Usage:
      prog [OPTIONS] remote add [add-OPTIONS] NAME

    <long description of the active command>

    Application Options:
      -v, --verbose          Show verbose debug information
      -n, --name=NAME        A name (default: Sam) [$APP_NAME]

    Help Options:
      -h, --help             Show this help message

    Arguments:
      NAME                   Remote name

    Available commands:
      add   Add a remote (aliases: a)

Sections are built as rich Text and wrapped by a rich Console of the parser's
width. Palette entries can be overridden with __main__.__styles__ and only
apply when the parser is colorful (print_help); render_help always returns
plain text, which is what HelpError carries.
"""
import datetime
import io
from collections import defaultdict

from rich.console import Console
from rich.text import Text

from . import codec

_palette = {
    "usage-label": "bold #00E6FF",
    "program-name": "bold #FF4D94",
    "description-section": "italic #A3A3A3",
    "group-label": "bold #FFFFFF",
    "option-name": "bold #00E6FF",
    "metavar": "bold #FFD600",
    "argument-description": "#9CA3AF",
    "default": "#737373",
    "children": "bold #36C5F0",
}


def _styler(colorful):
    styles = defaultdict(str, _palette | getattr(__import__("__main__"), "__styles__", {}))

    def text(fragment, style=""):
        return Text(str(fragment), styles[style] if colorful else "")

    return text


def _visible(options):
    return [option for option in options if not option.hidden]


def _metavar(option):
    if option.value_name is not None:
        return option.value_name
    if option.is_callback:
        return codec.typename(codec.parameter_of(option.callback)).upper()
    annotation = option.annotation
    match option.shape:
        case codec.Shape.LIST:
            annotation = codec.element_of(annotation)
        case codec.Shape.NESTED:
            annotation = codec.element_of(codec.element_of(annotation))
    return codec.typename(annotation).upper()


def option_names(option, /):
    """
    "-v, --verbose" / "--name=NAME" / "-x[=VALUE]" column text of an option.
    """
    text = str(option)
    if option.can_argument:
        _, long = option.group.prefixes if option.group else ("-", "--")
        delimiter = ":" if long == "/" else "="
        if option.optional:
            text += f"[{delimiter}{_metavar(option)}]"
        else:
            text += f"{delimiter}{_metavar(option)}"
    return text


def default_of(option, /):
    """
    Default shown in help: the mask, the declared defaults, or a non-zero
    initial value; "" when there is nothing to show.
    """
    if option.default_mask is not None:
        return "" if option.default_mask == "-" else option.default_mask
    if option.default:
        return ", ".join(option.default)
    if option.is_callback or option.is_boolean:
        return ""
    pristine = option.pristine
    if pristine is None or pristine == codec.zero(option.annotation):
        return ""
    return codec.to_string(pristine, option.annotation, option.base)


def _sections(command):
    """
    (title, options) pairs shown for command: the groups of every command on
    its path, outermost first.
    """
    for node in command.path:
        if own := _visible(node._options):
            yield (f"[{node.name} command options]" if node.parent is not None else "Application Options"), own
        for group in node._groups:
            for nested in group.iter_groups():
                if not nested.hidden and (options := _visible(nested._options)):
                    yield nested.name, options


def _usage(parser, command, text):
    usage = Text.assemble(text("Usage", "usage-label"), ":\n  ", text(parser.name, "program-name"))
    usage.append(" " + (parser.usage if parser.usage is not None else "[OPTIONS]"))
    for node in command.path[1:]:
        usage.append(f" {node.name}")
        if any(not option.hidden for option in node.iter_options()):
            usage.append(f" [{node.name}-OPTIONS]")
    for cardinal in command.cardinals:
        if cardinal.hidden:
            continue
        name = f"{cardinal}..." if cardinal.is_repeatable else str(cardinal)
        usage.append(" " + (name if cardinal.required else f"[{name}]"))
    if any(not child.hidden for child in command.commands):
        usage.append(" <command>")
    return usage


def _columns(rows, console, width, text):
    """
    Lay out (name, description) rows with descriptions aligned and wrapped.
    """
    rendered = Text()
    start = min(max((len(name) for name, _ in rows), default=0) + 4, width // 2)
    for name, description in rows:
        line = Text("  ").append(name)
        if description.plain:
            if len(line) + 2 > start:
                line.append("\n" + " " * start)
            else:
                line.append(" " * (start - len(line)))
            wrapped = description.wrap(console, max(width - start, 10))
            for index, segment in enumerate(wrapped):
                if index:
                    line.append("\n" + " " * start)
                line.append(segment)
        rendered.append(line).append("\n")
    return rendered


def build_help(parser, command=None, /, *, colorful=False):
    """
    Build the help of command (the parser itself by default) as rich Text.
    """
    command = command or parser
    text = _styler(colorful)
    console = Console(width=parser.width, file=io.StringIO(), color_system=None)

    help = _usage(parser, command, text).append("\n")

    if description := command.long_description or (command.description if command is not parser else None):
        help.append("\n")
        for line in text(description, "description-section").wrap(console, parser.width):
            help.append(line).append("\n")

    for title, options in _sections(command):
        rows = []
        for option in options:
            description = text(option.description or "", "argument-description")
            if default := default_of(option):
                description.append(" ").append(text(f"(default: {default})", "default"))
            if option.env_key is not None:
                description.append(" ").append(text(f"[${option.env_key}]", "default"))
            rows.append((text(option_names(option), "option-name"), description))
        help.append("\n").append(text(title, "group-label")).append(":\n")
        help.append(_columns(rows, console, parser.width, text))

    if cardinals := [cardinal for cardinal in command.cardinals if not cardinal.hidden]:
        help.append("\n").append(text("Arguments", "group-label")).append(":\n")
        help.append(_columns([
            (text(cardinal, "metavar"), text(cardinal.description or "", "argument-description"))
            for cardinal in cardinals
        ], console, parser.width, text))

    if children := sorted((child for child in command.commands if not child.hidden), key=lambda child: child.name):
        rows = []
        for child in children:
            description = text(child.description or "", "argument-description")
            if child.aliases:
                description.append(f" (aliases: {', '.join(child.aliases)})")
            rows.append((text(child.name, "children"), description))
        help.append("\n").append(text("Available commands", "group-label")).append(":\n")
        help.append(_columns(rows, console, parser.width, text))

    help.rstrip()
    return help


def render_help(parser, command=None, /):
    """
    Plain-text help of command (the parser itself by default).
    """
    console = Console(width=parser.width, file=io.StringIO(), color_system=None, highlight=False)
    console.print(build_help(parser, command), soft_wrap=True)
    return console.file.getvalue().rstrip("\n")


def print_help(parser, command=None, /):
    """
    Print the help of command to stdout, styled when the parser is colorful.
    """
    Console(highlight=False).print(build_help(parser, command, colorful=parser.colorful), soft_wrap=True)


def _today(environ):
    if (epoch := environ.get("SOURCE_DATE_EPOCH")) is not None:
        moment = datetime.datetime.fromtimestamp(int(epoch), tz=datetime.timezone.utc)
    else:
        moment = datetime.datetime.now()
    return f"{moment.day} {moment:%B %Y}"


def _quoted(text, open, close):
    """
    Replace `name' quotes with open/close markup.
    """
    result = []
    while (start := text.find("`")) >= 0 and (end := text.find("'", start + 1)) >= 0:
        result.append(text[:start] + open + text[start + 1:end] + close)
        text = text[end + 1:]
    result.append(text)
    return "".join(result)


def _man_options(stream, options):
    for option in _visible(options):
        stream.write(".TP\n")
        names = option_names(option).replace("-", "\\-")
        stream.write(f"\\fB{names}\\fP\n")
        stream.write(_quoted(str(option.description or ""), "\\fB", "\\fP") + "\n")


def _man_command(stream, path, command):
    stream.write(f".SS {path}\n")
    stream.write(f"{command.description or ''}\n")
    if command.long_description:
        stream.write("\n" + _quoted(str(command.long_description), "\\fB", "\\fP") + "\n")
    if command.aliases:
        stream.write(f"\n\\fBAliases\\fP: {', '.join(command.aliases)}\n")
    _man_options(stream, command.iter_options())
    for child in sorted(command.commands, key=lambda child: child.name):
        if not child.hidden:
            _man_command(stream, f"{path} {child.name}", child)


def write_man_page(parser, stream, /):
    """
    Write a troff man page (section 1) of the whole tree to stream.
    """
    stream.write(f'.TH {parser.name} 1 "{_today(parser.environ)}"\n')
    stream.write(".SH NAME\n")
    stream.write(f"{parser.name} \\- {parser.description or ''}\n")
    stream.write(".SH SYNOPSIS\n")
    stream.write(f"\\fB{parser.name}\\fP {parser.usage if parser.usage is not None else '[OPTIONS]'}\n")
    stream.write(".SH DESCRIPTION\n")
    stream.write(_quoted(str(parser.long_description or parser.description or ""), "\\fB", "\\fP") + "\n")
    stream.write(".SH OPTIONS\n")
    _man_options(stream, parser.iter_options())
    if commands := [child for child in parser.commands if not child.hidden]:
        stream.write(".SH COMMANDS\n")
        for child in sorted(commands, key=lambda child: child.name):
            _man_command(stream, child.name, child)


def _markdown_options(stream, command):
    for title, options in _sections(command):
        stream.write(f"\n### {title}\n\n")
        for option in options:
            names = ", ".join(f"`{name}`" for name in str(option).split(", "))
            line = f"- {names}"
            if description := option.description:
                line += " " + _quoted(str(description).replace("\\", "\\\\"), "**", "**")
            if default := default_of(option):
                line += f" (default: `{default}`)"
            if option.env_key is not None:
                line += f" (env: `{option.env_key}`)"
            stream.write(line + "\n")


def _own_sections(command):
    if own := _visible(command._options):
        yield f"{command.name} options", own
    for group in command._groups:
        for nested in group.iter_groups():
            if not nested.hidden and (options := _visible(nested._options)):
                yield nested.name, options


def write_markdown(parser, stream, /):
    """
    Write a markdown reference of the whole tree to stream.
    """
    stream.write(f"# {parser.name}\n")
    if description := parser.long_description or parser.description:
        stream.write("\n" + _quoted(str(description), "**", "**") + "\n")
    stream.write(f"\n## Usage\n\n`{parser.name} {parser.usage if parser.usage is not None else '[OPTIONS]'}`\n")
    stream.write("\n## Options\n")
    _markdown_options(stream, parser)

    commands = [command for command in parser.iter_commands() if command is not parser and not command.hidden]
    if commands:
        stream.write("\n## Commands\n")
    for command in commands:
        path = " ".join(node.name for node in command.path[1:])
        stream.write(f"\n### `{parser.name} {path}`\n")
        if command.description:
            stream.write(f"\n{command.description}\n")
        if command.long_description:
            stream.write("\n" + _quoted(str(command.long_description), "**", "**") + "\n")
        if command.aliases:
            stream.write(f"\nAliases: {', '.join(f'`{alias}`' for alias in command.aliases)}\n")
        for title, options in _own_sections(command):
            stream.write(f"\n#### {title}\n\n")
            for option in options:
                names = ", ".join(f"`{name}`" for name in str(option).split(", "))
                stream.write(f"- {names} {_quoted(str(option.description or ''), '**', '**')}".rstrip() + "\n")


__all__ = (
    "build_help",
    "render_help",
    "print_help",
    "write_man_page",
    "write_markdown",
    "option_names",
    "default_of",
)
