"""
Help writer tests (plain help, man page and markdown).

Scope
- Validate the usage line, group sections, defaults, env keys, arguments and
  command listings of render_help().
- Validate option column text (option_names) and shown defaults (default_of).
- Validate the man page header date (SOURCE_DATE_EPOCH) and troff escaping.
- Validate the markdown reference layout.

Conventions
- Test method names follow CamelCase per project convention.
- Parsers get a fixed name and an explicit environ so output is stable.
"""

import io
import unittest
from unittest import TestCase

from argoflags import (
    Cardinal,
    Command,
    Group,
    Option,
    Options,
    OptionStyle,
    Parser,
    default_of,
    option_names,
    render_help,
    write_man_page,
    write_markdown,
)


class Remote:
    force: bool = Option("f", "force", "Overwrite an existing remote")
    name: str = Cardinal("NAME", "Remote name", required=True)


class Logging:
    level: str = Option("l", "level", "Log level", default="info", env="LEVEL")


class Tool:
    verbose: list[bool] = Option("v", "verbose", "Show verbose debug information")
    name: str = Option("n", "name", "A name", value_name="NAME")
    color: str = Option(long="color", description="Use colors", optional=True, optional_value="auto")
    secret: str = Option(long="secret", hidden=True)
    retries: int = Option("r", "retries", "How many retries")
    logging: Logging = Group("Logging Options", env_namespace="TOOL")
    remote: Remote = Command("remote", "Add a remote", long_description="Adds a `remote' to the list.", aliases=("r",))

    def __init__(self):
        self.retries = 3


class TestRenderHelp(TestCase):

    def setUp(self):
        self.parser = Parser(Tool(), Options.HELP_FLAG, name="tool", environ={}, description="A tool")
        self.parser.parse_args(["remote", "origin"])

    def testRootHelp(self):
        text = render_help(self.parser)
        self.assertTrue(text.startswith("Usage:\n  tool [OPTIONS] <command>\n"))
        self.assertIn("Application Options:", text)
        self.assertIn("-v, --verbose", text)
        self.assertIn("-n, --name=NAME", text)
        self.assertIn("--color[=STR]", text)
        self.assertNotIn("--secret", text)
        self.assertIn("(default: 3)", text)
        self.assertIn("Logging Options:", text)
        self.assertIn("(default: info) [$TOOL_LEVEL]", text)
        self.assertIn("Help Options:", text)
        self.assertIn("Available commands:", text)
        self.assertIn("remote", text)
        self.assertIn("(aliases: r)", text)

    def testCommandHelp(self):
        text = render_help(self.parser, self.parser.find("remote"))
        self.assertTrue(text.startswith("Usage:\n  tool [OPTIONS] remote [remote-OPTIONS] NAME\n"))
        self.assertIn("Adds a `remote' to the list.", text)
        self.assertIn("[remote command options]:", text)
        self.assertIn("Arguments:", text)
        self.assertIn("Remote name", text)

    def testSectionsAppearInOrder(self):
        text = render_help(self.parser)
        self.assertLess(text.index("Application Options:"), text.index("Logging Options:"))
        self.assertLess(text.index("Logging Options:"), text.index("Help Options:"))

    def testDescriptionsAreWrapped(self):
        class Wordy:
            text: str = Option("t", "text", " ".join(["word"] * 40))

        parser = Parser(Wordy(), Options.NONE, name="wordy", environ={}, width=40)
        for line in render_help(parser).splitlines():
            self.assertLessEqual(len(line), 40)


class TestColumns(TestCase):

    def setUp(self):
        self.parser = Parser(Tool(), Options.NONE, name="tool", environ={})
        self.options = {option.attribute: option for option in self.parser.iter_options()}

    def testOptionNames(self):
        self.assertEqual(option_names(self.options["verbose"]), "-v, --verbose")
        self.assertEqual(option_names(self.options["name"]), "-n, --name=NAME")
        self.assertEqual(option_names(self.options["retries"]), "-r, --retries=INT")

    def testWindowsStyle(self):
        parser = Parser(Tool(), Options.NONE, name="tool", environ={}, style=OptionStyle.WINDOWS)
        options = {option.attribute: option for option in parser.iter_options()}
        self.assertEqual(option_names(options["name"]), "/n, /name:NAME")

    def testDefaults(self):
        self.assertEqual(default_of(self.options["retries"]), "3")
        self.assertEqual(default_of(self.options["level"]), "info")
        self.assertEqual(default_of(self.options["verbose"]), "")
        self.assertEqual(default_of(self.options["name"]), "")

    def testDefaultMask(self):
        class Masked:
            token: str = Option(long="token", default="secret", default_mask="-")
            url: str = Option(long="url", default="http://x", default_mask="<url>")

        parser = Parser(Masked(), Options.NONE, name="masked", environ={})
        options = {option.attribute: option for option in parser.iter_options()}
        self.assertEqual(default_of(options["token"]), "")
        self.assertEqual(default_of(options["url"]), "<url>")


class TestManPage(TestCase):

    def testHeaderAndSections(self):
        parser = Parser(Tool(), Options.NONE, name="tool", environ={"SOURCE_DATE_EPOCH": "0"}, description="A tool")
        stream = io.StringIO()
        write_man_page(parser, stream)
        page = stream.getvalue()
        self.assertTrue(page.startswith('.TH tool 1 "1 January 1970"\n'))
        self.assertIn(".SH NAME\ntool \\- A tool\n", page)
        self.assertIn(".SH SYNOPSIS\n\\fBtool\\fP [OPTIONS]\n", page)
        self.assertIn("\\fB\\-v, \\-\\-verbose\\fP\n", page)
        self.assertIn(".SH COMMANDS\n.SS remote\nAdd a remote\n", page)
        self.assertIn("Adds a \\fBremote\\fP to the list.", page)
        self.assertIn("\\fBAliases\\fP: r", page)
        self.assertNotIn("secret", page)


class TestMarkdown(TestCase):

    def testLayout(self):
        parser = Parser(Tool(), Options.NONE, name="tool", environ={}, description="A tool")
        stream = io.StringIO()
        write_markdown(parser, stream)
        document = stream.getvalue()
        self.assertTrue(document.startswith("# tool\n\nA tool\n\n## Usage\n\n`tool [OPTIONS]`\n"))
        self.assertIn("\n### Application Options\n\n- `-v`, `--verbose` Show verbose debug information\n", document)
        self.assertIn("- `-l`, `--level` Log level (default: `info`) (env: `TOOL_LEVEL`)\n", document)
        self.assertIn("\n## Commands\n\n### `tool remote`\n\nAdd a remote\n", document)
        self.assertIn("Adds a **remote** to the list.", document)
        self.assertIn("Aliases: `r`", document)
        self.assertIn("#### remote options\n\n- `-f`, `--force` Overwrite an existing remote\n", document)


if __name__ == "__main__":
    unittest.main()
