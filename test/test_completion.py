"""
Completion tests (candidate generation and the shell switch).

Scope
- Validate long/short name candidates and their command scoping.
- Validate command names, cardinal and option value completions.
- Validate that completing never mutates configuration fields.
- Validate the ARGOFLAGS_COMPLETION switch of parse_args().

Conventions
- Test method names follow CamelCase per project convention.
- Filesystem candidates are produced inside a temporary directory.
"""

import contextlib
import io
import os
import tempfile
import unittest
from unittest import TestCase

from argoflags import (
    Cardinal,
    Command,
    Completion,
    Filename,
    Option,
    Options,
    Parser,
)


def _colors(match):
    return [color for color in ("red", "green", "grey") if color.startswith(match)]


class Remote:
    url: str = Option("u", "url", "Remote url")
    upstream: bool = Option(long="upstream", description="Track upstream")


class Paint:
    color: str = Option("c", "color", "Color to use", completer=_colors)
    verbose: bool = Option("v", "verbose", "Verbose output")
    secret: bool = Option(long="secret", hidden=True)
    remote: Remote = Command("remote", "Manage remotes")
    render: Remote = Command("render", "Render things")


class Files:
    config: Filename = Option("f", "file")
    inputs: list[Filename] = Cardinal("INPUT")


class TestNames(TestCase):
    """Option and command name candidates."""

    def setUp(self):
        self.paint = Paint()
        self.completion = Completion(Parser(self.paint, Options.NONE, name="paint"))

    def testLongNames(self):
        self.assertEqual(self.completion.complete(["--"]), ["--color", "--verbose"])
        self.assertEqual(self.completion.complete(["--ve"]), ["--verbose"])

    def testShortNames(self):
        self.assertEqual(self.completion.complete(["-"]), ["-c", "-v"])

    def testCommandNames(self):
        self.assertEqual(self.completion.complete(["re"]), ["remote", "render"])
        self.assertEqual(self.completion.complete([""]), ["remote", "render"])

    def testCommandScope(self):
        self.assertEqual(self.completion.complete(["remote", "--u"]), ["--upstream", "--url"])
        self.assertEqual(self.completion.complete(["--u"]), [])

    def testNoMutation(self):
        self.completion.complete(["-v", "--color", "red", "remote", "--url", "x", "--"])
        self.assertFalse(self.paint.verbose)
        self.assertEqual(self.paint.color, "")
        self.assertEqual(self.paint.remote.url, "")


class TestValues(TestCase):
    """Value candidates from completers and field types."""

    def setUp(self):
        self.completion = Completion(Parser(Paint(), Options.NONE, name="paint"))

    def testSeparateArgument(self):
        self.assertEqual(self.completion.complete(["--color", "gr"]), ["green", "grey"])

    def testAttachedArgument(self):
        self.assertEqual(self.completion.complete(["--color=gr"]), ["--color=green", "--color=grey"])
        self.assertEqual(self.completion.complete(["-cr"]), ["-cred"])

    def testFilenames(self):
        with tempfile.TemporaryDirectory() as directory:
            for name in ("alpha.txt", "alpine.txt", "beta.txt"):
                open(os.path.join(directory, name), "w").close()
            completion = Completion(Parser(Files(), Options.NONE, name="files"))
            prefix = os.path.join(directory, "al")
            expected = [os.path.join(directory, "alpha.txt"), os.path.join(directory, "alpine.txt")]
            self.assertEqual(completion.complete([prefix]), expected)
            self.assertEqual(completion.complete(["-f", prefix]), expected)

    def testListCardinalAfterDoubleDash(self):
        with tempfile.TemporaryDirectory() as directory:
            for name in ("alpha.txt", "beta.txt"):
                open(os.path.join(directory, name), "w").close()
            completion = Completion(Parser(Files(), Options.PASS_DOUBLE_DASH, name="files"))
            prefix = os.path.join(directory, "al")
            self.assertEqual(
                completion.complete(["--", "one", "two", prefix]),
                [os.path.join(directory, "alpha.txt")],
            )


class TestShellSwitch(TestCase):
    """parse_args() in completion mode."""

    def testPrintsCandidatesAndExits(self):
        parser = Parser(Paint(), Options.NONE, name="paint", environ={"ARGOFLAGS_COMPLETION": "1"})
        stream = io.StringIO()
        with contextlib.redirect_stdout(stream), self.assertRaises(SystemExit) as context:
            parser.parse_args(["--ve"])
        self.assertEqual(context.exception.code, 0)
        self.assertEqual(stream.getvalue().split(), ["--verbose"])

    def testVerboseIncludesDescriptions(self):
        parser = Parser(Paint(), Options.NONE, name="paint", environ={"ARGOFLAGS_COMPLETION": "verbose"})
        stream = io.StringIO()
        with contextlib.redirect_stdout(stream), self.assertRaises(SystemExit):
            parser.parse_args(["--ve"])
        self.assertIn("# Verbose output", stream.getvalue())


if __name__ == "__main__":
    unittest.main()
