"""
Parser behavioral tests (clusters, arguments, passthrough, commands, required).

Scope
- Validate short clusters, the attached-argument heuristic and '=' splitting.
- Validate terminated captures and their replace/append asymmetry.
- Validate "--" passthrough, PASS_AFTER_NON_OPTION and IGNORE_UNKNOWN.
- Validate required options/cardinals and command selection messages.
- Validate subcommand scoping, __execute__ dispatch and the help flag.
- Validate env defaults, namespaces and the Windows option style.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Parser, Options, Option, Cardinal, Group, Command, option).
- Parsers are built with Options.NONE (unless a flag is under test) so that
  nothing is printed while errors are raised.
"""

import datetime
import enum
import unittest
from unittest import TestCase

from argoflags import (
    Cardinal,
    Command,
    ErrorKind,
    ExpectedArgumentError,
    Group,
    HelpError,
    Int8,
    MarshalError,
    NoArgumentForBoolError,
    Option,
    Options,
    OptionStyle,
    ParseError,
    Parser,
    RequiredError,
    TooManyArgsError,
    UnknownFlagError,
    option,
)


class Switches:
    a: bool = Option("a")
    b: bool = Option("b")
    c: bool = Option("c")


class Values:
    verbose: list[bool] = Option("v", "verbose", "Show verbose debug information")
    flag: list[bool] = Option("f", "flag")
    value: str = Option("V", "value", "A value")


class Attached:
    value: str = Option("v", "value")


class Captures:
    numbers: list[int] = Option("s", "numbers", terminator="END")
    messages: list[list[str]] = Option("m", "message", terminator=";")


class Optionals:
    items: list[int] | None = Option("i", "item")
    limits: dict[str, int] | None = Option("t", "limit")
    groups: list[list[str]] | None = Option("g", "group", terminator=";")


class Unassigned(Optionals):
    def __init__(self):
        self.items = None
        self.limits = None
        self.groups = None


class Passthrough:
    verbose: bool = Option("v", "verbose")
    number: int = Option("n", "number")


class Required:
    name: str = Option("n", "name", required=True)
    other: str = Option("o", "other", required=True)
    third: str = Option(long="third")


class Add:
    force: bool = Option("f", "force")
    files: list[str] = Cardinal("FILE")


class Remote:
    url: str = Option("u", "url")
    add: Add = Command("add", "Add a remote", aliases=("a",))


class Tool:
    verbose: bool = Option("v", "verbose")
    add: Add = Command("add", "Add a file")
    remote: Remote = Command("remote", "Manage remotes")


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Typed:
    count: int = Option("c", "count")
    level: Int8 = Option("l", "level")
    mask: int = Option("m", "mask", base=16)
    ratio: float = Option("r", "ratio")
    timeout: datetime.timedelta = Option("t", "timeout")
    color: Color = Option("C", "color")
    labels: dict[str, int] = Option("L", "label")
    mode: str = Option(long="mode", choices=("fast", "slow"))
    tags: list[str] = Option("T", "tag", default=("x", "y"))
    style: str = Option(long="style", optional=True, optional_value="auto")
    switch: bool = Option(long="switch", optional=True)


class Server:
    port: int = Option("p", "port", "Port to listen on", default="8080", env="PORT")
    hosts: list[str] = Option(long="host", env="HOSTS", env_delim=",")


class Namespaced:
    server: Server = Group("Server Options", namespace="server", env_namespace="SERVER")
    user: str = Option("u", "user", "User name", required=True, default="root")


class Copy:
    source: str = Cardinal("SOURCE", required=True)
    targets: list[str] = Cardinal("TARGET")


class Single:
    name: str = Cardinal("NAME")


class Strict:
    run: Single = Command("run", strict=True)


class Execute:
    received = None

    def __execute__(self, args):
        self.received = args


class Failing:
    def __execute__(self, args):
        raise RuntimeError("execute failed")


class Dispatch:
    run: Execute = Command("run", "Run something")
    fail: Failing = Command("fail", "Fail")


class Callbacks:
    def __init__(self):
        self.paths = []
        self.pings = 0

    @option("c", "config", "Load a configuration file")
    def config(self, path: str):
        self.paths.append(path)

    @option(long="ping")
    def ping(self):
        self.pings += 1

    @option(long="broken")
    def broken(self):
        raise ValueError("broken callback")


class TestClusters(TestCase):
    """Short clusters and attached arguments."""

    def testBooleanClusterSetsAll(self):
        switches = Switches()
        rest = Parser(switches, Options.NONE, name="app").parse_args(["-abc", "rest"])
        self.assertEqual(rest, ["rest"])
        self.assertTrue(switches.a and switches.b and switches.c)

    def testRepeatedBooleanAppends(self):
        values = Values()
        Parser(values, Options.NONE, name="app").parse_args(["-vvv"])
        self.assertEqual(values.verbose, [True, True, True])

    def testAttachedArgumentHeuristic(self):
        attached = Attached()
        Parser(attached, Options.NONE, name="app").parse_args(["-vff"])
        self.assertEqual(attached.value, "ff")

    def testInlineValueBindsToLastFlag(self):
        values = Values()
        Parser(values, Options.NONE, name="app").parse_args(["-ffV=value"])
        self.assertEqual(values.flag, [True, True])
        self.assertEqual(values.value, "value")

    def testEqualsSplitsOnce(self):
        values = Values()
        parser = Parser(values, Options.NONE, name="app")
        parser.parse_args(["-V=value"])
        self.assertEqual(values.value, "value")
        parser.parse_args(["--value=a=b"])
        self.assertEqual(values.value, "a=b")

    def testLongNamesIgnoreCase(self):
        values = Values()
        Parser(values, Options.NONE, name="app").parse_args(["--VALUE", "x"])
        self.assertEqual(values.value, "x")

    def testArgumentTakingFlagInsideClusterRaises(self):
        values = Values()
        with self.assertRaises(ExpectedArgumentError):
            Parser(values, Options.NONE, name="app").parse_args(["-fV"])

    def testUnknownShortFlagRaises(self):
        with self.assertRaises(UnknownFlagError) as context:
            Parser(Switches(), Options.NONE, name="app").parse_args(["-ax"])
        self.assertEqual(str(context.exception), "unknown flag `x'")

    def testEmptyShortNameRaises(self):
        with self.assertRaises(UnknownFlagError) as context:
            Parser(Switches(), Options.NONE, name="app").parse_args(["-=x"])
        self.assertEqual(str(context.exception), "unknown flag `-=x'")


class TestArguments(TestCase):
    """Option arguments, booleans and conversions."""

    def testMissingArgumentRaises(self):
        with self.assertRaises(ExpectedArgumentError) as context:
            Parser(Values(), Options.NONE, name="app").parse_args(["--value"])
        self.assertEqual(str(context.exception), "expected argument for flag `-V, --value'")

    def testOptionLikeArgumentRaises(self):
        with self.assertRaises(ExpectedArgumentError):
            Parser(Values(), Options.NONE, name="app").parse_args(["--value", "-v"])

    def testNegativeNumberIsAccepted(self):
        typed = Typed()
        Parser(typed, Options.NONE, name="app").parse_args(["--count", "-5"])
        self.assertEqual(typed.count, -5)

    def testOptionalContainersStartEmpty(self):
        optionals = Optionals()
        Parser(optionals, Options.NONE, name="app").parse_args(["-i", "1", "-i", "2", "-t", "a:1", "-g", "x", "y", ";"])
        self.assertEqual(optionals.items, [1, 2])
        self.assertEqual(optionals.limits, {"a": 1})
        self.assertEqual(optionals.groups, [["x", "y"]])

    def testNoneContainersAreCreatedOnFirstUse(self):
        target = Unassigned()
        parser = Parser(target, Options.NONE, name="app")
        parser.parse_args([])
        self.assertIsNone(target.items)
        parser.parse_args(["--item", "3", "--limit", "b:2", "--group", "z"])
        self.assertEqual(target.items, [3])
        self.assertEqual(target.limits, {"b": 2})
        self.assertEqual(target.groups, [["z"]])

    def testBooleanWithArgumentRaises(self):
        with self.assertRaises(NoArgumentForBoolError) as context:
            Parser(Values(), Options.NONE, name="app").parse_args(["--verbose=true"])
        self.assertEqual(str(context.exception), "bool flag `-v, --verbose' cannot have an argument")

    def testOptionalBooleanTakesArgument(self):
        typed = Typed()
        parser = Parser(typed, Options.NONE, name="app")
        parser.parse_args(["--switch"])
        self.assertTrue(typed.switch)
        parser.parse_args(["--switch=false"])
        self.assertFalse(typed.switch)

    def testOptionalValue(self):
        typed = Typed()
        parser = Parser(typed, Options.NONE, name="app")
        self.assertEqual(parser.parse_args(["--style", "never"]), ["never"])
        self.assertEqual(typed.style, "auto")
        parser.parse_args(["--style=never"])
        self.assertEqual(typed.style, "never")

    def testConversions(self):
        typed = Typed()
        Parser(typed, Options.NONE, name="app").parse_args([
            "-c", "42", "-m", "ff", "-r", "0.5", "-t", "1h30m",
            "-C", "GREEN", "-L", "a:1", "-L", "b:2", "--mode", "fast",
        ])
        self.assertEqual(typed.count, 42)
        self.assertEqual(typed.mask, 255)
        self.assertEqual(typed.ratio, 0.5)
        self.assertEqual(typed.timeout, datetime.timedelta(hours=1, minutes=30))
        self.assertIs(typed.color, Color.GREEN)
        self.assertEqual(typed.labels, {"a": 1, "b": 2})
        self.assertEqual(typed.mode, "fast")

    def testEnumByValue(self):
        typed = Typed()
        Parser(typed, Options.NONE, name="app").parse_args(["--color", "red"])
        self.assertIs(typed.color, Color.RED)

    def testMarshalErrorNamesFlagAndType(self):
        with self.assertRaises(MarshalError) as context:
            Parser(Typed(), Options.NONE, name="app").parse_args(["--count", "abc"])
        self.assertIn("invalid argument for flag `-c, --count' (expected int)", str(context.exception))

    def testBitWidthIsEnforced(self):
        with self.assertRaises(MarshalError) as context:
            Parser(Typed(), Options.NONE, name="app").parse_args(["--level", "300"])
        self.assertIn("expected int8", str(context.exception))

    def testChoicesAreEnforced(self):
        with self.assertRaises(MarshalError):
            Parser(Typed(), Options.NONE, name="app").parse_args(["--mode", "medium"])

    def testCommandLineReplacesDefaultList(self):
        typed = Typed()
        parser = Parser(typed, Options.NONE, name="app")
        parser.parse_args([])
        self.assertEqual(typed.tags, ["x", "y"])
        parser.parse_args(["-T", "z", "-T", "w"])
        self.assertEqual(typed.tags, ["z", "w"])

    def testStateIsResetBetweenParses(self):
        typed = Typed()
        parser = Parser(typed, Options.NONE, name="app")
        parser.parse_args(["--count", "3"])
        parser.parse_args([])
        self.assertEqual(typed.count, 0)

    def testStringArgumentsAreSplit(self):
        values = Values()
        rest = Parser(values, Options.NONE, name="app").parse_args("--value 'a b' tail")
        self.assertEqual(values.value, "a b")
        self.assertEqual(rest, ["tail"])


class TestTerminators(TestCase):
    """Terminated captures."""

    def testCaptureConsumesTerminator(self):
        captures = Captures()
        rest = Parser(captures, Options.NONE, name="app").parse_args(["-s", "1", "2", "3", "END", "tail"])
        self.assertEqual(captures.numbers, [1, 2, 3])
        self.assertEqual(rest, ["tail"])

    def testCaptureReplacesPlainList(self):
        captures = Captures()
        rest = Parser(captures, Options.NONE, name="app").parse_args(["-s", "1", "2", "3", "END", "-s", "4", "5"])
        self.assertEqual(captures.numbers, [4, 5])
        self.assertEqual(rest, [])

    def testCaptureKeepsOptionLikeTokens(self):
        captures = Captures()
        Parser(captures, Options.NONE, name="app").parse_args(["-m", "-x", "--", "--y", ";"])
        self.assertEqual(captures.messages, [["-x", "--", "--y"]])

    def testCaptureAppendsNestedList(self):
        captures = Captures()
        Parser(captures, Options.NONE, name="app").parse_args(["-m", "a", ";", "-m", ";", "-m", "b"])
        self.assertEqual(captures.messages, [["a"], [], ["b"]])

    def testInlineValueOnTerminatedOptionRaises(self):
        with self.assertRaises(ExpectedArgumentError):
            Parser(Captures(), Options.NONE, name="app").parse_args(["-m=foo"])


class TestPassthrough(TestCase):
    """Leftovers, "--" and unknown flags."""

    def testDoubleDashPassthrough(self):
        passthrough = Passthrough()
        rest = Parser(passthrough, Options.PASS_DOUBLE_DASH, name="app").parse_args(["-v", "--", "-v", "-g"])
        self.assertTrue(passthrough.verbose)
        self.assertEqual(rest, ["-v", "-g"])

    def testDoubleDashWithoutFlagIsPositional(self):
        rest = Parser(Passthrough(), Options.NONE, name="app").parse_args(["a", "--", "b"])
        self.assertEqual(rest, ["a", "--", "b"])

    def testDoubleDashFillsCardinals(self):
        copy = Copy()
        rest = Parser(copy, Options.PASS_DOUBLE_DASH, name="app").parse_args(["--", "-s", "-t"])
        self.assertEqual(copy.source, "-s")
        self.assertEqual(copy.targets, ["-t"])
        self.assertEqual(rest, [])

    def testPassAfterNonOption(self):
        passthrough = Passthrough()
        rest = Parser(passthrough, Options.PASS_AFTER_NON_OPTION, name="app").parse_args(["file", "-v", "-n", "1"])
        self.assertFalse(passthrough.verbose)
        self.assertEqual(rest, ["file", "-v", "-n", "1"])

    def testIgnoreUnknownKeepsOrder(self):
        passthrough = Passthrough()
        rest = Parser(passthrough, Options.IGNORE_UNKNOWN, name="app").parse_args(
            ["-v", "--unknown", "file", "-x", "--number=3", "tail"]
        )
        self.assertTrue(passthrough.verbose)
        self.assertEqual(passthrough.number, 3)
        self.assertEqual(rest, ["--unknown", "file", "-x", "tail"])

    def testUnknownLongFlagRaises(self):
        with self.assertRaises(UnknownFlagError) as context:
            Parser(Passthrough(), Options.NONE, name="app").parse_args(["--nope"])
        self.assertEqual(str(context.exception), "unknown flag `nope'")

    def testSingleDashIsPositional(self):
        rest = Parser(Passthrough(), Options.NONE, name="app").parse_args(["-"])
        self.assertEqual(rest, ["-"])


class TestRequired(TestCase):
    """Required options and cardinals."""

    def testSingleMissingOption(self):
        class One:
            name: str = Option("n", "name", required=True)

        with self.assertRaises(RequiredError) as context:
            Parser(One(), Options.NONE, name="app").parse_args([])
        self.assertEqual(str(context.exception), "the required flag `-n, --name' was not specified")
        self.assertIs(context.exception.kind, ErrorKind.REQUIRED)

    def testTwoMissingOptions(self):
        with self.assertRaises(RequiredError) as context:
            Parser(Required(), Options.NONE, name="app").parse_args([])
        self.assertEqual(
            str(context.exception),
            "the required flags `-n, --name' and `-o, --other' were not specified",
        )

    def testSatisfiedRequiredOptions(self):
        required = Required()
        Parser(required, Options.NONE, name="app").parse_args(["-n", "a", "--other=b"])
        self.assertEqual((required.name, required.other), ("a", "b"))

    def testDefaultSatisfiesRequired(self):
        namespaced = Namespaced()
        Parser(namespaced, Options.NONE, name="app", environ={}).parse_args([])
        self.assertEqual(namespaced.user, "root")

    def testCardinals(self):
        copy = Copy()
        Parser(copy, Options.NONE, name="app").parse_args(["a", "b", "c"])
        self.assertEqual(copy.source, "a")
        self.assertEqual(copy.targets, ["b", "c"])

    def testMissingCardinal(self):
        with self.assertRaises(RequiredError) as context:
            Parser(Copy(), Options.NONE, name="app").parse_args([])
        self.assertEqual(str(context.exception), "the required argument `SOURCE` was not provided")

    def testStrictCommandRejectsSurplus(self):
        strict = Strict()
        parser = Parser(strict, Options.NONE, name="app")
        parser.parse_args(["run", "a"])
        self.assertEqual(strict.run.name, "a")
        with self.assertRaises(TooManyArgsError):
            parser.parse_args(["run", "a", "b"])


class TestCommands(TestCase):
    """Command selection, scoping and dispatch."""

    def testParentFlagBeforeAndAfterCommand(self):
        tool = Tool()
        parser = Parser(tool, Options.NONE, name="app")
        parser.parse_args(["-v", "add", "-f"])
        self.assertTrue(tool.verbose and tool.add.force)
        parser.parse_args(["add", "-v"])
        self.assertTrue(tool.verbose)
        self.assertIs(parser.active, parser.find("add"))

    def testChildFlagBeforeCommandRaises(self):
        with self.assertRaises(UnknownFlagError):
            Parser(Tool(), Options.NONE, name="app").parse_args(["-f", "add"])

    def testNestedCommandsAndAliases(self):
        tool = Tool()
        Parser(tool, Options.NONE, name="app").parse_args(["remote", "-u", "x", "a", "-f", "one", "two"])
        self.assertEqual(tool.remote.url, "x")
        self.assertTrue(tool.remote.add.force)
        self.assertEqual(tool.remote.add.files, ["one", "two"])

    def testMissingCommand(self):
        with self.assertRaises(RequiredError) as context:
            Parser(Tool(), Options.NONE, name="app").parse_args([])
        self.assertEqual(str(context.exception), "Please specify one command of: add, remote")

    def testUnknownCommandSuggestion(self):
        with self.assertRaises(RequiredError) as context:
            Parser(Tool(), Options.NONE, name="app").parse_args(["ad"])
        self.assertEqual(str(context.exception), "Unknown command `ad', did you mean `add'?")

    def testIgnoredFlagsAreNotCommandCandidates(self):
        with self.assertRaises(RequiredError) as context:
            Parser(Tool(), Options.IGNORE_UNKNOWN, name="app").parse_args(["--bogus", "ad"])
        self.assertEqual(str(context.exception), "Unknown command `ad', did you mean `add'?")

    def testUnknownCommandListing(self):
        with self.assertRaises(RequiredError) as context:
            Parser(Tool(), Options.NONE, name="app").parse_args(["zzzzzz"])
        self.assertEqual(
            str(context.exception),
            "Unknown command `zzzzzz'. Please specify one command of: add, remote",
        )

    def testOptionalSubcommands(self):
        rest = Parser(Tool(), Options.NONE, name="app", subcommands_optional=True).parse_args(["x"])
        self.assertEqual(rest, ["x"])

    def testExecuteReceivesLeftovers(self):
        dispatch = Dispatch()
        rest = Parser(dispatch, Options.NONE, name="app").parse_args(["run", "a", "b"])
        self.assertEqual(rest, [])
        self.assertEqual(dispatch.run.received, ["a", "b"])

    def testExecuteErrorPropagates(self):
        with self.assertRaises(RuntimeError):
            Parser(Dispatch(), Options.NONE, name="app").parse_args(["fail"])

    def testManualTree(self):
        class Flags:
            debug: bool = Option("d", "debug")

        flags = Flags()
        parser = Parser(options=Options.NONE, name="app")
        parser.add_group("Debug Options", target=flags, namespace="dbg")
        parser.parse_args(["--dbg.debug"])
        self.assertTrue(flags.debug)


class TestCallbacks(TestCase):
    """Callback options."""

    def testCallbackReceivesArgument(self):
        callbacks = Callbacks()
        Parser(callbacks, Options.NONE, name="app").parse_args(["-c", "a.ini", "--config=b.ini", "--ping"])
        self.assertEqual(callbacks.paths, ["a.ini", "b.ini"])
        self.assertEqual(callbacks.pings, 1)

    def testCallbackErrorBecomesParseError(self):
        with self.assertRaises(ParseError) as context:
            Parser(Callbacks(), Options.NONE, name="app").parse_args(["--broken"])
        self.assertIs(context.exception.kind, ErrorKind.UNKNOWN)
        self.assertEqual(str(context.exception), "broken callback")


class TestEnvironment(TestCase):
    """Defaults, env values and namespaces."""

    def testNamespacedLongName(self):
        namespaced = Namespaced()
        Parser(namespaced, Options.NONE, name="app", environ={}).parse_args(["--server.port=9000"])
        self.assertEqual(namespaced.server.port, 9000)

    def testDefaultValue(self):
        namespaced = Namespaced()
        Parser(namespaced, Options.NONE, name="app", environ={}).parse_args([])
        self.assertEqual(namespaced.server.port, 8080)

    def testEnvironmentOverridesDefault(self):
        namespaced = Namespaced()
        environ = {"SERVER_PORT": "7000", "SERVER_HOSTS": "a,b"}
        Parser(namespaced, Options.NONE, name="app", environ=environ).parse_args([])
        self.assertEqual(namespaced.server.port, 7000)
        self.assertEqual(namespaced.server.hosts, ["a", "b"])

    def testCommandLineOverridesEnvironment(self):
        namespaced = Namespaced()
        Parser(namespaced, Options.NONE, name="app", environ={"SERVER_PORT": "7000"}).parse_args(["--server.port", "1"])
        self.assertEqual(namespaced.server.port, 1)


class TestWindowsStyle(TestCase):
    """The '/' option style."""

    def testSlashForms(self):
        values = Values()
        parser = Parser(values, Options.NONE, name="app", style=OptionStyle.WINDOWS)
        parser.parse_args(["/V:value", "/verbose"])
        self.assertEqual(values.value, "value")
        self.assertEqual(values.verbose, [True])
        parser.parse_args(["/value:x"])
        self.assertEqual(values.value, "x")

    def testSlashNamesInMessages(self):
        with self.assertRaises(ExpectedArgumentError) as context:
            Parser(Values(), Options.NONE, name="app", style=OptionStyle.WINDOWS).parse_args(["/value"])
        self.assertEqual(str(context.exception), "expected argument for flag `/V, /value'")


class TestHelpFlag(TestCase):
    """The built-in help option."""

    def testHelpRaisesHelpError(self):
        with self.assertRaises(HelpError) as context:
            Parser(Values(), Options.HELP_FLAG, name="app").parse_args(["--help"])
        self.assertIs(context.exception.kind, ErrorKind.HELP)
        self.assertIn("Usage:", str(context.exception))
        self.assertIn("Application Options:", str(context.exception))
        self.assertIn("Help Options:", str(context.exception))

    def testHelpOfActiveCommand(self):
        with self.assertRaises(HelpError) as context:
            Parser(Tool(), Options.HELP_FLAG, name="app").parse_args(["add", "-h"])
        self.assertIn("app [OPTIONS] add", str(context.exception))
        self.assertIn("--force", str(context.exception))

    def testHelpNamesAreOnlyAddedWhenFree(self):
        class Host:
            host: str = Option("h", "host")

        host = Host()
        parser = Parser(host, Options.HELP_FLAG, name="app")
        parser.parse_args(["-h", "example.org"])
        self.assertEqual(host.host, "example.org")
        with self.assertRaises(HelpError):
            parser.parse_args(["--help"])


if __name__ == "__main__":
    unittest.main()
