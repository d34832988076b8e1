r"""
Argoflags descriptor tree (groups and commands).

Overview
- Group: a named, ordered collection of options plus nested groups. Groups are
  what help prints as sections and what ini files name as [sections]. A group
  may carry a namespace (prefix for descendant long names, "server.port") and
  an env_namespace (prefix for descendant environment keys, "SERVER_PORT").
- Command: a group selectable by a bare token (with aliases). Commands own
  positional cardinals and child commands, and form paths such as
  "app remote add".
- Scope: the lookup tables (long names, short names, child commands) of one
  command, i.e. the union of the command's groups and every ancestor's groups.

Construction
- From a configuration object: Group("Name", target=obj) or Command("name",
  target=obj) scans obj's annotated class (see argoflags.schema) and binds every
  declaration to obj. Nested Group/Command markers instantiate their annotated
  class when the attribute is not already set on obj.
- By hand: add_option / add_group / add_command / add_cardinal.

Invariants (checked on every attachment)
- Within one command scope, long names are unique after case folding and short
  names are unique.
- Child command names and aliases of one command are unique.
- Only the last cardinal of a command may be a list.
Violations raise ValueError at build time; parsing never sees a broken tree.
"""
from .arguments import DescriptorType, Option, Cardinal
from .schema import scan
from .tokens import OptionStyle
from .utils import *

_defaults = {
    "style": OptionStyle.POSIX,
    "namespace_delimiter": ".",
    "env_namespace_delimiter": "_",
}


def _sanitize_group_metadata(cls, metadata, /):
    """
    Internal: validate the shared group/command metadata in place.

    - name / description: Unset or non-empty string (trimmed).
    - namespace / env_namespace: Unset or non-empty string without whitespace.
    """
    for field in ("name", "description", "namespace", "env_namespace"):
        if metadata[field] is None:
            metadata[field] = Unset
        if not isinstance(value := metadata[field], str | Unset):
            raise TypeError(f"{cls.__typename__} '{field}' must be a string")
        elif isinstance(value, str) and not (value := value.strip()):
            raise ValueError(f"{cls.__typename__} '{field}' cannot be empty")
        elif field in ("namespace", "env_namespace") and isinstance(value, str) and any(map(str.isspace, value)):
            raise ValueError(f"{cls.__typename__} '{field}' cannot contain whitespace")
        metadata[field] = coalesce(value)


def _instance(declaration, target, attribute, annotation):
    """
    Return the configuration object a nested group/command marker points at.
    """
    if target is Unset:
        raise TypeError(f"{type(declaration).__typename__} {attribute!r} must be bound to a target")
    if not isinstance(instance := getattr(target, attribute, Unset), Unset | Group):
        return instance
    if not isinstance(annotation, type):
        raise TypeError(f"{type(declaration).__typename__} {attribute!r} must be annotated with a class")
    setattr(target, attribute, instance := annotation())
    return instance


class Group(metaclass=DescriptorType):
    """
    Named, ordered collection of options and nested groups.

    Lifecycle
    - Built once (from a target or by hand) and then reused across parses.
    - The parser resets option state at the start of every parse through
      store_defaults().
    """

    __introspectable__ = (
        "name",
        "description",
        "namespace",
        "env_namespace",
        "hidden",
        "options",
        "groups",
        "parent",
        "target",
    )

    __displayable__ = (
        "name",
        "description",
        "namespace",
        "options",
        "groups",
    )

    def __new__(
            cls,
            name=Unset,
            /,
            description=Unset,
            *,
            target=Unset,
            namespace=Unset,
            env_namespace=Unset,
            hidden=False,
    ):
        metadata = {
            "name": name,
            "description": description,
            "namespace": namespace,
            "env_namespace": env_namespace,
            "hidden": bool(hidden),
        }
        _sanitize_group_metadata(cls, metadata)

        self = super().__new__(cls)
        for field, object in metadata.items():
            setattr(self, "_" + field, object)

        self._options = []
        self._groups = []
        self._commands = []
        self._cardinals = []
        self._parent = None
        self._target = None

        if target is not Unset:
            self._scan(target)
        return self

    def __bind__(self, target, attribute, annotation=Unset):
        return Group(
            self._name or attribute,
            self._description,
            target=_instance(self, target, attribute, annotation),
            namespace=self._namespace,
            env_namespace=self._env_namespace,
            hidden=self._hidden,
        )

    def _scan(self, target):
        self._target = target
        for attribute, declaration, annotation in scan(target):
            bound = declaration.__bind__(target, attribute, annotation)
            match bound:
                case Command():
                    self._attach(self._commands, bound)
                case Group():
                    self._attach(self._groups, bound)
                case Option():
                    self._attach(self._options, bound)
                case Cardinal():
                    self._attach(self._cardinals, bound)
                case _:
                    raise TypeError(f"{type(self).__typename__} cannot hold {bound!r}")

    def _attach(self, registry, item):
        if isinstance(item, Group):
            if item._parent is not None:
                raise ValueError(f"{type(item).__typename__} {item.name!r} already has a parent")
            if item._name is None:
                raise ValueError(f"{type(item).__typename__} must have a name")
            item._parent = self
        elif item._group is not Unset:
            raise ValueError(f"{type(item).__typename__} `{item}' is already owned by a group")
        else:
            item._group = self
        registry.append(item)
        try:
            self.root._verify()
        except ValueError:
            registry.remove(item)
            if isinstance(item, Group):
                item._parent = None
            else:
                item._group = Unset
            raise
        return item

    @property
    def root(self):
        """
        Topmost node of the tree this group belongs to.
        """
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def command(self):
        """
        Nearest enclosing Command (self included), or None for detached groups.
        """
        node = self
        while node is not None and not isinstance(node, Command):
            node = node._parent
        return node

    @property
    def settings(self):
        return getattr(self.root, "_settings", _defaults)

    @property
    def prefixes(self):
        return self.settings["style"].prefixes

    @property
    def namespace_prefix(self):
        """
        Joined namespaces from the root down to this group, with a trailing delimiter.
        """
        return self._prefix("_namespace", self.settings["namespace_delimiter"])

    @property
    def env_prefix(self):
        return self._prefix("_env_namespace", self.settings["env_namespace_delimiter"])

    def _prefix(self, field, delimiter):
        names = []
        node = self
        while node is not None:
            if (name := getattr(node, field)) is not None:
                names.append(name)
            node = node._parent
        return "".join(name + delimiter for name in reversed(names))

    def iter_options(self):
        """
        Options of this group followed by those of nested groups (depth first).
        """
        yield from self._options
        for group in self._groups:
            yield from group.iter_options()

    def iter_groups(self):
        """
        This group followed by nested groups (depth first).
        """
        yield self
        for group in self._groups:
            yield from group.iter_groups()

    def find_option(self, name, /, *, ini=False):
        """
        Look an option up by name.

        order
        - ini lookups first match ini names, then attribute names (both
          case-insensitive) and skip no_ini options.
        - then long names (case-insensitive, namespaced), then short names.
        """
        lowered = name.lower()
        options = [option for option in self.iter_options() if not (ini and option.no_ini)]
        if ini:
            for option in options:
                if option.ini_name is not None and option.ini_name.lower() == lowered:
                    return option
            for option in options:
                if isinstance(option.attribute, str) and option.attribute.lower() == lowered:
                    return option
        for option in options:
            if option.long_name is not None and option.long_name.lower() == lowered:
                return option
        for option in options:
            if option.short == name:
                return option
        return None

    def add_option(self, option, /, target=Unset, attribute=Unset, annotation=Unset):
        """
        Attach an option, binding it to target.<attribute> first when given.
        """
        if not isinstance(option, Option):
            raise TypeError(f"{type(self).__typename__}.add_option() argument must be an option")
        if target is not Unset or attribute is not Unset:
            option = option.__bind__(target, attribute, annotation)
        elif option.target is Unset:
            if option.callback is Unset:
                raise TypeError(f"option `{option}' must be bound to a target attribute")
            option = option.__bind__(Unset)
        return self._attach(self._options, option)

    def add_group(self, group, /, description=Unset, *, target=Unset, namespace=Unset, env_namespace=Unset, hidden=False):
        """
        Attach a nested group (an instance, or one built from the arguments).
        """
        if not isinstance(group, Group):
            group = Group(group, description, target=target, namespace=namespace, env_namespace=env_namespace, hidden=hidden)
        if isinstance(group, Command):
            raise TypeError(f"{type(self).__typename__}.add_group() argument cannot be a command")
        return self._attach(self._groups, group)

    def _verify(self):
        if isinstance(self, Command):
            for command in self.iter_commands():
                command.scope()
        else:
            Scope.of(self.iter_options())
            for command in _collect(self, "_commands"):
                for node in command.iter_commands():
                    node.scope()


def _collect(group, field):
    """
    Items registered under field in group and its nested groups, in order.
    """
    yield from getattr(group, field)
    for child in group._groups:
        yield from _collect(child, field)


class Command(Group):
    """
    A group selected by a bare token; owns cardinals and child commands.

    Highlights
    - aliases: alternate selector tokens.
    - subcommands_optional: no child command has to be selected.
    - strict: surplus positional tokens raise TooManyArgsError.
    - target: when the target defines __execute__(args), the parser calls it
      with the leftover arguments once this command is the active one.
    """

    __introspectable__ = (
        "long_description",
        "aliases",
        "subcommands_optional",
        "strict",
    )

    __displayable__ = (
        "name",
        "description",
        "aliases",
        "commands",
        "cardinals",
    )

    def __new__(
            cls,
            name=Unset,
            /,
            description=Unset,
            *,
            target=Unset,
            long_description=Unset,
            aliases=(),
            subcommands_optional=False,
            strict=False,
            namespace=Unset,
            env_namespace=Unset,
            hidden=False,
    ):
        self = super().__new__(
            cls,
            name,
            description,
            namespace=namespace,
            env_namespace=env_namespace,
            hidden=hidden,
        )

        if long_description is None:
            long_description = Unset
        if not isinstance(long_description, str | Unset):
            raise TypeError(f"{cls.__typename__} 'long_description' must be a string")
        if isinstance(aliases, str):
            aliases = (aliases,)
        aliases = tuple(aliases)
        if not all(isinstance(alias, str) and alias and not alias.startswith("-") for alias in aliases):
            raise ValueError(f"{cls.__typename__} 'aliases' must be non-empty strings not starting with '-'")
        if len(set(aliases)) != len(aliases):
            raise ValueError(f"{cls.__typename__} 'aliases' cannot contain duplicates")

        self._long_description = coalesce(long_description)
        self._aliases = aliases
        self._subcommands_optional = bool(subcommands_optional)
        self._strict = bool(strict)
        self._settings = dict(_defaults)

        if target is not Unset:
            self._scan(target)
        return self

    def __bind__(self, target, attribute, annotation=Unset):
        return Command(
            self._name or attribute,
            self._description,
            target=_instance(self, target, attribute, annotation),
            long_description=self._long_description,
            aliases=self._aliases,
            subcommands_optional=self._subcommands_optional,
            strict=self._strict,
            namespace=self._namespace,
            env_namespace=self._env_namespace,
            hidden=self._hidden,
        )

    @property
    def commands(self):
        """
        Child commands declared on this command or any of its groups.
        """
        return list(_collect(self, "_commands"))

    @property
    def cardinals(self):
        """
        Positional slots declared on this command or any of its groups.
        """
        return list(_collect(self, "_cardinals"))

    @property
    def path(self):
        """
        Commands from the root down to this one.
        """
        path = []
        node = self
        while node is not None:
            if isinstance(node, Command):
                path.append(node)
            node = node._parent
        return tuple(reversed(path))

    @property
    def target(self):
        return self._target

    def find(self, name, /):
        """
        Child command selected by name or alias, or None.
        """
        for command in self.commands:
            if command._name == name or name in command._aliases:
                return command
        return None

    def iter_commands(self):
        """
        This command followed by every descendant command (depth first).
        """
        yield self
        for command in self.commands:
            yield from command.iter_commands()

    def scope(self):
        return Scope(self)

    def add_command(self, command, /, description=Unset, *, target=Unset, **metadata):
        """
        Attach a child command (an instance, or one built from the arguments).
        """
        if not isinstance(command, Command):
            command = Command(command, description, target=target, **metadata)
        return self._attach(self._commands, command)

    def add_cardinal(self, cardinal, /, target, attribute, annotation=str):
        if not isinstance(cardinal, Cardinal):
            raise TypeError(f"{type(self).__typename__}.add_cardinal() argument must be a cardinal")
        return self._attach(self._cardinals, cardinal.__bind__(target, attribute, annotation))

    def store_defaults(self, environ):
        """
        Reset per-parse state of every option and cardinal under this command.
        """
        for command in self.iter_commands():
            for option in command.iter_options():
                option.reset(environ)
            for cardinal in command.cardinals:
                cardinal.reset(environ)


class Scope:
    """
    Lookup tables of one command scope.

    - longs: case-folded namespaced long name -> option
    - shorts: short name -> option
    - commands: child command name or alias -> command

    Building a scope verifies the uniqueness invariants and raises ValueError.
    """
    __slots__ = ("longs", "shorts", "commands")

    def __init__(self, command):
        self.longs = {}
        self.shorts = {}
        self.commands = {}

        self._register(option for node in command.path for option in node.iter_options())

        for child in command.commands:
            for name in (child.name, *child.aliases):
                if self.commands.setdefault(name, child) is not child:
                    raise ValueError(f"command name {name!r} is already in use")

        cardinals = command.cardinals
        for cardinal in cardinals[:-1]:
            if cardinal.is_repeatable:
                raise ValueError(f"cardinal `{cardinal}' must be the last one to take a list")

    @classmethod
    def of(cls, options):
        self = cls.__new__(cls)
        self.longs = {}
        self.shorts = {}
        self.commands = {}
        self._register(options)
        return self

    def _register(self, options):
        for option in options:
            if option.long is not None and self.longs.setdefault(key := option.long_name.lower(), option) is not option:
                raise ValueError(f"option long name {key!r} is already in use")
            if option.short is not None and self.shorts.setdefault(option.short, option) is not option:
                raise ValueError(f"option short name {option.short!r} is already in use")


__all__ = (
    "Group",
    "Command",
    "Scope",
)
