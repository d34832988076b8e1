"""
Argoflags schema provider (annotated classes -> declarations).

A configuration class declares its flags as annotated class attributes whose
values are declarations:

    class Settings:
        verbose: list[bool] = Option("v", "verbose", "Show verbose debug information")
        server: ServerSettings = Group("Server Options", namespace="server")
        add: AddCommand = Command("add", "Add a file")
        files: list[str] = Cardinal("FILE")

scan() only reports what is declared; Group/Command turn the report into a
descriptor tree. Anything exposing __bind__ counts as a declaration, which keeps
this module free of imports from the tree itself.
"""
import typing

from .utils import Unset


def scan(target, /):
    """
    Yield (attribute, declaration, annotation) for each declared field of target.

    behavior
    - base classes are visited first; an attribute redeclared in a subclass keeps
      its original position but uses the subclass declaration.
    - annotation is Unset when the attribute has none (callback options).

    raises
    - TypeError: when the annotations of the class cannot be resolved.
    """
    cls = type(target)
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exception:
        raise TypeError(f"cannot resolve annotations of {cls.__name__!r}: {exception}") from exception

    declarations = {}
    for klass in reversed(cls.__mro__):
        for attribute, declaration in vars(klass).items():
            if isinstance(declaration, type) or not callable(getattr(type(declaration), "__bind__", None)):
                declarations.pop(attribute, None)
                continue
            declarations[attribute] = declaration

    for attribute, declaration in declarations.items():
        yield attribute, declaration, hints.get(attribute, Unset)


__all__ = (
    "scan",
)
