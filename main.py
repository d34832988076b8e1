from rich.pretty import pprint

from argoflags import *


class Add:
    force: bool = Option("f", "force", "Overwrite an existing remote")
    name: str = Cardinal("NAME", "Remote name", required=True)

    def __execute__(self, args):
        pprint(self)


class Settings:
    verbose: list[bool] = Option("v", "verbose", "Show verbose debug information")
    config: Filename = Option("c", "config", "Configuration file", env="APP_CONFIG")
    add: Add = Command("add", "Add a remote")


if __name__ == '__main__':
    parser = Parser(Settings(), name="app")
    pprint(parser)
    parser.parse_args()
