"""offlinebuilder CLI"""

import click

from offlinebuilder import __version__
from offlinebuilder.cli.build import build
from offlinebuilder.cli.scan import scan

from .debug import add_debug_option


@click.group()
@click.version_option(__version__, prog_name="offlinebuilder")
@click.pass_context
def cli(ctx):
    """
    Build self-contained offline packages from forensic artifact definitions.
    """
    ctx.ensure_object(dict)


cli.add_command(add_debug_option(build))
cli.add_command(add_debug_option(scan))

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
