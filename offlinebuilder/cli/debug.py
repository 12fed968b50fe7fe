import click

from .utils.logging import configure_logging


def _debug_callback(ctx: click.Context, param: click.Parameter, value: bool) -> bool:
    """Record the debug flag on the root context and (re)configure logging.

    A subcommand may switch debug on, but only the root command may switch
    it back off.
    """
    root = ctx.find_root()
    root.ensure_object(dict)
    current = root.obj.get("DEBUG", False)

    if value or ctx is root:
        current = value
    root.obj["DEBUG"] = current

    configure_logging(current)
    return current


def add_debug_option(cmd: click.Command) -> click.Command:
    """Attach a ``--debug/--no-debug`` flag to a click command or group."""
    if any(param.name == "debug" for param in cmd.params):
        return cmd

    cmd.params.insert(
        0,
        click.Option(
            ["--debug/--no-debug"],
            default=False,
            is_eager=True,
            expose_value=False,
            callback=_debug_callback,
            help="Enable debug output.",
        ),
    )
    return cmd


def is_debug(ctx: click.Context) -> bool:
    obj = ctx.find_root().obj or {}
    return bool(obj.get("DEBUG", False))
