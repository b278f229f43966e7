"""Main CLI entry point for binproxy."""

import click

from binproxy import __version__
from binproxy.config.settings import Settings


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to YAML configuration file"
)
@click.pass_context
def cli(ctx, config):
    """binproxy - Transparent reverse proxy for the Binance REST API.

    Forwards browser requests to the upstream, rewriting paths, query
    parameters and headers, and asserting permissive CORS headers.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["settings"] = Settings.load_from_file(config)
    else:
        ctx.obj["settings"] = Settings()


# Import and register commands
from binproxy.cli.serve_cmd import serve
from binproxy.cli.check_cmd import check

cli.add_command(serve)
cli.add_command(check)


if __name__ == "__main__":
    cli()
