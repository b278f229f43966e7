"""CLI command to start the reverse proxy."""

import click


@click.command()
@click.option("--host", default=None, help="Host to bind to (default: settings, 0.0.0.0)")
@click.option("--port", default=None, type=int, help="Port to listen on (default: $PORT or 8080)")
@click.option(
    "--upstream", default=None,
    help="Upstream API base URL (default: $BINANCE_API_URL or https://api.binance.com/api/v3)"
)
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def serve(ctx, host, port, upstream, log_level):
    """Start the Binance reverse proxy.

    \b
    Quickstart:
        binproxy serve --port 8080
        curl http://localhost:8080/api/ticker/price?symbols=BTCUSDT,ETHUSDT
    """
    import logging

    import uvicorn

    from binproxy.proxy.app import create_app
    from binproxy.proxy.forwarder import Forwarder

    settings = ctx.obj["settings"]
    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "upstream_url": upstream,
            "log_level": log_level,
        }.items()
        if value is not None
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    forwarder = Forwarder(base_url=settings.upstream_url, timeout=settings.timeout)
    app = create_app(forwarder=forwarder, settings=settings)

    base = f"http://{settings.host}:{settings.port}"
    click.echo("Binance Proxy")
    click.echo(f"  Upstream:      {forwarder.base_url}")
    click.echo(f"  Listening on:  {base}")
    click.echo()
    click.echo(f"  GET  {base}/health              Health check")
    click.echo(f"  GET  {base}/test                Test upstream connection")
    click.echo(f"  GET  {base}/swagger/index.html  Swagger UI")
    click.echo(f"  *    {base}/*                   Proxy to upstream API")
    click.echo()

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
