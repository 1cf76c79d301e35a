"""Command-line interface for the BTC tracker."""

import sys
import json
import asyncio
from typing import Optional
import click
import structlog

from btc_tracker.core.aggregator import LedgerAggregator
from btc_tracker.core.errors import StorageError, UpstreamError
from btc_tracker.core.ledger_client import BlockchainInfoClient
from btc_tracker.database.repository import SqlAddressRepository
from btc_tracker.models.config import TrackerConfig
from btc_tracker.utils.logging import setup_logging

logger = structlog.get_logger(__name__)


@click.group()
@click.option('--config-file', '-c', type=click.Path(exists=True),
              help='Path to .env configuration file')
@click.option('--log-level', '-l', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level')
@click.pass_context
def cli(ctx, config_file: Optional[str], log_level: str):
    """BTC address tracker CLI."""
    ctx.ensure_object(dict)

    try:
        if config_file:
            config = TrackerConfig(_env_file=config_file)
        else:
            config = TrackerConfig()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    config.log_level = log_level
    setup_logging(config)
    ctx.obj['config'] = config


@cli.command()
@click.option('--host', '-h', default=None, help='Bind host (default from config)')
@click.option('--port', '-p', type=int, default=None, help='Bind port (default from config)')
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int]):
    """Run the HTTP API server."""
    import uvicorn
    from btc_tracker.api.app import create_app

    config = ctx.obj['config']
    app = create_app(config)

    uvicorn.run(
        app,
        host=host or config.host,
        port=port or config.port,
        log_config=None,
    )


@cli.command('init-db')
@click.pass_context
def init_db(ctx):
    """Initialize the address store schema."""
    config = ctx.obj['config']
    repository = SqlAddressRepository(config.database_url)

    try:
        repository.create_tables()
        click.echo("Database initialized successfully")
    except StorageError as e:
        click.echo(f"Database initialization failed: {e}", err=True)
        sys.exit(1)
    finally:
        repository.dispose()


@cli.command()
@click.pass_context
def status(ctx):
    """Print the ledger's latest block as JSON."""
    config = ctx.obj['config']

    async def _fetch():
        async with BlockchainInfoClient.from_config(config) as client:
            return await LedgerAggregator(client).status_view()

    try:
        view = asyncio.run(_fetch())
    except UpstreamError as e:
        click.echo(f"Ledger unavailable: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(view.to_dict(), indent=2))


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
