from __future__ import annotations

import asyncio
from typing import Optional, Tuple

import click
import uvicorn

from cellgate import __version__
from cellgate.client import GatewayClient
from cellgate.config import GatewayConfig, load_config
from cellgate.core.errors import GatewayError
from cellgate.core.models import CellSetModel
from cellgate.utils.logging import configure_logging


def _format_bytes(data: bytes) -> str:
    return data.decode("utf-8", "backslashreplace")


def _print_cell_set(cell_set: CellSetModel) -> None:
    for row in cell_set:
        for cell in row:
            click.echo(
                f"{_format_bytes(row.key)}\t{_format_bytes(cell.column)}\t"
                f"{cell.timestamp}\t{_format_bytes(cell.value)}"
            )


@click.group()
@click.version_option(__version__, prog_name="cellgate")
def cli() -> None:
    """Cellgate REST gateway."""


@cli.command(help="Run the gateway HTTP server.")
@click.option("--config", "config_path", type=click.Path(exists=True), default=None)
@click.option("--host", default=None, type=str)
@click.option("--port", default=None, type=int)
def serve(config_path: Optional[str], host: Optional[str], port: Optional[int]) -> None:
    config = GatewayConfig.from_yaml(config_path) if config_path else load_config()
    configure_logging(config.log_level, json_output=config.log_json)

    from cellgate.api.server import create_app

    uvicorn.run(
        create_app(config),
        host=host or config.host,
        port=port or config.port,
        log_config=None,
    )


@cli.command(help="Fetch several rows from a running gateway.")
@click.argument("table")
@click.argument("rows", nargs=-1, required=True)
@click.option("--url", default="http://127.0.0.1:8080", show_default=True)
@click.option("--column", "columns", multiple=True, help="family or family:qualifier")
@click.option("--filter", "filter_expression", default=None, type=str)
@click.option("--versions", default=None, type=int)
@click.option("--timeout", default=30.0, type=float)
def multiget(
    table: str,
    rows: Tuple[str, ...],
    url: str,
    columns: Tuple[str, ...],
    filter_expression: Optional[str],
    versions: Optional[int],
    timeout: float,
) -> None:
    async def run() -> Optional[CellSetModel]:
        async with GatewayClient(url, timeout=timeout) as client:
            return await client.multiget(
                table,
                rows,
                columns=list(columns) or None,
                filter=filter_expression,
                b64_keys=True,
                versions=versions,
            )

    try:
        cell_set = asyncio.run(run())
    except GatewayError as exc:
        raise click.ClickException(exc.message) from exc
    if cell_set is None:
        click.echo("no rows found", err=True)
        raise SystemExit(1)
    _print_cell_set(cell_set)


@cli.command(help="List the tables of a running gateway.")
@click.option("--url", default="http://127.0.0.1:8080", show_default=True)
def tables(url: str) -> None:
    async def run():
        async with GatewayClient(url) as client:
            return await client.list_tables()

    try:
        table_list = asyncio.run(run())
    except GatewayError as exc:
        raise click.ClickException(exc.message) from exc
    for name in table_list.names:
        click.echo(name)


if __name__ == "__main__":
    cli()
