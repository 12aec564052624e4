"""
CLI tool for soapbridge.

This module provides the command-line interface for inspecting contracts,
invoking a bridged operation once, and serving the HTTP ingress.
"""

import asyncio
import json
import os
import sys
from typing import Optional

import click
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from soapbridge import __version__
from soapbridge.bridge import SoapBridge
from soapbridge.config import BridgeConfig, load_config
from soapbridge.contracts import ContractRegistry
from soapbridge.exceptions import BridgeError
from soapbridge.factories import create_bridge_app

console = Console()


def _build_registry(modules: tuple[str, ...]) -> ContractRegistry:
    # Contract modules usually live in the caller's project.
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    return ContractRegistry.from_sources(*modules)


def _load(config_file: Optional[str]) -> BridgeConfig:
    return load_config(config_file) if config_file else BridgeConfig.from_env()


@click.group()
@click.version_option(version=__version__, prog_name="soapbridge")
def cli():
    """soapbridge - JSON to SOAP invocation bridge"""
    pass


@cli.command()
@click.argument("modules", nargs=-1, required=True)
def contracts(modules: tuple[str, ...]):
    """List the bridge contracts discovered in MODULES."""
    try:
        registry = _build_registry(modules)
    except ImportError as e:
        console.print(f"[red]Error importing contracts: {escape(str(e))}[/red]")
        sys.exit(1)

    if not len(registry):
        console.print("[yellow]No bridge contracts found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Service", style="cyan")
    table.add_column("Operation")
    table.add_column("Remote operation", style="green")

    for service in registry.services:
        for overloads in service.operations.values():
            for overload in overloads:
                table.add_row(service.name, overload.signature(), overload.remote_name)

    console.print(table)


@cli.command()
@click.argument("service")
@click.argument("operation")
@click.option("--module", "-m", "modules", multiple=True, required=True, help="Module declaring contracts")
@click.option("--data", "-d", default="{}", help="JSON request document")
@click.option("--endpoint", "-e", help="Endpoint URL (overrides configuration)")
@click.option("--config", "-c", "config_file", help="Configuration file path")
def invoke(
    service: str,
    operation: str,
    modules: tuple[str, ...],
    data: str,
    endpoint: Optional[str],
    config_file: Optional[str],
):
    """Invoke SERVICE.OPERATION once and print the result as JSON."""
    try:
        document = json.loads(data)
    except ValueError as e:
        console.print(f"[red]Invalid JSON document: {escape(str(e))}[/red]")
        sys.exit(1)

    try:
        config = _load(config_file)
        registry = _build_registry(modules)
    except (BridgeError, ImportError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    async def run():
        async with SoapBridge(registry, config) as bridge:
            return await bridge.invoke(service, operation, document, endpoint_url=endpoint)

    result = asyncio.run(run())
    if not result.ok:
        console.print(f"[red]{escape(str(result.error))}[/red]")
        console.print_json(data=result.error.to_dict())
        sys.exit(1)

    console.print_json(data=result.value)


@cli.command()
@click.option("--module", "-m", "modules", multiple=True, required=True, help="Module declaring contracts")
@click.option("--config", "-c", "config_file", help="Configuration file path")
@click.option("--host", help="Host to bind to")
@click.option("--port", type=int, help="Port to bind to")
def serve(
    modules: tuple[str, ...],
    config_file: Optional[str],
    host: Optional[str],
    port: Optional[int],
):
    """Serve the HTTP ingress for the contracts in the given modules."""
    try:
        config = _load(config_file)
        registry = _build_registry(modules)
    except (BridgeError, ImportError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    host = host or config.api.host
    port = port or config.api.port

    console.print(f"[green]Starting bridge: {config.service.name}[/green]")
    console.print(f"[blue]Services:[/blue] {', '.join(registry.service_names) or '-'}")
    console.print(f"[blue]Listening on:[/blue] http://{host}:{port}{config.api.prefix}")

    app = create_bridge_app(SoapBridge(registry, config), config)
    uvicorn.run(app, host=host, port=port, log_level=config.observability.log_level.value.lower())


def main():
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
