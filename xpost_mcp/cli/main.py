#!/usr/bin/env python3
"""
xpost-mcp - draft and publish X.com posts through an MCP server
Main CLI entry point
"""

import asyncio
import os
import sys
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .. import __version__
from ..client import MCPSSEClient, PostWorkflow
from ..core.exceptions import XPostError, WorkflowError
from ..core.models import WorkflowReport
from ..infrastructure.llm import create_generation_client
from ..utils.config import load_config, credential_report
from ..utils.logger import setup_logging

console = Console()


def _prepare(config_path: Optional[str], verbose: bool = False):
    """Load .env and configuration, then configure logging."""
    load_dotenv()
    if config_path:
        os.environ["XPOST_CONFIG"] = config_path
        load_config.cache_clear()
    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else None)
    return config


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    xpost-mcp - MCP gateway for drafting and publishing X.com posts

    Examples:
        xpost-mcp serve
        xpost-mcp run --topic "open standards"
        xpost-mcp check-env
    """


@cli.command()
@click.option('--config', 'config_path', help='Path to settings.yaml')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def serve(config_path: Optional[str], verbose: bool):
    """Run the MCP server."""
    from ..mcp.main import main as run_server

    try:
        _prepare(config_path, verbose)
        run_server(config_path)
    except XPostError as e:
        console.print(f"❌ Error: {e}", style="red")
        sys.exit(1)


@cli.command()
@click.option('--topic', required=True, help='Topic of the post to write')
@click.option('--server-url', help='MCP server URL (defaults to client.server_url)')
@click.option('--config', 'config_path', help='Path to settings.yaml')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def run(topic: str, server_url: Optional[str], config_path: Optional[str], verbose: bool):
    """Fetch, draft and publish one post about TOPIC."""
    try:
        config = _prepare(config_path, verbose)
        report = asyncio.run(run_workflow(config, topic, server_url))
    except WorkflowError as e:
        console.print(f"❌ Workflow failed at {e.step}: {e}", style="red")
        sys.exit(1)
    except XPostError as e:
        console.print(f"❌ Error: {e}", style="red")
        sys.exit(1)

    console.print(f"✅ {report.publish_message}")
    console.print(f"[bold]Posted:[/bold] {report.generated_text}")


async def run_workflow(config, topic: str, server_url: Optional[str] = None) -> WorkflowReport:
    """Build the client and generator from config and run the workflow."""
    client_config = config.get("client", {})
    server_config = config.get("server", {})

    client = MCPSSEClient(
        server_url=server_url or client_config.get("server_url", "http://localhost:3001"),
        sse_path=server_config.get("sse_path", "/sse"),
        request_timeout=client_config.get("request_timeout", 120),
    )
    generator = create_generation_client(config.get("generation", {}))

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"Writing a post about {topic}...", total=None)
            try:
                report = await PostWorkflow(client, generator).run(topic)
            except XPostError:
                progress.update(task, description="❌ Workflow failed!")
                raise
            progress.update(task, description="✅ Workflow completed!")
    finally:
        await generator.close()

    return report


@cli.command('check-env')
def check_env():
    """Report which credentials are set, without printing their values."""
    load_dotenv()
    report = credential_report()

    table = Table(title="Credentials")
    table.add_column("Variable")
    table.add_column("Status")
    for name, present in report.items():
        table.add_row(name, "[green]present[/green]" if present else "[red]missing[/red]")
    console.print(table)

    if not all(report.values()):
        sys.exit(1)


if __name__ == '__main__':
    cli()
