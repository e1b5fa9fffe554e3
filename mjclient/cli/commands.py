"""
mjclient CLI

Design principles:
- Predictable lifecycle (init/close)
- Centralized config handling
- Clean CLI UX
"""

from __future__ import annotations

import asyncio
import sys
from typing import AsyncIterator, Callable, Final

import typer
from loguru import logger
from rich.console import Console

from mjclient import __logo__, __version__


# ============================================================================
# CLI App
# ============================================================================

APP_NAME: Final[str] = "mjclient"

app = typer.Typer(
    name=APP_NAME,
    help=f"{__logo__} mjclient - Midjourney over the Discord Gateway",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} mjclient v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs"),
):
    """mjclient - Midjourney over the Discord Gateway."""
    _configure_logging(verbose)


# ============================================================================
# Onboard / Status
# ============================================================================


@app.command()
def onboard():
    """Write a default configuration file."""
    from mjclient.config.loader import get_config_path, save_config
    from mjclient.config.schema import MidjourneyConfig

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(MidjourneyConfig(), config_path)

    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print("\nNext steps:")
    console.print("  1. Set token, guildId and channelId in the config file")
    console.print("  2. Run: [cyan]mjclient imagine \"cat in a hat\"[/cyan]")


@app.command()
def status():
    """Show configuration status."""
    from mjclient.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    def mark(ok: bool) -> str:
        return "[green]✓[/green]" if ok else "[red]✗[/red]"

    console.print(f"{__logo__} mjclient status\n")
    console.print(f"Config: {config_path} {mark(config_path.exists())}")
    console.print(f"Gateway: {config.ws_url}")
    console.print(f"API: {config.base_url}")
    console.print(f"Token: {mark(bool(config.token))}")
    console.print(f"Guild: {config.guild_id or '[dim]not set[/dim]'}")
    console.print(f"Channel: {config.channel_id or '[dim]not set[/dim]'}")


# ============================================================================
# Commands
# ============================================================================


def _stream(build: Callable[..., AsyncIterator]) -> None:
    """Run one command against a fresh client and print its events."""
    from mjclient.config.loader import load_config
    from mjclient.errors import MidjourneyError
    from mjclient.midjourney.api import Midjourney
    from mjclient.midjourney.messages import Finish

    config = load_config()

    async def run():
        async with Midjourney(config) as client:
            async for event in build(client):
                if isinstance(event, Finish):
                    console.print(f"[green]✓[/green] Done: {event.uri}")
                    console.print(f"[dim]id={event.id}[/dim]")
                else:
                    console.print(f"[cyan]{event.percent:>3}%[/cyan] {event.uri or ''}")

    try:
        asyncio.run(run())
    except (MidjourneyError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\nCancelled")


@app.command()
def imagine(prompt: str = typer.Argument(..., help="Prompt to imagine")):
    """Generate an image grid."""
    console.print(f"{__logo__} Imagining: {prompt}")
    _stream(lambda client: client.imagine(prompt))


@app.command()
def variation(
    message_id: str = typer.Argument(..., help="Id of the finished message"),
    uri: str = typer.Argument(..., help="Image url of the finished message"),
    index: int = typer.Argument(..., min=0, max=4, help="Image index"),
):
    """Create a variation of a finished grid."""
    from mjclient.midjourney.messages import Finish

    finish = Finish(id=message_id, content="", uri=uri)
    _stream(lambda client: client.variation(finish, index))


@app.command()
def upscale(
    message_id: str = typer.Argument(..., help="Id of the finished message"),
    uri: str = typer.Argument(..., help="Image url of the finished message"),
    index: int = typer.Argument(..., min=0, max=4, help="Image index"),
):
    """Upscale one image of a finished grid."""
    from mjclient.midjourney.messages import Finish

    finish = Finish(id=message_id, content="", uri=uri)
    _stream(lambda client: client.upscale(finish, index))


if __name__ == "__main__":
    app()
