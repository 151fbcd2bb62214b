"""
CLI entry point for Greenlight Offer API.
"""

from pathlib import Path
from typing import Optional

import structlog
import typer

from .config import Settings, get_settings
from .credentials import load_credentials
from .exceptions import GreenlightApiError

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="greenlight-api",
    help="Greenlight BOLT12 offer API",
    add_completion=False,
)


def _load_settings(config_path: Optional[Path]) -> Settings:
    if config_path:
        return Settings(_env_file=config_path)
    return get_settings()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default from HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default from PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """
    Start the HTTP API.
    """
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "greenlight_api.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload or settings.debug,
    )


@app.command("check-credentials")
def check_credentials(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to .env configuration file",
    ),
) -> None:
    """
    Resolve the developer certificate and key and report where they came from.
    """
    settings = _load_settings(config_path)
    try:
        creds = load_credentials(settings)
    except GreenlightApiError as e:
        typer.echo(f"✗ {e.message}")
        raise typer.Exit(code=1)

    typer.echo(f"✓ Certificate: {creds.cert_source} ({len(creds.cert)} bytes)")
    typer.echo(f"✓ Key: {creds.key_source} ({len(creds.key)} bytes)")


@app.command("create-offer")
def create_offer(
    expiry: Optional[int] = typer.Option(
        None,
        "--expiry",
        "-e",
        min=0,
        help="Offer lifetime in seconds",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to .env configuration file",
    ),
) -> None:
    """
    Run the Greenlight handshake once and print a BOLT12 offer.
    """
    from .greenlight import GlClient
    from .orchestrator import OfferOrchestrator

    settings = _load_settings(config_path)
    orchestrator = OfferOrchestrator(settings, GlClient())
    try:
        offer = orchestrator.create_offer(expiry)
    except GreenlightApiError as e:
        typer.echo(f"✗ {e.message}")
        raise typer.Exit(code=1)

    typer.echo(offer)


@app.command()
def version() -> None:
    """Show the API version."""
    from greenlight_api import __version__
    typer.echo(f"greenlight-api v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
