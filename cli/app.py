from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_readings, render_status
from datastore.reading_store import ReadingStore
from logging_config import build_logging_config, configure_logging
from services.decoder import DecoderService
from services.router import FieldRouter, UnrecognizedFieldError, UnrecognizedPolicy
from settings import get_settings
from sources.line_source import FileLineSource, StreamError


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Decode DSMR P1 telegrams and serve the latest readings as Prometheus metrics.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Exporter base URL (defaults to P1_EXPORTER_URL env or http://localhost:2112).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the exporter to answer.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Listen address (defaults to P1_HTTP_HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Listen port (defaults to P1_HTTP_PORT)."),
) -> None:
    """Run the decoder and the metrics endpoint until interrupted."""
    settings = get_settings()
    configure_logging()
    uvicorn.run(
        "app.main:app",
        host=host or settings.http_host,
        port=port or settings.http_port,
        log_config=build_logging_config(),
    )


@app.command("decode")
def decode_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Captured telegram file."),
    fatal_unrecognized: bool = typer.Option(
        False,
        "--fatal-unrecognized/--log-unrecognized",
        help="Abort on object identifiers that are neither routed nor skipped.",
    ),
) -> None:
    """Decode a captured telegram file once and print the resulting readings."""
    configure_logging()
    store = ReadingStore()
    policy = UnrecognizedPolicy.fatal if fatal_unrecognized else UnrecognizedPolicy.log
    decoder = DecoderService(
        source=FileLineSource(file),
        store=store,
        router=FieldRouter(store, policy=policy),
    )
    try:
        decoder.run_once()
    except (UnrecognizedFieldError, StreamError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    finally:
        decoder.shutdown()

    readings = [
        {"name": key.name.value, "discriminator": key.discriminator, "value": value}
        for key, value in sorted(store.snapshot().items(), key=lambda item: str(item[0]))
    ]
    render_readings({"telegrams_processed": store.telegrams_processed, "readings": readings})
    typer.echo()
    stats = asdict(decoder.stats())
    render_status({"source": str(file), "policy": policy.value, **stats})


@app.command("readings")
def readings_command(ctx: typer.Context) -> None:
    """Fetch the latest readings from a running exporter."""
    state = _get_state(ctx)
    render_readings(state.client.get_readings())


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Fetch decoder counters from a running exporter."""
    state = _get_state(ctx)
    render_status(state.client.get_status())
