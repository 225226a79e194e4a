from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _label(reading: Dict[str, Any]) -> str:
    discriminator = reading.get("discriminator")
    if discriminator is None:
        return str(reading.get("name"))
    return f"{reading.get('name')}[{discriminator}]"


def render_readings(payload: Dict[str, Any]) -> None:
    echo_heading("Readings")
    echo_key_values([("telegrams_processed", payload.get("telegrams_processed"))])
    readings = payload.get("readings") or []
    if readings:
        echo_key_values((_label(reading), reading.get("value")) for reading in readings)
    else:
        typer.echo("No readings decoded yet.")


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Decoder")
    echo_key_values(
        [
            ("source", payload.get("source")),
            ("policy", payload.get("policy")),
            ("running", payload.get("running")),
        ]
    )
    typer.echo()
    echo_heading("Events")
    echo_key_values(
        (key, payload.get(key))
        for key in ("telegrams", "routed", "skipped", "parse_errors", "unrecognized", "discontinuities")
    )
    failure = payload.get("failure")
    if failure:
        typer.echo()
        typer.secho(f"failure: {failure}", fg=typer.colors.RED)
