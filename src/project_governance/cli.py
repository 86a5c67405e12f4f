"""CLI entry point for the project governance core."""

from __future__ import annotations

import json
from pathlib import Path

import click
from pydantic import TypeAdapter, ValidationError

from .catalog import DEFAULT_CATALOG
from .core.config import Settings, load_settings
from .core.errors import ConfigError
from .domain.events import Event
from .domain.models import EntitySnapshot
from .observability.logger import new_trace_id, setup_logging
from .observability.metrics import start_metrics_server
from .projection.projector import Projector
from .projection.reducers import build_default_reducers
from .rendering.renderers import build_default_renderers

_EVENTS = TypeAdapter(list[Event])


def _settings(config: str | None, log_level: str | None) -> Settings:
    try:
        settings = load_settings(config_path=config)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    obs = settings.observability
    setup_logging(level=log_level or obs.log_level, format=obs.log_format)
    new_trace_id()
    if obs.metrics_enabled:
        start_metrics_server(obs.metrics_port)
    return settings


def _read_events(path: str) -> list[Event]:
    try:
        return _EVENTS.validate_json(Path(path).read_bytes())
    except ValidationError as exc:
        raise click.ClickException(f"{path}: not a list of events ({exc.error_count()} errors)") from exc


@click.group()
def main() -> None:
    """Project governance: event catalog, projection and rendering."""


@main.command("event-types")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of a table")
def event_types(as_json: bool) -> None:
    """List registered event types."""
    entries = DEFAULT_CATALOG.list_event_types()
    if as_json:
        click.echo(json.dumps(
            [{"event_type": e.event_type, "friendly_name": e.friendly_name} for e in entries],
            indent=2,
        ))
        return
    width = max(len(e.event_type) for e in entries)
    for e in entries:
        click.echo(f"{e.event_type:<{width}}  {e.friendly_name}")


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.argument("events", type=click.Path(exists=True, dir_okay=False))
@click.option("--requester", default=None, help="Fold only this actor's pending events")
@click.option("--config", default=None, help="Config file path")
@click.option("--log-level", default=None, help="Override the configured log level")
def project(
    snapshot: str, events: str, requester: str | None,
    config: str | None, log_level: str | None,
) -> None:
    """Print the projected view of SNAPSHOT with pending EVENTS folded on."""
    settings = _settings(config, log_level)
    try:
        base = EntitySnapshot.model_validate_json(Path(snapshot).read_bytes())
    except ValidationError as exc:
        raise click.ClickException(f"{snapshot}: not a project snapshot") from exc

    pending = _read_events(events)
    if requester is not None:
        pending = [e for e in pending if e.actor_id == requester]

    projector = Projector(build_default_reducers(DEFAULT_CATALOG), settings.projection)
    report = projector.project_with_report(base, pending)
    click.echo(report.view.model_dump_json(indent=2))
    if report.skipped:
        click.echo(f"Skipped {len(report.skipped)} event(s): {', '.join(report.skipped)}", err=True)


@main.command()
@click.argument("events", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", default=None, help="Config file path")
@click.option("--log-level", default=None, help="Override the configured log level")
def render(events: str, config: str | None, log_level: str | None) -> None:
    """Print one line per event in EVENTS."""
    settings = _settings(config, log_level)
    renderers = build_default_renderers(DEFAULT_CATALOG, settings.rendering)
    for event in _read_events(events):
        r = renderers.render(event)
        click.echo(f"{r.created_at:%Y-%m-%d %H:%M}  {r.status.value:<8}  {r.label}: {r.summary}")


if __name__ == "__main__":
    main()
