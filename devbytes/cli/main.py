"""CLI commands for the DevBytes playlist cache."""

import json
import logging
import sys
import threading
import uuid
from pathlib import Path
from typing import NoReturn

import click
import structlog
from pydantic import ValidationError

from devbytes.app import DevBytesApplication
from devbytes.config.loader import ConfigLoader, ConfigValidationError
from devbytes.config.schemas import AppConfig, LoggingConfig, StoreConfig
from devbytes.fetch.config import FetchConfig
from devbytes.observability.logging import bind_run_context, configure_logging
from devbytes.settings import get_settings


logger = structlog.get_logger()


def _exit_on_environment_errors(error: ValidationError) -> NoReturn:
    click.echo("Configuration validation failed: DEVBYTES_ environment", err=True)
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "<root>"
        click.echo(f"  - {location}: {detail['msg']}", err=True)
    sys.exit(1)


def _load_config(
    config_path: Path | None,
    state_path: Path | None,
    playlist_url: str | None,
    json_logs: bool | None,
    verbose: bool,
) -> AppConfig:
    """Resolve configuration: YAML file, then environment, then CLI flags.

    Exits with status 1 when the configuration is invalid.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        _exit_on_environment_errors(e)
    path = config_path or (Path(settings.config_path) if settings.config_path else None)

    try:
        config = ConfigLoader().load(path)
    except ConfigValidationError as e:
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            location = error["loc"] or "<root>"
            click.echo(f"  - {location}: {error['msg']}", err=True)
        sys.exit(1)

    try:
        config = settings.apply(config)
    except ValidationError as e:
        _exit_on_environment_errors(e)

    update: dict[str, object] = {}
    if state_path is not None:
        update["store"] = StoreConfig(path=str(state_path))
    if playlist_url is not None:
        try:
            update["fetch"] = FetchConfig.model_validate(
                {**config.fetch.model_dump(), "playlist_url": playlist_url}
            )
        except ValueError as e:
            click.echo(f"Error: Invalid playlist URL '{playlist_url}': {e}", err=True)
            sys.exit(1)
    if json_logs is not None or verbose:
        update["logging"] = LoggingConfig(
            level="DEBUG" if verbose else config.logging.level,
            json_format=config.logging.json_format if json_logs is None else json_logs,
        )
    if update:
        config = config.model_copy(update=update)

    run_id = uuid.uuid4().hex[:12]
    configure_logging(
        level=logging.getLevelName(config.logging.level),
        json_format=config.logging.json_format,
    )
    bind_run_context(run_id)
    return config


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to the YAML configuration file (default: DEVBYTES_CONFIG_PATH).",
)
state_option = click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the SQLite cache database.",
)
json_logs_option = click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: from config).",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
url_option = click.option(
    "--url",
    "playlist_url",
    type=str,
    default=None,
    help="Playlist endpoint URL (default: from config).",
)


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """DevBytes playlist cache CLI."""


@cli.command()
@config_option
@state_option
@url_option
@json_logs_option
@verbose_option
@click.option(
    "--timeout",
    "wait_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Maximum seconds to wait for the refresh (default: no limit).",
)
def refresh(  # noqa: PLR0913
    config_path: Path | None,
    state_path: Path | None,
    playlist_url: str | None,
    json_logs: bool | None,
    verbose: bool,
    wait_seconds: float | None,
) -> None:
    """Refresh the cache once and report the outcome.

    Exits with status 1 when the refresh fails; the previous cache is kept.
    """
    config = _load_config(config_path, state_path, playlist_url, json_logs, verbose)
    if wait_seconds is not None and wait_seconds < config.refresh.fetch_timeout_seconds:
        config = config.model_copy(
            update={
                "refresh": config.refresh.model_copy(
                    update={"fetch_timeout_seconds": wait_seconds}
                )
            }
        )

    app = DevBytesApplication(config, configure_logs=False)
    app.open()
    try:
        result = app.pipeline.refresh_and_wait(timeout=wait_seconds)
    except TimeoutError:
        click.echo(f"Refresh still running after {wait_seconds}s", err=True)
        app.shutdown(wait=False)
        sys.exit(1)
    app.shutdown()

    if result.success:
        click.echo(
            f"Refresh succeeded: {result.item_count} videos cached "
            f"in {result.duration_ms:.0f} ms"
        )
        return

    kind = result.failure_kind.value if result.failure_kind else "UNKNOWN"
    click.echo(f"Refresh failed ({kind}): {result.message}", err=True)
    sys.exit(1)


@cli.command()
@config_option
@state_option
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
@json_logs_option
@verbose_option
def show(
    config_path: Path | None,
    state_path: Path | None,
    json_output: bool,
    json_logs: bool | None,
    verbose: bool,
) -> None:
    """Print the cached playlist."""
    config = _load_config(config_path, state_path, None, json_logs, verbose)

    with DevBytesApplication(config, configure_logs=False) as app:
        videos = app.view.current()

    if json_output:
        click.echo(json.dumps([video.model_dump() for video in videos], indent=2))
        return

    if not videos:
        click.echo("No cached videos.")
        return

    for index, video in enumerate(videos, start=1):
        click.echo(f"{index}. {video.title}")
        if video.short_description:
            click.echo(f"   {video.short_description}")
        click.echo(f"   {video.url}")


@cli.command()
@config_option
@state_option
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=10,
    help="Number of recent refreshes to show (default: 10).",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
@json_logs_option
@verbose_option
def status(  # noqa: PLR0913
    config_path: Path | None,
    state_path: Path | None,
    limit: int,
    json_output: bool,
    json_logs: bool | None,
    verbose: bool,
) -> None:
    """Display cache, refresh history and schedule status."""
    config = _load_config(config_path, state_path, None, json_logs, verbose)

    with DevBytesApplication(config, configure_logs=False) as app:
        snapshot = app.store.read_all()
        last_success = app.store.get_last_successful_refresh_at()
        refreshes = app.store.get_recent_refreshes(limit=limit)
        schedules = app.store.list_schedule_records()

    if json_output:
        output = {
            "cached_items": len(snapshot),
            "last_successful_refresh": last_success.isoformat() if last_success else None,
            "refreshes": [record.model_dump(mode="json") for record in refreshes],
            "schedules": [record.model_dump(mode="json") for record in schedules],
        }
        click.echo(json.dumps(output, indent=2))
        return

    click.echo("DevBytes Cache Status")
    click.echo("=" * 40)
    click.echo(f"  Cached Videos: {len(snapshot)}")
    click.echo(
        f"  Last Successful Refresh: {last_success.isoformat() if last_success else 'None'}"
    )
    click.echo("")
    click.echo("Recent Refreshes:")
    if not refreshes:
        click.echo("  (none)")
    for record in refreshes:
        outcome = "ok" if record.success else f"failed ({record.failure_kind})"
        click.echo(
            f"  {record.started_at.isoformat()} {outcome} items={record.item_count}"
        )
    click.echo("")
    click.echo("Schedules:")
    if not schedules:
        click.echo("  (none)")
    for schedule in schedules:
        click.echo(
            f"  {schedule.name}: every {schedule.period_seconds / 3600:g}h, "
            f"next {schedule.next_fire_at.isoformat()}, attempt {schedule.attempt}"
        )


@cli.command()
@config_option
@state_option
@url_option
@json_logs_option
@verbose_option
@click.option(
    "--refresh-on-start",
    is_flag=True,
    help="Refresh immediately instead of waiting for the schedule.",
)
def run(  # noqa: PLR0913
    config_path: Path | None,
    state_path: Path | None,
    playlist_url: str | None,
    json_logs: bool | None,
    verbose: bool,
    refresh_on_start: bool,
) -> None:
    """Run the scheduler until interrupted."""
    config = _load_config(config_path, state_path, playlist_url, json_logs, verbose)
    log = logger.bind(component="cli", command="run")

    app = DevBytesApplication(config, configure_logs=False)
    stop = threading.Event()
    try:
        app.start()
        if refresh_on_start:
            app.pipeline.refresh_now()
        log.info("waiting_for_interrupt")
        while not stop.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        log.info("interrupted")
    finally:
        app.shutdown()


if __name__ == "__main__":
    cli()
