"""Scriptboard CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
import base64
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scriptboard.config import AppConfig, ConfigError, load_config
from scriptboard.models.requests import STYLE_PRESETS
from scriptboard.observability import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)
from scriptboard.providers import ImageProviderError, create_image_provider
from scriptboard.service import GenerationService, ServiceResponse
from scriptboard.storage import SqliteLedger

if TYPE_CHECKING:
    from collections.abc import Callable

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="sb",
    help="Scriptboard: storyboards and reference packs from scripts.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2

# Global state for flags (set by callback, used by commands)
_verbose: int = 0
_log_enabled: bool = False
_db_path: Path | None = None
_config_path: Path | None = None

_STATUS_STYLES = {
    "queued": "dim",
    "running": "yellow",
    "succeeded": "green",
    "failed": "red",
}


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_to_file: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to logs/scriptboard.jsonl next to the database.",
        ),
    ] = False,
    db: Annotated[
        Path | None,
        typer.Option(
            "--db",
            help="Ledger database file (default: ./scriptboard.db).",
            envvar="SCRIPTBOARD_DB",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML configuration file (default: ./scriptboard.yaml if present).",
        ),
    ] = None,
) -> None:
    """Scriptboard: storyboards and reference packs from scripts."""
    global _verbose, _log_enabled, _db_path, _config_path
    _verbose = verbose
    _log_enabled = log_to_file
    _db_path = db
    _config_path = config

    configure_logging(verbosity=verbose)


def _load_app_config() -> AppConfig:
    try:
        return load_config(_config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_FAILURE) from e


def _resolve_db(config: AppConfig) -> Path:
    db_path = _db_path if _db_path is not None else Path(config.db_path)
    if _log_enabled:
        configure_logging(verbosity=_verbose, log_to_file=True, log_dir=db_path.parent)
        atexit.register(close_file_logging)
        log.info("file_logging_enabled", logs_dir=str(get_logs_dir()))
    return db_path


def _open_ledger() -> SqliteLedger:
    return SqliteLedger(_resolve_db(_load_app_config()))


def _print_json(body: Any) -> None:
    console.print_json(json.dumps(body, default=str))


def _finish(response: ServiceResponse) -> None:
    """Exit with the code matching *response* after printing failures."""
    if response.ok:
        return
    message = response.body.get("message", "Error") if isinstance(response.body, dict) else ""
    if response.status == 400:
        field = response.body.get("field") if isinstance(response.body, dict) else None
        where = f" ([cyan]{field}[/cyan])" if field else ""
        console.print(f"[red]Invalid request:[/red] {escape(str(message))}{where}")
        raise typer.Exit(EXIT_INVALID)
    console.print(f"[red]✗[/red] {escape(str(message))}")
    raise typer.Exit(EXIT_FAILURE)


def _generate(operation: Callable[[GenerationService], Any]) -> ServiceResponse:
    config = _load_app_config()
    db_path = _resolve_db(config)
    try:
        provider = create_image_provider(config)
    except ImageProviderError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_FAILURE) from e

    async def _run() -> ServiceResponse:
        try:
            ledger = SqliteLedger(db_path)
            try:
                return await operation(GenerationService(ledger, provider))
            finally:
                ledger.close()
        finally:
            await provider.aclose()

    log.info("cli_generate", provider=config.image_provider, db=str(db_path))
    return asyncio.run(_run())


def _read_script(script: str | None, script_file: Path | None) -> str:
    if (script is None) == (script_file is None):
        console.print("[red]Error:[/red] Provide exactly one of --script or --script-file.")
        raise typer.Exit(EXIT_INVALID)
    if script_file is not None:
        try:
            return script_file.read_text(encoding="utf-8")
        except OSError as e:
            reason = escape(f"Cannot read {script_file}: {e}")
            console.print(f"[red]Error:[/red] {reason}")
            raise typer.Exit(EXIT_FAILURE) from e
    return script or ""


def _without_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def _print_assets_table(title: str, assets: list[dict[str, Any]]) -> None:
    table = Table(title=title)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Category")
    table.add_column("Project", style="dim")
    for asset in assets:
        metadata = asset.get("metadata") or {}
        table.add_row(
            str(asset["id"]),
            escape(asset.get("title") or ""),
            escape(str(metadata.get("assetCategory") or "")),
            escape(str(metadata.get("projectName") or "")),
        )
    console.print(table)


# -- Commands -----------------------------------------------------------------


@app.command()
def version() -> None:
    """Show version information."""
    from scriptboard import __version__

    console.print(f"Scriptboard v{__version__}")


@app.command()
def init() -> None:
    """Create the ledger database and seed a starter asset."""
    config = _load_app_config()
    db_path = _resolve_db(config)
    ledger = SqliteLedger(db_path)
    try:
        seeded = GenerationService(ledger).seed_starter_asset()
    finally:
        ledger.close()

    console.print(f"[green]✓[/green] Ledger ready: [cyan]{escape(str(db_path))}[/cyan]")
    if seeded is not None:
        console.print(f"  Seeded starter asset #{seeded.asset.id}")


@app.command()
def image(
    prompt: Annotated[str, typer.Argument(help="What to draw.")],
    negative: Annotated[
        str | None, typer.Option("--negative", "-n", help="Things to avoid.")
    ] = None,
    style: Annotated[
        str | None,
        typer.Option("--style", "-s", help=f"Style preset ({', '.join(STYLE_PRESETS)})."),
    ] = None,
    size: Annotated[str, typer.Option("--size", help="Image size bucket.")] = "1024x1024",
    title: Annotated[str | None, typer.Option("--title", help="Asset title.")] = None,
    project: Annotated[str | None, typer.Option("--project", help="Project name.")] = None,
    category: Annotated[
        str | None,
        typer.Option("--category", help="character, environment, nature or general."),
    ] = None,
) -> None:
    """Generate a single image."""
    payload = _without_none(
        {
            "prompt": prompt,
            "negative_prompt": negative,
            "style_preset": style,
            "size": size,
            "title": title,
            "project_name": project,
            "asset_category": category,
        }
    )
    response = _generate(lambda service: service.generate_image(payload))
    _finish(response)

    body = response.body
    console.print(f"[green]✓[/green] Job #{body['job']['id']} {body['job']['status']}")
    console.print(f"  Asset: [cyan]#{body['asset']['id']}[/cyan]")
    console.print(
        f"  Rendition: {body['rendition']['width']}x{body['rendition']['height']} "
        f"{body['rendition']['mime_type']}"
    )


@app.command()
def pack(
    project: Annotated[str, typer.Argument(help="Project name.")],
    script: Annotated[str | None, typer.Option("--script", help="Script text.")] = None,
    script_file: Annotated[
        Path | None,
        typer.Option("--script-file", "-f", help="Read the script from a file.", exists=True),
    ] = None,
    characters: Annotated[int, typer.Option("--characters", help="Character assets.")] = 2,
    environments: Annotated[
        int, typer.Option("--environments", help="Environment assets.")
    ] = 2,
    nature: Annotated[int, typer.Option("--nature", help="Nature assets.")] = 2,
    style: Annotated[str | None, typer.Option("--style", "-s", help="Style preset.")] = None,
    size: Annotated[str, typer.Option("--size", help="Image size bucket.")] = "1024x1024",
) -> None:
    """Generate a project reference pack (characters, environments, nature)."""
    payload = _without_none(
        {
            "project_name": project,
            "script": _read_script(script, script_file),
            "character_count": characters,
            "environment_count": environments,
            "nature_count": nature,
            "style_preset": style,
            "size": size,
        }
    )
    response = _generate(lambda service: service.generate_project_pack(payload))
    _finish(response)

    body = response.body
    console.print(f"[green]✓[/green] Job #{body['job']['id']} {body['job']['status']}")
    assets = body["assets"]
    _print_assets_table(
        f"Project pack: {escape(project)}",
        [*assets["characters"], *assets["environments"], *assets["nature"]],
    )


@app.command()
def storyboard(
    project: Annotated[str, typer.Argument(help="Project name.")],
    script: Annotated[str | None, typer.Option("--script", help="Script text.")] = None,
    script_file: Annotated[
        Path | None,
        typer.Option("--script-file", "-f", help="Read the script from a file.", exists=True),
    ] = None,
    scenes: Annotated[int, typer.Option("--scenes", help="Number of scenes (2-8).")] = 4,
    character_notes: Annotated[
        str | None, typer.Option("--character-notes", help="Character continuity notes.")
    ] = None,
    environment_notes: Annotated[
        str | None, typer.Option("--environment-notes", help="Composition notes.")
    ] = None,
    nature_notes: Annotated[
        str | None, typer.Option("--nature-notes", help="Nature and weather notes.")
    ] = None,
    reference_ids: Annotated[
        list[int] | None,
        typer.Option("--reference-id", "-r", help="Reference asset id (repeatable)."),
    ] = None,
    style: Annotated[str | None, typer.Option("--style", "-s", help="Style preset.")] = None,
    size: Annotated[str, typer.Option("--size", help="Image size bucket.")] = "1024x1024",
) -> None:
    """Generate a storyboard, one frame per scene."""
    payload = _without_none(
        {
            "project_name": project,
            "script": _read_script(script, script_file),
            "scene_count": scenes,
            "character_notes": character_notes,
            "environment_notes": environment_notes,
            "nature_notes": nature_notes,
            "reference_asset_ids": reference_ids or None,
            "style_preset": style,
            "size": size,
        }
    )
    response = _generate(lambda service: service.generate_storyboard(payload))
    _finish(response)

    body = response.body
    console.print(f"[green]✓[/green] Job #{body['job']['id']} {body['job']['status']}")
    table = Table(title=f"Storyboard: {escape(project)}")
    table.add_column("Scene", style="cyan", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Asset", justify="right")
    for scene in body["scenes"]:
        table.add_row(str(scene["index"]), escape(scene["title"]), f"#{scene['asset']['id']}")
    console.print(table)


@app.command()
def jobs() -> None:
    """List generation jobs, newest first."""
    ledger = _open_ledger()
    try:
        response = GenerationService(ledger).list_jobs()
    finally:
        ledger.close()

    table = Table(title="Jobs")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Prompt")
    table.add_column("Error", style="red")
    for job in response.body:
        style = _STATUS_STYLES.get(job["status"], "")
        table.add_row(
            str(job["id"]),
            f"[{style}]{job['status']}[/{style}]" if style else job["status"],
            f"{job['progress']}%",
            escape(job["prompt"]),
            escape(job.get("error") or ""),
        )
    console.print(table)


@app.command()
def job(job_id: Annotated[int, typer.Argument(help="Job id.")]) -> None:
    """Show one job."""
    ledger = _open_ledger()
    try:
        response = GenerationService(ledger).get_job(job_id)
    finally:
        ledger.close()
    _finish(response)
    _print_json(response.body)


@app.command()
def assets() -> None:
    """List assets, newest first."""
    ledger = _open_ledger()
    try:
        response = GenerationService(ledger).list_assets()
    finally:
        ledger.close()
    _print_assets_table("Assets", response.body)


@app.command()
def asset(asset_id: Annotated[int, typer.Argument(help="Asset id.")]) -> None:
    """Show one asset and its latest rendition."""
    ledger = _open_ledger()
    try:
        service = GenerationService(ledger)
        response = service.get_asset(asset_id)
        rendition = service.get_latest_rendition(asset_id)
    finally:
        ledger.close()
    _finish(response)
    _print_json(response.body)
    if rendition.ok:
        body = rendition.body
        console.print(
            f"Latest rendition #{body['id']}: {body['width']}x{body['height']} {body['mime_type']}"
        )
    else:
        console.print("[dim]No rendition[/dim]")


@app.command()
def export(
    asset_id: Annotated[int, typer.Argument(help="Asset id.")],
    output: Annotated[Path, typer.Argument(help="File to write the image to.")],
) -> None:
    """Write the latest rendition of an asset to a file."""
    ledger = _open_ledger()
    try:
        response = GenerationService(ledger).get_latest_rendition(asset_id)
    finally:
        ledger.close()
    _finish(response)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(base64.b64decode(response.body["data_base64"]))
    console.print(f"[green]✓[/green] Wrote [cyan]{escape(str(output))}[/cyan]")


if __name__ == "__main__":
    app()
