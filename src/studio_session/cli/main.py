import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import typer

from studio_session import __version__
from studio_session.client import StudioApiClient
from studio_session.config import StudioConfig
from studio_session.core.models import Document
from studio_session.errors import ERROR_CODES, PROTOCOL_VERSION, StudioError
from studio_session.ingest import MediaIngestor
from studio_session.render import RenderOrchestrator

app = typer.Typer(add_completion=False, help="Timeline editing session: ingest media and render documents")

ACTIONS = ["version", "actions", "inspect", "ingest", "submit", "status", "render"]

T = TypeVar("T")


def _print(payload: Dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _ok(command: str, data: Dict[str, Any]) -> None:
    _print({"ok": True, "protocolVersion": PROTOCOL_VERSION, "command": command, "data": data})


def _fail(command: str, code: str, message: str, retryable: bool = False) -> None:
    _print(
        {
            "ok": False,
            "protocolVersion": PROTOCOL_VERSION,
            "command": command,
            "error": {"code": code, "message": message, "retryable": retryable},
        }
    )
    raise SystemExit(ERROR_CODES.get(code, 1))


def _run(command: str, factory: Callable[[], Awaitable[T]]) -> T:
    try:
        return asyncio.run(factory())
    except StudioError as exc:
        _fail(command, exc.code, exc.message, retryable=exc.code == "REMOTE_UNAVAILABLE")
    except ValueError as exc:
        _fail(command, "INVALID_INPUT", str(exc))
    raise RuntimeError("unreachable")


def _load_document(command: str, path: Path) -> Document:
    if not path.exists():
        _fail(command, "NOT_FOUND", f"Document file not found: {path}")
    try:
        return Document.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        _fail(command, "INVALID_INPUT", f"Invalid document {path}: {exc}")
    raise RuntimeError("unreachable")


def _orchestrator(client: StudioApiClient, config: StudioConfig) -> RenderOrchestrator:
    return RenderOrchestrator(
        client,
        MediaIngestor(client),
        poll_interval=config.poll_interval,
        max_wait=config.render_max_wait,
    )


@app.callback()
def main_options(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("version")
def version() -> None:
    _ok("version", {"version": __version__})


@app.command("actions")
def actions() -> None:
    _ok("actions", {"actions": ACTIONS})


@app.command("inspect")
def inspect_document(document: Path) -> None:
    loaded = _load_document("inspect", document)
    _ok(
        "inspect",
        {
            "path": str(document),
            "output": loaded.output,
            "statistics": {
                "tracks": len(loaded.tracks),
                "clips": loaded.clip_count,
                "embeddedAssets": len(list(loaded.embedded_clips())),
                "durationSeconds": loaded.total_duration,
            },
        },
    )


@app.command("ingest")
def ingest(source: Path) -> None:
    config = StudioConfig.from_env()

    async def _ingest() -> str:
        async with StudioApiClient(config) as client:
            return await MediaIngestor(client).ingest(source)

    url = _run("ingest", _ingest)
    _ok("ingest", {"source": str(source), "url": url})


@app.command("submit")
def submit(document: Path) -> None:
    loaded = _load_document("submit", document)
    config = StudioConfig.from_env()

    async def _submit() -> str:
        async with StudioApiClient(config) as client:
            return await _orchestrator(client, config).submit(loaded)

    _ok("submit", {"document": str(document), "jobId": _run("submit", _submit)})


@app.command("status")
def status(job_id: str) -> None:
    config = StudioConfig.from_env()

    async def _status() -> Dict[str, Any]:
        async with StudioApiClient(config) as client:
            return await client.get_render(job_id)

    _ok("status", {"jobId": job_id, **_run("status", _status)})


@app.command("render")
def render(
    document: Path,
    output: Optional[Path] = typer.Option(None, "--output", help="Write the document with uploaded asset URLs"),
) -> None:
    loaded = _load_document("render", document)
    config = StudioConfig.from_env()

    async def _render() -> Dict[str, Any]:
        async with StudioApiClient(config) as client:
            orchestrator = _orchestrator(client, config)
            resolved = await orchestrator.resolve_assets(loaded)
            if output is not None:
                output.write_text(json.dumps(resolved.to_dict(), indent=2), encoding="utf-8")
            job = await orchestrator.render(resolved)
            return job.to_dict()

    data = _run("render", _render)
    _ok("render", {"document": str(document), "savedTo": str(output) if output else None, **data})


def main() -> None:
    app()
