"""Command-line entry point driving the document workflow end to end."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Sequence, TextIO, get_args, get_origin, get_type_hints

from .api.client import DocumentApiClient
from .services.settings import Settings, active_env_overrides, load_settings
from .utils import logging as logging_utils
from .workflow import OperationFailed, WorkflowController, WorkflowState
from .workflow.controller import DocumentService

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


def configure_logging(settings: Settings, *, debug: bool = False, force: bool = False) -> None:
    """Set up logging from ``settings``; ``debug`` forces debug output on."""

    verbose = debug or settings.debug_logging
    log_path = logging_utils.setup_logging(debug=verbose, log_dir=settings.log_dir, force=force)
    _LOGGER.debug("Logging to %s (debug=%s)", log_path, verbose)


def main(argv: Sequence[str] | None = None) -> int:
    """Upload a file, apply instructions in order, export the requested formats."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        overrides = _coerce_cli_overrides(args.overrides)
    except ValueError as exc:
        parser.error(str(exc))
    if args.base_url:
        overrides["base_url"] = args.base_url

    settings = load_settings(overrides=overrides)
    configure_logging(settings, debug=args.debug)

    if args.dump_settings:
        _dump_settings(settings, overrides=overrides)
        return 0
    if not args.file:
        parser.error("a file to upload is required unless --dump-settings is given")

    return asyncio.run(
        run_workflow(
            settings,
            Path(args.file),
            instructions=args.instructions,
            formats=args.formats,
            output_dir=args.output_dir,
        )
    )


async def run_workflow(
    settings: Settings,
    file: Path,
    *,
    instructions: Sequence[str] = (),
    formats: Sequence[str] = (),
    output_dir: str | None = None,
    api: DocumentService | None = None,
    stream: TextIO | None = None,
) -> int:
    """Run one upload → edit → export session and print the outcome.

    Returns a process exit code: 0 when every step succeeded, 1 otherwise.
    """

    destination = stream or sys.stdout
    client: DocumentApiClient | None = None
    if api is None:
        client = DocumentApiClient(settings.client_settings())
        api = client
    controller = WorkflowController(api, download_dir=output_dir or settings.download_dir)

    def _on_failure(event: OperationFailed) -> None:
        destination.write(f"error ({event.operation}): {event.error}\n")

    controller.event_bus.subscribe(OperationFailed, _on_failure)
    try:
        if not await controller.upload(file):
            return 1
        if instructions:
            controller.start_editing()
        for instruction in instructions:
            if not await controller.submit_edit(instruction):
                return 1
        for export_format in formats:
            saved = await controller.export(export_format)
            if saved is None:
                return 1
            destination.write(f"saved {export_format}: {saved}\n")
        _print_summary(controller.state, destination)
        return 0
    finally:
        if client is not None:
            await client.aclose()


def _print_summary(state: WorkflowState, stream: TextIO) -> None:
    document = state.document
    stream.write(f"Step {state.step.number} of 3 ({state.step.value})\n")
    if document is not None:
        stream.write(
            f"{document.original_name or 'document'} | Language: {state.language.upper()}"
            f" | Type: {document.type.label}\n"
        )
        stream.write(
            f"File size: {document.metadata.file_size_label}"
            f" | Words: {document.metadata.word_count_label}\n"
        )
    for record in state.recent_edits:
        stream.write(f"- [{record.display_timestamp}] {record.instruction}: {record.explanation}\n")
    if state.history_truncated:
        stream.write("Showing last 5 edits\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsmith",
        description="Upload a document, apply AI edit instructions and export the result.",
    )
    parser.add_argument("file", nargs="?", help="Document to upload (PDF, DOCX, DOC, JPG, PNG, TXT).")
    parser.add_argument(
        "-i",
        "--instruction",
        dest="instructions",
        action="append",
        default=[],
        metavar="TEXT",
        help="Edit instruction to apply (repeatable, applied in order).",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="formats",
        action="append",
        default=[],
        choices=["html", "pdf", "docx", "png"],
        help="Export format to download (repeatable).",
    )
    parser.add_argument("-o", "--output-dir", metavar="DIR", help="Folder exported files are saved to.")
    parser.add_argument("--base-url", metavar="URL", help="Override the backend API base URL.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings as JSON and exit.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a setting (repeatable).",
    )
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(type_hints.get(key, fields[key].type), raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    optional = type(None) in get_args(annotation)
    if optional and raw_value.lower() in {"", "none", "null"}:
        return None
    target = _resolve_annotation(annotation)
    if target is bool:
        return _parse_bool(raw_value)
    if target is float:
        return float(raw_value)
    if target is int:
        return int(raw_value, 10)
    if target is dict:
        try:
            payload = json.loads(raw_value or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return dict
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return args[0] if args else origin


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    *,
    overrides: Dict[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    output = {
        "settings": asdict(settings),
        "meta": {
            "cli_overrides": sorted(overrides.keys()),
            "environment_variables": active_env_overrides(),
            "log_path": str(logging_utils.get_log_path() or ""),
        },
    }
    json.dump(output, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
