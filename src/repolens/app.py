"""Command-line entry point for rendering and generating repository reports."""

from __future__ import annotations

import argparse
import asyncio
import json
import locale
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.client import ClientSettings, ReportClient
from .ai.report import generate_repo_analysis
from .diagrams.compilers import build_compiler, close_compiler
from .diagrams.pipeline import DiagramRenderPipeline
from .document.page import ExportedPage, export_page
from .document.toc import PreparedDocument, prepare_document
from .errors import ReportGenerationError
from .services.github import GitHubClient
from .services.settings import Settings, SettingsStore
from .theme import Theme, parse_theme
from .ui.file_tree import LazyFileTree
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, console=debug, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load settings or fall back to defaults when the file cannot be used."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``repolens`` console script."""

    args = _parse_cli_args(argv)
    _adopt_user_locale()
    debug = bool(args.debug) or _env_flag("REPOLENS_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("REPOLENS_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2
    settings = load_settings(resolved_path, store=store, overrides=cli_overrides or None)

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.dump_settings:
        _dump_settings(settings, store, overrides=cli_overrides)
        return 0
    if args.command is None:
        print("A command is required (render, analyze, toc, tree).", file=sys.stderr)
        return 2
    if args.command == "toc":
        return _run_toc(args)
    if args.command == "render":
        return asyncio.run(_run_render(args, settings))
    if args.command == "tree":
        return asyncio.run(_run_tree(args, settings))
    return asyncio.run(_run_analyze(args, settings))


def _run_toc(args: argparse.Namespace, stream: TextIO | None = None) -> int:
    destination = stream or sys.stdout
    try:
        raw = _read_text(args.report)
    except OSError as exc:
        print(f"Cannot read {args.report}: {exc}", file=sys.stderr)
        return 1
    prepared = prepare_document(raw)
    json.dump([entry.to_dict() for entry in prepared.toc], destination, indent=2, ensure_ascii=False)
    destination.write("\n")
    return 0


async def _run_render(args: argparse.Namespace, settings: Settings) -> int:
    try:
        raw = _read_text(args.report)
    except OSError as exc:
        print(f"Cannot read {args.report}: {exc}", file=sys.stderr)
        return 1
    prepared = prepare_document(raw)
    theme = parse_theme(args.theme or settings.theme)
    default_output = None if args.report == "-" else Path(args.report).with_suffix(".html")
    page = await _export(prepared, settings, theme, title=args.repo)
    return _write_page(page, args.output or default_output)


async def _run_analyze(args: argparse.Namespace, settings: Settings) -> int:
    client = ReportClient(ClientSettings.from_settings(settings))
    try:
        analysis = await generate_repo_analysis(client, args.repo, args.description)
    except ReportGenerationError as exc:
        _LOGGER.error("Report generation for %s failed: %s", args.repo, exc)
        print(f"Analysis failed: {exc}", file=sys.stderr)
        return 1
    finally:
        await client.aclose()

    if args.markdown:
        Path(args.markdown).expanduser().write_text(analysis.content, encoding="utf-8")
        _LOGGER.info("Saved report markdown to %s", args.markdown)
    theme = parse_theme(args.theme or settings.theme)
    prepared = prepare_document(analysis.content)
    page = await _export(prepared, settings, theme, title=f"{analysis.repo_name} Technical Deep Dive")
    default_output = Path(f"{analysis.repo_name.replace('/', '__')}.html")
    print(analysis.summary)
    return _write_page(page, args.output or default_output)


async def _run_tree(args: argparse.Namespace, settings: Settings, stream: TextIO | None = None) -> int:
    destination = stream or sys.stdout
    client = GitHubClient.from_settings(settings)
    tree = LazyFileTree(args.repo, client)
    try:
        await tree.load_root()
        await _expand_to_depth(tree, args.depth)
    finally:
        await client.aclose()
    rows = tree.visible_rows()
    if not rows:
        print(f"No entries listed for {args.repo}", file=sys.stderr)
        return 1
    for row in rows:
        suffix = "/" if row.node.is_directory else ""
        destination.write(f"{'  ' * row.depth}{row.node.name}{suffix}\n")
    return 0


async def _expand_to_depth(tree: LazyFileTree, depth: int) -> None:
    for level in range(max(depth, 1) - 1):
        pending = [
            row.node.path
            for row in tree.visible_rows()
            if row.depth == level and row.node.is_directory and not row.node.expanded
        ]
        if not pending:
            return
        await asyncio.gather(*(tree.expand(path) for path in pending))


async def _export(prepared: PreparedDocument, settings: Settings, theme: Theme, *, title: str | None) -> ExportedPage:
    compiler = build_compiler(settings)
    pipeline = DiagramRenderPipeline(compiler, theme=theme, settle_delay=settings.diagram_settle_delay)
    try:
        page = await export_page(
            prepared,
            pipeline,
            theme=theme,
            title=title,
            inline_threshold=settings.inline_code_threshold,
        )
    finally:
        await pipeline.aclose()
        await close_compiler(compiler)
    for failed in page.failed_diagrams:
        _LOGGER.warning("Diagram could not be rendered: %s", failed.error)
    return page


def _write_page(page: ExportedPage, output: Path | str | None) -> int:
    if output is None or str(output) == "-":
        sys.stdout.write(page.html)
        return 0
    target = Path(output).expanduser()
    target.write_text(page.html, encoding="utf-8")
    print(f"Wrote {target} ({len(page.toc)} headings, {len(page.diagrams)} diagrams)")
    return 0


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).expanduser().read_text(encoding="utf-8")


def _adopt_user_locale() -> None:
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        _LOGGER.debug("Keeping default collation locale: %s", exc)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="repolens",
        description="Render or generate navigable technical reports for source repositories.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on stderr.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings",
        dest="settings_path",
        metavar="PATH",
        help="Override the default ~/.repolens/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a setting for this run (repeatable).",
    )
    commands = parser.add_subparsers(dest="command")

    render = commands.add_parser("render", help="Render a markdown report into a standalone HTML page.")
    render.add_argument("report", help="Report markdown file, or - for stdin.")
    render.add_argument("-o", "--output", help="Output HTML path, or - for stdout.")
    render.add_argument("--repo", help="Repository name used as the page title.")
    render.add_argument("--theme", choices=[theme.value for theme in Theme])

    analyze = commands.add_parser("analyze", help="Generate a report for a repository and render it.")
    analyze.add_argument("repo", metavar="owner/name")
    analyze.add_argument("--description", default=None)
    analyze.add_argument("-o", "--output", help="Output HTML path, or - for stdout.")
    analyze.add_argument("--markdown", metavar="PATH", help="Also save the normalized report markdown.")
    analyze.add_argument("--theme", choices=[theme.value for theme in Theme])

    toc = commands.add_parser("toc", help="Print the table of contents of a report as JSON.")
    toc.add_argument("report", help="Report markdown file, or - for stdin.")

    tree = commands.add_parser("tree", help="List a repository's files the way the file tree shows them.")
    tree.add_argument("repo", metavar="owner/name")
    tree.add_argument("--depth", type=int, default=1, help="Directory levels to expand (default: 1).")
    return parser.parse_args(argv)


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
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    if target is str or target is Any:
        return raw_value
    if target is bool:
        return _parse_bool(raw_value)
    if target is int:
        return int(raw_value, 10)
    if target is float:
        return float(raw_value)
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    if get_origin(annotation) is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return args[0] if args else annotation


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    log_path = logging_utils.get_log_path()
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("REPOLENS_")),
        "log_file": str(log_path) if log_path is not None else None,
    }
    json.dump({"settings": settings.redacted(), "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
