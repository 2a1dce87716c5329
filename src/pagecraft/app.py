"""Command-line entry point: render, normalize or edit page content."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_type_hints

from . import __version__
from .editor.errors import DirectiveError
from .editor.gallery import ImageGallery
from .editor.syntax.normalize import normalize_legacy
from .editor.syntax.renderer import render, render_preview
from .services.settings import EditorSettings, SettingsStore
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


def configure_logging(debug: bool = False, *, force: bool = False, console: bool = True) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force, console=console)
    _LOGGER.debug("Logging configured (level=%s, file=%s)", logging.getLevelName(level), logging_utils.log_path())


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> EditorSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, TypeError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = EditorSettings()
    return settings


def create_qapp() -> Any:
    """Return the running ``QApplication``, creating it on first use."""

    from PySide6.QtWidgets import QApplication

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName("Pagecraft")
    app.setApplicationDisplayName("Pagecraft")
    _install_qt_message_handler()
    return app


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `pagecraft` console script."""

    args = _parse_cli_args(argv)

    debug = args.debug or _env_flag("PAGECRAFT_DEBUG", default=False)
    # Console logs would interleave with rendered output on stdout/stderr.
    configure_logging(debug, console=args.command == "edit")

    settings_path = args.settings_path or os.environ.get("PAGECRAFT_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True, console=args.command == "edit")

    try:
        if args.command == "render":
            _run_render(args, settings)
        elif args.command == "normalize":
            _run_normalize(args)
        else:
            _run_editor(args, settings)
    except DirectiveError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def _run_render(args: argparse.Namespace, settings: EditorSettings) -> None:
    content = _read_source(args.source)
    if settings.normalize_on_load:
        content = normalize_legacy(content).text
    gallery = _load_gallery(args.images)
    if args.preview:
        preview = render_preview(content, gallery.images())
        output = preview.html
        _LOGGER.debug("Preview metadata: %s", preview.metadata)
    else:
        output = render(content, gallery.images())
    _write_output(output, args.output)


def _run_normalize(args: argparse.Namespace) -> None:
    content = _read_source(args.source)
    report = normalize_legacy(content)
    if args.in_place:
        if args.source == "-":
            raise DirectiveError("--in-place needs a file path, not stdin")
        if report.changed:
            Path(args.source).write_text(report.text, encoding="utf-8")
    else:
        _write_output(report.text, args.output)
    summary = {name: count for name, count in report.conversions.items() if count}
    print(json.dumps({"changed": report.changed, "conversions": summary}), file=sys.stderr)


def _run_editor(args: argparse.Namespace, settings: EditorSettings) -> None:
    from .editor.editor_widget import ContentEditorWidget
    from .editor.session import EditorSession

    source = getattr(args, "source", None)
    content = _read_source(source) if source else ""
    gallery = _load_gallery(getattr(args, "images", None))
    session = EditorSession(content, images=gallery.images(), settings=settings)

    app = create_qapp()
    widget = ContentEditorWidget(session)
    widget.setWindowTitle(f"Pagecraft - {source}" if source else "Pagecraft")
    widget.resize(960, 720)
    widget.show()
    try:
        app.exec()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    session.commit_pending()
    if source and source != "-" and session.text != content:
        Path(source).write_text(session.text, encoding="utf-8")
        _LOGGER.info("Saved %s (%d characters)", source, len(session.text))


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).expanduser().read_text(encoding="utf-8")


def _write_output(text: str, destination: str | None) -> None:
    if destination:
        Path(destination).expanduser().write_text(text, encoding="utf-8")
        return
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")


def _load_gallery(path: str | None) -> ImageGallery:
    if not path:
        return ImageGallery()
    try:
        payload = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DirectiveError(f"Gallery file {path} is not valid JSON: {exc}") from exc
    return ImageGallery.from_payload(payload)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        level = level_map.get(mode, logging.INFO)
        logging.getLogger("PySide6").log(level, message)

    qInstallMessageHandler(_handler)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pagecraft",
        description="Render, normalize or edit page content written in the directive markup.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.pagecraft/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command")

    render_parser = subparsers.add_parser("render", help="Render content to HTML.")
    render_parser.add_argument("source", help="Content file, or '-' for stdin.")
    render_parser.add_argument("--images", metavar="JSON", help="Gallery JSON file used for [IMAGE_n] placeholders.")
    render_parser.add_argument("--output", "-o", metavar="PATH", help="Write HTML here instead of stdout.")
    render_parser.add_argument("--preview", action="store_true", help="Wrap the HTML in the preview container.")

    normalize_parser = subparsers.add_parser("normalize", help="Rewrite legacy directive encodings.")
    normalize_parser.add_argument("source", help="Content file, or '-' for stdin.")
    normalize_parser.add_argument("--output", "-o", metavar="PATH", help="Write the result here instead of stdout.")
    normalize_parser.add_argument("--in-place", action="store_true", help="Rewrite the source file.")

    edit_parser = subparsers.add_parser("edit", help="Open the Qt editor.")
    edit_parser.add_argument("source", nargs="?", help="Content file to edit; saved back on close.")
    edit_parser.add_argument("--images", metavar="JSON", help="Gallery JSON file.")

    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Turn repeated ``--set key=value`` flags into typed settings overrides."""

    hints = get_type_hints(EditorSettings)
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, separator, raw_value = entry.partition("=")
        key = key.strip()
        if not separator or not key:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if key not in hints:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(hints[key], raw_value)
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    normalized = raw_value.strip()
    if annotation is bool:
        return _parse_bool(normalized)
    if annotation is int:
        return int(normalized, 10)
    return normalized


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: EditorSettings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("PAGECRAFT_"))


if __name__ == "__main__":  # pragma: no cover
    main()
