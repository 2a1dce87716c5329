"""Editor settings dataclass and JSON persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "EMBED_ENCODING_CHOICES",
    "EditorSettings",
    "IMAGE_ENCODING_CHOICES",
    "SettingsStore",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".pagecraft"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "PAGECRAFT_DEFAULT_MAP_LABEL": "default_map_label",
    "PAGECRAFT_DEFAULT_IMAGE_WIDTH": "default_image_width",
    "PAGECRAFT_DEFAULT_IMAGE_POSITION": "default_image_position",
    "PAGECRAFT_EMBED_ENCODING": "embed_encoding",
    "PAGECRAFT_IMAGE_ENCODING": "image_encoding",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "PAGECRAFT_PAD_IMAGE_EMBEDS": "pad_image_embeds",
    "PAGECRAFT_NORMALIZE_ON_LOAD": "normalize_on_load",
    "PAGECRAFT_DEBUG_LOGGING": "debug_logging",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "PAGECRAFT_HISTORY_LIMIT": "history_limit",
    "PAGECRAFT_TYPING_BATCH_MS": "typing_batch_ms",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
EMBED_ENCODING_CHOICES: tuple[str, ...] = ("shorthand", "comment")
IMAGE_ENCODING_CHOICES: tuple[str, ...] = ("island", "comment")


@dataclass(slots=True)
class EditorSettings:
    """User-configurable editor behaviour persisted between sessions."""

    history_limit: int = 100
    typing_batch_ms: int = 600
    default_image_width: str = "50%"
    default_image_position: str = "center"
    default_map_label: str = "Visualizza su Google Maps"
    embed_encoding: str = "shorthand"
    image_encoding: str = "island"
    pad_image_embeds: bool = True
    normalize_on_load: bool = False
    preview_on_open: bool = False
    debug_logging: bool = False

    def __post_init__(self) -> None:
        if self.embed_encoding not in EMBED_ENCODING_CHOICES:
            LOGGER.warning("Unknown embed encoding %r; using shorthand", self.embed_encoding)
            self.embed_encoding = "shorthand"
        if self.image_encoding not in IMAGE_ENCODING_CHOICES:
            LOGGER.warning("Unknown image encoding %r; using island", self.image_encoding)
            self.image_encoding = "island"
        if int(self.history_limit) < 1:
            self.history_limit = 1


class SettingsStore:
    """Persistence adapter for :class:`EditorSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> EditorSettings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = EditorSettings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = EditorSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = EditorSettings()
            LOGGER.debug("Settings loaded from %s (version=%s)", self._path, payload.get("version"))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        return self._apply_env_overrides(settings)

    def save(self, settings: EditorSettings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: EditorSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> EditorSettings:
        filtered = {key: value for key, value in _filter_fields(overrides).items() if value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: EditorSettings) -> EditorSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(EditorSettings)}
    return {key: value for key, value in payload.items() if key in allowed}
