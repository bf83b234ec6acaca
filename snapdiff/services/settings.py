"""
Diff settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from snapdiff.core.diff.image_diff import ImageCompareOptions
from snapdiff.core.diff.text_diff import TextCompareOptions, WhitespaceMode
from snapdiff.services.file_io import DEFAULT_ARTIFACT_DIR, ArtifactWriter


@dataclass
class TextSettings:
    """Settings for text snapshot comparison."""
    ignore_case: bool = False
    whitespace_mode: WhitespaceMode = WhitespaceMode.EXACT
    ignore_line_endings: bool = False


@dataclass
class ImageSettings:
    """Settings for screenshot comparison."""
    threshold: float = 0.1
    chunk_rows: int = 128
    visualization_format: str = "PNG"


@dataclass
class ArtifactSettings:
    """Settings for diff artifact output."""
    artifact_dir: str = str(DEFAULT_ARTIFACT_DIR)


@dataclass
class DiffSettings:
    """Main settings container."""
    text: TextSettings = field(default_factory=TextSettings)
    image: ImageSettings = field(default_factory=ImageSettings)
    artifacts: ArtifactSettings = field(default_factory=ArtifactSettings)

    def to_text_options(self) -> TextCompareOptions:
        return TextCompareOptions(
            ignore_case=self.text.ignore_case,
            whitespace_mode=self.text.whitespace_mode,
            ignore_line_endings=self.text.ignore_line_endings,
        )

    def to_image_options(self) -> ImageCompareOptions:
        return ImageCompareOptions(
            threshold=self.image.threshold,
            chunk_rows=self.image.chunk_rows,
            visualization_format=self.image.visualization_format,
        )

    @property
    def artifact_path(self) -> Path:
        return Path(self.artifacts.artifact_dir).expanduser()

    def artifact_writer(self) -> ArtifactWriter:
        return ArtifactWriter(self.artifact_path)


class SettingsManager:
    """Manager for loading/saving diff settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self._get_default_path()
        self._settings: Optional[DiffSettings] = None
        self._observers: list[Callable[[DiffSettings], None]] = []

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'snapdiff' / 'settings.json'
        else:
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'snapdiff' / 'settings.json'

    @property
    def settings(self) -> DiffSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> DiffSettings:
        """Load settings from disk."""
        if not self.settings_path.exists():
            return DiffSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return self._from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.warning(f"SettingsManager - Failed to load {self.settings_path}: {e}")
            return DiffSettings()

    def save(self, settings: Optional[DiffSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._to_dict(settings), f, indent=2)

            self._settings = settings
            self._notify_observers()
            return True

        except OSError as e:
            logging.warning(f"SettingsManager - Failed to save {self.settings_path}: {e}")
            return False

    def reset(self) -> DiffSettings:
        """Reset to default settings."""
        self._settings = DiffSettings()
        self.save()
        return self._settings

    def add_observer(self, callback: Callable[[DiffSettings], None]) -> None:
        """Add a callback to be notified of settings changes."""
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[DiffSettings], None]) -> None:
        """Remove a settings change observer."""
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        """Notify all observers of settings change."""
        for callback in self._observers:
            try:
                callback(self._settings)
            except Exception as e:
                logging.warning(f"SettingsManager - Settings observer failed: {e}")

    def _to_dict(self, settings: DiffSettings) -> dict:
        """Convert settings to dictionary for JSON serialization."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.name
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            else:
                return obj

        return convert(asdict(settings))

    def _from_dict(self, data: dict) -> DiffSettings:
        """Convert dictionary back to settings objects."""
        def get_enum(enum_class: type, value: Any) -> Enum:
            if isinstance(value, str):
                try:
                    return enum_class[value]
                except KeyError:
                    return list(enum_class)[0]
            return value

        text_data = data.get('text', {})
        text = TextSettings(
            ignore_case=text_data.get('ignore_case', False),
            whitespace_mode=get_enum(WhitespaceMode, text_data.get('whitespace_mode', 'EXACT')),
            ignore_line_endings=text_data.get('ignore_line_endings', False),
        )

        image_data = data.get('image', {})
        image = ImageSettings(
            threshold=float(image_data.get('threshold', ImageSettings().threshold)),
            chunk_rows=int(image_data.get('chunk_rows', ImageSettings().chunk_rows)),
            visualization_format=image_data.get('visualization_format',
                                                ImageSettings().visualization_format),
        )

        artifact_data = data.get('artifacts', {})
        artifacts = ArtifactSettings(
            artifact_dir=artifact_data.get('artifact_dir', ArtifactSettings().artifact_dir),
        )

        return DiffSettings(text=text, image=image, artifacts=artifacts)
