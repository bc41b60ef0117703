"""Environment-driven configuration for the engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

UNICODE_FONT_PATHS = (
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/DejaVuSans.ttf"),
)


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on", "y"}


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name)
    return value.strip() if value and value.strip() else default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved from ``SILKPDF_*`` environment variables."""

    ttf_path: Path | None = None
    artifact_tag: str = "silk"
    render_quiet: bool = True
    export_jpeg_quality: int = 80

    def resolve_unicode_font_path(self) -> Path | None:
        """
        Locate a Unicode-compatible TrueType font file if one is available.

        The configured ``ttf_path`` wins when it points at a file; otherwise the
        known DejaVuSans locations are probed in order.
        """
        if self.ttf_path is not None and self.ttf_path.is_file():
            return self.ttf_path
        for candidate in UNICODE_FONT_PATHS:
            if candidate.is_file():
                return candidate
        return None


def load_settings() -> Settings:
    """Build settings from the current environment."""
    env_font = os.getenv("SILKPDF_TTF_PATH")
    quality = _env_int("SILKPDF_EXPORT_JPEG_QUALITY", 80)
    if not 1 <= quality <= 95:
        quality = 80
    return Settings(
        ttf_path=Path(env_font) if env_font else None,
        artifact_tag=_env_str("SILKPDF_ARTIFACT_TAG", "silk"),
        render_quiet=_env_bool("SILKPDF_RENDER_QUIET", True),
        export_jpeg_quality=quality,
    )
