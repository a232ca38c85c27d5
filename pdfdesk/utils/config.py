"""
Editor configuration.

Values default to the behaviour of the web editor (1.5x render sharpening,
20-unit eraser, 0.3 highlight alpha) and can be overridden through
``PDFDESK_*`` environment variables.
"""
import logging
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

ENV_PREFIX = "PDFDESK_"


@dataclass
class EditorSettings:
    """Configuration for an editing session and the engines it drives."""

    # Rendering
    render_scale: float = 1.5
    zoom: float = 1.0
    min_zoom: float = 0.5
    max_zoom: float = 3.0
    zoom_step: float = 0.25
    max_redraw_fps: int = 60

    # Tools
    erase_threshold: float = 20.0
    highlight_opacity: float = 0.3
    default_color: Tuple[int, int, int] = (0, 0, 0)
    brush_size: float = 3.0
    font_size: float = 16.0
    font_family: str = "Helvetica"
    placeholder_text: str = "Click to edit"

    # Image / signature placement
    image_anchor: Tuple[float, float] = (50.0, 50.0)
    max_image_size: float = 200.0
    signature_size: Tuple[float, float] = (150.0, 60.0)

    # Remote collaborators
    remote_base_url: str = "http://localhost:3000/api"
    remote_timeout: float = 60.0

    # Logging
    log_level: str = "INFO"

    # Annotation history
    history_size: int = 50


    def clamp_zoom(self, zoom: float) -> float:
        """Clamp a zoom factor to the configured range."""
        return max(self.min_zoom, min(self.max_zoom, zoom))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EditorSettings":
        """
        Build settings from defaults plus ``PDFDESK_<FIELD>`` overrides.

        Args:
            environ: Mapping to read from, defaults to ``os.environ``

        Returns:
            EditorSettings instance
        """
        environ = os.environ if environ is None else environ
        settings = cls()
        applied = []

        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            current = getattr(settings, f.name)
            try:
                value = _coerce(raw, current)
            except ValueError:
                logger.warning("Ignoring invalid value for %s%s: %r",
                               ENV_PREFIX, f.name.upper(), raw)
                continue
            setattr(settings, f.name, value)
            applied.append(f.name)

        if applied:
            logger.debug("Settings overridden from environment: %s", ", ".join(applied))
        return settings


def _coerce(raw: str, current):
    """Convert an environment string to the type of the current value."""
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, tuple):
        parts = [p.strip() for p in raw.split(",")]
        if len(parts) != len(current):
            raise ValueError(raw)
        return tuple(type(c)(p) for c, p in zip(current, parts))
    return raw
