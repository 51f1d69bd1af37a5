"""Runtime settings read from the environment (and an optional ``.env`` file).

Layout behaviour itself is configured by the density policy; these settings
only cover where the canvas goes and how loudly the tool logs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_NAME = "Logic_Map.canvas"
DEFAULT_LOG_LEVEL = "WARNING"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Resolved settings.

    Attributes:
        base_path: Vault folder holding the session folders (prefix of back-links).
        canvas_name: File name of the written canvas.
        output_dir: Directory the canvas is written to when no path is given.
        log_level: Root log level for the command line tool.
    """

    base_path: str = ""
    canvas_name: str = DEFAULT_CANVAS_NAME
    output_dir: Path = Path(".")
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def canvas_path(self) -> Path:
        return self.output_dir / self.canvas_name


def _log_level(value: str | None) -> str:
    level = (value or DEFAULT_LOG_LEVEL).strip().upper()
    if level not in _LOG_LEVELS:
        logger.warning("Invalid HORIZON_LOG_LEVEL %r, using %s", value, DEFAULT_LOG_LEVEL)
        return DEFAULT_LOG_LEVEL
    return level


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Build ``Settings`` from ``HORIZON_*`` environment variables.

    Variables already set in the environment win over the ``.env`` file.
    """
    load_dotenv(dotenv_path=env_file)
    return Settings(
        base_path=os.getenv("HORIZON_BASE_PATH", ""),
        canvas_name=os.getenv("HORIZON_CANVAS_NAME") or DEFAULT_CANVAS_NAME,
        output_dir=Path(os.getenv("HORIZON_OUTPUT_DIR") or "."),
        log_level=_log_level(os.getenv("HORIZON_LOG_LEVEL")),
    )
