"""Runtime executable resolution for the external media tools.

Responsibilities:
- Resolve `ffmpeg`/`ffprobe` with explicit env override, then bundled copies, then PATH.
- Support frozen app layouts (for example PyInstaller) and local development runs.
"""

from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path
import shutil
import sys

from .parsing import normalize_optional_string

_ENV_OVERRIDES = {
    "ffmpeg": "VIDEOSLICER_FFMPEG",
    "ffprobe": "VIDEOSLICER_FFPROBE",
}


def resolve_executable(command_name: str, env: Mapping[str, str] | None = None) -> str:
    """Resolve an executable path for one media tool.

    Resolution order:
    1. `VIDEOSLICER_<TOOL>` environment override, when set.
    2. Bundled app directories (`./bin/<tool>` then `./<tool>` from app root).
    3. System `PATH`.
    4. Raw command name (subprocess then raises a native missing-binary error).
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    env_map: Mapping[str, str] = os.environ if env is None else env
    env_key = _ENV_OVERRIDES.get(normalized.lower())
    if env_key is not None:
        override = normalize_optional_string(env_map.get(env_key))
        if override is not None:
            return override

    for candidate in _bundled_candidates(normalized):
        if candidate.is_file():
            return str(candidate)

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path

    return normalized


def _bundled_candidates(command_name: str) -> list[Path]:
    app_root = _app_root()
    candidates: list[Path] = []
    for name in (command_name, f"{command_name}.exe"):
        candidates.append(app_root / "bin" / name)
        candidates.append(app_root / name)
    return candidates


def _app_root() -> Path:
    """Resolve runtime application root for frozen and non-frozen execution."""

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]
