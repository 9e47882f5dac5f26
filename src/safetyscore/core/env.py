"""
Project root and `.env` handling.

Catalog paths in `defaults.yaml` (`data_dir: data`) are relative, and both uvicorn and the
CLI may be started from any directory. Relative paths therefore resolve against the
project root rather than the working directory.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ROOT_ENV = "SAFETYSCORE_PROJECT_ROOT"
ENV_FILE_ENV = "SAFETYSCORE_ENV_FILE"


def _is_root(path: Path) -> bool:
    return (
        (path / ".env").is_file()
        or (path / ".git").exists()
        or (path / "src" / "safetyscore").is_dir()
    )


def _find_root(start: Path) -> Path | None:
    start = start.resolve()
    return next((p for p in (start, *start.parents) if _is_root(p)), None)


@lru_cache
def get_project_root() -> Path:
    """Project root: `SAFETYSCORE_PROJECT_ROOT`, the env file's directory, or a marker search."""
    override = os.getenv(ROOT_ENV)
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv(ENV_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    # The working directory wins over the installed package location.
    return _find_root(Path.cwd()) or _find_root(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project's `.env` once; variables already set in the process are kept."""
    explicit = os.getenv(ENV_FILE_ENV)
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve `path` against the project root unless it is already absolute."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
