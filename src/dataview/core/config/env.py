"""
Layered ``.env`` loading for the command line.

Secrets such as the API key named by ``remote.auth_env_var`` are usually
kept out of the JSON config files. They can live in a per-user file
(``$XDG_CONFIG_HOME/dataview/.env``) or next to the project
(``.env``, then ``.env.local``). A variable exported in the shell is never
replaced; a project file may replace what the user file provided.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values


def _user_env_files() -> list[Path]:
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return [Path(config_home) / "dataview" / ".env"]


def _project_env_files(project_dir: Path) -> list[Path]:
    return [project_dir / ".env", project_dir / ".env.local"]


def _values(path: Path) -> dict[str, str]:
    """Variables defined in ``path``; empty when the file is absent."""
    if not path.exists():
        return {}
    return {
        str(name): str(value)
        for name, value in dotenv_values(path).items()
        if name is not None and value is not None
    }


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """
    Export variables from the user and project ``.env`` files.

    Args:
        project_dir: Directory holding the project files (defaults to cwd)
        user_env_paths: Override the user file locations
        project_env_paths: Override the project file locations

    Returns:
        Names of the variables this call put into ``os.environ``
    """
    if user_env_paths is None:
        user_env_paths = _user_env_files()
    if project_env_paths is None:
        project_env_paths = _project_env_files(project_dir or Path.cwd())

    # Anything present now came from the shell and must survive
    shell = set(os.environ)
    exported: set[str] = set()

    for path in user_env_paths:
        for name, value in _values(Path(path)).items():
            if name not in shell:
                os.environ[name] = value
                exported.add(name)

    for path in project_env_paths:
        for name, value in _values(Path(path)).items():
            if name not in shell:
                os.environ[name] = value
                exported.add(name)

    return exported
