"""
Artifact persistence for search runs.

A run directory holds:
- report.json with the search record and reproducibility metadata
- cv_results.csv with one row per configuration
- fold_metrics.csv with one row per (config, repeat, fold) cell
"""

from __future__ import annotations

import json
import platform
import re
import subprocess
from collections.abc import Mapping
from datetime import UTC, datetime
from importlib import metadata
from pathlib import Path
from typing import Any

import pandas as pd

# Distributions whose versions change numerical results.
TRACKED_DISTRIBUTIONS: tuple[str, ...] = ('numpy', 'pandas', 'scikit-learn', 'scipy', 'xgboost')


def _git(*args: str, cwd: Path | None = None) -> str:
    return subprocess.check_output(
        ['git', *args],
        cwd=cwd,
        stderr=subprocess.DEVNULL,
        text=True,
    ).strip()


def get_git_info(cwd: Path | None = None) -> dict[str, Any]:
    """Commit, branch and dirty flag of the working tree (None outside git)."""
    try:
        return {
            'git_commit': _git('rev-parse', 'HEAD', cwd=cwd),
            'git_branch': _git('rev-parse', '--abbrev-ref', 'HEAD', cwd=cwd),
            'git_dirty': bool(_git('status', '--porcelain', cwd=cwd)),
        }
    except (subprocess.CalledProcessError, FileNotFoundError):
        return {'git_commit': None, 'git_branch': None, 'git_dirty': None}


def get_environment_info() -> dict[str, str | None]:
    """Interpreter and numerical-stack versions."""
    info: dict[str, str | None] = {'python': platform.python_version()}
    for dist in TRACKED_DISTRIBUTIONS:
        try:
            info[dist] = metadata.version(dist)
        except metadata.PackageNotFoundError:
            info[dist] = None
    return info


def generate_run_id(base_dir: Path, prefix: str = 'search') -> str:
    """Next ``<prefix>.<YYYY-MM-DD>_<NNN>`` id for today inside ``base_dir``."""
    today = datetime.now(UTC).strftime('%Y-%m-%d')
    pattern = re.compile(rf'^{re.escape(prefix)}\.{today}_(\d+)$')

    taken = [0]
    if base_dir.exists():
        for child in base_dir.iterdir():
            match = pattern.match(child.name)
            if child.is_dir() and match:
                taken.append(int(match.group(1)))
    return f'{prefix}.{today}_{max(taken) + 1:03d}'


def save_json(payload: Mapping[str, Any], path: Path) -> Path:
    """Write strict JSON (no NaN/inf), creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', encoding='utf-8') as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False, allow_nan=False)
        fh.write('\n')
    return path


def save_frame(df: pd.DataFrame, path: Path) -> Path:
    """Write a DataFrame as CSV, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
