"""Filesystem layout helpers for queued jobs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional
import json
import logging
import shutil

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class JobPaths:
    base_dir: Path
    job_root: Path
    job_json: Path


def build_job_paths(base_dir: str | Path, queue_name: str, job_id: str) -> JobPaths:
    root = Path(base_dir)
    job_root = root / queue_name / job_id
    return JobPaths(
        base_dir=root,
        job_root=job_root,
        job_json=job_root / "job.json",
    )


def save_job_json(paths: JobPaths, payload: Dict[str, Any]) -> None:
    paths.job_json.parent.mkdir(parents=True, exist_ok=True)
    tmp = paths.job_json.with_suffix(".json.tmp")
    tmp.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    tmp.replace(paths.job_json)


def read_job_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("job-snapshot-unreadable path=%s error=%s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("job-snapshot-unreadable path=%s error=not an object", path)
        return None
    return data


def iter_job_snapshots(base_dir: str | Path, queue_name: str) -> Iterator[Dict[str, Any]]:
    queue_dir = Path(base_dir) / queue_name
    if not queue_dir.is_dir():
        return
    for job_json in sorted(queue_dir.glob("*/job.json")):
        data = read_job_json(job_json)
        if data is not None:
            yield data


def remove_job_dir(paths: JobPaths) -> None:
    shutil.rmtree(paths.job_root, ignore_errors=True)
