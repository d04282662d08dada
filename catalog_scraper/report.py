"""Write scraped catalogs and their summaries as JSON."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .config import OutputConfig
from .log import log
from .models import Course

ERROR_FILENAME = "scraping-error.json"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_summary(
    courses: Sequence[Course],
    success: bool = True,
    error: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """Summary object; every count is derived from ``courses``."""
    programs = {sp.program_name for c in courses for sp in c.study_programs}
    summary: Dict[str, Any] = {
        "success": success,
        "timestamp": timestamp or _timestamp(),
        "totalSubjects": len(courses),
        "totalStudyPrograms": len(programs),
        "multiProgramSubjects": sum(1 for c in courses if len(c.study_programs) > 1),
        "subjectsWithMixedTypes": sum(
            1 for c in courses if len({sp.type for sp in c.study_programs}) > 1
        ),
        "subjects": [c.to_dict() for c in courses],
    }
    if error is not None:
        summary["error"] = error
    return summary


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def summary_path(path: Path) -> Path:
    return path.with_name(f"{path.stem}-summary{path.suffix or '.json'}")


def write_results(courses: Sequence[Course], filename: str, output: OutputConfig, label: str) -> Dict[str, Any]:
    """Write the course list and, when enabled, its summary. Returns the summary."""
    out_path = output.directory / filename
    _write_json(out_path, [c.to_dict() for c in courses])
    summary = build_summary(courses)
    if output.generate_summary:
        _write_json(summary_path(out_path), summary)
        log("ok", f"{label} summary saved to {summary_path(out_path)}")
    log("ok", f"{label} results saved to {out_path} ({len(courses)} courses)")
    return summary


def write_error_result(output: OutputConfig, message: str) -> Path:
    result = build_summary([], success=False, error=message)
    out_path = output.directory / ERROR_FILENAME
    _write_json(out_path, result)
    log("error", f"Error result saved to {out_path}")
    return out_path

