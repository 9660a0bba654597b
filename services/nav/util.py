from __future__ import annotations

import json
import os
import pathlib
from datetime import datetime, timezone
from typing import Dict, Any

import orjson

# Minimal JSON logger to stdout (structured for ingestion)
def _log(level: str, payload: Dict[str, Any]) -> None:
    rec = {"level": level, "ts": datetime.now(tz=timezone.utc).isoformat()}
    rec.update(payload)
    print(orjson.dumps(rec, default=str).decode("utf-8"), flush=True)

class logger:
    @staticmethod
    def info(p: Dict[str, Any]) -> None: _log("INFO", p)
    @staticmethod
    def warning(p: Dict[str, Any]) -> None: _log("WARN", p)
    @staticmethod
    def error(p: Dict[str, Any]) -> None: _log("ERROR", p)
    @staticmethod
    def debug(p: Dict[str, Any]) -> None:
        if os.environ.get("DEBUG", "0") == "1":
            _log("DEBUG", p)


def utc_iso(now: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z, e.g. 2024-05-01T14:03:07.123Z"""
    now = now or datetime.now(tz=timezone.utc)
    return now.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


# Schema loader: explicit env override first, then the copy shipped with the package
def load_history_schema() -> Dict[str, Any]:
    explicit = os.environ.get("HISTORY_SCHEMA_PATH")
    here = pathlib.Path(__file__).resolve()
    candidates = []
    if explicit:
        candidates.append(explicit)
    candidates.append(str(here.parent / "schemas" / "history.schema.json"))

    for path in candidates:
        if os.path.exists(path):
            logger.debug({"msg": "schema_path_selected", "path": path})
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

    raise FileNotFoundError("history.schema.json not found. Tried:\n" + "\n".join(candidates))
