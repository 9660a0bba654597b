"""
Bounded, file-backed NAV history.

The whole log lives in one JSON array (most recent last) and every mutation
rewrites it atomically: serialize to a temp file in the same directory, then
os.replace() over the target. Mutations are serialized by a lock so that
concurrent appends cannot lose each other's samples.
"""

from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
from jsonschema import ValidationError, validate

from .errors import PersistenceError
from .models import NavSample
from .util import load_history_schema, logger


class HistoryStore:
    def __init__(self, path: str, max_entries: int = 100, schema: Optional[Dict[str, Any]] = None) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.path = Path(path)
        self.max_entries = max_entries
        self._schema = schema if schema is not None else load_history_schema()
        self._lock = threading.Lock()

    def _read(self) -> List[NavSample]:
        # Absent file is a fresh store; anything unreadable is an error, never an empty log
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_bytes()
            doc = orjson.loads(raw)
            validate(instance=doc, schema=self._schema)
        except OSError as e:
            raise PersistenceError(str(self.path), f"cannot read history: {e}") from e
        except orjson.JSONDecodeError as e:
            raise PersistenceError(str(self.path), f"corrupt history file: {e}") from e
        except ValidationError as e:
            raise PersistenceError(str(self.path), f"history failed schema validation: {e.message}") from e
        return [NavSample(time=item["time"], nav=float(item["nav"])) for item in doc]

    def _write(self, samples: List[NavSample]) -> None:
        payload = orjson.dumps([s.model_dump() for s in samples], option=orjson.OPT_INDENT_2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(str(self.path), f"cannot write history: {e}") from e

    def append(self, sample: NavSample) -> None:
        with self._lock:
            samples = self._read()
            samples.append(sample)
            samples = samples[-self.max_entries:]
            self._write(samples)
        logger.debug({"msg": "history_append", "time": sample.time, "nav": sample.nav, "entries": len(samples)})

    def list(self) -> List[NavSample]:
        with self._lock:
            return self._read()

    def reset(self) -> None:
        with self._lock:
            self._write([])
        logger.info({"msg": "history_reset", "path": str(self.path)})
