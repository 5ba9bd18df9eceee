"""JSON-file persistence for the assessment host.

Three kinds of records live under ``DATA_DIR``:

* finished results, one file per shareable token, plus a token index;
* metadata for sessions still in progress, keyed by session id;
* an append-only response log per session (one JSON line per answer).

The engine never touches this module; the API hands it plain dicts.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonStore:
    def __init__(self, root: Path):
        self.root = Path(root)
        self.results_dir = self.root / "results"
        self.responses_dir = self.root / "responses"
        self.index_path = self.root / "results_index.json"
        self.active_path = self.root / "sessions_active.json"
        self._lock = threading.Lock()

    # ---- file helpers ----
    @staticmethod
    def _read(path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return default

    @staticmethod
    def _write(path: Path, payload: Any) -> None:
        # atomic replace
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(path)

    # ---- results ----
    def save_result(self, token: str, result: Dict[str, Any], summary: Dict[str, Any]) -> None:
        """Persist a finished result and list it in the token index."""

        self._write(self.results_dir / f"{token}.json", result)
        with self._lock:
            index = self._read(self.index_path, {})
            index[token] = summary
            self._write(self.index_path, index)

    def load_result(self, token: str) -> Optional[Dict[str, Any]]:
        return self._read(self.results_dir / f"{token}.json", None)

    def results_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        index: Dict[str, Dict[str, Any]] = self._read(self.index_path, {})
        rows = [{"token": tok, **meta} for tok, meta in index.items() if meta.get("userId") == user_id]
        return sorted(rows, key=lambda r: r.get("createdAt", ""), reverse=True)

    # ---- sessions in progress ----
    def _mutate_active(self, fn) -> None:
        with self._lock:
            sessions: Dict[str, Dict[str, Any]] = self._read(self.active_path, {})
            if fn(sessions):
                self._write(self.active_path, sessions)

    def record_active(self, session_id: str, payload: Dict[str, Any]) -> None:
        def _put(s):
            s[session_id] = payload
            return True
        self._mutate_active(_put)

    def touch_active(self, session_id: str, **updates: Any) -> None:
        def _upd(s):
            if session_id not in s:
                return False
            s[session_id].update(updates)
            return True
        self._mutate_active(_upd)

    def clear_active(self, session_id: str) -> None:
        self._mutate_active(lambda s: s.pop(session_id, None) is not None)

    def active_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        sessions: Dict[str, Dict[str, Any]] = self._read(self.active_path, {})
        rows = [p for p in sessions.values() if p.get("userId") == user_id]
        return sorted(rows, key=lambda r: r.get("startedAt", ""), reverse=True)

    # ---- response log ----
    def append_responses(self, session_id: str, rows: Iterable[Dict[str, Any]]) -> int:
        """Append answers to the session's log; earlier lines are never rewritten."""

        lines = [json.dumps(r, ensure_ascii=False) for r in rows]
        if not lines:
            return 0
        self.responses_dir.mkdir(parents=True, exist_ok=True)
        with self._lock, open(self.responses_dir / f"{session_id}.jsonl", "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return len(lines)

    def load_responses(self, session_id: str) -> List[Dict[str, Any]]:
        path = self.responses_dir / f"{session_id}.jsonl"
        if not path.exists():
            return []
        with open(path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
STORE = JsonStore(DATA_ROOT)
