# leadership_core/azure_cfg.py
from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from openai import AzureOpenAI

_KEYS = ("endpoint", "api_key", "api_version", "deployment")

@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str

def _from_env() -> dict[str, str]:
    return {k: os.getenv(f"AZURE_OPENAI_{k.upper()}", "") for k in _KEYS}

def _from_json(path: str = ".azure_config.json") -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists():
        return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return {k: str(j.get(k, "")) for k in _KEYS}

def is_configured() -> bool:
    cfg = _from_env()
    if all(cfg.values()):
        return True
    j = _from_json()
    return all(cfg.get(k) or j.get(k) for k in _KEYS)

def settings() -> AzureSettings:
    cfg = _from_env()
    if not all(cfg.values()):
        for k, v in _from_json().items():
            if not cfg.get(k): cfg[k] = v
    missing = [k for k, v in cfg.items() if not v]
    if missing:
        raise RuntimeError(f"Azure OpenAI not configured. Missing: {', '.join(missing)}")
    return AzureSettings(**cfg)

def client(timeout: float = 60.0) -> AzureOpenAI:
    s = settings()
    return AzureOpenAI(
        azure_endpoint=s.endpoint,
        api_key=s.api_key,
        api_version=s.api_version,
        timeout=timeout,
        max_retries=0,
    )
