from __future__ import annotations
import json, time, threading, importlib.resources as ir
from typing import Callable, Generic, List, Optional, Sequence, TypeVar
from .config import CATALOGUE_TTL_SEC
from .types import DIMENSIONS, Item

TIERS = ("quick", "deep")
T = TypeVar("T")


def load_bank() -> List[Item]:
    data = ir.files(__package__).joinpath("data/bank.json").read_text(encoding="utf-8")
    return [Item(**r) for r in json.loads(data)]


def items_for_tier(items: Sequence[Item], tier: str) -> List[Item]:
    if tier not in TIERS:
        raise ValueError(f"unknown tier: {tier!r}")
    return [it for it in items if tier in it.tiers and it.dimension in DIMENSIONS]


class CatalogueCache(Generic[T]):
    """Read-through cache around a catalogue loader with a fixed TTL.

    Hosts keep one instance per catalogue and hand the loaded list to the
    engine; nothing in the engine reaches for the cache itself."""

    def __init__(self, loader: Callable[[], T], ttl_sec: float = CATALOGUE_TTL_SEC,
                 clock: Callable[[], float] = time.monotonic):
        self._loader = loader
        self._ttl = float(ttl_sec)
        self._clock = clock
        self._value: Optional[T] = None
        self._loaded_at: Optional[float] = None
        self._lock = threading.Lock()

    def get(self) -> T:
        with self._lock:
            now = self._clock()
            if self._loaded_at is None or now - self._loaded_at >= self._ttl:
                self._value = self._loader()
                self._loaded_at = now
            return self._value  # type: ignore[return-value]

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self._loaded_at = None
