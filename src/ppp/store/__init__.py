"""Persistence — the YAML metadata store and its id counters."""

from .counters import CounterStore
from .database import MetadataStore, check_parent

__all__: list[str] = [
    "CounterStore",
    "MetadataStore",
    "check_parent",
]
