"""Events domain — line tokenizing and event normalization.

Exports are loaded lazily: ``pkghist.config`` imports the event schemas,
while the normalizer imports ``pkghist.config``.
"""

from __future__ import annotations

from importlib import import_module

__all__ = [
    "PackageAction",
    "PackageEvent",
    "TokenizedLine",
    "normalize_event",
    "parse_line",
    "tokenize_line",
]


_EXPORT_TO_MODULE = {
    "PackageAction": "pkghist.events.schemas",
    "PackageEvent": "pkghist.events.schemas",
    "TokenizedLine": "pkghist.events.schemas",
    "normalize_event": "pkghist.events.normalizer",
    "parse_line": "pkghist.events.normalizer",
    "tokenize_line": "pkghist.events.tokenizer",
}


def __getattr__(name: str):
    module_name = _EXPORT_TO_MODULE.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(module_name)
    return getattr(module, name)
