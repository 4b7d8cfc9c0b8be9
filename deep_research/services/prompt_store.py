"""Prompt catalog: dotted keys into prompts.json rendered with string.Template."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

CATALOG_FILE = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


@lru_cache(maxsize=1)
def load_catalog() -> dict[str, dict[str, Any]]:
    catalog = json.loads(CATALOG_FILE.read_text(encoding="utf-8"))
    if not isinstance(catalog, dict) or not all(isinstance(v, dict) for v in catalog.values()):
        raise ValueError(f"{CATALOG_FILE.name} must map section names to objects")
    return catalog


@lru_cache(maxsize=None)
def get_template(key: str) -> Template:
    section, _, name = key.partition(".")
    entry: Any = load_catalog().get(section, {})
    for part in name.split(".") if name else ():
        entry = entry.get(part) if isinstance(entry, dict) else None
    if entry is None or entry == {}:
        raise KeyError(f"Prompt key not found: {key}")
    if not isinstance(entry, str):
        raise TypeError(f"Prompt {key} is a section, not a template")
    return Template(entry)


def render_prompt(key: str, **values: Any) -> str:
    template = get_template(key)
    try:
        return template.substitute(values)
    except KeyError as exc:
        raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc
