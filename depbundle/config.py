"""Configuration loading.

Configuration lives in a small TOML file (``depbundle.toml``). The schema is
intentionally flat: every section maps onto one frozen dataclass and every
key has a default, so an empty or missing file is a valid configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "depbundle.toml"

# Auto-generated date helper tables created by the host for every date column
DEFAULT_DENYLIST = (
    r"^LocalDateTable_[0-9a-fA-F-]+$",
    r"^DateTableTemplate_[0-9a-fA-F-]+$",
)


@dataclass(frozen=True)
class IngestionConfig:
    root_name: str = "Model"
    delimiter: str = "."
    denylist: tuple[str, ...] = DEFAULT_DENYLIST

    def compiled_denylist(self) -> list[re.Pattern[str]]:
        return [re.compile(p) for p in self.denylist]


@dataclass(frozen=True)
class LayoutConfig:
    outer_radius: float = 1.0


@dataclass(frozen=True)
class BundlingConfig:
    tension: float = 0.85


@dataclass(frozen=True)
class OpacityConfig:
    full: float = 1.0
    dimmed_node: float = 0.2
    dimmed_edge: float = 0.05
    default_edge: float = 0.4
    matched_edge: float = 0.4
    unmatched_edge: float = 0.02


@dataclass(frozen=True)
class Config:
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    bundling: BundlingConfig = field(default_factory=BundlingConfig)
    opacity: OpacityConfig = field(default_factory=OpacityConfig)


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _unit_float(section: dict[str, Any], key: str, default: float) -> float:
    value = float(section.get(key, default))
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{key} must be between 0 and 1")
    return value


def parse_config(data: dict[str, Any]) -> Config:
    """Validate a parsed TOML document into a ``Config``."""
    ing = _coerce_dict(data.get("ingestion"))
    root_name = str(ing.get("root_name", "Model")).strip()
    if not root_name:
        raise ValueError("ingestion.root_name must not be empty")
    delimiter = str(ing.get("delimiter", "."))
    if not delimiter:
        raise ValueError("ingestion.delimiter must not be empty")

    raw_denylist = ing.get("denylist", list(DEFAULT_DENYLIST))
    if not isinstance(raw_denylist, list) or not all(isinstance(p, str) for p in raw_denylist):
        raise ValueError("ingestion.denylist must be a list of regular expressions")
    for pattern in raw_denylist:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid denylist pattern {pattern!r}: {exc}") from exc

    lay = _coerce_dict(data.get("layout"))
    outer_radius = float(lay.get("outer_radius", 1.0))
    if outer_radius <= 0:
        raise ValueError("layout.outer_radius must be positive")

    bun = _coerce_dict(data.get("bundling"))
    tension = _unit_float(bun, "tension", 0.85)

    op = _coerce_dict(data.get("opacity"))
    defaults = OpacityConfig()
    opacity = OpacityConfig(
        **{name: _unit_float(op, name, getattr(defaults, name)) for name in defaults.__dataclass_fields__}
    )

    return Config(
        ingestion=IngestionConfig(root_name=root_name, delimiter=delimiter, denylist=tuple(raw_denylist)),
        layout=LayoutConfig(outer_radius=outer_radius),
        bundling=BundlingConfig(tension=tension),
        opacity=opacity,
    )


def load_config(path: Path) -> Config:
    """Load a configuration file from TOML."""
    import tomllib

    data = tomllib.loads(path.read_text(encoding="utf-8"))
    return parse_config(data)


def find_config(start: Path) -> Path | None:
    """Find ``depbundle.toml`` by walking up from ``start``."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
