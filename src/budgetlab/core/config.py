"""Utilities for loading view catalogs from YAML/JSON sources."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .records import BudgetKind

__all__ = [
    "COMPOSITE_SEPARATORS",
    "DEFAULT_VIEWS",
    "LayoutSettings",
    "ViewCatalog",
    "ViewConfig",
    "default_catalog",
    "load_view_catalog",
]

# Underscore join ("31_32") and the textual join used by revenue tables ("1111 a 1112").
COMPOSITE_SEPARATORS: tuple[str, ...] = ("_", " a ")

GRAND_TOTAL_CODE = "0"


@dataclass(frozen=True, slots=True)
class ViewConfig:
    """One selectable budget view (one classification system)."""

    key: str
    label: str
    system: str
    kind: BudgetKind | None = None
    tree_file: str | None = None
    data_file: str | None = None
    color: str = "#1565C0"
    composite_separators: tuple[str, ...] = COMPOSITE_SEPARATORS
    total_codes: tuple[str, ...] = (GRAND_TOTAL_CODE,)


@dataclass(frozen=True, slots=True)
class LayoutSettings:
    """Layout and transition parameters shared by every view."""

    visible_columns: int = 3
    transition_seconds: float = 0.75
    name_min_px: float = 14.0
    value_min_px: float = 28.0
    label_max_length: int = 40


@dataclass(slots=True)
class ViewCatalog:
    """Structured representation of a view catalog."""

    views: dict[str, ViewConfig]
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    year: int = 2026
    data_dir: str | None = None
    source: str = "<memory>"

    def get(self, key: str) -> ViewConfig:
        try:
            return self.views[key]
        except KeyError:
            known = ", ".join(self.views) or "<none>"
            raise ConfigError(f"Unknown view '{key}' (known: {known})") from None

    def for_system(self, system: str) -> ViewConfig:
        for view in self.views.values():
            if view.system == system:
                return view
        return ViewConfig(key=system, label=system, system=system)


DEFAULT_VIEWS: dict[str, ViewConfig] = {
    "revenues": ViewConfig(
        key="revenues",
        label="Příjmy",
        system="rev_druhove",
        kind=BudgetKind.REVENUE,
        tree_file="tree_rev_druhove.json",
        data_file="fact_revenues_by_chapter.csv",
        color="#2E7D32",
    ),
    "exp_druhove": ViewConfig(
        key="exp_druhove",
        label="Výdaje (druhové)",
        system="exp_druhove",
        kind=BudgetKind.EXPENDITURE,
        tree_file="tree_exp_druhove.json",
        data_file="fact_expenditures_by_chapter.csv",
        color="#C62828",
    ),
    "exp_odvetvove": ViewConfig(
        key="exp_odvetvove",
        label="Výdaje (odvětvové)",
        system="exp_odvetvove",
        kind=BudgetKind.EXPENDITURE,
        tree_file="tree_exp_odvetvove.json",
        data_file="fact_expenditures_by_chapter.csv",
        color="#1565C0",
    ),
}


def default_catalog() -> ViewCatalog:
    """Catalog with the three standard state-budget views."""
    return ViewCatalog(views=dict(DEFAULT_VIEWS))


def load_view_catalog(
    source: str | Path | dict[str, Any], *, format: str | None = None
) -> ViewCatalog:
    """Parse a view catalog from YAML/JSON/dict into normalized settings."""

    mapping, label = _read_source(source, format=format)
    layout = _normalize_layout(mapping.get("layout"), label)
    views = _normalize_views(mapping.get("views"), label)
    year = mapping.get("year", 2026)
    if not isinstance(year, int) or isinstance(year, bool):
        raise ConfigError(f"{label}::year must be an integer")
    data_dir = mapping.get("data_dir")
    if data_dir is not None and not isinstance(data_dir, str):
        raise ConfigError(f"{label}::data_dir must be a string")
    return ViewCatalog(
        views=views, layout=layout, year=year, data_dir=data_dir, source=label
    )


def _read_source(
    source: str | Path | dict[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    if fmt in {"yaml", "yml", ""}:
        data = yaml.safe_load(text)
    elif fmt == "json":
        data = json.loads(text)
    else:
        raise ConfigError(f"Unsupported catalog format '{fmt}' for {path}")

    if not isinstance(data, dict):
        raise ConfigError(f"Catalog root must be a mapping (source={path})")
    return data, str(path)


def _normalize_layout(raw: Any, label: str) -> LayoutSettings:
    if raw is None:
        return LayoutSettings()
    data = _ensure_dict(raw, f"{label}::layout")
    settings = LayoutSettings()
    updates: dict[str, Any] = {}
    for name in ("visible_columns", "label_max_length"):
        if name in data:
            value = data[name]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{label}::layout.{name} must be a positive integer")
            updates[name] = value
    for name in ("transition_seconds", "name_min_px", "value_min_px"):
        if name in data:
            value = data[name]
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigError(f"{label}::layout.{name} must be a number")
            if value < 0:
                raise ConfigError(f"{label}::layout.{name} must be >= 0")
            updates[name] = float(value)
    return replace(settings, **updates)


def _normalize_views(raw: Any, label: str) -> dict[str, ViewConfig]:
    if raw is None:
        return dict(DEFAULT_VIEWS)
    data = _ensure_dict(raw, f"{label}::views")
    if not data:
        raise ConfigError(f"{label}: catalog must define at least one view")

    views: dict[str, ViewConfig] = {}
    for key, entry in data.items():
        ctx = f"{label}::views.{key}"
        fields = _ensure_dict(entry, ctx)
        system = fields.get("system")
        if not isinstance(system, str) or not system.strip():
            raise ConfigError(f"{ctx}: 'system' is required")
        view_label = fields.get("label", key)
        if not isinstance(view_label, str) or not view_label.strip():
            raise ConfigError(f"{ctx}: 'label' must be a non-empty string")
        kind = None
        if fields.get("kind") is not None:
            kind = BudgetKind.parse(fields["kind"])
            if kind is None:
                raise ConfigError(f"{ctx}: unknown kind '{fields['kind']}'")
        separators = fields.get("composite_separators", list(COMPOSITE_SEPARATORS))
        if isinstance(separators, str):
            separators = [separators]
        if not isinstance(separators, list) or not all(
            isinstance(s, str) and s for s in separators
        ):
            raise ConfigError(
                f"{ctx}: 'composite_separators' must be a list of non-empty strings"
            )
        total_codes = fields.get("total_codes", [GRAND_TOTAL_CODE])
        if not isinstance(total_codes, list):
            raise ConfigError(f"{ctx}: 'total_codes' must be a list")
        views[key] = ViewConfig(
            key=key,
            label=view_label,
            system=system.strip(),
            kind=kind,
            tree_file=_coerce_optional_str(fields.get("tree_file"), f"{ctx}.tree_file"),
            data_file=_coerce_optional_str(fields.get("data_file"), f"{ctx}.data_file"),
            color=_coerce_optional_str(fields.get("color"), f"{ctx}.color") or "#1565C0",
            composite_separators=tuple(separators),
            total_codes=tuple(str(code) for code in total_codes),
        )
    return views


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected mapping, got {type(value).__name__}")
    return value


def _coerce_optional_str(value: Any, ctx: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string, got {type(value).__name__}")
    return value
