"""Load RuleCatalog objects from YAML files."""

from __future__ import annotations

import re
from pathlib import Path

import yaml

from tonaudit.analyzer.models import FindingKind, Severity
from tonaudit.analyzer.rules import DEFAULT_CATALOG, Anchor, Rule, RuleCatalog

_PRESET_PREFIX = "preset:"

_PRESETS = {
    "default": DEFAULT_CATALOG,
}

_FLAGS = {
    "ignorecase": re.IGNORECASE,
    "multiline": re.MULTILINE,
    "dotall": re.DOTALL,
}


def load_catalog(path: str | Path, _resolved: set[str] | None = None) -> RuleCatalog:
    """Load a rule catalog from a YAML file path."""
    text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError("Catalog YAML must be a mapping")
    return _build_catalog(data, _resolved=_resolved if _resolved is not None else set())


def load_catalog_from_string(text: str) -> RuleCatalog:
    """Parse a YAML string into a RuleCatalog, resolving inheritance."""
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError("Catalog YAML must be a mapping")
    return _build_catalog(data, _resolved=set())


def _build_catalog(data: dict, _resolved: set[str]) -> RuleCatalog:
    name = data.get("name", "unnamed")

    if name in _resolved:
        raise ValueError(f"Circular catalog inheritance detected: {name}")
    _resolved.add(name)

    own_rules = _parse_rules(data.get("rules") or [])

    inherited_rules: list[Rule] = []
    inherit_list = data.get("inherit", [])
    if isinstance(inherit_list, str):
        inherit_list = [inherit_list]

    for ref in inherit_list:
        parent = _load_ref(ref, _resolved)
        inherited_rules.extend(parent.rules)

    # Own rules run first; an own rule shadows an inherited one with the same id
    own_ids = {r.id for r in own_rules}
    all_rules = tuple(own_rules) + tuple(r for r in inherited_rules if r.id not in own_ids)

    return RuleCatalog(name=name, rules=all_rules)


def _parse_rules(rules_data: list) -> list[Rule]:
    rules: list[Rule] = []
    for r in rules_data:
        if not isinstance(r, dict):
            continue
        try:
            rule_id = r["id"]
            pattern = r["pattern"]
        except KeyError as e:
            raise ValueError(f"Catalog rule is missing required field {e}") from None

        flag_names = r.get("flags") or []
        if isinstance(flag_names, str):
            flag_names = [flag_names]

        flags = 0
        for flag in flag_names:
            try:
                flags |= _FLAGS[str(flag).lower()]
            except KeyError:
                raise ValueError(f"Unknown regex flag {flag!r} in rule {rule_id}") from None

        rules.append(
            Rule(
                id=str(rule_id),
                title=r.get("title", rule_id),
                severity=Severity(str(r.get("severity", "medium")).lower()),
                description=r.get("description", ""),
                scenario=r.get("scenario", ""),
                suggestion=r.get("suggestion", ""),
                # Compiled lazily so a malformed pattern only disables its own rule
                pattern=_with_flags(str(pattern), flags),
                invert=bool(r.get("invert", False)),
                kind=FindingKind(r.get("kind", "other")),
                anchor=Anchor(r.get("anchor", "none")),
            )
        )
    return rules


def _with_flags(pattern: str, flags: int) -> str:
    inline = ""
    if flags & re.IGNORECASE:
        inline += "i"
    if flags & re.MULTILINE:
        inline += "m"
    if flags & re.DOTALL:
        inline += "s"
    return f"(?{inline}){pattern}" if inline else pattern


def _load_ref(ref: str, _resolved: set[str]) -> RuleCatalog:
    if ref.startswith(_PRESET_PREFIX):
        preset_name = ref[len(_PRESET_PREFIX) :]
        try:
            return _PRESETS[preset_name]
        except KeyError:
            raise ValueError(f"Unknown catalog preset: {preset_name}") from None
    return load_catalog(ref, _resolved=_resolved)
