"""Diff computation for pixi.toml and pixi.lock.

pixi.toml is compared structurally: both sides are parsed and walked table by
table (keys sorted), producing added/removed/modified records keyed by
(section, key). Formatting, comments and key order never show up as changes.

pixi.lock is compared at the package level only: each side is reduced to a
``{package name: version}`` map and the maps are compared. When a lock cannot
be parsed the comparison degrades to "changed / unchanged".
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional
import json
import posixpath
import tomllib

import yaml
from pydantic import BaseModel, Field

from .constants import LOCK_FILE, MANIFEST_FILE
from .errors import DiffError


# ============= Models =============

class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class TomlChange(BaseModel):
    section: str
    key: str
    type: ChangeType
    old_value: Optional[str] = None
    new_value: Optional[str] = None


class TomlDiff(BaseModel):
    changes: List[TomlChange] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def of_type(self, change_type: ChangeType) -> List[TomlChange]:
        return [c for c in self.changes if c.type == change_type]


class PackageUpdate(BaseModel):
    name: str
    old: str
    new: str


class LockSummary(BaseModel):
    packages_added: int = 0
    packages_removed: int = 0
    packages_updated: int = 0
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    updated: List[PackageUpdate] = Field(default_factory=list)
    # Set when a lock could not be parsed and only byte equality is known
    unparsed: bool = False

    @property
    def has_changes(self) -> bool:
        return self.unparsed or bool(
            self.packages_added or self.packages_removed or self.packages_updated
        )


class DiffRef(BaseModel):
    """One side of a diff, for labels and JSON output."""

    type: str  # "local", "remote" or "origin"
    workspace: Optional[str] = None
    tag: Optional[str] = None
    version: Optional[int] = None
    path: Optional[str] = None

    @property
    def label(self) -> str:
        if self.type == "local":
            return self.path or "."
        if self.tag:
            return f"{self.workspace}:{self.tag}"
        if self.version is not None:
            return f"{self.workspace}@v{self.version}"
        return self.workspace or ""


# ============= TOML Diff =============

def format_value(value: Any) -> str:
    """Render a TOML value for display."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, list):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        items = ", ".join(f"{k} = {format_value(value[k])}" for k in sorted(value))
        return "{" + items + "}"
    return str(value)


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _record_all(value: Any, section: str, key: str, change_type: ChangeType, changes: List[TomlChange]) -> None:
    """Record every leaf of an added or removed value."""
    if isinstance(value, dict) and value:
        sub_section = _join(section, key)
        for sub_key in sorted(value):
            _record_all(value[sub_key], sub_section, sub_key, change_type, changes)
        return
    rendered = format_value(value)
    if change_type == ChangeType.ADDED:
        changes.append(TomlChange(section=section, key=key, type=change_type, new_value=rendered))
    else:
        changes.append(TomlChange(section=section, key=key, type=change_type, old_value=rendered))


def _compare_tables(old: Dict[str, Any], new: Dict[str, Any], section: str, changes: List[TomlChange]) -> None:
    for key in sorted(set(old) | set(new)):
        if key not in old:
            _record_all(new[key], section, key, ChangeType.ADDED, changes)
        elif key not in new:
            _record_all(old[key], section, key, ChangeType.REMOVED, changes)
        elif isinstance(old[key], dict) and isinstance(new[key], dict):
            _compare_tables(old[key], new[key], _join(section, key), changes)
        else:
            old_str = format_value(old[key])
            new_str = format_value(new[key])
            if old[key] != new[key] or old_str != new_str:
                changes.append(TomlChange(
                    section=section,
                    key=key,
                    type=ChangeType.MODIFIED,
                    old_value=old_str,
                    new_value=new_str,
                ))


def _parse_toml(text: str, label: str) -> Dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise DiffError(f"failed to parse {MANIFEST_FILE} from {label}: {e}") from e


def compare_toml(old_text: str, new_text: str, old_label: str = "source", new_label: str = "target") -> TomlDiff:
    """Structural comparison of two pixi.toml documents.

    Raises:
        DiffError: either side is not valid TOML
    """
    old = _parse_toml(old_text, old_label)
    new = _parse_toml(new_text, new_label)
    changes: List[TomlChange] = []
    _compare_tables(old, new, "", changes)
    return TomlDiff(changes=changes)


def format_unified_diff(diff: TomlDiff, source_label: str, target_label: str) -> str:
    """Render a TomlDiff in unified-diff style, grouped by section."""
    if not diff.has_changes:
        return ""

    lines = [f"--- {source_label}", f"+++ {target_label}", f"@@ {MANIFEST_FILE} @@"]
    by_section: Dict[str, List[TomlChange]] = {}
    for change in diff.changes:
        by_section.setdefault(change.section, []).append(change)

    for section, changes in by_section.items():
        if section:
            lines.append(f" [{section}]")
        for c in changes:
            if c.type in (ChangeType.REMOVED, ChangeType.MODIFIED):
                lines.append(f"-{c.key} = {json.dumps(c.old_value, ensure_ascii=False)}")
            if c.type in (ChangeType.ADDED, ChangeType.MODIFIED):
                lines.append(f"+{c.key} = {json.dumps(c.new_value, ensure_ascii=False)}")
    return "\n".join(lines) + "\n"


# ============= Lock Diff =============

def parse_conda_filename(url: str) -> Optional[tuple]:
    """(name, version) from a conda package URL or filename.

    ``.../python-3.12.1-hab00c5b_1_cpython.conda`` -> ("python", "3.12.1").
    The last dash-separated part is the build; the version is the nearest
    part before it that starts with a digit; everything before is the name.
    """
    filename = posixpath.basename(url)
    for suffix in (".tar.bz2", ".conda"):
        if filename.endswith(suffix):
            filename = filename[: -len(suffix)]
            break
    else:
        return None

    parts = filename.split("-")
    if len(parts) < 3:
        return None
    for i in range(len(parts) - 2, 0, -1):
        if parts[i][:1].isdigit():
            return "-".join(parts[:i]), parts[i]
    return None


def _add(packages: Dict[str, str], name: Any, version: Any, manager: str = "") -> None:
    if not isinstance(name, str) or not name:
        return
    key = name
    if manager == "pypi" and key in packages:
        key = f"{name} (pypi)"
    if key not in packages:
        packages[key] = "" if version is None else str(version)


def lock_packages(text: str) -> Dict[str, str]:
    """Reduce a pixi.lock to {package name: version}.

    Understands the v6 layout (``packages`` entries keyed by ``conda:`` /
    ``pypi:`` URLs), the legacy ``package`` list with a ``manager`` field,
    ``packages: {conda: [...], pypi: [...]}``, and flat name/version lists.

    Raises:
        DiffError: the text is not YAML or has no recognizable package list
    """
    if not text.strip():
        return {}
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DiffError(f"failed to parse {LOCK_FILE}: {e}") from e
    if not isinstance(data, dict):
        raise DiffError(f"unrecognized {LOCK_FILE} layout")

    packages: Dict[str, str] = {}
    entries = data.get("packages")

    if isinstance(entries, list):
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if "pypi" in entry:
                _add(packages, entry.get("name"), entry.get("version"), "pypi")
            elif "conda" in entry:
                if entry.get("name"):
                    _add(packages, entry.get("name"), entry.get("version"))
                else:
                    parsed = parse_conda_filename(str(entry["conda"]))
                    if parsed:
                        _add(packages, *parsed)
            else:
                _add(packages, entry.get("name"), entry.get("version"))
        return packages

    if isinstance(entries, dict):
        for manager in ("conda", "pypi"):
            for entry in entries.get(manager) or []:
                if isinstance(entry, dict):
                    _add(packages, entry.get("name"), entry.get("version"), manager)
        return packages

    legacy = data.get("package")
    if isinstance(legacy, list):
        for entry in legacy:
            if isinstance(entry, dict):
                _add(packages, entry.get("name"), entry.get("version"), entry.get("manager", ""))
        return packages

    raise DiffError(f"unrecognized {LOCK_FILE} layout")


def _diff_packages(old: Dict[str, str], new: Dict[str, str]) -> LockSummary:
    summary = LockSummary()
    for name, old_version in old.items():
        if name not in new:
            summary.removed.append(f"{name} {old_version}".rstrip())
        elif new[name] != old_version:
            summary.updated.append(PackageUpdate(name=name, old=old_version, new=new[name]))
    for name, new_version in new.items():
        if name not in old:
            summary.added.append(f"{name} {new_version}".rstrip())

    summary.added.sort()
    summary.removed.sort()
    summary.updated.sort(key=lambda u: u.name)
    summary.packages_added = len(summary.added)
    summary.packages_removed = len(summary.removed)
    summary.packages_updated = len(summary.updated)
    return summary


def compare_lock(old_text: str, new_text: str) -> LockSummary:
    """Package-level comparison of two pixi.lock files."""
    try:
        old = lock_packages(old_text)
        new = lock_packages(new_text)
    except DiffError:
        return LockSummary(unparsed=old_text != new_text)
    return _diff_packages(old, new)


def _pluralize(n: int) -> str:
    return f"{n} package" if n == 1 else f"{n} packages"


def format_lock_diff(summary: LockSummary) -> str:
    """Render a LockSummary as +/- package lines plus a summary line."""
    if summary.unparsed:
        return f"  {LOCK_FILE}: changed (unable to parse package details)\n"
    if not summary.has_changes:
        return f"  {LOCK_FILE}: no package changes\n"

    lines = [f"@@ {LOCK_FILE} @@"]
    lines.extend(f"+{pkg}" for pkg in summary.added)
    lines.extend(f"-{pkg}" for pkg in summary.removed)
    for u in summary.updated:
        lines.append(f"-{u.name} {u.old}")
        lines.append(f"+{u.name} {u.new}")

    parts = []
    if summary.packages_added:
        parts.append(f"{_pluralize(summary.packages_added)} added")
    if summary.packages_removed:
        parts.append(f"{_pluralize(summary.packages_removed)} removed")
    if summary.packages_updated:
        parts.append(f"{_pluralize(summary.packages_updated)} updated")
    lines.append("")
    lines.append(", ".join(parts))
    return "\n".join(lines) + "\n"


# ============= JSON Output =============

def format_diff_json(
    source: DiffRef,
    target: DiffRef,
    toml_diff: Optional[TomlDiff],
    lock_summary: Optional[LockSummary],
) -> str:
    payload: Dict[str, Any] = {
        "source": source.model_dump(exclude_none=True),
        "target": target.model_dump(exclude_none=True),
    }
    if toml_diff is not None:
        payload["pixi_toml"] = toml_diff.model_dump(mode="json", exclude_none=True)
    if lock_summary is not None:
        payload["pixi_lock"] = lock_summary.model_dump(mode="json")
    return json.dumps(payload, indent=2)
