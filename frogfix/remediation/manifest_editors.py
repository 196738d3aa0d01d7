#!/usr/bin/env python3
"""
Per-technology manifest edits.

Every editor has the signature ``editor(working_dir, name, version) -> list[Path]``
and returns the files it rewrote. An empty list means the dependency is not
declared in any manifest the editor knows. I/O and parse problems raise
``PatchFailureError``. Edits are textual so that the rest of each file keeps
its formatting; only the version of the matching declaration changes.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Callable
from fnmatch import fnmatch
from pathlib import Path

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion

from frogfix.constants import SKIPPED_DIRECTORIES
from frogfix.errors import PatchFailureError
from frogfix.security.versions import strip_version_prefix

logger = logging.getLogger(__name__)

ManifestEditor = Callable[[Path, str, str], list[Path]]

NPM_DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "optionalDependencies",
    "peerDependencies",
)
# Operators kept as-is when bumping a Python requirement
PYTHON_KEPT_OPERATORS = ("===", "==", "~=", ">=")
_EXACT_VERSION_RE = re.compile(r"^v?\d[\w.+-]*$")
_PY_OPERATOR_RE = re.compile(r"^\s*(===|==|~=|>=|<=|!=|>|<)")


def find_manifests(root: Path, *patterns: str) -> list[Path]:
    """Return files under ``root`` whose name matches one of ``patterns``.

    Vendored and generated directories (``node_modules``, ``.git``...) are skipped.
    """
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRECTORIES)
        for filename in sorted(filenames):
            if any(fnmatch(filename, pattern) for pattern in patterns):
                found.append(Path(dirpath) / filename)
    return found


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PatchFailureError(f"Cannot read {path}: {e}") from e


def _write(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise PatchFailureError(f"Cannot write {path}: {e}") from e


def _rewrite(path: Path, original: str, updated: str, changed: list[Path]) -> None:
    if updated != original:
        _write(path, updated)
        changed.append(path)
        logger.debug("Updated %s", path)


def _name_pattern(name: str) -> str:
    """Regex matching ``name`` under PEP 503 normalisation (case, ``-_.`` runs)."""
    parts = canonicalize_name(name).split("-")
    return "[-_.]+".join(re.escape(p) for p in parts)


def _range_spec(current: str, version: str) -> str:
    """Bump a caret/tilde range or exact pin, defaulting to a caret range."""
    current = current.strip()
    for op in ("~=", ">=", "=="):
        if current.startswith(op):
            return op + version
    if current[:1] in ("^", "~"):
        return current[0] + version
    if _EXACT_VERSION_RE.match(current):
        return version
    return "^" + version


def _python_spec(op: str | None, version: str) -> str:
    return f"{op if op in PYTHON_KEPT_OPERATORS else '=='}{version}"


def _specifier_list_pattern(version_chars: str) -> str:
    clause = r"(?:===|==|~=|>=|<=|!=|>|<)\s*" + version_chars + "+"
    return clause + r"(?:\s*,\s*" + clause + ")*"


# --- npm / yarn / pnpm --------------------------------------------------------


def edit_package_json(working_dir: Path, name: str, version: str) -> list[Path]:
    changed: list[Path] = []
    for path in find_manifests(working_dir, "package.json"):
        text = _read(path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PatchFailureError(f"Cannot parse {path}: {e}") from e
        if not isinstance(data, dict):
            continue
        touched = False
        for section in NPM_DEPENDENCY_SECTIONS:
            deps = data.get(section)
            if isinstance(deps, dict) and isinstance(deps.get(name), str):
                deps[name] = _range_spec(deps[name], version)
                touched = True
        if not touched:
            continue
        indent_match = re.search(r"\n([ \t]+)\"", text)
        indent = indent_match.group(1) if indent_match else "  "
        updated = json.dumps(data, indent=indent, ensure_ascii=False)
        if text.endswith("\n"):
            updated += "\n"
        _rewrite(path, text, updated, changed)
    return changed


# --- go -------------------------------------------------------------------------


def edit_go_mod(working_dir: Path, name: str, version: str) -> list[Path]:
    go_version = "v" + strip_version_prefix(version)
    line_re = re.compile(
        r"^(?P<lead>\s*(?:require\s+)?)" + re.escape(name) + r"(?P<sep>\s+)v?\S+(?P<rest>.*)$"
    )
    changed: list[Path] = []
    for path in find_manifests(working_dir, "go.mod"):
        text = _read(path)
        lines = text.splitlines(keepends=True)
        in_require_block = False
        for idx, line in enumerate(lines):
            stripped = line.strip()
            if stripped.startswith("require ("):
                in_require_block = True
                continue
            if in_require_block and stripped == ")":
                in_require_block = False
                continue
            if not (in_require_block or stripped.startswith("require ")):
                continue
            match = line_re.match(line.rstrip("\r\n"))
            if match:
                ending = line[len(line.rstrip("\r\n")) :]
                lines[idx] = f"{match['lead']}{name}{match['sep']}{go_version}{match['rest']}{ending}"
        _rewrite(path, text, "".join(lines), changed)
    return changed


# --- maven ----------------------------------------------------------------------


def edit_pom_xml(working_dir: Path, name: str, version: str) -> list[Path]:
    if ":" not in name:
        return []
    group_id, artifact_id = name.split(":", 1)
    dependency_re = re.compile(r"<dependency>.*?</dependency>", re.S)
    group_re = re.compile(r"<groupId>\s*" + re.escape(group_id) + r"\s*</groupId>")
    artifact_re = re.compile(r"<artifactId>\s*" + re.escape(artifact_id) + r"\s*</artifactId>")
    version_re = re.compile(r"(<version>\s*)([^<]*?)(\s*</version>)")

    changed: list[Path] = []
    for path in find_manifests(working_dir, "pom.xml"):
        text = _read(path)
        properties: set[str] = set()

        def _bump(match: re.Match[str]) -> str:
            block = match.group(0)
            coordinates = block.split("<exclusions>", 1)[0]
            if not (group_re.search(coordinates) and artifact_re.search(coordinates)):
                return block
            current = version_re.search(block)
            if current is None:
                return block
            value = current.group(2).strip()
            if value.startswith("${") and value.endswith("}"):
                properties.add(value[2:-1])
                return block
            return version_re.sub(lambda m: f"{m.group(1)}{version}{m.group(3)}", block, count=1)

        updated = dependency_re.sub(_bump, text)
        for prop in properties:
            prop_re = re.compile(r"(<" + re.escape(prop) + r">\s*)([^<]*?)(\s*</" + re.escape(prop) + r">)")
            updated = prop_re.sub(lambda m: f"{m.group(1)}{version}{m.group(3)}", updated)
        _rewrite(path, text, updated, changed)
    return changed


# --- gradle ---------------------------------------------------------------------


def edit_build_gradle(working_dir: Path, name: str, version: str) -> list[Path]:
    if ":" not in name:
        return []
    group_id, artifact_id = name.split(":", 1)
    string_re = re.compile(
        r"(?P<q>['\"])" + re.escape(f"{group_id}:{artifact_id}:") + r"(?P<v>[^'\"$:@]+)(?P<tail>[^'\"]*)(?P=q)"
    )
    map_re = re.compile(
        r"(group\s*[:=]\s*(['\"])" + re.escape(group_id) + r"\2\s*,\s*name\s*[:=]\s*(['\"])"
        + re.escape(artifact_id)
        + r"\3\s*,\s*version\s*[:=]\s*(['\"]))([^'\"$]+)(\4)"
    )
    changed: list[Path] = []
    for path in find_manifests(working_dir, "build.gradle", "build.gradle.kts"):
        text = _read(path)
        updated = string_re.sub(
            lambda m: f"{m['q']}{group_id}:{artifact_id}:{version}{m['tail']}{m['q']}", text
        )
        updated = map_re.sub(lambda m: f"{m.group(1)}{version}{m.group(6)}", updated)
        _rewrite(path, text, updated, changed)
    return changed


# --- pip ------------------------------------------------------------------------


def _allows(specifier: str, version: str) -> bool:
    try:
        return SpecifierSet(specifier).contains(version, prereleases=True)
    except (InvalidSpecifier, InvalidVersion) as e:
        raise PatchFailureError(f"Cannot evaluate {specifier!r} against {version}: {e}") from e


def _bump_python_specifiers(specifiers: str | None, version: str) -> str:
    """Rewrite a specifier list so that ``version`` satisfies it.

    The first clause is moved to ``version`` (keeping ``==``, ``~=``, ``>=``);
    further clauses are kept unless ``version`` violates them, e.g.
    ``>=1.5,<2`` bumped to 2.4.0 becomes ``>=2.4.0``.
    """
    clauses = [c.strip() for c in (specifiers or "").split(",") if c.strip()]
    op = None
    if clauses:
        match = _PY_OPERATOR_RE.match(clauses[0])
        op = match.group(1) if match else None
    kept = [_python_spec(op, version)]
    for clause in clauses[1:]:
        if _allows(clause, version):
            kept.append(clause)
        else:
            logger.info("Dropping %r, which excludes %s", clause, version)
    return ",".join(kept)


def edit_python_requirements(working_dir: Path, name: str, version: str) -> list[Path]:
    name_re = _name_pattern(name)
    line_re = re.compile(
        r"^(?P<lead>\s*)(?P<name>" + name_re + r")(?P<extras>\[[^\]]*\])?\s*"
        r"(?P<specs>" + _specifier_list_pattern(r"[^\s;,#]") + r")?(?P<rest>.*)$",
        re.I,
    )
    quoted_re = re.compile(
        r"(?P<q>['\"])(?P<name>" + name_re + r")(?P<extras>\[[^\]]*\])?\s*"
        r"(?P<specs>" + _specifier_list_pattern(r"[^'\";,\s]") + r")?(?P<rest>\s*(?:;[^'\"]*)?)(?P=q)",
        re.I,
    )

    def _line(m: re.Match[str]) -> str:
        rest = m["rest"]
        # Guard against prefixes of longer names, e.g. "pyjwt-extra"
        if rest and not re.match(r"^\s*(?:[;#]|$)", rest):
            return m.group(0)
        spec = _bump_python_specifiers(m["specs"], version)
        return f"{m['lead']}{m['name']}{m['extras'] or ''}{spec}{rest}"

    def _quoted(m: re.Match[str]) -> str:
        spec = _bump_python_specifiers(m["specs"], version)
        return f"{m['q']}{m['name']}{m['extras'] or ''}{spec}{m['rest']}{m['q']}"

    changed: list[Path] = []
    for path in find_manifests(working_dir, "requirements*.txt"):
        text = _read(path)
        lines = text.splitlines(keepends=True)
        for idx, line in enumerate(lines):
            body = line.rstrip("\r\n")
            if body.lstrip().startswith(("#", "-")):
                continue
            lines[idx] = line_re.sub(_line, body, count=1) + line[len(body) :]
        _rewrite(path, text, "".join(lines), changed)

    for path in find_manifests(working_dir, "setup.py"):
        text = _read(path)
        _rewrite(path, text, quoted_re.sub(_quoted, text), changed)
    return changed


# --- pipenv / poetry -----------------------------------------------------------


def _edit_toml_sections(
    path: Path,
    name: str,
    version: str,
    in_section: Callable[[str], bool],
    spec_for: Callable[[str], str],
    changed: list[Path],
) -> None:
    name_re = _name_pattern(name)
    string_re = re.compile(r"^(\s*[\"']?" + name_re + r"[\"']?\s*=\s*)([\"'])([^\"']*)(\2)(.*)$", re.I)
    table_re = re.compile(r"^(\s*[\"']?" + name_re + r"[\"']?\s*=\s*\{.*?\bversion\s*=\s*)([\"'])([^\"']*)(\2)(.*)$", re.I)
    text = _read(path)
    lines = text.splitlines(keepends=True)
    section = ""
    for idx, line in enumerate(lines):
        body = line.rstrip("\r\n")
        header = re.match(r"^\s*\[\[?([^\]]+)\]\]?\s*$", body)
        if header:
            section = header.group(1).strip()
            continue
        if not in_section(section):
            continue
        for pattern in (table_re, string_re):
            match = pattern.match(body)
            if match:
                spec = spec_for(match.group(3))
                lines[idx] = f"{match.group(1)}{match.group(2)}{spec}{match.group(4)}{match.group(5)}" + line[len(body) :]
                break
    _rewrite(path, text, "".join(lines), changed)


def edit_pipfile(working_dir: Path, name: str, version: str) -> list[Path]:
    def _spec(current: str) -> str:
        return _bump_python_specifiers(current, version)

    changed: list[Path] = []
    for path in find_manifests(working_dir, "Pipfile"):
        _edit_toml_sections(
            path, name, version, lambda s: s in {"packages", "dev-packages"}, _spec, changed
        )
    return changed


def edit_poetry_pyproject(working_dir: Path, name: str, version: str) -> list[Path]:
    def _in_poetry_deps(section: str) -> bool:
        return section.startswith("tool.poetry") and section.endswith("dependencies")

    changed: list[Path] = []
    for path in find_manifests(working_dir, "pyproject.toml"):
        _edit_toml_sections(
            path, name, version, _in_poetry_deps, lambda cur: _range_spec(cur, version), changed
        )
    return changed


# --- dotnet / nuget ------------------------------------------------------------


def edit_dotnet_projects(working_dir: Path, name: str, version: str) -> list[Path]:
    escaped = re.escape(name)
    reference_re = re.compile(
        r"<(?:PackageReference|PackageVersion)\b[^>]*\bInclude=\"" + escaped + r"\"[^>]*>", re.I
    )
    nested_re = re.compile(
        r"(<PackageReference\b[^>]*\bInclude=\"" + escaped + r"\"[^>/]*>\s*<Version>)([^<]*)(</Version>)",
        re.I,
    )
    config_re = re.compile(r"<package\b[^>]*\bid=\"" + escaped + r"\"[^>]*>", re.I)
    attr_re = re.compile(r"(\bVersion=\")([^\"]*)(\")", re.I)

    def _bump_attr(m: re.Match[str]) -> str:
        return attr_re.sub(lambda a: f"{a.group(1)}{version}{a.group(3)}", m.group(0), count=1)

    changed: list[Path] = []
    for path in find_manifests(working_dir, "*.csproj", "Directory.Packages.props"):
        text = _read(path)
        updated = reference_re.sub(_bump_attr, text)
        updated = nested_re.sub(lambda m: f"{m.group(1)}{version}{m.group(3)}", updated)
        _rewrite(path, text, updated, changed)
    for path in find_manifests(working_dir, "packages.config"):
        text = _read(path)
        _rewrite(path, text, config_re.sub(_bump_attr, text), changed)
    return changed
