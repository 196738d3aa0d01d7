from __future__ import annotations

from pathlib import Path

import pytest

from frogfix.constants import BUILD_TOOLS_DEPENDENCIES
from frogfix.errors import PatchFailureError, UnsupportedFixError
from frogfix.remediation.manifest_patcher import (
    MANIFEST_EDITORS,
    ManifestPatcher,
    patch_manifest,
    validate_editor_table,
)
from frogfix.security.models import Technology, VulnerabilityDetails


def test_every_technology_has_an_editor():
    validate_editor_table(MANIFEST_EDITORS)
    partial = dict(MANIFEST_EDITORS)
    partial.pop(Technology.POETRY)
    with pytest.raises(RuntimeError, match="poetry"):
        validate_editor_table(partial)


@pytest.mark.parametrize(
    "technology, name",
    [(tech, name) for tech, names in BUILD_TOOLS_DEPENDENCIES.items() for name in names],
)
def test_build_tool_dependencies_are_unsupported(tmp_path: Path, technology: str, name: str):
    with pytest.raises(UnsupportedFixError) as exc:
        ManifestPatcher(tmp_path).patch(technology, name, "99.0.0")
    assert exc.value.reason == UnsupportedFixError.BUILD_TOOL_DEPENDENCY
    assert exc.value.package_name == name


def test_unknown_technology(tmp_path: Path):
    with pytest.raises(UnsupportedFixError) as exc:
        ManifestPatcher(tmp_path).patch("cobol", "pkg", "1.0.0")
    assert exc.value.reason == UnsupportedFixError.UNSUPPORTED_TECHNOLOGY


def test_indirect_dependency_only_supported_for_go(tmp_path: Path):
    (tmp_path / "package.json").write_text('{"dependencies": {"minimist": "^1.2.0"}}', encoding="utf-8")
    (tmp_path / "go.mod").write_text(
        "module m\n\nrequire (\n\tgolang.org/x/text v0.3.7 // indirect\n)\n", encoding="utf-8"
    )
    patcher = ManifestPatcher(tmp_path)

    with pytest.raises(UnsupportedFixError) as exc:
        patcher.patch(Technology.NPM, "minimist", "1.2.6", is_direct_dependency=False)
    assert exc.value.reason == UnsupportedFixError.INDIRECT_DEPENDENCY

    changed = patcher.patch(Technology.GO, "golang.org/x/text", "0.3.8", is_direct_dependency=False)
    assert changed == [tmp_path / "go.mod"]


def test_undeclared_dependency(tmp_path: Path):
    (tmp_path / "package.json").write_text('{"dependencies": {}}', encoding="utf-8")
    with pytest.raises(UnsupportedFixError) as exc:
        patch_manifest("npm", "minimist", "1.2.6", tmp_path)
    assert exc.value.reason == UnsupportedFixError.NOT_DECLARED


def test_os_errors_become_patch_failures(tmp_path: Path):
    def _failing_editor(working_dir, name, version):
        raise PermissionError("read-only file system")

    patcher = ManifestPatcher(tmp_path, editors={Technology.NPM: _failing_editor})
    with pytest.raises(PatchFailureError):
        patcher.patch(Technology.NPM, "minimist", "1.2.6")


def test_update_package_to_fixed_version(tmp_path: Path):
    manifest = tmp_path / "requirements.txt"
    manifest.write_text("pyjwt==1.7.0\n", encoding="utf-8")
    details = VulnerabilityDetails(
        impacted_dependency_name="PyJWT",
        impacted_dependency_version="1.7.0",
        technology=Technology.PIP,
        suggested_fixed_version="2.4.0",
        is_direct_dependency=True,
    )
    assert ManifestPatcher(tmp_path).update_package_to_fixed_version(details) == [manifest]
    assert manifest.read_text(encoding="utf-8") == "pyjwt==2.4.0\n"
