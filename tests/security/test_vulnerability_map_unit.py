from __future__ import annotations

import json

import pytest

from frogfix.errors import MalformedScanDataError
from frogfix.security.models import Technology
from frogfix.security.vulnerability_map import (
    create_vulnerabilities_map,
    is_direct_dependency,
    load_scan_results,
    normalize_scan_results,
    parse_component_id,
)


def _path(*ids: str) -> list[dict]:
    return [{"component_id": i} for i in ids]


def _finding(severity: str, cves: list[str], components: dict, **extra) -> dict:
    finding = {
        "severity": severity,
        "cves": [{"cve": c} for c in cves],
        "components": components,
    }
    finding.update(extra)
    return finding


def _component(fixed_versions: list[str], *paths: list[dict]) -> dict:
    return {"fixed_versions": fixed_versions, "impact_paths": list(paths)}


def test_empty_scan_gives_empty_map():
    assert create_vulnerabilities_map({"scans": []}) == {}
    assert create_vulnerabilities_map({"scans": [{"vulnerabilities": [], "violations": []}]}) == {}


def test_vulnerabilities_direct_and_transitive():
    scan = {
        "scans": [
            {
                "vulnerabilities": [
                    _finding(
                        "Critical",
                        ["CVE-2023-1234", "CVE-2023-4321"],
                        {"vuln1": _component(["1.9.1", "2.0.3", "2.0.5"], _path("root", "vuln1"))},
                    ),
                    _finding(
                        "High",
                        ["CVE-2022-1234", "CVE-2022-4321"],
                        {"vuln2": _component(["2.4.1", "2.6.3", "2.8.5"], _path("root", "vuln1", "vuln2"))},
                    ),
                ]
            }
        ]
    }
    result = create_vulnerabilities_map(scan)

    assert set(result) == {"vuln1", "vuln2"}
    assert result["vuln1"].suggested_fixed_version == "1.9.1"
    assert result["vuln1"].is_direct_dependency is True
    assert result["vuln1"].cves == ["CVE-2023-1234", "CVE-2023-4321"]
    assert result["vuln1"].severity == "Critical"
    assert result["vuln2"].suggested_fixed_version == "2.4.1"
    assert result["vuln2"].is_direct_dependency is False


def test_security_violations_count_and_others_are_ignored():
    scan = {
        "scans": [
            {
                "violations": [
                    _finding(
                        "Critical",
                        ["CVE-2023-1234"],
                        {"viol1": _component(["1.9.1"], _path("root", "viol1"))},
                        violation_type="security",
                    ),
                    _finding(
                        "High",
                        [],
                        {"lic1": _component(["1.0.0"], _path("root", "lic1"))},
                        violation_type="license",
                    ),
                ]
            }
        ]
    }
    result = create_vulnerabilities_map(scan)
    assert set(result) == {"viol1"}
    assert result["viol1"].suggested_fixed_version == "1.9.1"


def test_component_ids_with_scheme_and_version():
    scan = {
        "scans": [
            {
                "vulnerabilities": [
                    _finding(
                        "High",
                        ["CVE-2021-44906"],
                        {
                            "npm://minimist:1.2.0": _component(
                                ["[1.2.6]", "(,1.2.5]"],
                                _path("npm://app:1.0.0", "npm://minimist:1.2.0"),
                            )
                        },
                    )
                ]
            }
        ]
    }
    details = create_vulnerabilities_map(scan)["minimist"]
    assert details.impacted_dependency_version == "1.2.0"
    assert details.technology is Technology.NPM
    assert details.fixed_versions == ["1.2.6"]
    assert details.suggested_fixed_version == "1.2.6"
    assert details.components == ["npm://minimist:1.2.0"]


def test_findings_for_same_dependency_merge():
    scan = {
        "scans": [
            {
                "vulnerabilities": [
                    _finding(
                        "Medium",
                        ["CVE-B"],
                        {"npm://lodash:4.17.0": _component(["4.17.21"], _path("root", "x", "npm://lodash:4.17.0"))},
                        issue_id="XRAY-2",
                    ),
                    _finding(
                        "High",
                        ["CVE-A", "CVE-B"],
                        {"npm://lodash:4.17.0": _component(["4.17.12"], _path("root", "npm://lodash:4.17.0"))},
                        issue_id="XRAY-1",
                    ),
                ]
            }
        ]
    }
    details = create_vulnerabilities_map(scan)["lodash"]
    # minimal fix across findings, OR of directness, union of CVEs, max severity
    assert details.suggested_fixed_version == "4.17.12"
    assert details.is_direct_dependency is True
    assert details.cves == ["CVE-A", "CVE-B"]
    assert details.severity == "High"
    assert details.issue_ids == ["XRAY-2", "XRAY-1"]


def test_merge_order_does_not_change_result():
    first = _finding("Low", ["CVE-1"], {"pkg": _component(["2.0.0"], _path("root", "pkg"))})
    second = _finding("Critical", ["CVE-2"], {"pkg": _component(["1.5.0"], _path("root", "a", "pkg"))})
    forward = create_vulnerabilities_map({"scans": [{"vulnerabilities": [first, second]}]})["pkg"]
    backward = create_vulnerabilities_map({"scans": [{"vulnerabilities": [second, first]}]})["pkg"]
    for attr in ("suggested_fixed_version", "is_direct_dependency", "cves", "severity"):
        assert getattr(forward, attr) == getattr(backward, attr)


def test_dependency_without_fix_stays_in_map():
    scan = {"scans": [{"vulnerabilities": [_finding("High", [], {"pkg": _component(["(,1.0)"], _path("root", "pkg"))})]}]}
    details = create_vulnerabilities_map(scan)["pkg"]
    assert details.suggested_fixed_version == ""
    assert details.is_fixable is False


def test_malformed_entries_are_skipped(caplog):
    scan = {
        "scans": [
            {
                "vulnerabilities": [
                    {"severity": "High"},
                    _finding("High", [], {"broken": _component(["1.0.0"])}),
                    _finding("High", [], {"wrong-end": _component(["1.0.0"], _path("root", "other"))}),
                    _finding("High", [], {"ok": _component(["1.0.0"], _path("root", "ok"))}),
                ]
            }
        ]
    }
    with caplog.at_level("WARNING"):
        result = create_vulnerabilities_map(scan)
    assert set(result) == {"ok"}
    assert "broken" in caplog.text


def test_parse_component_id():
    assert parse_component_id("vuln1") == ("", "vuln1", "")
    assert parse_component_id("npm://minimist:1.2.0") == ("npm", "minimist", "1.2.0")
    assert parse_component_id("gav://org.apache:log4j:2.14.1") == ("gav", "org.apache:log4j", "2.14.1")
    assert parse_component_id("") is None


def test_is_direct_dependency_uses_shortest_path():
    paths = [_path("root", "a", "pkg"), _path("root", "pkg")]
    assert is_direct_dependency("pkg", paths) is True
    assert is_direct_dependency("pkg", [_path("root", "a", "pkg")]) is False
    assert is_direct_dependency("pkg", []) is None


def test_load_scan_results(tmp_path):
    doc = tmp_path / "scan.json"
    doc.write_text(json.dumps({"vulnerabilities": []}), encoding="utf-8")
    assert load_scan_results(doc) == {"scans": [{"vulnerabilities": []}]}

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedScanDataError):
        load_scan_results(bad)
    with pytest.raises(MalformedScanDataError):
        load_scan_results(tmp_path / "missing.json")


def test_normalize_scan_results_rejects_unknown_shapes():
    assert normalize_scan_results([{"violations": []}]) == {"scans": [{"violations": []}]}
    with pytest.raises(MalformedScanDataError):
        normalize_scan_results({"foo": 1})
