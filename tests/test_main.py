import json

import main
from models.package import BuildDependencies, License, Package
from tools.sbom_parser import read_bom


def _write_bom(path, root_ref, components, dependencies):
    path.write_text(json.dumps({
        "bomFormat": "CycloneDX",
        "specVersion": "1.5",
        "version": 1,
        "metadata": {"component": {"bom-ref": root_ref, "type": "application", "name": root_ref}},
        "components": [{"bom-ref": ref, "type": "library", "name": ref} for ref in components],
        "dependencies": [{"ref": ref, "dependsOn": targets} for ref, targets in dependencies.items()],
    }))
    return path


def test_merge_command(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    a = _write_bom(tmp_path / "a.json", "root-a", ["zlib"], {"root-a": ["zlib"]})
    b = _write_bom(tmp_path / "b.json", "root-b", ["curl"], {"root-b": ["curl"]})
    (tmp_path / "build-sbom.yml").write_text("component:\n  name: product\n  version: '1.0'\n")
    out = tmp_path / "merged.json"

    assert main.main(["merge", "--output", str(out), str(a), str(b)]) == 0

    merged = read_bom(out)
    assert merged.metadata.component.name == "product"
    assert [c.bom_ref for c in merged.components] == ["zlib", "curl"]
    assert merged.dependency_map()["root-a"] == ["zlib", "curl"]


def test_merge_keep_roots(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    a = _write_bom(tmp_path / "a.json", "root-a", [], {"root-a": []})
    b = _write_bom(tmp_path / "b.json", "root-b", [], {"root-b": []})
    out = tmp_path / "merged.json"

    assert main.main(["merge", "--keep-roots", "--output", str(out), str(a), str(b)]) == 0
    assert read_bom(out).dependency_map()["root-a"] == ["root-b"]


def test_merge_bad_input_exits_nonzero(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("[]")
    assert main.main(["merge", "--output", str(tmp_path / "out.json"), str(bad)]) == 1
    assert not (tmp_path / "out.json").exists()


def test_build_command(tmp_path, monkeypatch, debian_family):
    observations = tmp_path / "build-observations.json"
    observations.write_text(json.dumps({
        "workingDirectory": str(tmp_path),
        "filesOpened": ["/usr/include/zlib.h", str(tmp_path / "main.c")],
        "filesExecuted": ["/usr/bin/make"],
    }))

    seen = {}

    def fake_resolve(obs, diagnostics=None):
        seen["opened"] = obs.files_opened
        seen["executed"] = obs.files_executed
        pkg = Package(id="zlib1g-dev@1.2.13", name="zlib1g-dev", version="1.2.13", arch="amd64",
                      licenses=[License(id="Zlib")], os_family=debian_family)
        return BuildDependencies(code=[pkg])

    monkeypatch.setattr(main, "resolve_dependencies", fake_resolve)
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "build.cdx.json"

    assert main.main(["build", "--observations", str(observations), "--output", str(out)]) == 0

    assert seen == {"opened": ["/usr/include/zlib.h"], "executed": []}
    bom = read_bom(out)
    assert [c.purl for c in bom.components] == ["pkg:deb/debian/zlib1g-dev@1.2.13?arch=amd64&distro=debian-12"]


def test_build_with_malformed_trace_exits_nonzero(tmp_path):
    trace = tmp_path / "trace.log"
    trace.write_text("open cc1\n")
    assert main.main(["build", "--observations", str(trace), "--output", str(tmp_path / "o.json")]) == 1


def test_build_with_missing_observations_exits_nonzero(tmp_path):
    assert main.main(["build", "--observations", str(tmp_path / "none.log"), "--output", str(tmp_path / "o.json")]) == 1
