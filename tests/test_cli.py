"""Tests for the gsn command line interface."""
from __future__ import annotations

import json

import pytest

from gsn_core.cli import main


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def _run(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code, json.loads(capsys.readouterr().out)


_VALID = {
    "id": "root",
    "elements": [
        {"id": "G1", "kind": "Goal", "content": "System is safe"},
        {"id": "E1", "kind": "Evidence", "content": "Test report"},
    ],
    "relations": [{"id": "r1", "source": "G1", "target": "E1"}],
}


def test_validate_valid_file(tmp_path, capsys):
    code, out = _run(["validate", _write(tmp_path, "d.json", _VALID)], capsys)
    assert code == 0
    assert out["success"] is True
    assert out["result"]["isValid"] is True


def test_validate_invalid_file_exits_nonzero(tmp_path, capsys):
    data = {"elements": [{"id": "E1", "kind": "Evidence"}], "relations": []}
    code, out = _run(["validate", _write(tmp_path, "d.json", data)], capsys)
    assert code == 1
    assert out["summary"]["errors"] == 1
    assert out["result"]["errors"][0]["code"] == "NO_ROOT_GOAL"


def test_validate_project_file_selects_diagram(tmp_path, capsys):
    project = {
        "currentDiagramId": "root",
        "modules": {
            "root": _VALID,
            "broken": {"elements": [{"id": "S1", "kind": "Strategy"}], "relations": []},
        },
    }
    path = _write(tmp_path, "project.json", project)

    code, out = _run(["validate", path], capsys)
    assert code == 0

    code, out = _run(["validate", path, "--diagram-id", "broken"], capsys)
    assert code == 1

    code, out = _run(["validate", path, "--diagram-id", "missing"], capsys)
    assert code == 1
    assert "missing" in out["error"]


def test_missing_file(tmp_path, capsys):
    code, out = _run(["validate", str(tmp_path / "nope.json")], capsys)
    assert code == 1
    assert out["success"] is False
    assert "File not found" in out["error"]


def test_bad_json(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    code, out = _run(["validate", str(path)], capsys)
    assert code == 1
    assert "Invalid JSON" in out["error"]


def test_invalid_diagram_reports_details(tmp_path, capsys):
    data = {"elements": [{"id": "X", "kind": "Solution"}]}
    code, out = _run(["validate", _write(tmp_path, "d.json", data)], capsys)
    assert code == 1
    assert out["error"] == "Invalid diagram"
    assert out["details"]


def test_layout_to_stdout(tmp_path, capsys):
    code, out = _run(["layout", _write(tmp_path, "d.json", _VALID)], capsys)
    assert code == 0
    elements = {e["id"]: e for e in out["diagram"]["elements"]}
    assert elements["E1"]["position"]["y"] > elements["G1"]["position"]["y"]
    assert elements["G1"]["position"]["x"] == pytest.approx(elements["E1"]["position"]["x"])


def test_layout_with_config_and_output(tmp_path, capsys):
    source = _write(tmp_path, "d.json", _VALID)
    config = _write(tmp_path, "config.json", {"start_x": 0, "start_y": 0})
    target = tmp_path / "out.json"

    code, out = _run(["layout", source, "--config", config, "--output", str(target)], capsys)
    assert code == 0
    assert out == {"success": True, "file_path": str(target), "elements": 2}

    written = json.loads(target.read_text(encoding="utf-8"))
    g1 = written["elements"][0]
    assert g1["position"]["y"] - g1["size"]["height"] / 2 == pytest.approx(0)


def test_layout_with_modules_file(tmp_path, capsys):
    diagram = {
        "elements": [
            {"id": "G1", "kind": "Goal", "content": "Top"},
            {"id": "M1", "kind": "Module", "module_ref": "sub"},
        ],
        "relations": [{"source": "G1", "target": "M1"}],
    }
    modules = {"sub": {"elements": [{"id": "SG", "kind": "Goal", "content": "Nested goal " * 20}]}}
    code, out = _run(
        ["layout", _write(tmp_path, "d.json", diagram), "--modules", _write(tmp_path, "m.json", modules)],
        capsys,
    )
    assert code == 0
    assert out["diagram"]["elements"][1]["size"]["height"] > 80


def test_layout_rejects_bad_config(tmp_path, capsys):
    source = _write(tmp_path, "d.json", _VALID)
    config = _write(tmp_path, "config.json", {"overlap_iterations": -5})
    code, out = _run(["layout", source, "--config", config], capsys)
    assert code == 1
    assert out["error"] == "Invalid layout config"
