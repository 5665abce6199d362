"""CLI tests."""

import json

from stmap import cli


def test_version(capsys):
    assert cli.main(["version"]) == 0
    assert "stmap version" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "scan" in capsys.readouterr().out


def test_scan_valid(two_tensor_file, tmp_path, capsys):
    out = tmp_path / "r.json"
    assert cli.main(["scan", two_tensor_file, "--json-out", str(out)]) == 0
    assert "SafeTensors Summary" in capsys.readouterr().out
    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["ok"] is True
    assert [t["name"] for t in report["tensors"]] == ["linear.weight", "linear.bias"]


def test_scan_corrupt_file(make_file, tmp_path):
    path = make_file(b'{"x":', b"")
    out = tmp_path / "r.json"
    assert cli.main(["scan", path, "--stage", "structure", "--json-out", str(out)]) == 1
    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["ok"] is False
    assert report["reason_matrix"][0]["target"] == "MalformedHeader"


def test_scan_missing_file(tmp_path, capsys):
    assert cli.main(["scan", str(tmp_path / "nope.safetensors")]) == 2
    assert "File not found" in capsys.readouterr().out
