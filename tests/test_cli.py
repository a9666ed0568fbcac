"""
Command line and file adapter tests.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from quantum_flow.adapters.qf_file_adapter import QFFileAdapter, default_output_path, read_container
from quantum_flow.cli import main

PAYLOAD = b"Quantum Flow command line payload.\n" * 40


def _run(capsys: pytest.CaptureFixture, *argv: str) -> Dict[str, Any]:
    code = main(list(argv))
    result = json.loads(capsys.readouterr().out)
    assert code == (0 if result["success"] else 1)
    return result


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "sample.txt"
    path.write_bytes(PAYLOAD)
    return path


def test_compress_then_decompress(tmp_path: Path, sample_file: Path, capsys: pytest.CaptureFixture) -> None:
    compressed = _run(capsys, "compress", str(sample_file))
    assert compressed["success"]
    container_path = Path(compressed["output_path"])
    assert container_path == tmp_path / "sample.txt.qf"
    assert compressed["original_size"] == len(PAYLOAD)

    sample_file.unlink()
    restored = _run(capsys, "decompress", str(container_path))
    assert restored["success"]
    assert Path(restored["output_path"]) == sample_file
    assert sample_file.read_bytes() == PAYLOAD


def test_existing_output_requires_overwrite(sample_file: Path, capsys: pytest.CaptureFixture) -> None:
    assert _run(capsys, "compress", str(sample_file))["success"]

    refused = _run(capsys, "compress", str(sample_file))
    assert not refused["success"]
    assert "already exists" in refused["error"]

    assert _run(capsys, "--overwrite", "compress", str(sample_file))["success"]


def test_preset_and_explicit_output(tmp_path: Path, sample_file: Path, capsys: pytest.CaptureFixture) -> None:
    output = tmp_path / "custom.qf"
    result = _run(capsys, "compress", str(sample_file), "-o", str(output), "--preset", "low-resource")
    assert result["success"]
    assert read_container(output).metadata["compression_config"]["profile_name"] == "low-resource"

    info = _run(capsys, "info", str(output))
    assert info["integrity_verified"]
    assert info["compression_stats"]["original_size"] == len(PAYLOAD)
    assert info["format_version"] == "1.0.0"


def test_config_file(tmp_path: Path, sample_file: Path, capsys: pytest.CaptureFixture) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"interference_threshold": 0.4}), encoding="utf-8")
    result = _run(capsys, "compress", str(sample_file), "--config", str(config_path))
    assert result["success"]

    config_path.write_text(json.dumps({"quantum_bit_depth": 40}), encoding="utf-8")
    invalid = _run(capsys, "--overwrite", "compress", str(sample_file), "--config", str(config_path))
    assert not invalid["success"]
    assert invalid["error"].startswith("Invalid configuration")


def test_analyze(sample_file: Path, capsys: pytest.CaptureFixture) -> None:
    result = _run(capsys, "analyze", str(sample_file))
    assert result["success"]
    assert result["data_size"] == len(PAYLOAD)
    assert result["data_type"] == "text"


@pytest.mark.parametrize("command", ["compress", "decompress", "info", "analyze"])
def test_missing_input(tmp_path: Path, command: str, capsys: pytest.CaptureFixture) -> None:
    result = _run(capsys, command, str(tmp_path / "missing.qf"))
    assert not result["success"]


def test_corrupted_container(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    broken = tmp_path / "broken.qf"
    broken.write_bytes(b"{\"format_version\": \"1.0.0\"}")
    assert not _run(capsys, "info", str(broken))["success"]
    assert not _run(capsys, "decompress", str(broken))["success"]


def test_empty_file_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    empty = tmp_path / "empty.bin"
    empty.write_bytes(b"")
    result = _run(capsys, "compress", str(empty))
    assert not result["success"]
    assert "empty" in result["error"]


def test_default_output_paths() -> None:
    assert default_output_path("data.bin") == Path("data.bin.qf")
    assert default_output_path("data.bin.qf", decompress=True) == Path("data.bin")
    assert default_output_path("data.bin", decompress=True) == Path("data.bin.out")


def test_adapter_builds_engine_from_config(tmp_path: Path, sample_file: Path) -> None:
    adapter = QFFileAdapter(config={"engine": {"preset": "text"}})
    assert adapter.engine.config.quantum_bit_depth == 6
    result = adapter.compress_file(sample_file, tmp_path / "adapter.qf")
    assert result["success"]
    assert adapter.decompress_file(tmp_path / "adapter.qf", tmp_path / "restored.txt")["success"]
    assert (tmp_path / "restored.txt").read_bytes() == PAYLOAD
