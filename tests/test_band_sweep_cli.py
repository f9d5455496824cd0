from __future__ import annotations

import json
from pathlib import Path

import pytest

from flycap.device import ERROR_BANDWIDTH_EXCEEDED
from flycap.synthetic import SyntheticBus, SyntheticCamera
from scanband.apps import band_sweep


def test_synthetic_sweep_writes_jsonl(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out = tmp_path / "out" / "sweep.jsonl"

    rc = band_sweep.main(["--camera", "synthetic", "--frames", "6", "--out-jsonl", str(out)])

    assert rc == 0
    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 6
    recs = [json.loads(x) for x in lines]
    assert [r["frame_index"] for r in recs] == list(range(1, 7))
    assert recs[-1]["top_line"] is not None
    assert "照亮带包络" in capsys.readouterr().out


def test_list_devices(capsys: pytest.CaptureFixture[str]) -> None:
    rc = band_sweep.main(["--camera", "synthetic", "--list"])
    assert rc == 0
    assert "serial=SYN0001" in capsys.readouterr().out


def test_record_images_before_sweep(tmp_path: Path) -> None:
    save_dir = tmp_path / "Results"
    rc = band_sweep.main(
        ["--camera", "synthetic", "--frames", "2", "--record-images", "3", "--save-dir", str(save_dir)]
    )
    assert rc == 0
    assert sorted(p.name for p in save_dir.iterdir()) == ["SYN0001-0.bmp", "SYN0001-1.bmp", "SYN0001-2.bmp"]


def test_config_file_and_cli_override(tmp_path: Path) -> None:
    cfg = tmp_path / "sweep.yaml"
    out = tmp_path / "sweep.jsonl"
    cfg.write_text(f"camera: synthetic\nnum_frames: 9\nout_jsonl: {out.as_posix()}\n", encoding="utf-8")

    rc = band_sweep.main(["--config", str(cfg), "--frames", "3", "--no-sweep"])

    assert rc == 0
    recs = [json.loads(x) for x in out.read_text(encoding="utf-8").splitlines()]
    assert len(recs) == 3
    assert all(r["trigger_delay"] == 0.0 for r in recs)


def test_bandwidth_failure_returns_setup_error(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    cam = SyntheticCamera(start_error_code=ERROR_BANDWIDTH_EXCEEDED)
    monkeypatch.setattr(band_sweep, "_make_bus", lambda cfg: SyntheticBus(cameras=[cam]))

    rc = band_sweep.main(["--camera", "synthetic", "--frames", "2"])

    assert rc == 2
    assert "带宽不足" in capsys.readouterr().out
    assert cam.connected is False


def test_no_camera_returns_setup_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(band_sweep, "_make_bus", lambda cfg: SyntheticBus(cameras=[]))
    assert band_sweep.main(["--camera", "synthetic"]) == 2


def test_bad_config_returns_setup_error(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.json"
    cfg.write_text('{"camera": "gige"}', encoding="utf-8")
    assert band_sweep.main(["--config", str(cfg)]) == 2
