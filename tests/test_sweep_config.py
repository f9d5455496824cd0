from __future__ import annotations

import json
from pathlib import Path

import pytest

from scanband.config import DEFAULT_PROFILE, load_acquisition_profile, load_sweep_app_config


def test_load_json_config_with_profile_override(tmp_path: Path) -> None:
    p = tmp_path / "sweep.json"
    p.write_text(
        json.dumps(
            {
                "camera": "synthetic",
                "num_frames": 30,
                "buffer_size": 4,
                "sweep_delay": False,
                "out_jsonl": "data/sweep.jsonl",
                "profile": {"pixel_format": "bgr", "shutter": 0.02},
            }
        ),
        encoding="utf-8",
    )

    cfg = load_sweep_app_config(p)

    assert cfg.camera == "synthetic"
    assert cfg.num_frames == 30
    assert cfg.buffer_size == 4
    assert cfg.sweep_delay is False
    assert cfg.out_jsonl == Path("data/sweep.jsonl")
    assert cfg.profile.pixel_format == "BGR"
    assert cfg.profile.shutter == pytest.approx(0.02)
    # 未给出的字段保持默认。
    assert cfg.profile.exposure_ev == DEFAULT_PROFILE.exposure_ev
    assert cfg.threshold == 90


def test_load_yaml_config(tmp_path: Path) -> None:
    p = tmp_path / "sweep.yaml"
    p.write_text(
        "camera: synthetic\n"
        "threshold: 120\n"
        "frame_rate: 15\n"
        "log_level: debug\n"
        "save_dir: Results\n",
        encoding="utf-8",
    )

    cfg = load_sweep_app_config(p)

    assert cfg.threshold == 120
    assert cfg.frame_rate == pytest.approx(15.0)
    assert cfg.log_level == "DEBUG"
    assert cfg.save_dir == Path("Results")
    assert cfg.profile == DEFAULT_PROFILE


def test_empty_yaml_uses_defaults(tmp_path: Path) -> None:
    p = tmp_path / "empty.yml"
    p.write_text("", encoding="utf-8")
    cfg = load_sweep_app_config(p)
    assert cfg.camera == "pycapture"
    assert cfg.num_frames == 100
    assert cfg.buffer_size == 10


@pytest.mark.parametrize(
    "payload",
    [
        {"camera": "gige"},
        {"buffer_size": 0},
        {"num_frames": -1},
        {"profile": [1, 2]},
        {"profile": {"pixel_format": "RAW16"}},
    ],
)
def test_invalid_config_raises(tmp_path: Path, payload: dict) -> None:
    p = tmp_path / "bad.json"
    p.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_sweep_app_config(p)


def test_unsupported_suffix_and_top_level(tmp_path: Path) -> None:
    p = tmp_path / "sweep.toml"
    p.write_text("camera = 'synthetic'\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_sweep_app_config(p)

    p = tmp_path / "list.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_sweep_app_config(p)


def test_profile_defaults() -> None:
    assert load_acquisition_profile(None) is DEFAULT_PROFILE
    prof = load_acquisition_profile({})
    assert prof == DEFAULT_PROFILE
    assert (prof.video_mode, prof.pixel_format, prof.shutter) == (2, "RAW8", 0.009)
