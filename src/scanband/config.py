"""配置模型（dataclass）与 YAML/JSON 加载。

目标：
- `AcquisitionProfile`：会话 configure() 下发的固定采集参数；
- `SweepAppConfig`：标定扫描入口（`scanband.apps.band_sweep`）所需的参数；
- 支持从 `.yaml/.yml/.json` 加载。

说明：
- CLI 参数优先级高于配置文件；配置文件用于“可复用的一组参数”。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, cast

from scanband.codec import BYTES_PER_PIXEL


@dataclass(frozen=True)
class AcquisitionProfile:
    """固定采集参数。

    默认值：
    - 自定义视频模式 2 + RAW8，传感器最大分辨率；
    - 快门 0.009（极短曝光，只让投影扫描线留下痕迹）；
    - 外触发 mode 0 / source GPIO0 / polarity 0，初始触发延时 0；
    - 亮度 0，曝光补偿 -2.0 EV。
    """

    video_mode: int = 2
    pixel_format: str = "RAW8"
    shutter: float = 0.009
    trigger_mode: int = 0
    trigger_source: int = 0
    trigger_parameter: int = 0
    trigger_polarity: int = 0
    initial_delay: float = 0.0
    brightness: float = 0.0
    exposure_ev: float = -2.0


DEFAULT_PROFILE = AcquisitionProfile()


_CAMERA = Literal["pycapture", "synthetic"]


@dataclass(frozen=True)
class SweepAppConfig:
    camera: _CAMERA = "pycapture"
    dll_dir: Path | None = None
    buffer_size: int = 10
    num_frames: int = 100
    reference_index: int = 0
    sweep_delay: bool = True
    threshold: int = 90
    kernel_size: int = 5
    frame_rate: float = 0.0
    out_jsonl: Path | None = None
    save_dir: Path | None = None
    log_level: str = "INFO"
    log_file: Path | None = None
    profile: AcquisitionProfile = field(default_factory=AcquisitionProfile)


def _load_mapping(path: Path) -> dict[str, Any]:
    path = Path(path)
    suf = path.suffix.lower()

    if suf == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    elif suf in {".yaml", ".yml"}:
        import yaml

        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    else:
        raise RuntimeError(f"unsupported config file type: {path} (expected .json/.yaml/.yml)")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RuntimeError("config file top level must be an object (dict)")

    return data


def _as_optional_path(x: Any) -> Path | None:
    if x is None:
        return None
    s = str(x).strip()
    if not s:
        return None
    return Path(s).expanduser()


def _as_camera(x: Any, default: str) -> _CAMERA:
    s = str(x if x is not None else default).strip().lower()
    if s not in {"pycapture", "synthetic"}:
        raise RuntimeError(f"unknown camera: {s} (expected: pycapture|synthetic)")
    return cast(_CAMERA, s)


def _as_pixel_format(x: Any, default: str) -> str:
    s = str(x if x is not None else default).strip().upper()
    if s not in BYTES_PER_PIXEL:
        raise RuntimeError(f"unknown pixel_format: {s} (expected: {'|'.join(BYTES_PER_PIXEL)})")
    return s


def _as_positive_int(x: Any, name: str) -> int:
    v = int(x)
    if v < 1:
        raise RuntimeError(f"config field '{name}' must be >= 1, got {v}")
    return v


def load_acquisition_profile(data: dict[str, Any] | None) -> AcquisitionProfile:
    """从 mapping 构造采集参数；缺省字段使用 DEFAULT_PROFILE。"""

    if data is None:
        return DEFAULT_PROFILE
    if not isinstance(data, dict):
        raise RuntimeError("config field 'profile' must be an object")

    d = DEFAULT_PROFILE
    return AcquisitionProfile(
        video_mode=int(data.get("video_mode", d.video_mode)),
        pixel_format=_as_pixel_format(data.get("pixel_format"), d.pixel_format),
        shutter=float(data.get("shutter", d.shutter)),
        trigger_mode=int(data.get("trigger_mode", d.trigger_mode)),
        trigger_source=int(data.get("trigger_source", d.trigger_source)),
        trigger_parameter=int(data.get("trigger_parameter", d.trigger_parameter)),
        trigger_polarity=int(data.get("trigger_polarity", d.trigger_polarity)),
        initial_delay=float(data.get("initial_delay", d.initial_delay)),
        brightness=float(data.get("brightness", d.brightness)),
        exposure_ev=float(data.get("exposure_ev", d.exposure_ev)),
    )


def load_sweep_app_config(path: Path) -> SweepAppConfig:
    """加载标定扫描入口配置。"""

    data = _load_mapping(Path(path))

    return SweepAppConfig(
        camera=_as_camera(data.get("camera"), "pycapture"),
        dll_dir=_as_optional_path(data.get("dll_dir")),
        buffer_size=_as_positive_int(data.get("buffer_size", 10), "buffer_size"),
        num_frames=_as_positive_int(data.get("num_frames", 100), "num_frames"),
        reference_index=int(data.get("reference_index", 0)),
        sweep_delay=bool(data.get("sweep_delay", True)),
        threshold=int(data.get("threshold", 90)),
        kernel_size=_as_positive_int(data.get("kernel_size", 5), "kernel_size"),
        frame_rate=float(data.get("frame_rate", 0.0)),
        out_jsonl=_as_optional_path(data.get("out_jsonl")),
        save_dir=_as_optional_path(data.get("save_dir")),
        log_level=str(data.get("log_level", "INFO")).strip().upper(),
        log_file=_as_optional_path(data.get("log_file")),
        profile=load_acquisition_profile(data.get("profile")),
    )
