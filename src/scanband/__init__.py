"""scanband：结构光投影扫描线的相机采集与照亮带检测。

说明：
- 相机 SDK 封装在顶层包 `flycap`（src/flycap）；
- 本包提供帧转换（codec）、触发时序（timing）、环形缓存（ring_buffer）、
  照亮带检测（band）、采集会话（session）、标定扫描流水线（pipeline）以及命令行入口（apps）。
"""

from scanband.band import BandDetector
from scanband.codec import FrameCodec
from scanband.config import DEFAULT_PROFILE, AcquisitionProfile, SweepAppConfig, load_sweep_app_config
from scanband.errors import (
    BandwidthError,
    CaptureError,
    ConfigurationError,
    ConversionError,
    DeviceError,
    InvalidFrameError,
    InvalidStateError,
    NoDeviceError,
    ScanbandError,
    StartError,
)
from scanband.models import BandEnvelope, Frame, SessionState
from scanband.pipeline import capture_reference, iter_band_sweep
from scanband.ring_buffer import FrameRingBuffer
from scanband.session import AcquisitionSession
from scanband.timing import DELAY_MAX, DELAY_STEP, TriggerTimingController

__all__ = [
    "AcquisitionProfile",
    "AcquisitionSession",
    "BandDetector",
    "BandEnvelope",
    "BandwidthError",
    "CaptureError",
    "ConfigurationError",
    "ConversionError",
    "DEFAULT_PROFILE",
    "DELAY_MAX",
    "DELAY_STEP",
    "DeviceError",
    "Frame",
    "FrameCodec",
    "FrameRingBuffer",
    "InvalidFrameError",
    "InvalidStateError",
    "NoDeviceError",
    "ScanbandError",
    "SessionState",
    "StartError",
    "SweepAppConfig",
    "TriggerTimingController",
    "capture_reference",
    "iter_band_sweep",
    "load_sweep_app_config",
]
