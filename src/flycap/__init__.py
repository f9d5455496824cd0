# -*- coding: utf-8 -*-

"""FlyCapture2 相机封装包。

目标：把相机枚举、连接、属性读写、取流做成与 SDK 解耦的接口，供 `scanband` 使用。

注意：
- 真实相机依赖 FlyCapture2 SDK 的 Python 绑定 PyCapture2（见 `flycap.binding`）；
- 没有相机时使用 `SyntheticBus`（见 `flycap.synthetic`）。
"""

from flycap.binding import FlyCaptureBinding, FlyCaptureNotFoundError, load_flycapture_binding
from flycap.device import (
    AUTO_EXPOSURE,
    BRIGHTNESS,
    ERROR_BANDWIDTH_EXCEEDED,
    FRAME_RATE,
    SHUTTER,
    TRIGGER_DELAY,
    CameraBus,
    CameraDevice,
    CameraInfo,
    DeviceHandle,
    FlyCaptureError,
    Property,
    PropertyInfo,
    RawFrame,
    TriggerMode,
    VideoModeResult,
)
from flycap.pycapture import PyCaptureBus, PyCaptureCamera
from flycap.save import FrameSaveError, save_frame
from flycap.synthetic import SyntheticBus, SyntheticCamera

__all__ = [
    "AUTO_EXPOSURE",
    "BRIGHTNESS",
    "CameraBus",
    "CameraDevice",
    "CameraInfo",
    "DeviceHandle",
    "ERROR_BANDWIDTH_EXCEEDED",
    "FRAME_RATE",
    "FlyCaptureBinding",
    "FlyCaptureError",
    "FlyCaptureNotFoundError",
    "FrameSaveError",
    "Property",
    "PropertyInfo",
    "PyCaptureBus",
    "PyCaptureCamera",
    "RawFrame",
    "SHUTTER",
    "SyntheticBus",
    "SyntheticCamera",
    "TRIGGER_DELAY",
    "TriggerMode",
    "VideoModeResult",
    "load_flycapture_binding",
    "save_frame",
]
