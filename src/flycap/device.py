# -*- coding: utf-8 -*-

"""相机能力接口（与具体 SDK 解耦）。

职责：
- 定义 core（`scanband`）依赖的最小相机接口：`CameraBus` / `CameraDevice`；
- 定义在接口上流转的数据结构（RawFrame、Property、TriggerMode 等）；
- 定义 SDK 层统一错误 `FlyCaptureError`。

说明：
- 这里只放数据结构与 Protocol，不 import 任何厂商绑定；
- 具体实现见 `flycap.pycapture`（真实相机）与 `flycap.synthetic`（无硬件）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


# 属性类型（与 FlyCapture2 的 PropertyType 名称保持一致，便于对照官方文档）。
BRIGHTNESS = "BRIGHTNESS"
AUTO_EXPOSURE = "AUTO_EXPOSURE"
SHUTTER = "SHUTTER"
FRAME_RATE = "FRAME_RATE"
TRIGGER_DELAY = "TRIGGER_DELAY"

PROPERTY_KINDS = (BRIGHTNESS, AUTO_EXPOSURE, SHUTTER, FRAME_RATE, TRIGGER_DELAY)

# StartCapture 因总线带宽不足失败时的错误码。
ERROR_BANDWIDTH_EXCEEDED = "ISOCH_BANDWIDTH_EXCEEDED"


class FlyCaptureError(RuntimeError):
    """SDK 调用失败。

    Attributes:
        code: 错误码（字符串，例如 "ISOCH_BANDWIDTH_EXCEEDED"、"TIMEOUT"）。
    """

    def __init__(self, code: str, message: str = "") -> None:
        self.code = str(code)
        super().__init__(f"[{self.code}] {message}" if message else f"[{self.code}]")

    @property
    def is_bandwidth_exceeded(self) -> bool:
        return self.code == ERROR_BANDWIDTH_EXCEEDED


@dataclass(frozen=True)
class DeviceHandle:
    """总线枚举得到的设备句柄（尚未连接）。"""

    index: int
    guid: object = None
    serial: str = ""


@dataclass(frozen=True)
class CameraInfo:
    serial: str
    model: str = ""
    vendor: str = ""


@dataclass(frozen=True)
class PropertyInfo:
    """属性能力描述（对应 SDK 的 PropertyInfo）。"""

    kind: str
    present: bool
    abs_min: float = 0.0
    abs_max: float = 0.0


@dataclass(frozen=True)
class Property:
    """属性当前值（对应 SDK 的 Property）。

    说明：
        - abs_control=True 时使用 abs_value（物理单位），否则使用寄存器值 value_a。
        - auto_manual=True 表示自动模式。
    """

    kind: str
    abs_value: float = 0.0
    on_off: bool = True
    auto_manual: bool = False
    abs_control: bool = True
    value_a: int = 0


@dataclass(frozen=True)
class TriggerMode:
    """外触发配置：mode 0 = 标准外触发，source 0 = GPIO0。"""

    on_off: bool = True
    mode: int = 0
    source: int = 0
    parameter: int = 0
    polarity: int = 0


@dataclass(frozen=True)
class VideoModeResult:
    """自定义视频模式（Format7）设置后的实际图像尺寸。"""

    width: int
    height: int
    pixel_format: str
    bytes_per_packet: int = 0


@dataclass(frozen=True)
class RawFrame:
    """一帧原始传感器数据。

    Attributes:
        data: 原始字节（可能带行尾 padding）。
        rows: 行数。
        cols: 列数。
        stride: SDK 报告的行字节跨度（仅用于诊断；换算以 received_size 为准）。
        pixel_format: 像素格式字符串（RAW8/MONO8/BGR/RGB/BGRU）。
        received_size: 实际收到的字节数。
        bayer_pattern: RAW8 的 Bayer 排列（RGGB/BGGR/GRBG/GBRG）。
    """

    data: bytes
    rows: int
    cols: int
    stride: int
    pixel_format: str
    received_size: int
    bayer_pattern: str = "RGGB"


class CameraDevice(Protocol):
    """已连接的单台相机。所有方法失败时抛 FlyCaptureError。"""

    def camera_info(self) -> CameraInfo:
        ...

    def set_video_mode(self, *, mode: int, pixel_format: str) -> VideoModeResult:
        ...

    def get_property_info(self, kind: str) -> PropertyInfo:
        ...

    def get_property(self, kind: str) -> Property:
        ...

    def set_property(self, prop: Property) -> None:
        ...

    def set_trigger_mode(self, trigger: TriggerMode) -> None:
        ...

    def start_capture(self) -> None:
        ...

    def stop_capture(self) -> None:
        ...

    def retrieve_raw_buffer(self) -> RawFrame:
        ...

    def disconnect(self) -> None:
        ...


class CameraBus(Protocol):
    """相机总线：枚举与连接。"""

    def discover(self) -> list[DeviceHandle]:
        ...

    def connect(self, handle: DeviceHandle) -> CameraDevice:
        ...
