# -*- coding: utf-8 -*-

"""无硬件的合成相机（用于调试与测试）。

目标：
- 没有相机/没有 FlyCapture2 时也能把 connect → configure → start → capture → stop 整条链路跑通；
- 可脚本化注入故障（取流失败、启动带宽不足、属性被拒绝），用于覆盖错误分支。

合成图像：
- 背景为暗场（ambient），投影扫描线是一条水平亮带；
- 亮带位置由 `stripe_for(retrieve_count)` 决定，返回 None 表示该帧没有投影（用作参考帧）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from flycap.device import (
    ERROR_BANDWIDTH_EXCEEDED,
    PROPERTY_KINDS,
    CameraInfo,
    DeviceHandle,
    FlyCaptureError,
    Property,
    PropertyInfo,
    RawFrame,
    TriggerMode,
    VideoModeResult,
)


StripeFn = Callable[[int], Optional[tuple[int, int]]]


def default_stripe(n: int) -> tuple[int, int] | None:
    """第 0 帧无投影；之后亮带在 rows 40..60 附近逐帧下移 2 行，10 帧一个周期。"""

    if n == 0:
        return None
    shift = 2 * ((n - 1) % 10)
    return 40 + shift, 60 + shift


_CHANNELS = {"RAW8": 1, "MONO8": 1, "BGR": 3, "RGB": 3, "BGRU": 4}


@dataclass
class SyntheticCamera:
    """合成相机。

    Attributes:
        calls: 按顺序记录的“硬件”调用名，便于测试断言。
        fail_retrieve_at: 第几次 retrieve（从 0 计）返回超时错误。
        start_error_code: 非空时 start_capture 以该错误码失败。
        reject_properties: set_property 时拒绝的属性类型。
        absent_properties: get_property_info 报告 present=False 的属性类型。
    """

    serial: str = "SYN0001"
    width: int = 160
    height: int = 120
    pixel_format: str = "RAW8"
    row_padding: int = 0
    ambient: int = 12
    stripe_value: int = 220
    stripe_for: StripeFn = default_stripe
    fail_retrieve_at: set[int] = field(default_factory=set)
    start_error_code: str = ""
    reject_properties: set[str] = field(default_factory=set)
    absent_properties: set[str] = field(default_factory=set)
    reject_video_mode: bool = False
    fail_stop: bool = False
    fail_disconnect: bool = False

    calls: list[str] = field(default_factory=list)
    properties: dict[str, Property] = field(default_factory=dict)
    trigger: TriggerMode | None = None
    capturing: bool = False
    connected: bool = True
    retrieve_count: int = 0

    def camera_info(self) -> CameraInfo:
        self.calls.append("camera_info")
        return CameraInfo(serial=self.serial, model="Synthetic", vendor="scanband")

    def set_video_mode(self, *, mode: int, pixel_format: str) -> VideoModeResult:
        self.calls.append("set_video_mode")
        if self.reject_video_mode or pixel_format not in _CHANNELS:
            raise FlyCaptureError("NOT_SUPPORTED", f"pixel format {pixel_format} is not supported")
        self.pixel_format = pixel_format
        return VideoModeResult(width=self.width, height=self.height, pixel_format=pixel_format)

    def get_property_info(self, kind: str) -> PropertyInfo:
        self.calls.append(f"get_property_info:{kind}")
        present = kind in PROPERTY_KINDS and kind not in self.absent_properties
        return PropertyInfo(kind=kind, present=present, abs_min=0.0, abs_max=100.0)

    def get_property(self, kind: str) -> Property:
        self.calls.append(f"get_property:{kind}")
        if kind in self.absent_properties:
            raise FlyCaptureError("PROPERTY_NOT_PRESENT", kind)
        if kind == "FRAME_RATE" and kind not in self.properties:
            return Property(kind=kind, abs_value=30.0)
        return self.properties.get(kind, Property(kind=kind))

    def set_property(self, prop: Property) -> None:
        self.calls.append(f"set_property:{prop.kind}")
        if prop.kind in self.reject_properties:
            raise FlyCaptureError("PROPERTY_FAILED", f"{prop.kind} rejected")
        self.properties[prop.kind] = prop

    def set_trigger_mode(self, trigger: TriggerMode) -> None:
        self.calls.append("set_trigger_mode")
        if "TRIGGER_MODE" in self.reject_properties:
            raise FlyCaptureError("PROPERTY_FAILED", "trigger mode rejected")
        self.trigger = trigger

    def start_capture(self) -> None:
        self.calls.append("start_capture")
        if self.start_error_code:
            raise FlyCaptureError(self.start_error_code, "start capture failed")
        self.capturing = True

    def stop_capture(self) -> None:
        self.calls.append("stop_capture")
        if self.fail_stop:
            raise FlyCaptureError("FAILED", "stop capture failed")
        self.capturing = False

    def retrieve_raw_buffer(self) -> RawFrame:
        self.calls.append("retrieve_raw_buffer")
        n = self.retrieve_count
        self.retrieve_count += 1
        if not self.capturing:
            raise FlyCaptureError("ISOCH_NOT_STARTED", "capture is not started")
        if n in self.fail_retrieve_at:
            raise FlyCaptureError("TIMEOUT", f"retrieve #{n} timed out")
        return self.render(self.stripe_for(n))

    def render(self, stripe: tuple[int, int] | None) -> RawFrame:
        """把一帧合成图像按当前像素格式打包成 RawFrame。"""

        ch = _CHANNELS[self.pixel_format]
        img = np.full((self.height, self.width, ch), self.ambient, dtype=np.uint8)
        if stripe is not None:
            top, bottom = stripe
            img[max(0, top) : min(self.height, bottom + 1), :, :] = self.stripe_value
        if self.pixel_format == "BGRU":
            img[:, :, 3] = 0

        row_bytes = self.width * ch
        stride = row_bytes + int(self.row_padding)
        buf = np.zeros((self.height, stride), dtype=np.uint8)
        buf[:, :row_bytes] = img.reshape(self.height, row_bytes)
        data = buf.tobytes()
        return RawFrame(
            data=data,
            rows=self.height,
            cols=self.width,
            stride=stride,
            pixel_format=self.pixel_format,
            received_size=len(data),
        )

    def disconnect(self) -> None:
        self.calls.append("disconnect")
        if self.fail_disconnect:
            raise FlyCaptureError("FAILED", "disconnect failed")
        self.connected = False


@dataclass
class SyntheticBus:
    """合成总线：默认挂一台 SyntheticCamera。"""

    cameras: list[SyntheticCamera] = field(default_factory=lambda: [SyntheticCamera()])
    discover_error: str = ""
    connect_error: str = ""
    calls: list[str] = field(default_factory=list)

    def discover(self) -> list[DeviceHandle]:
        self.calls.append("discover")
        if self.discover_error:
            raise FlyCaptureError(self.discover_error, "bus enumeration failed")
        return [DeviceHandle(index=i, serial=c.serial) for i, c in enumerate(self.cameras)]

    def connect(self, handle: DeviceHandle) -> SyntheticCamera:
        self.calls.append(f"connect:{handle.index}")
        if self.connect_error:
            raise FlyCaptureError(self.connect_error, f"connect index={handle.index} failed")
        cam = self.cameras[handle.index]
        cam.connected = True
        return cam
