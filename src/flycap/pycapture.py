# -*- coding: utf-8 -*-

"""PyCapture2 适配器：把 FlyCapture2 的对象模型落到 `CameraBus` / `CameraDevice` 接口上。

说明：
- 本模块是唯一直接调用 PyCapture2 的地方；core 只看得到 `flycap.device` 中的类型。
- PyCapture2 的异常类型是 `PyCapture2.Fc2error`，错误码只体现在消息文本里，
  这里统一转换为 `FlyCaptureError(code, message)`。
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from flycap.binding import FlyCaptureBinding
from flycap.device import (
    ERROR_BANDWIDTH_EXCEEDED,
    CameraInfo,
    DeviceHandle,
    FlyCaptureError,
    Property,
    PropertyInfo,
    RawFrame,
    TriggerMode,
    VideoModeResult,
)


_PIXEL_FORMAT_NAMES = ("RAW8", "MONO8", "BGR", "RGB", "BGRU")

_BAYER_TILE_NAMES = {1: "RGGB", 2: "GRBG", 3: "GBRG", 4: "BGGR"}


def _error_code(exc: Exception, default: str) -> str:
    msg = str(exc).lower()
    if "bandwidth" in msg:
        return ERROR_BANDWIDTH_EXCEEDED
    if "timeout" in msg:
        return "TIMEOUT"
    if "not connected" in msg:
        return "NOT_CONNECTED"
    return default


@contextmanager
def _sdk_call(binding: FlyCaptureBinding, what: str) -> Iterator[None]:
    """把 PyCapture2 的异常统一转换成 FlyCaptureError。"""

    fc2error = getattr(binding.module, "Fc2error", Exception)
    try:
        yield
    except fc2error as exc:
        raise FlyCaptureError(_error_code(exc, "FAILED"), f"{what}: {exc}") from exc


def _text(x: Any) -> str:
    if isinstance(x, bytes):
        return x.decode("utf-8", errors="replace").strip("\x00 ")
    return str(x)


class PyCaptureCamera:
    """已连接的 FlyCapture2 相机。"""

    def __init__(self, binding: FlyCaptureBinding, cam: Any) -> None:
        self._binding = binding
        self._cam = cam

    @property
    def _fc2(self) -> Any:
        return self._binding.module

    def _property_type(self, kind: str) -> Any:
        try:
            return getattr(self._fc2.PROPERTY_TYPE, kind)
        except AttributeError as exc:
            raise FlyCaptureError("INVALID_PARAMETER", f"unknown property kind: {kind}") from exc

    def camera_info(self) -> CameraInfo:
        with _sdk_call(self._binding, "getCameraInfo"):
            info = self._cam.getCameraInfo()
        return CameraInfo(
            serial=str(info.serialNumber),
            model=_text(getattr(info, "modelName", "")),
            vendor=_text(getattr(info, "vendorName", "")),
        )

    def set_video_mode(self, *, mode: int, pixel_format: str) -> VideoModeResult:
        """设置自定义视频模式（Format7），图像尺寸取传感器最大分辨率。"""

        fc2 = self._fc2
        try:
            fmt_mode = getattr(fc2.MODE, f"MODE_{int(mode)}")
        except AttributeError as exc:
            raise FlyCaptureError("NOT_SUPPORTED", f"unknown custom video mode: {mode}") from exc
        try:
            pix = getattr(fc2.PIXEL_FORMAT, str(pixel_format))
        except AttributeError as exc:
            raise FlyCaptureError("NOT_SUPPORTED", f"unknown pixel format: {pixel_format}") from exc

        with _sdk_call(self._binding, "getFormat7Info"):
            info, supported = self._cam.getFormat7Info(fmt_mode)
        if not supported:
            raise FlyCaptureError("NOT_SUPPORTED", f"custom video mode {mode} is not supported")
        if (pix & info.pixelFormatBitField) == 0:
            raise FlyCaptureError("NOT_SUPPORTED", f"pixel format {pixel_format} is not supported")

        settings = fc2.Format7ImageSettings(fmt_mode, 0, 0, info.maxWidth, info.maxHeight, pix)
        with _sdk_call(self._binding, "validateFormat7Settings"):
            packet_info, valid = self._cam.validateFormat7Settings(settings)
        if not valid:
            raise FlyCaptureError("INVALID_SETTINGS", "Format7 settings are not valid")

        with _sdk_call(self._binding, "setFormat7ConfigurationPacket"):
            self._cam.setFormat7ConfigurationPacket(packet_info.recommendedBytesPerPacket, settings)

        return VideoModeResult(
            width=int(info.maxWidth),
            height=int(info.maxHeight),
            pixel_format=str(pixel_format),
            bytes_per_packet=int(packet_info.recommendedBytesPerPacket),
        )

    def get_property_info(self, kind: str) -> PropertyInfo:
        with _sdk_call(self._binding, f"getPropertyInfo({kind})"):
            info = self._cam.getPropertyInfo(self._property_type(kind))
        return PropertyInfo(
            kind=kind,
            present=bool(info.present),
            abs_min=float(getattr(info, "absMin", 0.0)),
            abs_max=float(getattr(info, "absMax", 0.0)),
        )

    def get_property(self, kind: str) -> Property:
        with _sdk_call(self._binding, f"getProperty({kind})"):
            p = self._cam.getProperty(self._property_type(kind))
        return Property(
            kind=kind,
            abs_value=float(p.absValue),
            on_off=bool(p.onOff),
            auto_manual=bool(p.autoManualMode),
            abs_control=bool(p.absControl),
            value_a=int(getattr(p, "valueA", 0)),
        )

    def set_property(self, prop: Property) -> None:
        with _sdk_call(self._binding, f"setProperty({prop.kind})"):
            self._cam.setProperty(
                type=self._property_type(prop.kind),
                onOff=bool(prop.on_off),
                autoManualMode=bool(prop.auto_manual),
                absControl=bool(prop.abs_control),
                absValue=float(prop.abs_value),
            )

    def set_trigger_mode(self, trigger: TriggerMode) -> None:
        with _sdk_call(self._binding, "setTriggerMode"):
            mode = self._cam.getTriggerMode()
            mode.onOff = bool(trigger.on_off)
            mode.mode = int(trigger.mode)
            mode.parameter = int(trigger.parameter)
            mode.source = int(trigger.source)
            mode.polarity = int(trigger.polarity)
            self._cam.setTriggerMode(mode)

    def start_capture(self) -> None:
        with _sdk_call(self._binding, "startCapture"):
            self._cam.startCapture()

    def stop_capture(self) -> None:
        with _sdk_call(self._binding, "stopCapture"):
            self._cam.stopCapture()

    def retrieve_raw_buffer(self) -> RawFrame:
        with _sdk_call(self._binding, "retrieveBuffer"):
            image = self._cam.retrieveBuffer()
            data = bytes(image.getData())
            pix = int(image.getPixelFormat())
            bayer = int(image.getBayerTileFormat()) if hasattr(image, "getBayerTileFormat") else 1
            frame = RawFrame(
                data=data,
                rows=int(image.getRows()),
                cols=int(image.getCols()),
                stride=int(image.getStride()),
                pixel_format=self._pixel_format_name(pix),
                received_size=int(image.getReceivedDataSize()),
                bayer_pattern=_BAYER_TILE_NAMES.get(bayer, "RGGB"),
            )
        return frame

    def _pixel_format_name(self, value: int) -> str:
        for name in _PIXEL_FORMAT_NAMES:
            if int(getattr(self._fc2.PIXEL_FORMAT, name, -1)) == value:
                return name
        return f"0x{value:08X}"

    def disconnect(self) -> None:
        with _sdk_call(self._binding, "disconnect"):
            self._cam.disconnect()


class PyCaptureBus:
    """FlyCapture2 BusManager 的适配。"""

    def __init__(self, binding: FlyCaptureBinding) -> None:
        self._binding = binding
        self._bus: Any = None

    def _manager(self) -> Any:
        if self._bus is None:
            with _sdk_call(self._binding, "BusManager"):
                self._bus = self._binding.module.BusManager()
        return self._bus

    def discover(self) -> list[DeviceHandle]:
        bus = self._manager()
        with _sdk_call(self._binding, "getNumOfCameras"):
            n = int(bus.getNumOfCameras())
        handles: list[DeviceHandle] = []
        for i in range(n):
            with _sdk_call(self._binding, f"getCameraFromIndex({i})"):
                guid = bus.getCameraFromIndex(i)
            handles.append(DeviceHandle(index=i, guid=guid))
        return handles

    def connect(self, handle: DeviceHandle) -> PyCaptureCamera:
        with _sdk_call(self._binding, f"connect(index={handle.index})"):
            cam = self._binding.module.Camera()
            cam.connect(handle.guid)
        return PyCaptureCamera(self._binding, cam)
