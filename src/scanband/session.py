"""采集会话：connect -> configure -> start -> 逐帧取流/转换/缓存 -> stop。

状态机（严格线性）：
    Disconnected -> Connected -> Configured -> Capturing -> Stopped

边界说明：
- 会话独占相机句柄与环形缓存；不支持多线程并发调用。
- capture_one() 会阻塞到相机交付一帧或总线超时；需要并发处理时，调用方自行在返回值外面
  套一个线程安全的交接（例如有界队列）。
- configure() 中途失败不会回滚已下发的属性：会话停留在 Connected，调用方不应继续 start()。
- 单帧取流失败只记录并计数，不改变状态；其它错误直接抛给调用方。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from flycap.device import (
    AUTO_EXPOSURE,
    BRIGHTNESS,
    SHUTTER,
    CameraBus,
    CameraDevice,
    CameraInfo,
    FlyCaptureError,
    Property,
    TriggerMode,
    VideoModeResult,
)
from flycap.save import save_frame

from scanband.codec import FrameCodec
from scanband.config import DEFAULT_PROFILE, AcquisitionProfile
from scanband.errors import (
    BandwidthError,
    CaptureError,
    ConfigurationError,
    DeviceError,
    InvalidStateError,
    NoDeviceError,
    StartError,
)
from scanband.logging_utils import get_logger
from scanband.models import Frame, SessionState
from scanband.ring_buffer import FrameRingBuffer
from scanband.timing import TriggerTimingController


class AcquisitionSession:
    """单相机采集会话。

    Args:
        bus: 相机总线（真实相机用 `flycap.PyCaptureBus`，无硬件用 `flycap.SyntheticBus`）。
        codec: 原始帧转换器；默认 FrameCodec()。
        buffer: 环形缓存；默认按 buffer_size 新建。
        buffer_size: 默认环形缓存容量。
        timing: 触发时序控制器；默认新建，并在 configure() 时绑定到相机。
        profile: configure() 下发的采集参数。
        logger: 日志对象；默认 `scanband.session`。
    """

    def __init__(
        self,
        bus: CameraBus,
        *,
        codec: FrameCodec | None = None,
        buffer: FrameRingBuffer | None = None,
        buffer_size: int = 10,
        timing: TriggerTimingController | None = None,
        profile: AcquisitionProfile = DEFAULT_PROFILE,
        logger: logging.Logger | None = None,
    ) -> None:
        self._bus = bus
        self._logger = logger or get_logger("session")
        self.codec = codec or FrameCodec()
        self.buffer = buffer if buffer is not None else FrameRingBuffer(buffer_size)
        self.timing = timing or TriggerTimingController(logger=self._logger)
        self.profile = profile

        self._state = SessionState.DISCONNECTED
        self._device: Optional[CameraDevice] = None
        self._camera_info: Optional[CameraInfo] = None
        self._video_mode: Optional[VideoModeResult] = None

        # 会话级取流状态（不同会话互不影响）。
        self._first_frame_received = False
        self._last_index: Optional[int] = None
        self.frames_captured = 0
        self.dropped_frames = 0
        self.consecutive_drops = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def device(self) -> Optional[CameraDevice]:
        return self._device

    @property
    def camera_info(self) -> Optional[CameraInfo]:
        return self._camera_info

    @property
    def video_mode(self) -> Optional[VideoModeResult]:
        return self._video_mode

    def _require(self, op: str, *states: SessionState) -> CameraDevice:
        if self._state not in states:
            allowed = "/".join(s.value for s in states)
            raise InvalidStateError(f"{op}() requires state {allowed}, current state is {self._state.value}")
        # Disconnected 时没有设备，只有 connect() 会在该状态下调用。
        return self._device  # type: ignore[return-value]

    def _transition(self, new_state: SessionState) -> None:
        self._logger.debug("session state %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def connect(self) -> None:
        """枚举相机并连接第一台。

        说明：多台相机时只取“第一台找到的”，不做进一步区分。
        """

        self._require("connect", SessionState.DISCONNECTED)

        try:
            handles = self._bus.discover()
        except FlyCaptureError as exc:
            raise DeviceError(f"camera discovery failed: {exc}") from exc

        if not handles:
            raise NoDeviceError("no camera detected")
        self._logger.info("number of cameras detected: %d", len(handles))

        try:
            device = self._bus.connect(handles[0])
        except FlyCaptureError as exc:
            raise DeviceError(f"failed to connect camera #{handles[0].index}: {exc}") from exc

        self._device = device
        try:
            self._camera_info = device.camera_info()
        except FlyCaptureError as exc:
            self._logger.warning("failed to read camera info: %s", exc)
            self._camera_info = None
        else:
            self._logger.info(
                "connected camera serial=%s model=%s", self._camera_info.serial, self._camera_info.model or "-"
            )
        self._transition(SessionState.CONNECTED)

    def _apply(self, what: str, fn: Callable[[], object]) -> object:
        try:
            return fn()
        except FlyCaptureError as exc:
            raise ConfigurationError(f"camera rejected {what}: {exc}") from exc

    def configure(self) -> None:
        """下发固定采集参数（视频模式、快门、外触发、亮度、曝光补偿）。"""

        device = self._require("configure", SessionState.CONNECTED)
        p = self.profile

        self._video_mode = self._apply(
            f"video mode {p.video_mode}/{p.pixel_format}",
            lambda: device.set_video_mode(mode=p.video_mode, pixel_format=p.pixel_format),
        )  # type: ignore[assignment]

        self._apply(
            "shutter",
            lambda: device.set_property(
                Property(kind=SHUTTER, abs_value=p.shutter, on_off=True, auto_manual=False, abs_control=True)
            ),
        )

        self._apply(
            "trigger mode",
            lambda: device.set_trigger_mode(
                TriggerMode(
                    on_off=True,
                    mode=p.trigger_mode,
                    source=p.trigger_source,
                    parameter=p.trigger_parameter,
                    polarity=p.trigger_polarity,
                )
            ),
        )
        self.timing.discover(device)
        self.timing.set_delay(p.initial_delay)

        self._apply(
            "brightness",
            lambda: device.set_property(
                Property(kind=BRIGHTNESS, abs_value=p.brightness, on_off=True, auto_manual=False, abs_control=True)
            ),
        )
        self._apply(
            "auto exposure",
            lambda: device.set_property(
                Property(kind=AUTO_EXPOSURE, abs_value=p.exposure_ev, on_off=True, auto_manual=False, abs_control=True)
            ),
        )

        if self._video_mode is not None:
            self._logger.info(
                "configured %dx%d %s, shutter=%.3f, exposure=%.1f EV",
                self._video_mode.width,
                self._video_mode.height,
                self._video_mode.pixel_format,
                p.shutter,
                p.exposure_ev,
            )
        self._transition(SessionState.CONFIGURED)

    def start(self) -> None:
        """启动硬件采集。带宽不足抛 BandwidthError，其它失败抛 StartError。"""

        device = self._require("start", SessionState.CONFIGURED)

        try:
            device.start_capture()
        except FlyCaptureError as exc:
            if exc.is_bandwidth_exceeded:
                raise BandwidthError(
                    f"bandwidth exceeded: {exc}; lower the resolution or frame rate and reconfigure"
                ) from exc
            raise StartError(f"failed to start image capture: {exc}") from exc

        self._first_frame_received = False
        self.consecutive_drops = 0
        self._transition(SessionState.CAPTURING)
        self._logger.info("frame rate is %.2f fps", self.timing.get_frame_rate())

    def capture_one(self, frame_index: int) -> Optional[Frame]:
        """取一帧 -> 转换 -> 写入环形缓存。

        Returns:
            转换后的 Frame；取流失败时返回 None（已记录日志，会话状态不变）。

        Raises:
            InvalidStateError: 会话不在 Capturing。
            ConversionError: 收到的缓冲区无法转换。
        """

        device = self._require("capture_one", SessionState.CAPTURING)

        try:
            raw = device.retrieve_raw_buffer()
        except FlyCaptureError as exc:
            err = CaptureError(f"frame {frame_index}: {exc}")
            err.__cause__ = exc
            self.dropped_frames += 1
            self.consecutive_drops += 1
            self._logger.warning("dropped %s (consecutive=%d)", err, self.consecutive_drops)
            return None

        frame = self.codec.convert(raw, index=int(frame_index))
        self.buffer.put(frame, int(frame_index))
        self._last_index = int(frame_index)
        self.frames_captured += 1
        self.consecutive_drops = 0

        if not self._first_frame_received:
            self._first_frame_received = True
            self._logger.info(
                "first frame received: index=%d %dx%d source_stride=%s",
                frame_index,
                frame.cols,
                frame.rows,
                frame.source_stride,
            )
        return frame

    def latest_frame(self) -> Optional[Frame]:
        """最近一次成功写入的帧。"""

        if self._last_index is None:
            return None
        return self.buffer.get(self._last_index)

    def frame_at(self, index: int) -> Optional[Frame]:
        return self.buffer.get(index)

    def record_images(self, count: int, output_dir: Path, *, start_index: int = 0) -> list[Path]:
        """连续采集 count 帧并保存为 `<output_dir>/<serial>-<i>.bmp`。

        说明：取流失败的帧直接跳过；保存失败抛 FrameSaveError。
        """

        self._require("record_images", SessionState.CAPTURING)
        out_dir = Path(output_dir)
        serial = self._camera_info.serial if self._camera_info is not None else "camera"

        saved: list[Path] = []
        for i in range(int(count)):
            frame = self.capture_one(int(start_index) + i)
            if frame is None:
                continue
            saved.append(save_frame(frame.image, out_dir / f"{serial}-{i}.bmp"))

        self._logger.info("finished grabbing images: saved=%d requested=%d dir=%s", len(saved), int(count), out_dir)
        return saved

    def stop(self) -> bool:
        """停止采集并断开相机（尽力而为）。

        每一步失败都会记录日志，但不会阻止后续步骤执行；会话总是进入 Stopped。

        Returns:
            所有步骤都成功时为 True。
        """

        device = self._require("stop", SessionState.CONNECTED, SessionState.CONFIGURED, SessionState.CAPTURING)
        ok = True

        if self._state is SessionState.CAPTURING:
            try:
                device.stop_capture()
            except FlyCaptureError as exc:
                ok = False
                self._logger.error("failed to stop capture: %s", exc)

        try:
            device.disconnect()
        except FlyCaptureError as exc:
            ok = False
            self._logger.error("failed to disconnect camera: %s", exc)

        self._device = None
        self._transition(SessionState.STOPPED)
        self._logger.info(
            "session stopped: captured=%d dropped=%d", self.frames_captured, self.dropped_frames
        )
        return ok

    def __enter__(self) -> "AcquisitionSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._state in (SessionState.CONNECTED, SessionState.CONFIGURED, SessionState.CAPTURING):
            self.stop()
