"""触发时序：触发延时扫描与帧率协商。

触发延时用于让曝光相对外部投影触发做相位偏移。`increment_delay()` 每次前进一个固定步长，
越过上限后回到 0，操作员可以边扫描边观察画面质量来寻找最佳照明时序。

说明：
- set_delay 不做范围夹紧，由调用方保证取值合理；
- 相机不支持 TRIGGER_DELAY 时只在本地记录，不下发硬件（记录告警，不抛错）。
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from flycap.device import FRAME_RATE, TRIGGER_DELAY, CameraDevice, FlyCaptureError

from scanband.logging_utils import get_logger


DELAY_STEP = 0.0002
DELAY_MAX = 0.011

# 累加时去掉浮点漂移，保证 55 次步进恰好到达 DELAY_MAX。
_DELAY_DIGITS = 10


class TriggerTimingController:
    """持有并推进触发延时。"""

    def __init__(
        self,
        device: Optional[CameraDevice] = None,
        *,
        step: float = DELAY_STEP,
        delay_max: float = DELAY_MAX,
        logger: logging.Logger | None = None,
    ) -> None:
        self._device = device
        self._logger = logger or get_logger("timing")
        self.step = float(step)
        self.delay_max = float(delay_max)
        self.delay = 0.0
        self.supports_delay = False

    def discover(self, device: CameraDevice) -> bool:
        """绑定相机并查询一次是否支持 TRIGGER_DELAY。"""

        self._device = device
        try:
            info = device.get_property_info(TRIGGER_DELAY)
        except FlyCaptureError as exc:
            self._logger.warning("trigger delay capability query failed: %s", exc)
            self.supports_delay = False
        else:
            self.supports_delay = bool(info.present)
        if not self.supports_delay:
            self._logger.warning("camera does not support TRIGGER_DELAY; delay is tracked locally only")
        return self.supports_delay

    def set_delay(self, value: float) -> None:
        value = float(value)
        self.delay = value

        if self._device is None or not self.supports_delay:
            self._logger.debug("trigger delay %.4f recorded locally (not applied)", value)
            return

        try:
            prop = self._device.get_property(TRIGGER_DELAY)
            self._device.set_property(replace(prop, abs_value=value, on_off=True, auto_manual=False))
        except FlyCaptureError as exc:
            self._logger.warning("failed to apply trigger delay %.4f: %s", value, exc)
            return
        self._logger.debug("trigger delay set to %.4f", value)

    def increment_delay(self) -> float:
        """前进一个步长；到达或超过上限时回到 0。返回新的延时。"""

        nxt = round(self.delay + self.step, _DELAY_DIGITS)
        if nxt >= self.delay_max:
            nxt = 0.0
        self.set_delay(nxt)
        return self.delay

    def get_frame_rate(self) -> float:
        """读取当前帧率；属性不存在或读取失败时返回 0。"""

        if self._device is None:
            return 0.0
        try:
            info = self._device.get_property_info(FRAME_RATE)
            if not info.present:
                return 0.0
            prop = self._device.get_property(FRAME_RATE)
        except FlyCaptureError as exc:
            self._logger.warning("failed to read frame rate: %s", exc)
            return 0.0
        return float(prop.abs_value)

    def set_frame_rate(self, fps: float) -> float:
        """请求帧率，并返回相机实际采用的帧率。

        说明：实际记录帧率还可能受总线速度与落盘速度限制。
        """

        if self._device is None:
            return 0.0
        self._logger.info("asking frame rate of %.1f", float(fps))
        try:
            info = self._device.get_property_info(FRAME_RATE)
            if info.present:
                prop = self._device.get_property(FRAME_RATE)
                self._device.set_property(replace(prop, abs_value=float(fps), auto_manual=False))
        except FlyCaptureError as exc:
            self._logger.warning("failed to set frame rate %.1f: %s", float(fps), exc)

        actual = self.get_frame_rate()
        self._logger.info("using frame rate of %.1f", actual)
        return actual
