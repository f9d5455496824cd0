"""scanband 错误类型。

传播策略：
- 单帧取流失败（CaptureError）由会话记录日志后跳过，不会中断采集；
- 其它错误都直接抛给调用方，core 内部不做自动重试；
- SDK 层的 `flycap.FlyCaptureError` 通过 `raise ... from exc` 串在 __cause__ 上。
"""

from __future__ import annotations

from flycap.save import FrameSaveError


class ScanbandError(RuntimeError):
    """scanband 所有错误的基类。"""


class DeviceError(ScanbandError):
    """总线枚举 / 连接失败。"""


class NoDeviceError(DeviceError):
    """总线上没有任何相机。"""


class ConfigurationError(ScanbandError):
    """相机拒绝了视频模式或某个属性。"""


class BandwidthError(ScanbandError):
    """启动采集时超出总线带宽（降低分辨率/帧率后可恢复）。"""


class StartError(ScanbandError):
    """启动采集失败（非带宽原因）。"""


class CaptureError(ScanbandError):
    """单帧取流失败（瞬时错误）。"""


class ConversionError(ScanbandError):
    """原始缓冲区格式不支持或尺寸与元数据不一致。"""


class InvalidFrameError(ScanbandError):
    """参考帧与实时帧尺寸/通道不一致，或不是 8bit 三通道图像。"""


class InvalidStateError(ScanbandError):
    """在错误的会话状态下调用了操作。"""


__all__ = [
    "BandwidthError",
    "CaptureError",
    "ConfigurationError",
    "ConversionError",
    "DeviceError",
    "FrameSaveError",
    "InvalidFrameError",
    "InvalidStateError",
    "NoDeviceError",
    "ScanbandError",
    "StartError",
]
