"""scanband 公共数据模型（只放数据结构定义）。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class Frame:
    """一帧 BGR 图像（创建后不可变）。

    说明：
        - image 为 rows x cols x 3 的 uint8 数组，且 writeable=False；
        - stride 为 image 的行字节跨度（>= cols*3）；
        - source_stride 为原始缓冲区的行字节跨度（含行尾填充，取决于源像素格式）；
        - index 为采集序号；不是由会话采集得到的帧为 None。
    """

    image: np.ndarray
    stride: int
    index: Optional[int] = None
    source_stride: Optional[int] = None

    @property
    def rows(self) -> int:
        return int(self.image.shape[0])

    @property
    def cols(self) -> int:
        return int(self.image.shape[1])

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.image.shape)


@dataclass(frozen=True)
class BandEnvelope:
    """照亮带的累计上下边界。None 表示尚未观测到任何照亮行。"""

    top_line: Optional[int] = None
    bottom_line: Optional[int] = None

    @property
    def is_set(self) -> bool:
        return self.top_line is not None and self.bottom_line is not None

    def widened(self, top: int, bottom: int) -> "BandEnvelope":
        """返回合并一次观测后的新包络（只会变宽）。"""

        new_top = int(top) if self.top_line is None else min(self.top_line, int(top))
        new_bottom = int(bottom) if self.bottom_line is None else max(self.bottom_line, int(bottom))
        return BandEnvelope(top_line=new_top, bottom_line=new_bottom)


class SessionState(str, Enum):
    DISCONNECTED = "Disconnected"
    CONNECTED = "Connected"
    CONFIGURED = "Configured"
    CAPTURING = "Capturing"
    STOPPED = "Stopped"
