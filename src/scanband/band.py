"""扫描线照亮带检测。

流程（参考帧 + 实时帧）：
1) 饱和减法 live - reference：去掉环境光内容，只留下投影照亮的条带；
2) 形态学开运算（5x5 椭圆核，先腐蚀后膨胀）：去掉孤立噪点，保留连续的亮带；
3) BGR -> HSV；
4) 全图扫描，V 通道 > threshold 的像素视为“被照亮”，取其最小/最大行号；
5) 没有任何照亮像素时本次不产出结果，包络保持不变；
6) 用本次观测更新累计包络：top 只减小，bottom 只增大。

该检测设计为在标定扫描中逐帧反复调用，让包络收敛到整个被照亮过的纵向范围，
从而容忍帧间噪声与局部照明。
"""

from __future__ import annotations

import threading
from typing import Optional, Union

import cv2
import numpy as np

from scanband.errors import InvalidFrameError
from scanband.models import BandEnvelope, Frame


DEFAULT_THRESHOLD = 90
DEFAULT_KERNEL_SIZE = 5

ImageLike = Union[Frame, np.ndarray]


def _as_bgr(x: ImageLike, what: str) -> np.ndarray:
    img = x.image if isinstance(x, Frame) else x
    if not isinstance(img, np.ndarray) or img.size == 0:
        raise InvalidFrameError(f"{what} frame has no data")
    if img.dtype != np.uint8 or img.ndim != 3 or img.shape[2] != 3:
        raise InvalidFrameError(f"{what} frame must be 8-bit 3-channel, got dtype={img.dtype} shape={img.shape}")
    return img


def illuminated_rows(
    reference: np.ndarray,
    live: np.ndarray,
    *,
    threshold: int = DEFAULT_THRESHOLD,
    kernel: Optional[np.ndarray] = None,
) -> np.ndarray:
    """返回被照亮的行号（升序）。输入需已校验为同尺寸 BGR uint8。"""

    if kernel is None:
        kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (DEFAULT_KERNEL_SIZE, DEFAULT_KERNEL_SIZE))

    diff = cv2.subtract(live, reference)
    diff = cv2.erode(diff, kernel)
    diff = cv2.dilate(diff, kernel)

    hsv = cv2.cvtColor(diff, cv2.COLOR_BGR2HSV)
    lit = hsv[:, :, 2] > int(threshold)
    return np.flatnonzero(lit.any(axis=1))


class BandDetector:
    """照亮带检测器，持有跨调用累计的上下边界包络。

    说明：包络的比较-更新是读-改-写，内部用锁串行化，允许多个线程共享一个检测器。
    """

    def __init__(self, *, threshold: int = DEFAULT_THRESHOLD, kernel_size: int = DEFAULT_KERNEL_SIZE) -> None:
        if int(kernel_size) < 1:
            raise ValueError(f"kernel_size must be >= 1, got {kernel_size}")
        self.threshold = int(threshold)
        self.kernel_size = int(kernel_size)
        self._kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (self.kernel_size, self.kernel_size))
        self._envelope = BandEnvelope()
        self._lock = threading.Lock()

    @property
    def envelope(self) -> BandEnvelope:
        return self._envelope

    @property
    def top_line(self) -> Optional[int]:
        return self._envelope.top_line

    @property
    def bottom_line(self) -> Optional[int]:
        return self._envelope.bottom_line

    def detect_band(self, reference: ImageLike, live: ImageLike) -> Optional[tuple[int, int]]:
        """检测本帧的照亮行范围，并更新累计包络。

        Returns:
            (observed_top, observed_bottom)；本帧没有任何照亮像素时返回 None。

        Raises:
            InvalidFrameError: 两帧尺寸不一致或不是 8bit 三通道（包络不变）。
        """

        ref = _as_bgr(reference, "reference")
        cur = _as_bgr(live, "live")
        if ref.shape != cur.shape:
            raise InvalidFrameError(f"frame size mismatch: reference={ref.shape} live={cur.shape}")

        rows = illuminated_rows(ref, cur, threshold=self.threshold, kernel=self._kernel)
        if rows.size == 0:
            return None

        observed = (int(rows[0]), int(rows[-1]))
        with self._lock:
            self._envelope = self._envelope.widened(*observed)
        return observed
