"""标定扫描流水线：参考帧 + 逐帧照亮带检测 + 触发延时步进。

本模块刻意保持“无框架依赖”，只依赖三类输入：
- session：已处于 Capturing 的 AcquisitionSession
- detector：BandDetector（持有累计包络）
- 帧数/参考帧序号等标量参数

输出为可 JSON 序列化的 dict 记录，便于落盘（jsonl）与后处理。
"""

from __future__ import annotations

import time
from typing import Any, Iterator

from scanband.band import BandDetector
from scanband.errors import CaptureError
from scanband.models import Frame
from scanband.session import AcquisitionSession


def capture_reference(session: AcquisitionSession, index: int = 0, *, max_attempts: int = 10) -> tuple[Frame, int]:
    """采集参考帧（投影关闭或未照到时的画面）。

    取流失败时顺延到下一个序号重试。

    Returns:
        (reference_frame, next_index)：next_index 为参考帧之后第一个可用的序号。

    Raises:
        CaptureError: 连续 max_attempts 次都没有拿到帧。
    """

    idx = int(index)
    for _ in range(max(1, int(max_attempts))):
        frame = session.capture_one(idx)
        idx += 1
        if frame is not None:
            # Frame 只读，槽位被覆盖后仍可继续持有。
            return frame, idx
    raise CaptureError(f"no reference frame after {int(max_attempts)} attempts starting at index {int(index)}")


def iter_band_sweep(
    session: AcquisitionSession,
    detector: BandDetector,
    *,
    num_frames: int,
    reference_index: int = 0,
    sweep_delay: bool = True,
    max_reference_attempts: int = 10,
) -> Iterator[dict[str, Any]]:
    """对 num_frames 帧运行照亮带检测。

    流程：
        1) 采集参考帧；
        2) 对之后每个序号：取帧 -> detect_band(reference, frame) -> (可选) 触发延时前进一步；
        3) 每个序号产出一条记录（包括丢帧的序号，dropped=True）。

    Yields:
        可 JSON 序列化的记录。
    """

    reference, idx = capture_reference(session, reference_index, max_attempts=max_reference_attempts)

    for frame_index in range(idx, idx + int(num_frames)):
        frame = session.capture_one(frame_index)

        observed = None
        if frame is not None:
            observed = detector.detect_band(reference, frame)

        delay = session.timing.delay
        if sweep_delay:
            session.timing.increment_delay()

        env = detector.envelope
        yield {
            "frame_index": int(frame_index),
            "reference_index": reference.index,
            "trigger_delay": float(delay),
            "dropped": frame is None,
            "observed_top": None if observed is None else int(observed[0]),
            "observed_bottom": None if observed is None else int(observed[1]),
            "top_line": env.top_line,
            "bottom_line": env.bottom_line,
            "created_at": time.time(),
        }
