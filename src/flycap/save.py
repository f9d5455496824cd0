# -*- coding: utf-8 -*-

"""帧落盘：按文件扩展名推断格式（.bmp/.png/.jpg/.tif ...）。"""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np


class FrameSaveError(RuntimeError):
    pass


def save_frame(image: np.ndarray, out_path: Path) -> Path:
    """保存一帧 BGR 图像。

    Args:
        image: HxWx3 的 BGR 图像（uint8）。
        out_path: 输出路径；父目录不存在时会自动创建。

    Returns:
        实际写入的路径。

    Raises:
        FrameSaveError: 扩展名不被 OpenCV 支持或写入失败。
    """

    out_path = Path(out_path)
    if not out_path.suffix:
        raise FrameSaveError(f"cannot infer image format from path without extension: {out_path}")

    out_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        ok = cv2.imwrite(str(out_path), np.ascontiguousarray(image))
    except cv2.error as exc:
        raise FrameSaveError(f"failed to save frame to {out_path}: {exc}") from exc
    if not ok:
        raise FrameSaveError(f"failed to save frame to {out_path}")
    return out_path
