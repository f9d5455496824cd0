"""原始传感器缓冲区 -> BGR Frame。

说明：
- 行字节跨度以“实际收到的字节数 / 行数”推导，必须整除；余数说明元数据已损坏。
- 输出统一为 rows x cols x 3 的 uint8 BGR（与 OpenCV 约定一致），行尾 padding 会被去掉。
- 转换是纯函数：不修改输入，总是产出新的只读数组。
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from flycap.device import RawFrame

from scanband.errors import ConversionError
from scanband.models import Frame


# 每种源格式的每像素字节数。
BYTES_PER_PIXEL = {"RAW8": 1, "MONO8": 1, "BGR": 3, "RGB": 3, "BGRU": 4}

# OpenCV 的 Bayer 命名取自第二行的第 2/3 个像素，与传感器左上角排列不同名。
_BAYER_TO_BGR = {
    "RGGB": cv2.COLOR_BayerBG2BGR,
    "BGGR": cv2.COLOR_BayerRG2BGR,
    "GRBG": cv2.COLOR_BayerGB2BGR,
    "GBRG": cv2.COLOR_BayerGR2BGR,
}


def row_stride(received_size: int, rows: int) -> int:
    """由收到的字节数推导行字节跨度。"""

    rows = int(rows)
    received_size = int(received_size)
    if rows <= 0:
        raise ConversionError(f"invalid row count: {rows}")
    stride, rem = divmod(received_size, rows)
    if rem:
        raise ConversionError(
            f"received {received_size} bytes is not a multiple of {rows} rows (remainder {rem})"
        )
    return stride


class FrameCodec:
    """把 RawFrame 转换为规范的 3 通道 BGR Frame。"""

    def convert(self, raw: RawFrame, source_pixel_format: Optional[str] = None, *, index: Optional[int] = None) -> Frame:
        """转换一帧。

        Args:
            raw: 原始缓冲区。
            source_pixel_format: 源像素格式；为 None 时使用 raw.pixel_format。
            index: 写入 Frame.index 的采集序号。

        Raises:
            ConversionError: 格式不支持，或缓冲区大小与声明的尺寸不一致。
        """

        fmt = str(source_pixel_format or raw.pixel_format).strip().upper()
        bpp = BYTES_PER_PIXEL.get(fmt)
        if bpp is None:
            raise ConversionError(f"unsupported source pixel format: {fmt}")

        rows, cols = int(raw.rows), int(raw.cols)
        if cols <= 0:
            raise ConversionError(f"invalid column count: {cols}")
        stride = row_stride(raw.received_size, rows)

        if stride < cols * bpp:
            raise ConversionError(f"row stride {stride} is smaller than {cols} px * {bpp} B ({fmt})")
        if len(raw.data) < stride * rows:
            raise ConversionError(f"buffer holds {len(raw.data)} bytes, expected at least {stride * rows}")

        buf = np.frombuffer(raw.data, dtype=np.uint8, count=stride * rows).reshape(rows, stride)
        pixels = buf[:, : cols * bpp].reshape(rows, cols, bpp)

        if fmt == "RAW8":
            code = _BAYER_TO_BGR.get(str(raw.bayer_pattern).upper())
            if code is None:
                raise ConversionError(f"unsupported bayer pattern: {raw.bayer_pattern}")
            bgr = cv2.cvtColor(np.ascontiguousarray(pixels[:, :, 0]), code)
        elif fmt == "MONO8":
            bgr = cv2.cvtColor(np.ascontiguousarray(pixels[:, :, 0]), cv2.COLOR_GRAY2BGR)
        elif fmt == "RGB":
            bgr = pixels[:, :, ::-1]
        elif fmt == "BGRU":
            bgr = pixels[:, :, :3]
        else:
            bgr = pixels

        image = np.array(bgr, dtype=np.uint8, order="C", copy=True)
        image.setflags(write=False)
        return Frame(image=image, stride=int(image.strides[0]), index=index, source_stride=stride)
