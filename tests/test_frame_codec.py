from __future__ import annotations

import numpy as np
import pytest

from flycap.device import RawFrame
from scanband.codec import FrameCodec, row_stride
from scanband.errors import ConversionError


def _raw(pixels: np.ndarray, fmt: str, *, padding: int = 0, bayer: str = "RGGB") -> RawFrame:
    rows, cols = pixels.shape[:2]
    ch = 1 if pixels.ndim == 2 else pixels.shape[2]
    row_bytes = cols * ch
    buf = np.zeros((rows, row_bytes + padding), dtype=np.uint8)
    buf[:, :row_bytes] = pixels.reshape(rows, row_bytes)
    data = buf.tobytes()
    return RawFrame(
        data=data,
        rows=rows,
        cols=cols,
        stride=row_bytes + padding,
        pixel_format=fmt,
        received_size=len(data),
        bayer_pattern=bayer,
    )


def _bgr(rows: int = 4, cols: int = 5) -> np.ndarray:
    return np.arange(rows * cols * 3, dtype=np.uint8).reshape(rows, cols, 3)


def test_bgr_with_row_padding_is_stripped() -> None:
    src = _bgr()
    frame = FrameCodec().convert(_raw(src, "BGR", padding=3), index=7)

    assert frame.shape == (4, 5, 3)
    assert frame.stride == 15
    assert frame.source_stride == 18
    assert frame.index == 7
    assert np.array_equal(frame.image, src)
    assert frame.image.flags.c_contiguous
    assert not frame.image.flags.writeable


def test_rgb_is_reordered_to_bgr() -> None:
    src = _bgr()
    frame = FrameCodec().convert(_raw(src, "RGB"))
    assert np.array_equal(frame.image, src[:, :, ::-1])


def test_bgru_drops_padding_channel() -> None:
    src = np.arange(4 * 5 * 4, dtype=np.uint8).reshape(4, 5, 4)
    frame = FrameCodec().convert(_raw(src, "BGRU"))
    assert np.array_equal(frame.image, src[:, :, :3])


def test_mono_is_replicated_to_three_channels() -> None:
    src = np.arange(20, dtype=np.uint8).reshape(4, 5)
    frame = FrameCodec().convert(_raw(src, "MONO8", padding=1))
    assert frame.shape == (4, 5, 3)
    for c in range(3):
        assert np.array_equal(frame.image[:, :, c], src)


@pytest.mark.parametrize("pattern", ["RGGB", "BGGR", "GRBG", "GBRG"])
def test_raw8_bayer_is_demosaiced(pattern: str) -> None:
    src = np.full((8, 10), 50, dtype=np.uint8)
    frame = FrameCodec().convert(_raw(src, "RAW8", padding=2, bayer=pattern))
    assert frame.shape == (8, 10, 3)
    assert np.all(frame.image == 50)


@pytest.mark.parametrize("fmt", ["RAW8", "MONO8"])
def test_single_channel_source_reports_output_stride(fmt: str) -> None:
    src = np.full((120, 160), 30, dtype=np.uint8)
    frame = FrameCodec().convert(_raw(src, fmt, padding=4))

    # stride 描述的是三通道输出图像，源缓冲区的跨度单独保留。
    assert frame.stride == frame.image.strides[0]
    assert frame.stride >= frame.cols * 3
    assert frame.source_stride == 164


def test_explicit_source_format_overrides_raw_metadata() -> None:
    src = _bgr()
    raw = _raw(src, "BGR")
    frame = FrameCodec().convert(raw, "RGB")
    assert np.array_equal(frame.image, src[:, :, ::-1])


def test_stride_is_received_size_over_rows() -> None:
    assert row_stride(4 * 18, 4) == 18
    with pytest.raises(ConversionError):
        row_stride(4 * 18 + 1, 4)
    with pytest.raises(ConversionError):
        row_stride(10, 0)


def test_received_size_with_remainder_is_rejected() -> None:
    raw = _raw(_bgr(), "BGR")
    bad = RawFrame(
        data=raw.data,
        rows=raw.rows,
        cols=raw.cols,
        stride=raw.stride,
        pixel_format="BGR",
        received_size=len(raw.data) - 1,
    )
    with pytest.raises(ConversionError):
        FrameCodec().convert(bad)


def test_stride_smaller_than_row_is_rejected() -> None:
    raw = _raw(_bgr(), "BGR")
    # 每行 10 字节，小于 BGR 一行所需的 15 字节。
    bad = RawFrame(
        data=raw.data[: 4 * 10],
        rows=4,
        cols=5,
        stride=10,
        pixel_format="BGR",
        received_size=4 * 10,
    )
    with pytest.raises(ConversionError):
        FrameCodec().convert(bad)


def test_truncated_buffer_is_rejected() -> None:
    raw = _raw(_bgr(), "BGR")
    bad = RawFrame(
        data=raw.data[:-15],
        rows=raw.rows,
        cols=raw.cols,
        stride=raw.stride,
        pixel_format="BGR",
        received_size=len(raw.data),
    )
    with pytest.raises(ConversionError):
        FrameCodec().convert(bad)


def test_unsupported_format_is_rejected() -> None:
    with pytest.raises(ConversionError):
        FrameCodec().convert(_raw(_bgr(), "BGR"), "YUV422")
