from __future__ import annotations

import numpy as np
import pytest

from scanband.models import Frame
from scanband.ring_buffer import FrameRingBuffer


def _frame(tag: int) -> Frame:
    img = np.full((2, 3, 3), tag % 256, dtype=np.uint8)
    return Frame(image=img, stride=9, index=tag)


def test_get_returns_frame_just_put() -> None:
    buf = FrameRingBuffer(4)
    f = _frame(7)
    buf.put(f, 7)
    assert buf.get(7) is f
    assert buf.slot_of(7) == 3


def test_get_returns_most_recent_write_in_same_slot() -> None:
    buf = FrameRingBuffer(4)
    frames = {i: _frame(i) for i in range(25)}
    for i, f in frames.items():
        buf.put(f, i)

    for i in range(25):
        # 说明：槽位被同余的更晚序号覆盖后，get(i) 返回的是最后一次写入。
        latest = max(j for j in range(25) if j % 4 == i % 4)
        assert buf.get(i) is frames[latest]


def test_aliasing_is_not_an_error() -> None:
    buf = FrameRingBuffer(3)
    buf.put(_frame(0), 0)
    buf.put(_frame(3), 3)
    got = buf.get(0)
    assert got is not None
    assert got.index == 3


def test_empty_slot_returns_none_and_len_counts_written_slots() -> None:
    buf = FrameRingBuffer(3)
    assert buf.get(1) is None
    assert len(buf) == 0

    buf.put(_frame(0), 0)
    buf.put(_frame(3), 3)
    assert len(buf) == 1
    buf.put(_frame(1), 1)
    buf.put(_frame(2), 2)
    assert len(buf) == 3
    assert buf.capacity == 3


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        FrameRingBuffer(0)
