"""定长环形帧缓存：把采集与消费解耦。

逻辑序号 i 的帧总是写到槽位 `i % capacity`，覆盖该槽位原有内容。
缓存本身不校验“槽位里的帧是否还属于 i”，调用方需要自己跟踪；
跨越超过 capacity 次写入仍要持有某帧时，应自行拷贝。
"""

from __future__ import annotations

from typing import Optional

from scanband.models import Frame


class FrameRingBuffer:
    def __init__(self, capacity: int) -> None:
        capacity = int(capacity)
        if capacity < 1:
            raise ValueError(f"ring buffer capacity must be >= 1, got {capacity}")
        self._slots: list[Optional[Frame]] = [None] * capacity
        self._written = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return self._written

    def slot_of(self, index: int) -> int:
        return int(index) % self.capacity

    def put(self, frame: Frame, index: int) -> None:
        pos = self.slot_of(index)
        if self._slots[pos] is None:
            self._written += 1
        self._slots[pos] = frame

    def get(self, index: int) -> Optional[Frame]:
        """返回槽位 `index % capacity` 当前的帧；该槽位从未写入时返回 None。"""

        return self._slots[self.slot_of(index)]
