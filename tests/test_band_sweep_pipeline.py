from __future__ import annotations

import json

import pytest

from flycap.synthetic import SyntheticBus, SyntheticCamera
from scanband.band import BandDetector
from scanband.config import AcquisitionProfile
from scanband.errors import CaptureError
from scanband.pipeline import capture_reference, iter_band_sweep
from scanband.session import AcquisitionSession


def _started(cam: SyntheticCamera) -> AcquisitionSession:
    # BGR 不经过去马赛克，亮带边缘保持逐行精确。
    session = AcquisitionSession(SyntheticBus(cameras=[cam]), profile=AcquisitionProfile(pixel_format="BGR"))
    session.connect()
    session.configure()
    session.start()
    return session


def test_sweep_accumulates_envelope_and_steps_delay() -> None:
    session = _started(SyntheticCamera())
    detector = BandDetector()

    records = list(iter_band_sweep(session, detector, num_frames=5))

    assert [r["frame_index"] for r in records] == [1, 2, 3, 4, 5]
    assert all(r["reference_index"] == 0 for r in records)
    assert [(r["observed_top"], r["observed_bottom"]) for r in records] == [
        (40, 60),
        (42, 62),
        (44, 64),
        (46, 66),
        (48, 68),
    ]
    assert (records[0]["top_line"], records[0]["bottom_line"]) == (40, 60)
    assert (records[-1]["top_line"], records[-1]["bottom_line"]) == (40, 68)
    assert [r["trigger_delay"] for r in records] == pytest.approx([0.0, 0.0002, 0.0004, 0.0006, 0.0008])
    assert session.timing.delay == pytest.approx(0.001)

    # 记录可直接写成 jsonl。
    json.dumps(records)


def test_dropped_frame_yields_record_and_keeps_envelope() -> None:
    session = _started(SyntheticCamera(fail_retrieve_at={3}))
    detector = BandDetector()

    records = list(iter_band_sweep(session, detector, num_frames=5))

    dropped = [r for r in records if r["dropped"]]
    assert [r["frame_index"] for r in dropped] == [3]
    assert dropped[0]["observed_top"] is None
    assert (dropped[0]["top_line"], dropped[0]["bottom_line"]) == (40, 62)
    assert (records[-1]["top_line"], records[-1]["bottom_line"]) == (40, 68)
    # 丢帧时触发延时仍然前进。
    assert records[3]["trigger_delay"] == pytest.approx(0.0006)


def test_sweep_without_delay_stepping() -> None:
    session = _started(SyntheticCamera())
    records = list(iter_band_sweep(session, BandDetector(), num_frames=3, sweep_delay=False))
    assert [r["trigger_delay"] for r in records] == [0.0, 0.0, 0.0]
    assert session.timing.delay == 0.0


def test_reference_capture_retries_after_drop() -> None:
    session = _started(SyntheticCamera(fail_retrieve_at={0}, stripe_for=lambda n: None))

    ref, next_index = capture_reference(session, 0)

    assert ref.index == 1
    assert next_index == 2
    assert session.dropped_frames == 1


def test_reference_capture_gives_up() -> None:
    session = _started(SyntheticCamera(fail_retrieve_at=set(range(3))))
    with pytest.raises(CaptureError):
        capture_reference(session, 0, max_attempts=3)
