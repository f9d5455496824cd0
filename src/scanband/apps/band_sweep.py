"""标定扫描入口：连接相机 -> 配置 -> 采集参考帧 -> 逐帧检测照亮带并步进触发延时。

用法示例：
    python -m scanband.apps.band_sweep --camera synthetic --frames 30 --out-jsonl data/sweep.jsonl
    python -m scanband.apps.band_sweep --config sweep.yaml

说明：
- 没有相机时可用 `--camera synthetic` 验证整条链路；
- 命令行参数优先于配置文件。
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from flycap import FlyCaptureNotFoundError, FrameSaveError, PyCaptureBus, SyntheticBus, load_flycapture_binding
from flycap.device import CameraBus, FlyCaptureError

from scanband.band import BandDetector
from scanband.config import SweepAppConfig, load_sweep_app_config
from scanband.errors import BandwidthError, ConfigurationError, DeviceError, ScanbandError, StartError
from scanband.logging_utils import get_logger, setup_logging
from scanband.pipeline import iter_band_sweep
from scanband.session import AcquisitionSession


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="结构光扫描线照亮带标定扫描")
    parser.add_argument("--config", default=None, help="配置文件（.json/.yaml/.yml，可选）")
    parser.add_argument(
        "--camera",
        choices=["pycapture", "synthetic"],
        default=None,
        help="相机后端：pycapture 使用 FlyCapture2 真实相机；synthetic 使用合成相机（无需硬件）。",
    )
    parser.add_argument(
        "--dll-dir",
        default=None,
        help="FlyCapture2 动态库目录（可选）。也可用环境变量 FLYCAP_DLL_DIR。",
    )
    parser.add_argument("--list", action="store_true", help="仅枚举并打印设备信息")
    parser.add_argument("--frames", type=int, default=None, help="参考帧之后处理的帧数（默认 100）")
    parser.add_argument("--buffer-size", type=int, default=None, help="环形缓存容量（默认 10）")
    parser.add_argument("--reference-index", type=int, default=None, help="参考帧的采集序号（默认 0）")
    parser.add_argument(
        "--no-sweep",
        action="store_true",
        help="不步进触发延时（只做照亮带检测）。",
    )
    parser.add_argument("--threshold", type=int, default=None, help="亮度阈值（HSV 的 V 通道，默认 90）")
    parser.add_argument(
        "--frame-rate",
        type=float,
        default=None,
        help="请求的帧率（fps）。为 0 表示不设置，保持相机当前配置。",
    )
    parser.add_argument(
        "--record-images",
        type=int,
        default=0,
        help="扫描前先连续保存多少帧到 --save-dir（0 表示不保存）。",
    )
    parser.add_argument("--save-dir", default=None, help="图片输出目录（默认 Results）")
    parser.add_argument("--out-jsonl", default=None, help="逐帧记录输出（jsonl，可选）")
    parser.add_argument("--log-level", default=None, help="控制台日志级别（默认 INFO）")
    parser.add_argument("--log-file", default=None, help="日志文件（可选）")
    return parser


def _merge_args(cfg: SweepAppConfig, args: argparse.Namespace) -> SweepAppConfig:
    """命令行显式给出的参数覆盖配置文件。"""

    updates: dict = {}
    if args.camera is not None:
        updates["camera"] = str(args.camera)
    if args.dll_dir is not None:
        updates["dll_dir"] = Path(args.dll_dir)
    if args.frames is not None:
        updates["num_frames"] = int(args.frames)
    if args.buffer_size is not None:
        updates["buffer_size"] = int(args.buffer_size)
    if args.reference_index is not None:
        updates["reference_index"] = int(args.reference_index)
    if args.no_sweep:
        updates["sweep_delay"] = False
    if args.threshold is not None:
        updates["threshold"] = int(args.threshold)
    if args.frame_rate is not None:
        updates["frame_rate"] = float(args.frame_rate)
    if args.save_dir is not None:
        updates["save_dir"] = Path(args.save_dir)
    if args.out_jsonl is not None:
        updates["out_jsonl"] = Path(args.out_jsonl)
    if args.log_level is not None:
        updates["log_level"] = str(args.log_level).upper()
    if args.log_file is not None:
        updates["log_file"] = Path(args.log_file)
    return replace(cfg, **updates)


def _make_bus(cfg: SweepAppConfig) -> CameraBus:
    if cfg.camera == "synthetic":
        return SyntheticBus()
    binding = load_flycapture_binding(dll_dir=str(cfg.dll_dir) if cfg.dll_dir else None)
    return PyCaptureBus(binding)


def main(argv: Optional[Sequence[str]] = None) -> int:
    # 尽量固定 UTF-8 输出，避免在重定向到文件时出现乱码。
    try:
        sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[attr-defined]
    except Exception:
        pass

    args = build_arg_parser().parse_args(list(argv) if argv is not None else None)

    try:
        cfg = load_sweep_app_config(Path(args.config)) if args.config else SweepAppConfig()
        cfg = _merge_args(cfg, args)
    except (OSError, RuntimeError, ValueError) as exc:
        print(f"配置错误: {exc}")
        return 2

    if cfg.num_frames < 1 or cfg.buffer_size < 1:
        print("--frames 与 --buffer-size 必须 >= 1")
        return 2

    setup_logging(console_level=cfg.log_level, log_file=cfg.log_file)
    logger = get_logger("sweep")

    try:
        bus = _make_bus(cfg)
    except FlyCaptureNotFoundError as exc:
        print(str(exc))
        return 2

    if args.list:
        try:
            handles = bus.discover()
        except FlyCaptureError as exc:
            print(f"枚举相机失败: {exc}")
            return 2
        for h in handles:
            print(f"[{h.index}] serial={h.serial or '-'} guid={h.guid if h.guid is not None else '-'}")
        return 0

    print(
        "扫描配置：\n"
        f"- camera={cfg.camera}\n"
        f"- frames={cfg.num_frames} reference_index={cfg.reference_index} buffer_size={cfg.buffer_size}\n"
        f"- sweep_delay={cfg.sweep_delay} threshold={cfg.threshold} kernel_size={cfg.kernel_size}\n"
        f"- pixel_format={cfg.profile.pixel_format} shutter={cfg.profile.shutter} exposure_ev={cfg.profile.exposure_ev}\n"
        f"- out_jsonl={cfg.out_jsonl or '-'} save_dir={cfg.save_dir or '-'}"
    )

    detector = BandDetector(threshold=cfg.threshold, kernel_size=cfg.kernel_size)
    session = AcquisitionSession(bus, buffer_size=cfg.buffer_size, profile=cfg.profile)

    f_out = None
    try:
        with session:
            try:
                session.connect()
                session.configure()
                if cfg.frame_rate > 0:
                    session.timing.set_frame_rate(cfg.frame_rate)
                session.start()
            except (DeviceError, ConfigurationError, StartError) as exc:
                print(f"相机初始化失败: {exc}")
                return 2
            except BandwidthError as exc:
                print(f"相机初始化失败: {exc}")
                print("带宽不足：请降低分辨率或帧率后重新配置。")
                return 2

            next_index = int(cfg.reference_index)
            if int(args.record_images) > 0:
                save_dir = cfg.save_dir or Path("Results")
                saved = session.record_images(int(args.record_images), save_dir, start_index=next_index)
                print(f"已保存 {len(saved)} 张图片到 {save_dir}")
                next_index += int(args.record_images)

            if cfg.out_jsonl is not None:
                cfg.out_jsonl.parent.mkdir(parents=True, exist_ok=True)
                f_out = cfg.out_jsonl.open("w", encoding="utf-8")

            for rec in iter_band_sweep(
                session,
                detector,
                num_frames=cfg.num_frames,
                reference_index=next_index,
                sweep_delay=cfg.sweep_delay,
            ):
                if f_out is not None:
                    f_out.write(json.dumps(rec, ensure_ascii=False) + "\n")
                logger.debug(
                    "frame=%d delay=%.4f observed=(%s, %s) envelope=(%s, %s)",
                    rec["frame_index"],
                    rec["trigger_delay"],
                    rec["observed_top"],
                    rec["observed_bottom"],
                    rec["top_line"],
                    rec["bottom_line"],
                )
    except KeyboardInterrupt:
        # 用户主动中断时不打印堆栈，避免误解为程序异常。
        print("已中断（KeyboardInterrupt）。")
        return 130
    except (ScanbandError, FrameSaveError) as exc:
        print(f"扫描失败: {exc}")
        return 1
    finally:
        if f_out is not None:
            f_out.close()

    env = detector.envelope
    print(
        f"照亮带包络: top_line={env.top_line if env.top_line is not None else '-'} "
        f"bottom_line={env.bottom_line if env.bottom_line is not None else '-'} "
        f"captured={session.frames_captured} dropped={session.dropped_frames}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
