# -*- coding: utf-8 -*-

"""FlyCapture2 Python 绑定（PyCapture2）加载。

该模块的职责仅限于：
1) 延迟 import `PyCapture2`（import 时会立即加载 FlyCapture2 动态库）；
2) 在 Windows 上把 FlyCapture2 的 bin 目录加入 DLL 搜索路径；
3) 把绑定模块收拢成一个 `FlyCaptureBinding`，便于其它模块注入依赖。

设计要点：
- 在没有安装 FlyCapture2 的环境下也能 import 本包，并输出清晰错误信息；
- PyCapture2 由厂商安装包提供（不在 PyPI 上），因此不写进依赖列表。
"""

from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


class FlyCaptureNotFoundError(RuntimeError):
    pass


# Windows 下 `os.add_dll_directory()` 返回的句柄需要保活；
# 否则对象被 GC 回收后，目录会自动从 DLL 搜索路径中移除。
_DLL_DIR_HANDLES: list[Any] = []


def _ensure_dll_dir(dll_dir: Path) -> None:
    """把 DLL 目录加入搜索路径。"""

    if not dll_dir.exists():
        return

    try:
        if hasattr(os, "add_dll_directory"):
            handle = os.add_dll_directory(str(dll_dir))
            _DLL_DIR_HANDLES.append(handle)
    except OSError:
        # 某些环境不允许添加目录；兜底走 PATH。
        pass

    os.environ["PATH"] = str(dll_dir) + os.pathsep + os.environ.get("PATH", "")


@dataclass(frozen=True, slots=True)
class FlyCaptureBinding:
    """已加载的 PyCapture2 模块。"""

    module: Any

    @property
    def version(self) -> str:
        try:
            info = self.module.getLibraryVersion()
        except Exception:
            return "unknown"
        return ".".join(str(x) for x in info)


def load_flycapture_binding(*, dll_dir: Optional[str] = None) -> FlyCaptureBinding:
    """加载 PyCapture2。

    Args:
        dll_dir: FlyCapture2 动态库目录（可选）。也可用环境变量 FLYCAP_DLL_DIR。

    Returns:
        FlyCaptureBinding。

    Raises:
        FlyCaptureNotFoundError: PyCapture2 未安装或其依赖的动态库找不到。
    """

    if dll_dir:
        _ensure_dll_dir(Path(dll_dir))

    env_dir = os.environ.get("FLYCAP_DLL_DIR")
    if env_dir:
        _ensure_dll_dir(Path(env_dir))

    try:
        module = importlib.import_module("PyCapture2")
    except (ImportError, OSError) as exc:
        raise FlyCaptureNotFoundError(
            "FlyCapture2 python binding (PyCapture2) not found.\n"
            "找不到 FlyCapture2 的 Python 绑定（PyCapture2）或其依赖的动态库。\n"
            "\n"
            "解决方法：\n"
            "1) 安装 FlyCapture2 SDK，并安装与当前 Python 版本匹配的 PyCapture2；\n"
            "2) 使用参数 dll_dir / 环境变量 FLYCAP_DLL_DIR 指向 FlyCapture2 的 bin 目录；\n"
            "3) 没有相机时可用 --camera synthetic 跑通整条链路。"
        ) from exc

    return FlyCaptureBinding(module=module)
