"""pytest 运行期配置。

该仓库采用 src-layout（包代码在 ./src 下）。
为了让开发者直接在仓库根目录执行 `python -m pytest` 时也能导入
`flycap` / `scanband`，这里在测试收集阶段把 ./src 注入到 sys.path。

注意：这只是测试侧的便捷配置，不影响正式打包安装后的导入行为。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest


def _ensure_src_on_syspath() -> None:
    """将仓库的 ./src 目录加入 sys.path（若尚未存在）。"""

    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"

    # 使用绝对路径，避免因 cwd 不同导致的导入差异。
    src_str = str(src_dir)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_src_on_syspath()


@pytest.fixture(autouse=True)
def _reset_scanband_logger():
    """CLI 测试会给 `scanband` logger 挂 handler；每个用例结束后拆掉，避免指向已关闭的捕获流。"""

    yield
    logger = logging.getLogger("scanband")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
