"""scanband 日志工具。

约定：
- 库内模块用 `get_logger("session")` 之类取 `scanband.<模块>` 子 logger，不自己挂 handler；
- 输出位置由入口决定：CLI 调用一次 `setup_logging()`，在包级 logger `scanband` 上挂控制台/文件 handler，
  子 logger 的记录通过传播汇总到这里；
- 重复调用 `setup_logging()` 会替换它上次挂的 handler，不会叠加输出。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union


LOGGER_NAME = "scanband"

_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"

# 标记 setup_logging() 挂上的 handler，便于重复配置时只替换这些。
_OWNED_ATTR = "_scanband_handler"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """返回包级 logger（name 为空）或其子 logger `scanband.<name>`。"""

    if not name:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(
    *,
    console_level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    file_level: Union[str, int] = "DEBUG",
) -> logging.Logger:
    """给包级 logger 配置控制台输出与（可选的）文件输出。

    Args:
        console_level: 控制台级别，名称（"DEBUG"/"info" ...）或 logging 数值。
        log_file: 日志文件；为 None 时只输出到控制台。父目录不存在时自动创建。
        file_level: 文件级别。

    Returns:
        包级 logger `scanband`。
    """

    logger = logging.getLogger(LOGGER_NAME)
    for h in [h for h in logger.handlers if getattr(h, _OWNED_ATTR, False)]:
        logger.removeHandler(h)
        h.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    fmt = logging.Formatter(fmt=_FORMAT, datefmt="%H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    handlers[0].setLevel(_parse_level(console_level))

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(_parse_level(file_level))
        handlers.append(fh)

    for h in handlers:
        h.setFormatter(fmt)
        setattr(h, _OWNED_ATTR, True)
        logger.addHandler(h)
    return logger


def _parse_level(level: Union[str, int]) -> int:
    """级别名称或数值 -> logging 数值；无法识别时按 INFO。"""

    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).strip().upper(), None)
    return value if isinstance(value, int) else logging.INFO
