"""
日志配置
为仿真系统提供统一的日志记录器

用法:
- 各模块通过 get_logger(__name__) 获取子记录器
- 入口程序调用 setup_logger() 配置输出级别
"""

import logging
import sys
from typing import Optional, TextIO, Union

ROOT_LOGGER_NAME = "constructsim"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取记录器

    Args:
        name: 模块名（通常为 __name__），为空时返回根记录器

    Returns:
        constructsim 命名空间下的记录器
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def setup_logger(
    level: Union[int, str] = logging.INFO,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    配置根记录器（可重复调用）

    Args:
        level: 日志级别（int 或 "INFO" 等名称）
        stream: 输出流，默认 sys.stderr（测试时可传入 StringIO）

    Returns:
        已配置的根记录器
    """
    logger = get_logger()
    logger.handlers.clear()

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def reset_logger() -> None:
    """重置记录器（测试用）"""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
