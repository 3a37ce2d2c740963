"""日志工具。"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

日志级别 = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

日志格式 = ("pretty", "json")


class JSON格式器(logging.Formatter):
    """每条日志输出为一行JSON对象。"""

    def format(self, record: logging.LogRecord) -> str:
        内容 = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            内容["error"] = self.formatException(record.exc_info)
        return json.dumps(内容, ensure_ascii=False)


def 解析日志级别(名称: str | int) -> int:
    if isinstance(名称, int):
        return 名称
    级别 = 日志级别.get(名称.lower())
    if 级别 is None:
        raise ValueError(f"不支持的日志级别：{名称}")
    return 级别


def 创建格式器(格式名: str = "pretty") -> logging.Formatter:
    if 格式名 == "pretty":
        return logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    if 格式名 == "json":
        return JSON格式器()
    raise ValueError(f"不支持的日志格式：{格式名}")


def 创建日志器(
    名称: str,
    结果目录: Optional[str | Path] = None,
    级别: str | int = logging.INFO,
    文件名: str = "运行日志.log",
    格式名: str = "pretty",
) -> logging.Logger:
    """创建输出到控制台的日志器，指定结果目录时同时写文件。

    重复调用时只更新已有处理器的级别与格式，不会重复添加处理器。
    """

    级别 = 解析日志级别(级别)
    格式 = 创建格式器(格式名)
    日志器 = logging.getLogger(名称)
    日志器.setLevel(级别)
    日志器.propagate = False

    for 处理器 in 日志器.handlers:
        处理器.setLevel(级别)
        处理器.setFormatter(格式)

    if not 日志器.handlers:
        控制台处理器 = logging.StreamHandler()
        控制台处理器.setLevel(级别)
        控制台处理器.setFormatter(格式)
        日志器.addHandler(控制台处理器)

    if 结果目录 is not None:
        结果路径 = Path(结果目录)
        结果路径.mkdir(parents=True, exist_ok=True)
        文件路径 = os.path.abspath(结果路径 / 文件名)
        已有文件 = {
            处理器.baseFilename
            for 处理器 in 日志器.handlers
            if isinstance(处理器, logging.FileHandler)
        }
        if 文件路径 not in 已有文件:
            文件处理器 = logging.FileHandler(文件路径, encoding="utf-8")
            文件处理器.setLevel(级别)
            文件处理器.setFormatter(格式)
            日志器.addHandler(文件处理器)

    日志器.debug("日志器初始化完成")

    return 日志器
