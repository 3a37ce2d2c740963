"""数据读取与编码流程。"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from golem.data.dataset import 数据记录, 数据集
from golem.data.errors import 数据错误, 无可用数据错误, 空表头错误, 记录错误
from golem.data.metadata import 元数据


@dataclass
class 原始行:
    """一条未经编码的数据行。

    - 行号: 文件中的物理行号，表头为第1行
    - 字段: 按原样保留的字符串，字段数可能与表头不一致
    """

    行号: int
    字段: List[str]


def 读取数据(路径: Path) -> Tuple[List[str], List[原始行]]:
    """读取CSV，返回表头与逐行的原始字段。

    字段数与表头不一致的行原样返回，由编码阶段按列数错误丢弃；空行跳过但仍占行号。
    """

    if not 路径.exists():
        raise FileNotFoundError(f"数据文件不存在：{路径}")

    with 路径.open("r", encoding="utf-8-sig", newline="") as 文件:
        读取器 = csv.reader(文件)
        表头 = next(读取器, None)
        if not 表头 or not any(名称.strip() for 名称 in 表头):
            raise 空表头错误(f"数据文件缺少表头：{路径}")

        行列表: List[原始行] = []
        for 字段 in 读取器:
            if not 字段:
                continue
            # 跨行的带引号字段以结束行计
            行列表.append(原始行(行号=读取器.line_num, 字段=字段))
    return 表头, 行列表


def _编码全部(
    元数据对象: 元数据,
    行列表: List[原始行],
    训练模式: bool,
) -> Tuple[List[数据记录], List[数据错误]]:
    记录: List[数据记录] = []
    错误列表: List[数据错误] = []
    for 行 in 行列表:
        try:
            记录.append(元数据对象.编码记录(行.字段, 行.行号, 训练模式))
        except 记录错误 as 错误:
            错误列表.append(数据错误(行号=错误.行号, 信息=错误.信息))
    return 记录, 错误列表


def 拟合预处理(
    路径: Path,
    目标列: str,
    类别列: Optional[Iterable[str]] = None,
    批大小: int = 16,
    种子: int = 42,
) -> Tuple[元数据, 数据集, List[数据错误]]:
    """在训练数据上构建元数据、计算统计量并标准化，完成后冻结元数据。"""

    表头, 行列表 = 读取数据(Path(路径))
    元数据对象 = 元数据.构建(表头, 目标列, 类别列)

    记录, 错误列表 = _编码全部(元数据对象, 行列表, 训练模式=True)
    if not 记录:
        raise 无可用数据错误(f"训练数据中没有可用记录：{路径}")

    数据 = 数据集(记录, 批大小=批大小, 种子=种子)
    元数据对象.完成统计(数据)
    元数据对象.标准化(数据)
    元数据对象.冻结()
    return 元数据对象, 数据, 错误列表


def 应用预处理(
    路径: Path,
    元数据对象: 元数据,
    批大小: int = 16,
    种子: int = 42,
) -> Tuple[数据集, List[数据错误]]:
    """使用已冻结的训练元数据编码评估数据。"""

    表头, 行列表 = 读取数据(Path(路径))
    元数据对象.校验表头(表头)

    记录, 错误列表 = _编码全部(元数据对象, 行列表, 训练模式=False)
    if not 记录:
        raise 无可用数据错误(f"评估数据中没有可用记录：{路径}")

    数据 = 数据集(记录, 批大小=批大小, 种子=种子)
    元数据对象.标准化(数据)
    return 数据, 错误列表


def 加载数据(
    路径: Path,
    目标列: Optional[str] = None,
    类别列: Optional[Iterable[str]] = None,
    元数据对象: Optional[元数据] = None,
    批大小: int = 16,
    种子: int = 42,
) -> Tuple[元数据, 数据集, List[数据错误]]:
    """未提供元数据时按训练数据处理，否则按评估数据处理。"""

    if 元数据对象 is None:
        if not 目标列:
            raise ValueError("训练数据必须指定目标列")
        return 拟合预处理(Path(路径), 目标列, 类别列, 批大小=批大小, 种子=种子)

    数据, 错误列表 = 应用预处理(Path(路径), 元数据对象, 批大小=批大小, 种子=种子)
    return 元数据对象, 数据, 错误列表
