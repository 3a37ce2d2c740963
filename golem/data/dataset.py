"""数据集定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence

import numpy as np


@dataclass
class 数据记录:
    """单条编码后的记录。

    - 连续特征: 长度等于连续列数的向量
    - 类别特征: 每个类别列一个全局嵌入索引，按类别列顺序排列
    - 目标: 分类时为类别索引，回归时为标准化后的实数
    """

    连续特征: np.ndarray
    类别特征: List[int] = field(default_factory=list)
    目标: float = 0.0
    行号: int = 0


class 数据顺序(str, Enum):
    原始 = "original"
    随机 = "random"


class 数据集:
    """内存中的记录集合，支持确定/随机顺序、定长批次与不重叠的随机划分。"""

    def __init__(
        self,
        记录: List[数据记录],
        批大小: int = 16,
        种子: int = 42,
        索引: Optional[Sequence[int]] = None,
        随机生成器: Optional[np.random.Generator] = None,
    ) -> None:
        if 批大小 <= 0:
            raise ValueError("批大小必须为正数")
        self.记录 = 记录
        self.批大小 = 批大小
        self.随机生成器 = 随机生成器 if 随机生成器 is not None else np.random.default_rng(种子)
        self.数据索引 = np.arange(len(记录)) if 索引 is None else np.asarray(索引, dtype=np.int64)
        self.已标准化 = False
        self.当前顺序 = self.数据索引.copy()
        self.游标 = 0

    def __len__(self) -> int:
        return len(self.数据索引)

    def 重置顺序(self, 顺序: 数据顺序 = 数据顺序.原始, 种子: Optional[int] = None) -> None:
        """重置迭代游标；随机顺序每次都从生成器取新的排列。"""

        if 种子 is not None:
            self.随机生成器 = np.random.default_rng(种子)
        if 顺序 is 数据顺序.随机:
            self.当前顺序 = self.数据索引[self.随机生成器.permutation(len(self.数据索引))]
        else:
            self.当前顺序 = self.数据索引.copy()
        self.游标 = 0

    def 下一批(self, 批大小: Optional[int] = None) -> List[数据记录]:
        """返回从游标开始的至多批大小条记录，到末尾后返回空列表。"""

        大小 = 批大小 or self.批大小
        结束 = min(self.游标 + 大小, len(self.当前顺序))
        批次 = [self.记录[i] for i in self.当前顺序[self.游标:结束]]
        self.游标 = 结束
        return 批次

    def 批次迭代(self, 顺序: 数据顺序 = 数据顺序.原始) -> Iterator[List[数据记录]]:
        self.重置顺序(顺序)
        批次 = self.下一批()
        while 批次:
            yield 批次
            批次 = self.下一批()

    def 记录列表(self) -> Iterator[数据记录]:
        """按原始插入顺序遍历本视图中的记录，不影响游标。"""

        for i in self.数据索引:
            yield self.记录[i]

    def 随机划分(self, *大小: int) -> List["数据集"]:
        """打乱一次后按顺序切成互不重叠的若干子数据集。

        大小之和小于数据集大小时，剩余记录会被丢弃。
        """

        if any(s < 0 for s in 大小):
            raise ValueError("划分大小不能为负数")
        if sum(大小) > len(self):
            raise ValueError(f"划分大小之和{sum(大小)}超过数据集大小{len(self)}")

        打乱索引 = self.数据索引[self.随机生成器.permutation(len(self.数据索引))]
        结果: List[数据集] = []
        起点 = 0
        for s in 大小:
            子集 = 数据集(
                self.记录,
                批大小=self.批大小,
                索引=打乱索引[起点:起点 + s],
                随机生成器=np.random.default_rng(int(self.随机生成器.integers(2**32))),
            )
            子集.已标准化 = self.已标准化
            结果.append(子集)
            起点 += s
        return 结果
