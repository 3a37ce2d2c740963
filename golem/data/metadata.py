"""列元数据与记录编码。

元数据只在训练数据上构建一次，之后冻结；测试与推理阶段复用同一份元数据，
任何未见过的类别值或目标类别都会被当作单条记录错误处理，而不会被悄悄加入映射。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from golem.data.dataset import 数据记录, 数据集
from golem.data.errors import (
    元数据不匹配错误,
    元数据已冻结错误,
    列不存在错误,
    列数不匹配错误,
    无可用数据错误,
    未知目标错误,
    未知类别错误,
    特征解析错误,
)


class 列类型(str, Enum):
    """列的类型，同时决定目标损失与评估器的选择。"""

    连续 = "continuous"
    类别 = "categorical"


@dataclass
class 列:
    """单列定义，均值与标准差只对连续列有意义。"""

    名称: str
    类型: 列类型
    均值: float = 0.0
    标准差: float = 1.0


class 名称映射:
    """名称与索引之间的双向映射。"""

    def __init__(self, 名称列表: Optional[Iterable[str]] = None) -> None:
        self.名称到索引: Dict[str, int] = {}
        self.索引到名称: List[str] = []
        for 名称 in 名称列表 or []:
            self.查找或添加(名称)

    def 查找(self, 名称: str) -> Optional[int]:
        return self.名称到索引.get(名称)

    def 查找或添加(self, 名称: str) -> int:
        索引 = self.名称到索引.get(名称)
        if 索引 is None:
            索引 = len(self.索引到名称)
            self.名称到索引[名称] = 索引
            self.索引到名称.append(名称)
        return 索引

    def 名称(self, 索引: int) -> str:
        return self.索引到名称[索引]

    def __len__(self) -> int:
        return len(self.索引到名称)

    def __eq__(self, 其他: object) -> bool:
        if not isinstance(其他, 名称映射):
            return NotImplemented
        return self.索引到名称 == 其他.索引到名称


def _解析数值(原始值: str) -> Optional[float]:
    try:
        值 = float(原始值.strip())
    except (AttributeError, ValueError):
        return None
    if not math.isfinite(值):
        return None
    return 值


class 元数据:
    """列注册表、特征索引、类别嵌入索引与目标编码。"""

    def __init__(self) -> None:
        self.列列表: List[列] = []
        # 列位置 -> 稠密索引
        self.连续索引: Dict[int, int] = {}
        self.类别索引: Dict[int, int] = {}
        # (列位置, 原始值) -> 全局嵌入索引
        self.类别值索引: Dict[Tuple[int, str], int] = {}
        self.目标列: int = -1
        self.目标名称映射: Optional[名称映射] = None
        self.已冻结 = False

        self._统计已完成 = False
        self._连续和: np.ndarray = np.zeros(0, dtype=np.float64)
        self._目标和 = 0.0
        self._计数 = 0

    @classmethod
    def 构建(
        cls,
        表头: Sequence[str],
        目标列名: str,
        类别列名: Optional[Iterable[str]] = None,
    ) -> "元数据":
        """定位目标列，并按列顺序为连续列与类别列分配稠密索引。"""

        类别集合 = set(类别列名 or [])
        表头 = [str(名称) for 名称 in 表头]
        if 目标列名 not in 表头:
            raise 列不存在错误(目标列名)

        实例 = cls()
        实例.目标列 = 表头.index(目标列名)
        for 位置, 名称 in enumerate(表头):
            类型 = 列类型.类别 if 名称 in 类别集合 else 列类型.连续
            实例.列列表.append(列(名称=名称, 类型=类型))
            if 位置 == 实例.目标列:
                continue
            if 类型 is 列类型.类别:
                实例.类别索引[位置] = len(实例.类别索引)
            else:
                实例.连续索引[位置] = len(实例.连续索引)

        if 实例.目标类型 is 列类型.类别:
            实例.目标名称映射 = 名称映射()
        实例._连续和 = np.zeros(len(实例.连续索引), dtype=np.float64)
        return 实例

    @property
    def 目标类型(self) -> 列类型:
        return self.列列表[self.目标列].类型

    @property
    def 目标列名(self) -> str:
        return self.列列表[self.目标列].名称

    @property
    def 连续特征数(self) -> int:
        return len(self.连续索引)

    @property
    def 类别特征数(self) -> int:
        return len(self.类别索引)

    @property
    def 类别嵌入数(self) -> int:
        return len(self.类别值索引)

    @property
    def 目标类别数(self) -> int:
        return len(self.目标名称映射) if self.目标名称映射 is not None else 0

    @property
    def 输出维度(self) -> int:
        """分类目标输出每个类别的logit，回归目标输出一个标量。"""

        if self.目标类型 is 列类型.类别:
            return self.目标类别数
        return 1

    def 特征列数(self, 嵌入维度: int) -> int:
        """编码后输入向量的宽度。"""

        return self.连续特征数 + self.类别特征数 * 嵌入维度

    def 特征列名(self) -> List[str]:
        """按输入向量的拼接顺序返回特征列名：连续列在前，类别列在后。"""

        连续 = sorted(self.连续索引.items(), key=lambda 项: 项[1])
        类别 = sorted(self.类别索引.items(), key=lambda 项: 项[1])
        return [self.列列表[位置].名称 for 位置, _ in 连续 + 类别]

    def 目标名称(self, 索引: int) -> str:
        if self.目标名称映射 is None:
            raise ValueError("连续目标没有类别名称")
        return self.目标名称映射.名称(索引)

    def 还原目标(self, 值: float) -> float:
        """把标准化后的连续目标还原到原始尺度。"""

        目标 = self.列列表[self.目标列]
        return 值 * 目标.标准差 + 目标.均值

    def 冻结(self) -> None:
        self.已冻结 = True

    def 校验表头(self, 表头: Sequence[str]) -> None:
        """评估数据必须与训练时的列定义完全一致。"""

        期望 = [列项.名称 for 列项 in self.列列表]
        实际 = [str(名称) for 名称 in 表头]
        if 实际 != 期望:
            raise 元数据不匹配错误(f"数据表头{实际}与模型元数据{期望}不一致")

    def 编码记录(self, 原始行: Sequence[str], 行号: int, 训练模式: bool) -> 数据记录:
        """把一行原始字符串编码为数据记录。

        先完成所有不修改状态的解析，再写入类别映射与累计和，
        保证出错的记录不会在元数据中留下痕迹。
        """

        if 训练模式 and self.已冻结:
            raise 元数据已冻结错误("元数据已冻结，不能再以训练模式编码记录")
        if len(原始行) != len(self.列列表):
            raise 列数不匹配错误(行号, len(self.列列表), len(原始行))

        连续特征 = np.zeros(self.连续特征数, dtype=np.float64)
        for 位置, 索引 in self.连续索引.items():
            值 = _解析数值(原始行[位置])
            if 值 is None:
                raise 特征解析错误(行号, self.列列表[位置].名称, 原始行[位置])
            连续特征[索引] = 值

        原始目标 = 原始行[self.目标列]
        if self.目标类型 is 列类型.连续:
            目标值 = _解析数值(原始目标)
            if 目标值 is None:
                raise 特征解析错误(行号, self.目标列名, 原始目标)
        else:
            目标值 = None

        类别特征 = [0] * self.类别特征数
        新类别: List[Tuple[int, str]] = []
        for 位置, 索引 in self.类别索引.items():
            键 = (位置, 原始行[位置])
            全局索引 = self.类别值索引.get(键)
            if 全局索引 is None:
                if not 训练模式:
                    raise 未知类别错误(行号, self.列列表[位置].名称, 原始行[位置])
                if 键 not in 新类别:
                    新类别.append(键)
                全局索引 = len(self.类别值索引) + 新类别.index(键)
            类别特征[索引] = 全局索引

        if self.目标名称映射 is not None:
            类别号 = self.目标名称映射.查找(原始目标)
            if 类别号 is None:
                if not 训练模式:
                    raise 未知目标错误(行号, 原始目标)
                类别号 = self.目标名称映射.查找或添加(原始目标)
            目标值 = float(类别号)

        for 键 in 新类别:
            self.类别值索引[键] = len(self.类别值索引)

        if 训练模式:
            self._连续和 += 连续特征
            if self.目标类型 is 列类型.连续:
                self._目标和 += 目标值
            self._计数 += 1

        return 数据记录(连续特征=连续特征, 类别特征=类别特征, 目标=目标值, 行号=行号)

    def 完成统计(self, 数据集对象: 数据集) -> None:
        """两遍计算：均值来自编码时的累计和，标准差再遍历一次数据集得到。"""

        if self._计数 == 0:
            raise 无可用数据错误("没有可用于计算统计量的训练记录")

        均值 = self._连续和 / self._计数
        平方和 = np.zeros_like(均值)
        目标均值 = self._目标和 / self._计数
        目标平方和 = 0.0
        for 记录 in 数据集对象.记录列表():
            平方和 += (记录.连续特征 - 均值) ** 2
            目标平方和 += (记录.目标 - 目标均值) ** 2
        标准差 = np.sqrt(平方和 / self._计数)

        for 位置, 索引 in self.连续索引.items():
            self.列列表[位置].均值 = float(均值[索引])
            self.列列表[位置].标准差 = float(标准差[索引])

        if self.目标类型 is 列类型.连续:
            目标 = self.列列表[self.目标列]
            目标.均值 = float(目标均值)
            目标.标准差 = float(math.sqrt(目标平方和 / self._计数))

        self._统计已完成 = True

    def 标准化(self, 数据集对象: 数据集) -> None:
        """用训练统计量原地标准化连续特征与连续目标，标准差为0的列只做中心化。"""

        if not self._统计已完成:
            raise RuntimeError("请先调用完成统计，再进行标准化")
        if 数据集对象.已标准化:
            raise RuntimeError("数据集已经标准化过")

        均值 = np.zeros(self.连续特征数, dtype=np.float64)
        尺度 = np.ones(self.连续特征数, dtype=np.float64)
        for 位置, 索引 in self.连续索引.items():
            均值[索引] = self.列列表[位置].均值
            尺度[索引] = self.列列表[位置].标准差 or 1.0

        目标 = self.列列表[self.目标列]
        连续目标 = self.目标类型 is 列类型.连续
        目标尺度 = 目标.标准差 or 1.0

        for 记录 in 数据集对象.记录列表():
            记录.连续特征 = (记录.连续特征 - 均值) / 尺度
            if 连续目标:
                记录.目标 = (记录.目标 - 目标.均值) / 目标尺度
        数据集对象.已标准化 = True

    def 转字典(self) -> Dict[str, Any]:
        """转换为只含基础类型的字典，用于模型持久化。"""

        return {
            "列": [
                {"名称": 列项.名称, "类型": 列项.类型.value, "均值": 列项.均值, "标准差": 列项.标准差}
                for 列项 in self.列列表
            ],
            "连续索引": [[位置, 索引] for 位置, 索引 in self.连续索引.items()],
            "类别索引": [[位置, 索引] for 位置, 索引 in self.类别索引.items()],
            "类别值索引": [[位置, 值, 索引] for (位置, 值), 索引 in self.类别值索引.items()],
            "目标列": self.目标列,
            "目标类别": list(self.目标名称映射.索引到名称) if self.目标名称映射 is not None else None,
        }

    @classmethod
    def 从字典(cls, 内容: Dict[str, Any]) -> "元数据":
        """从持久化字典恢复，恢复后的元数据总是冻结的。"""

        实例 = cls()
        实例.列列表 = [
            列(名称=项["名称"], 类型=列类型(项["类型"]), 均值=float(项["均值"]), 标准差=float(项["标准差"]))
            for 项 in 内容["列"]
        ]
        实例.连续索引 = {int(位置): int(索引) for 位置, 索引 in 内容["连续索引"]}
        实例.类别索引 = {int(位置): int(索引) for 位置, 索引 in 内容["类别索引"]}
        实例.类别值索引 = {(int(位置), str(值)): int(索引) for 位置, 值, 索引 in 内容["类别值索引"]}
        实例.目标列 = int(内容["目标列"])
        if 内容.get("目标类别") is not None:
            实例.目标名称映射 = 名称映射(内容["目标类别"])
        实例._统计已完成 = True
        实例.冻结()
        return 实例

    def __eq__(self, 其他: object) -> bool:
        if not isinstance(其他, 元数据):
            return NotImplemented
        return self.转字典() == 其他.转字典()
