"""数据加载与编码相关的异常定义。"""

from __future__ import annotations

from dataclasses import dataclass


class 列不存在错误(ValueError):
    """表头中找不到指定的目标列。"""

    def __init__(self, 列名: str) -> None:
        super().__init__(f"表头中不存在目标列：{列名}")
        self.列名 = 列名


class 空表头错误(ValueError):
    """数据文件没有表头。"""


class 无可用数据错误(ValueError):
    """过滤错误记录后没有剩余数据。"""


class 元数据不匹配错误(ValueError):
    """元数据与数据文件的列定义不一致。"""


class 元数据已冻结错误(RuntimeError):
    """在冻结的元数据上尝试训练编码。"""


class 记录错误(ValueError):
    """单条记录级别的错误，只丢弃该记录。"""

    def __init__(self, 行号: int, 信息: str) -> None:
        super().__init__(f"第{行号}行：{信息}")
        self.行号 = 行号
        self.信息 = 信息


class 特征解析错误(记录错误):
    def __init__(self, 行号: int, 列名: str, 原始值: str) -> None:
        super().__init__(行号, f"无法将列{列名}的值{原始值!r}解析为数值")
        self.列名 = 列名


class 未知类别错误(记录错误):
    def __init__(self, 行号: int, 列名: str, 值: str) -> None:
        super().__init__(行号, f"类别列{列名}出现训练时未见过的值{值!r}")
        self.列名 = 列名
        self.值 = 值


class 未知目标错误(记录错误):
    def __init__(self, 行号: int, 值: str) -> None:
        super().__init__(行号, f"出现训练时未见过的目标类别{值!r}")
        self.值 = 值


class 列数不匹配错误(记录错误):
    def __init__(self, 行号: int, 期望列数: int, 实际列数: int) -> None:
        super().__init__(行号, f"列数为{实际列数}，期望{期望列数}")


@dataclass
class 数据错误:
    """加载过程中被跳过的记录。"""

    行号: int
    信息: str
