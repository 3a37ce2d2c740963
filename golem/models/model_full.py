"""统一模型封装：元数据 + 类别嵌入表 + TabNet基座，以及模型持久化。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import torch
from torch import nn

from golem.data.metadata import 元数据, 列类型
from golem.models.input_dropout import 输入丢弃
from golem.models.tabnet_base import TabNet基座, TabNet输出, TabNet配置


def 回填配置(配置: TabNet配置, 元数据对象: 元数据) -> TabNet配置:
    """把只有解析完数据后才知道的维度写回配置。"""

    配置.列数 = 元数据对象.特征列数(配置.类别嵌入维度)
    配置.类别嵌入数 = 元数据对象.类别嵌入数
    配置.输出维度 = 元数据对象.输出维度
    return 配置


class Golem模型(nn.Module):
    """输入向量构建 + TabNet前向。"""

    def __init__(self, 配置: TabNet配置, 元数据对象: 元数据, 输入丢弃概率: float = 0.0) -> None:
        super().__init__()
        if 配置.列数 != 元数据对象.特征列数(配置.类别嵌入维度):
            raise ValueError("配置的列数与元数据不一致，请先调用回填配置")
        self.配置 = 配置
        self.元数据 = 元数据对象
        self.输入丢弃 = 输入丢弃(输入丢弃概率)
        self.类别嵌入: Optional[nn.Embedding] = None
        if 元数据对象.类别特征数 > 0:
            self.类别嵌入 = nn.Embedding(max(1, 配置.类别嵌入数), 配置.类别嵌入维度)
        self.tabnet = TabNet基座(配置)

    @property
    def 分类目标(self) -> bool:
        return self.元数据.目标类型 is 列类型.类别

    def 构建输入(self, 连续特征: torch.Tensor, 类别特征: torch.Tensor) -> torch.Tensor:
        """连续特征向量后接每个类别列的一行嵌入；没有连续特征时直接省略该段。"""

        片段 = []
        if 连续特征.size(1) > 0:
            片段.append(连续特征)
        if self.类别嵌入 is not None and 类别特征.size(1) > 0:
            # (B, 类别列数, 嵌入维度) -> (B, 类别列数*嵌入维度)
            嵌入 = self.类别嵌入(类别特征)
            片段.append(嵌入.reshape(嵌入.size(0), -1))
        return torch.cat(片段, dim=1)

    def forward(self, 连续特征: torch.Tensor, 类别特征: torch.Tensor) -> TabNet输出:
        输入 = self.输入丢弃(self.构建输入(连续特征, 类别特征))
        return self.tabnet(输入)


def 保存模型(模型: Golem模型, 路径: str | Path) -> Path:
    """把元数据、配置与全部权重写入单个文件。"""

    目标路径 = Path(路径)
    目标路径.parent.mkdir(parents=True, exist_ok=True)
    内容 = {
        "元数据": 模型.元数据.转字典(),
        "配置": 模型.配置.转字典(),
        "输入丢弃概率": 模型.输入丢弃.概率,
        "模型参数": 模型.state_dict(),
    }
    try:
        torch.save(内容, 目标路径)
    except OSError as 错误:
        raise OSError(f"保存模型失败：{目标路径}") from 错误
    return 目标路径


def 加载模型(路径: str | Path, 设备: Optional[torch.device] = None) -> Golem模型:
    """加载模型，返回推理模式下、元数据已冻结的模型。"""

    模型路径 = Path(路径)
    if not 模型路径.exists():
        raise FileNotFoundError(f"模型文件不存在：{模型路径}")
    内容 = torch.load(模型路径, map_location=设备 or "cpu", weights_only=True)

    元数据对象 = 元数据.从字典(内容["元数据"])
    配置 = TabNet配置(**内容["配置"])
    模型 = Golem模型(配置, 元数据对象, 输入丢弃概率=内容.get("输入丢弃概率", 0.0))
    模型.load_state_dict(内容["模型参数"])
    if 设备 is not None:
        模型.to(设备)
    模型.eval()
    return 模型
