"""TabNet基座实现。"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import torch
from torch import nn

from golem.models.batch_norm import 幽灵批归一化
from golem.models.decoder import 重构解码器
from golem.models.feature_transformer import 特征变换块
from golem.models.sparsemax import sparsemax

# 避免log(0)
熵下限 = 1e-5


@dataclass
class TabNet配置:
    """TabNet配置。

    列数、类别嵌入数与输出维度只有在解析完训练数据后才知道，需要回填。
    """

    决策步数: int = 3
    列数: int = 0
    中间特征维度: int = 8
    输出维度: int = 1
    类别嵌入维度: int = 1
    类别嵌入数: int = 0
    松弛因子: float = 1.5
    批动量: float = 0.9
    虚拟批大小: int = 128
    稀疏损失权重: float = 1e-4
    重构损失权重: float = 0.0
    目标损失权重: float = 1.0

    def 校验(self) -> None:
        if self.决策步数 < 2:
            raise ValueError("决策步数至少为2")
        if self.松弛因子 < 1.0:
            raise ValueError("松弛因子不能小于1")
        for 名称 in ("列数", "中间特征维度", "输出维度", "类别嵌入维度", "虚拟批大小"):
            if getattr(self, 名称) <= 0:
                raise ValueError(f"{名称}必须为正数")
        if self.类别嵌入数 < 0:
            raise ValueError("类别嵌入数不能为负数")

    def 转字典(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TabNet输出:
    """一次前向的全部结果。

    - 输出: (B, 输出维度)
    - 解码聚合: (B, 列数)
    - 注意力熵: (B,)
    - 归一化输入: (B, 列数)，重构损失的目标
    - 注意力掩码: (B, 决策步数-1, 列数)，仅推理模式下填充
    """

    输出: torch.Tensor
    解码聚合: torch.Tensor
    注意力熵: torch.Tensor
    归一化输入: torch.Tensor
    注意力掩码: Optional[torch.Tensor] = None


def 掩码熵(mask: torch.Tensor) -> torch.Tensor:
    """每行mask的熵，(B, 列数) -> (B,)；one-hot行的熵恰好为0。"""

    return -(mask * torch.log(mask.clamp(min=熵下限))).sum(dim=1)


class 注意力变换器(nn.Module):
    """注意力变换器：线性层+归一化，输出未经先验与sparsemax处理的mask logits。"""

    def __init__(self, 特征维度: int, 列数: int, 批动量: float, 虚拟批大小: int) -> None:
        super().__init__()
        self.线性层 = nn.Linear(特征维度, 列数, bias=False)
        nn.init.xavier_uniform_(self.线性层.weight)
        self.归一化 = 幽灵批归一化(列数, 批动量, 虚拟批大小)

    def forward(self, 输入: torch.Tensor) -> torch.Tensor:
        return self.归一化(self.线性层(输入))


class TabNet基座(nn.Module):
    """TabNet: Attentive Interpretable Tabular Learning (arXiv:1908.07442)。"""

    def __init__(self, 配置: TabNet配置) -> None:
        super().__init__()
        配置.校验()
        self.配置 = 配置
        步数 = 配置.决策步数
        特征维度 = 配置.中间特征维度

        self.特征归一化 = 幽灵批归一化(配置.列数, 配置.批动量, 配置.虚拟批大小)
        self.共享变换器 = 特征变换块(
            配置.列数,
            特征维度,
            步数=步数,
            批动量=配置.批动量,
            虚拟批大小=配置.虚拟批大小,
            跳过输入残差=True,
        )
        self.步变换器 = nn.ModuleList(
            [
                特征变换块(特征维度, 特征维度, 批动量=配置.批动量, 虚拟批大小=配置.虚拟批大小)
                for _ in range(步数)
            ]
        )
        # 最后一步不再计算mask，第0步不参与输出与重构
        self.注意力变换器 = nn.ModuleList(
            [注意力变换器(特征维度, 配置.列数, 配置.批动量, 配置.虚拟批大小) for _ in range(步数 - 1)]
        )
        self.解码器 = nn.ModuleList([重构解码器(特征维度, 配置.列数) for _ in range(步数 - 1)])
        self.输出层 = nn.Linear(特征维度, 配置.输出维度, bias=False)
        nn.init.xavier_uniform_(self.输出层.weight)

    def forward(self, 原始输入: torch.Tensor) -> TabNet输出:
        # 原始输入: (B, 列数)
        批大小 = 原始输入.size(0)
        步数 = self.配置.决策步数

        输入 = self.特征归一化(原始输入)
        互补掩码 = torch.ones_like(输入)
        掩码特征 = 输入.clone()

        输出聚合 = 输入.new_zeros(批大小, self.配置.中间特征维度)
        解码聚合 = torch.zeros_like(输入)
        注意力熵 = 输入.new_zeros(批大小)
        掩码列表 = []

        for i in range(步数):
            变换 = self.步变换器[i](self.共享变换器(掩码特征, 步=i))

            if i > 0:
                输出聚合 = 输出聚合 + torch.relu(变换)
                解码聚合 = 解码聚合 + self.解码器[i - 1](变换)

            if i == 步数 - 1:
                break

            mask = sparsemax(self.注意力变换器[i](变换) * 互补掩码, dim=1)
            if not self.training:
                掩码列表.append(mask.detach())

            互补掩码 = 互补掩码 * (self.配置.松弛因子 - mask)
            掩码特征 = 输入 * mask
            注意力熵 = 注意力熵 + 掩码熵(mask) / (步数 - 1)

        return TabNet输出(
            输出=self.输出层(输出聚合),
            解码聚合=解码聚合,
            注意力熵=注意力熵,
            归一化输入=输入,
            注意力掩码=torch.stack(掩码列表, dim=1) if 掩码列表 else None,
        )
