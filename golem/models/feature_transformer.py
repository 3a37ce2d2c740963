"""特征变换块：两层全连接+归一化+GLU，带缩放残差。"""

from __future__ import annotations

import math

import torch
from torch import nn

from golem.models.batch_norm import 幽灵批归一化

根号一半 = math.sqrt(0.5)


class GLU层(nn.Module):
    """全连接投影到2倍特征维度，归一化后做门控线性单元。

    每个决策步拥有独立的归一化子层，全连接权重在各步之间共享。
    """

    def __init__(
        self,
        输入维度: int,
        特征维度: int,
        步数: int = 1,
        批动量: float = 0.9,
        虚拟批大小: int = 128,
    ) -> None:
        super().__init__()
        self.特征维度 = 特征维度
        self.全连接 = nn.Linear(输入维度, 2 * 特征维度, bias=False)
        nn.init.xavier_uniform_(self.全连接.weight)
        self.归一化层 = nn.ModuleList(
            [幽灵批归一化(2 * 特征维度, 批动量, 虚拟批大小) for _ in range(步数)]
        )

    def forward(self, 输入: torch.Tensor, 步: int = 0) -> torch.Tensor:
        投影 = self.归一化层[步](self.全连接(输入))
        值, 门 = torch.split(投影, self.特征维度, dim=1)
        return 值 * torch.sigmoid(门)


class 特征变换块(nn.Module):
    """两层GLU组成的特征变换块。

    共享块以步数=N构造，权重每步复用而归一化各步独立；
    每步专属块以步数=1构造，各自拥有独立权重。
    输入维度与特征维度不同时必须跳过第一层的输入残差。
    """

    def __init__(
        self,
        输入维度: int,
        特征维度: int,
        步数: int = 1,
        批动量: float = 0.9,
        虚拟批大小: int = 128,
        跳过输入残差: bool = False,
    ) -> None:
        super().__init__()
        if not 跳过输入残差 and 输入维度 != 特征维度:
            raise ValueError("输入维度与特征维度不同时必须跳过输入残差")
        self.跳过输入残差 = 跳过输入残差
        self.层1 = GLU层(输入维度, 特征维度, 步数, 批动量, 虚拟批大小)
        self.层2 = GLU层(特征维度, 特征维度, 步数, 批动量, 虚拟批大小)

    def forward(self, 输入: torch.Tensor, 步: int = 0) -> torch.Tensor:
        输出1 = self.层1(输入, 步)
        if not self.跳过输入残差:
            输出1 = (输出1 + 输入) * 根号一半
        输出2 = self.层2(输出1, 步)
        return (输出2 + 输出1) * 根号一半
