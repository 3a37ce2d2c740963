"""逐步重构解码器。"""

from __future__ import annotations

import torch
from torch import nn


class 重构解码器(nn.Module):
    """把某一步的变换特征线性投影回编码后的列空间（无偏置）。"""

    def __init__(self, 特征维度: int, 列数: int) -> None:
        super().__init__()
        self.线性层 = nn.Linear(特征维度, 列数, bias=False)
        nn.init.xavier_uniform_(self.线性层.weight)

    def forward(self, 变换特征: torch.Tensor) -> torch.Tensor:
        return self.线性层(变换特征)
