"""幽灵批归一化，显式持有运行统计量。"""

from __future__ import annotations

from dataclasses import dataclass

import torch
from torch import nn


@dataclass
class 归一化状态:
    """运行统计量快照。"""

    均值: torch.Tensor
    方差: torch.Tensor
    动量: float


class 幽灵批归一化(nn.Module):
    """按虚拟批大小切块的批归一化。

    运行统计量按 running = 动量 * running + (1 - 动量) * 批统计 更新，
    只在训练模式的前向中修改；只有一行的块直接使用运行统计量。
    """

    def __init__(
        self,
        维度: int,
        动量: float = 0.9,
        虚拟批大小: int = 128,
        eps: float = 1e-5,
    ) -> None:
        super().__init__()
        if not 0.0 <= 动量 < 1.0:
            raise ValueError("批动量必须位于[0, 1)区间")
        if 虚拟批大小 <= 0:
            raise ValueError("虚拟批大小必须为正数")
        self.维度 = 维度
        self.动量 = 动量
        self.虚拟批大小 = 虚拟批大小
        self.eps = eps
        self.weight = nn.Parameter(torch.ones(维度))
        self.bias = nn.Parameter(torch.zeros(维度))
        self.register_buffer("running_mean", torch.zeros(维度))
        self.register_buffer("running_var", torch.ones(维度))

    @property
    def 状态(self) -> 归一化状态:
        return 归一化状态(
            均值=self.running_mean.detach().clone(),
            方差=self.running_var.detach().clone(),
            动量=self.动量,
        )

    def _归一化(self, x: torch.Tensor, 均值: torch.Tensor, 方差: torch.Tensor) -> torch.Tensor:
        return (x - 均值) / torch.sqrt(方差 + self.eps) * self.weight + self.bias

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        # x: (B, D)
        if not self.training:
            return self._归一化(x, self.running_mean, self.running_var)

        输出列表 = []
        for 块 in torch.split(x, self.虚拟批大小, dim=0):
            if 块.size(0) < 2:
                输出列表.append(self._归一化(块, self.running_mean.clone(), self.running_var.clone()))
                continue
            均值 = 块.mean(dim=0)
            方差 = 块.var(dim=0, unbiased=False)
            with torch.no_grad():
                self.running_mean.mul_(self.动量).add_(均值.detach(), alpha=1 - self.动量)
                self.running_var.mul_(self.动量).add_(方差.detach(), alpha=1 - self.动量)
            输出列表.append(self._归一化(块, 均值, 方差))
        return torch.cat(输出列表, dim=0)
