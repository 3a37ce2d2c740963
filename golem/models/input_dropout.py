"""输入丢弃预处理。"""

from __future__ import annotations

from typing import Optional

import torch
from torch import nn


class 输入丢弃(nn.Module):
    """训练时按概率把输入元素置0，保留的元素不做缩放。"""

    def __init__(self, 概率: float = 0.0) -> None:
        super().__init__()
        if not 0.0 <= 概率 < 1.0:
            raise ValueError("输入丢弃概率必须位于[0, 1)区间")
        self.概率 = 概率
        self.当前掩码: Optional[torch.Tensor] = None

    def forward(self, 输入: torch.Tensor) -> torch.Tensor:
        if not self.training or self.概率 == 0.0:
            return 输入
        掩码 = (torch.rand_like(输入) >= self.概率).to(输入.dtype)
        self.当前掩码 = 掩码
        return 输入 * 掩码
