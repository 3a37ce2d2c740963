"""目标损失、稀疏损失与重构损失的组合。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import torch
import torch.nn.functional as F

from golem.data.metadata import 列类型
from golem.models.tabnet_base import TabNet输出, TabNet配置

# (输出, 目标) -> 每个样本的损失，形状(B,)
目标损失函数 = Callable[[torch.Tensor, torch.Tensor], torch.Tensor]


def 交叉熵损失(输出: torch.Tensor, 目标: torch.Tensor) -> torch.Tensor:
    return F.cross_entropy(输出, 目标.long(), reduction="none")


def 均方误差损失(输出: torch.Tensor, 目标: torch.Tensor) -> torch.Tensor:
    # 输出: (B, 1)，目标: (B,)
    return (输出 - 目标.to(输出.dtype).view(-1, 1)).pow(2).mean(dim=1)


def 选择目标损失(目标类型: 列类型) -> 目标损失函数:
    """按目标类型选择损失函数，在构建元数据后确定一次。"""

    if 目标类型 is 列类型.类别:
        return 交叉熵损失
    if 目标类型 is 列类型.连续:
        return 均方误差损失
    raise ValueError(f"不支持的目标类型：{目标类型}")


def 重构损失(解码聚合: torch.Tensor, 归一化输入: torch.Tensor) -> torch.Tensor:
    """重构目标不回传梯度。"""

    return (解码聚合 - 归一化输入.detach()).pow(2).mean(dim=1)


@dataclass
class 损失分量:
    """批次损失：总损失用于反向传播，各加权分量用于诊断。"""

    总损失: torch.Tensor
    目标损失: float
    稀疏损失: float
    重构损失: float


def 组合损失(
    输出: TabNet输出,
    目标: torch.Tensor,
    损失函数: 目标损失函数,
    配置: TabNet配置,
) -> 损失分量:
    """每个样本的总损失为三项加权和，批次损失为样本平均。"""

    目标项 = 配置.目标损失权重 * 损失函数(输出.输出, 目标)
    稀疏项 = 配置.稀疏损失权重 * 输出.注意力熵
    重构项 = 配置.重构损失权重 * 重构损失(输出.解码聚合, 输出.归一化输入)

    总损失 = (目标项 + 稀疏项 + 重构项).mean()
    return 损失分量(
        总损失=总损失,
        目标损失=目标项.mean().item(),
        稀疏损失=稀疏项.mean().item(),
        重构损失=重构项.mean().item(),
    )
