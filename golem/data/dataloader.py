"""批次到张量的转换。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np
import torch

from golem.data.dataset import 数据记录


@dataclass
class 批次张量:
    """一个批次的模型输入。

    - 连续特征: (B, 连续列数)
    - 类别特征: (B, 类别列数)，全局嵌入索引
    - 目标: (B,)，分类为long，回归为float
    """

    连续特征: torch.Tensor
    类别特征: torch.Tensor
    目标: torch.Tensor

    def __len__(self) -> int:
        return self.目标.size(0)


def 批次转张量(
    批次: List[数据记录],
    分类目标: bool,
    设备: torch.device | None = None,
) -> 批次张量:
    """把数据记录列表堆叠为张量。"""

    if not 批次:
        raise ValueError("批次不能为空")

    连续 = np.stack([记录.连续特征 for 记录 in 批次]).astype(np.float32)
    类别 = np.asarray([记录.类别特征 for 记录 in 批次], dtype=np.int64)
    目标 = np.asarray([记录.目标 for 记录 in 批次])

    目标张量 = (
        torch.as_tensor(目标, dtype=torch.long) if 分类目标 else torch.as_tensor(目标, dtype=torch.float32)
    )
    return 批次张量(
        连续特征=torch.as_tensor(连续, device=设备),
        类别特征=torch.as_tensor(类别, device=设备),
        目标=目标张量.to(设备) if 设备 is not None else 目标张量,
    )
