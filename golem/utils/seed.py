"""随机种子工具。"""

from __future__ import annotations

import os
import random
from dataclasses import dataclass
from typing import Optional

import numpy as np
import torch


@dataclass
class 种子摘要:
    """随机种子配置摘要。"""

    种子: int
    线程数: int
    python哈希种子: Optional[int]


def 设置随机种子(种子: int, 线程数: int = 0) -> 种子摘要:
    """设置全局随机种子与计算线程数，结果只在固定种子与固定线程数下可复现。"""

    random.seed(种子)
    np.random.seed(种子)
    torch.manual_seed(种子)

    if 线程数 > 0:
        torch.set_num_threads(线程数)

    os.environ["PYTHONHASHSEED"] = str(种子)

    return 种子摘要(
        种子=种子,
        线程数=torch.get_num_threads(),
        python哈希种子=int(os.environ.get("PYTHONHASHSEED", str(种子))),
    )
