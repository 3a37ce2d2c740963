"""训练流程实现。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import torch

from golem.data.dataloader import 批次转张量
from golem.data.dataset import 数据记录, 数据集, 数据顺序
from golem.data.errors import 数据错误
from golem.data.preprocess import 加载数据
from golem.losses.composite import 损失分量, 目标损失函数, 组合损失, 选择目标损失
from golem.models.model_full import Golem模型, 保存模型, 回填配置
from golem.models.tabnet_base import TabNet配置
from golem.train.eval import 评估模型, 记录数据错误
from golem.utils.logger import 创建日志器
from golem.utils.seed import 设置随机种子


@dataclass
class 训练参数:
    """训练参数。"""

    批大小: int = 16
    训练轮数: int = 10
    学习率: float = 0.01
    报告间隔: int = 10
    随机种子: int = 42
    输入丢弃概率: float = 0.0
    梯度裁剪阈值: float = 2000.0
    线程数: int = 0

    def 校验(self) -> None:
        if self.批大小 <= 0:
            raise ValueError("批大小必须为正数")
        if self.训练轮数 < 0:
            raise ValueError("训练轮数不能为负数")
        if self.学习率 <= 0:
            raise ValueError("学习率必须为正数")
        if self.报告间隔 <= 0:
            raise ValueError("报告间隔必须为正数")
        if not 0.0 <= self.输入丢弃概率 < 1.0:
            raise ValueError("输入丢弃概率必须位于[0, 1)区间")


@dataclass
class 训练输出:
    """训练输出信息。"""

    模型: Golem模型
    数据错误: List[数据错误]
    每轮损失: List[float] = field(default_factory=list)
    测试指标: List[Dict[str, float]] = field(default_factory=list)
    模型路径: Optional[Path] = None


def 训练批次(
    模型: Golem模型,
    批次: List[数据记录],
    优化器: torch.optim.Optimizer,
    损失函数: 目标损失函数,
    梯度裁剪阈值: float,
    设备: Optional[torch.device] = None,
) -> 损失分量:
    """单个批次的前向、反向与参数更新。"""

    张量 = 批次转张量(批次, 模型.分类目标, 设备)
    输出 = 模型(张量.连续特征, 张量.类别特征)
    分量 = 组合损失(输出, 张量.目标, 损失函数, 模型.配置)

    优化器.zero_grad()
    分量.总损失.backward()
    torch.nn.utils.clip_grad_value_(模型.parameters(), 梯度裁剪阈值)
    优化器.step()
    return 分量


def 训练单次(
    模型: Golem模型,
    训练集: 数据集,
    参数: 训练参数,
    日志器: logging.Logger,
    测试集: Optional[数据集] = None,
    设备: Optional[torch.device] = None,
) -> 训练输出:
    """按轮次×批次训练，批次之间严格顺序执行。"""

    if 设备 is not None:
        模型.to(设备)
    优化器 = torch.optim.Adam(模型.parameters(), lr=参数.学习率)
    损失函数 = 选择目标损失(模型.元数据.目标类型)
    输出 = 训练输出(模型=模型, 数据错误=[])

    全局批次 = 0
    for epoch in range(参数.训练轮数):
        模型.train()
        epoch损失 = 0.0
        批次数 = 0
        for 批号, 批次 in enumerate(训练集.批次迭代(数据顺序.随机)):
            分量 = 训练批次(模型, 批次, 优化器, 损失函数, 参数.梯度裁剪阈值, 设备)
            全局批次 += 1
            批次数 += 1
            总损失 = 分量.总损失.item()
            epoch损失 += 总损失
            if 批号 % 参数.报告间隔 == 0:
                日志器.info(
                    f"第{epoch + 1}轮 第{批号}批 损失 {总损失:.5f} | 目标 {分量.目标损失:.5f} "
                    f"| 稀疏 {分量.稀疏损失:.5f} | 重构 {分量.重构损失:.5f}"
                )

        平均损失 = epoch损失 / max(1, 批次数)
        输出.每轮损失.append(平均损失)
        日志器.info(f"第{epoch + 1}轮训练损失：{平均损失:.5f}（累计{全局批次}批）")

        if 测试集 is not None:
            指标 = 评估模型(模型, 测试集, 日志器=日志器, 设备=设备)
            输出.测试指标.append(指标)
            日志器.info(f"第{epoch + 1}轮测试指标：{指标}")

    return 输出


def 训练(
    训练文件: str | Path,
    目标列: str,
    类别列: Optional[Iterable[str]],
    模型配置: TabNet配置,
    参数: 训练参数,
    测试文件: Optional[str | Path] = None,
    输出文件: Optional[str | Path] = None,
    日志器: Optional[logging.Logger] = None,
    设备: Optional[torch.device] = None,
) -> 训练输出:
    """读取训练数据、构建模型、训练并可选保存模型。"""

    参数.校验()
    日志器 = 日志器 or 创建日志器("训练")
    设置随机种子(参数.随机种子, 参数.线程数)

    元数据对象, 训练集, 训练错误 = 加载数据(
        Path(训练文件), 目标列, 类别列, 批大小=参数.批大小, 种子=参数.随机种子
    )
    记录数据错误(训练错误, 日志器)
    日志器.info(
        f"训练数据：{len(训练集)}条记录，连续列{元数据对象.连续特征数}个，类别列{元数据对象.类别特征数}个，"
        f"目标类型{元数据对象.目标类型.value}"
    )

    测试集 = None
    错误列表 = list(训练错误)
    if 测试文件:
        _, 测试集, 测试错误 = 加载数据(Path(测试文件), 元数据对象=元数据对象, 批大小=参数.批大小)
        记录数据错误(测试错误, 日志器)
        错误列表.extend(测试错误)

    回填配置(模型配置, 元数据对象)
    模型 = Golem模型(模型配置, 元数据对象, 输入丢弃概率=参数.输入丢弃概率)

    输出 = 训练单次(模型, 训练集, 参数, 日志器, 测试集=测试集, 设备=设备)
    输出.数据错误 = 错误列表

    if 输出文件:
        输出.模型路径 = 保存模型(模型, 输出文件)
        日志器.info(f"模型已保存：{输出.模型路径}")

    return 输出
