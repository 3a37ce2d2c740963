"""评估流程实现。"""

from __future__ import annotations

import csv
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import torch
from sklearn.metrics import accuracy_score, f1_score, mean_squared_error, precision_recall_fscore_support, r2_score

from golem.data.dataloader import 批次转张量
from golem.data.dataset import 数据记录, 数据集, 数据顺序
from golem.data.errors import 数据错误
from golem.data.metadata import 元数据, 列类型
from golem.data.preprocess import 加载数据
from golem.losses.composite import 交叉熵损失, 均方误差损失
from golem.models.model_full import Golem模型, 加载模型
from golem.utils.logger import 创建日志器


class 分类评估器:
    """分类目标：逐类统计与宏/微平均F1。"""

    表头 = ["label", "predicted", "probability"]

    def __init__(self, 元数据对象: 元数据, 写入器=None) -> None:
        self.元数据 = 元数据对象
        self.写入器 = 写入器
        self.标签: List[str] = []
        self.预测: List[str] = []
        self.损失和 = 0.0

    def 评估预测(self, 输出: torch.Tensor, 批次: List[数据记录]) -> None:
        # 输出: (B, 类别数)
        目标 = torch.as_tensor([记录.目标 for 记录 in 批次], dtype=torch.long)
        self.损失和 += 交叉熵损失(输出, 目标).sum().item()
        概率 = torch.softmax(输出, dim=1)
        最大概率, 类别 = 概率.max(dim=1)
        for 标签索引, 预测索引, p in zip(目标.tolist(), 类别.tolist(), 最大概率.tolist()):
            标签 = self.元数据.目标名称(标签索引)
            预测 = self.元数据.目标名称(预测索引)
            self.标签.append(标签)
            self.预测.append(预测)
            if self.写入器 is not None:
                self.写入器.writerow([标签, 预测, f"{p:.5f}"])

    def 指标(self) -> Dict[str, float]:
        return {
            "loss": self.损失和 / max(1, len(self.标签)),
            "accuracy": float(accuracy_score(self.标签, self.预测)),
            "macro_f1": float(f1_score(self.标签, self.预测, average="macro", zero_division=0)),
            "micro_f1": float(f1_score(self.标签, self.预测, average="micro", zero_division=0)),
        }

    def 打印指标(self, 日志器: logging.Logger) -> None:
        类别列表 = sorted(set(self.标签) | set(self.预测))
        精确率, 召回率, f1, 支持数 = precision_recall_fscore_support(
            self.标签, self.预测, labels=类别列表, zero_division=0
        )
        for i, 类别 in enumerate(类别列表):
            日志器.info(
                f"类别{类别}：精确率 {精确率[i]:.3f} 召回率 {召回率[i]:.3f} F1 {f1[i]:.3f} 样本数 {支持数[i]}"
            )
        指标 = self.指标()
        日志器.info(f"Macro F1：{指标['macro_f1']:.3f} - Micro F1：{指标['micro_f1']:.3f}")


class 回归评估器:
    """回归目标：R²与均方误差，输出文件写回原始尺度。"""

    表头 = ["label", "prediction"]

    def __init__(self, 元数据对象: 元数据, 写入器=None) -> None:
        self.元数据 = 元数据对象
        self.写入器 = 写入器
        self.真实值: List[float] = []
        self.估计值: List[float] = []
        self.损失和 = 0.0

    def 评估预测(self, 输出: torch.Tensor, 批次: List[数据记录]) -> None:
        # 输出: (B, 1)
        目标 = torch.as_tensor([记录.目标 for 记录 in 批次], dtype=输出.dtype)
        self.损失和 += 均方误差损失(输出, 目标).sum().item()
        for 真实, 估计 in zip(目标.tolist(), 输出[:, 0].tolist()):
            self.真实值.append(真实)
            self.估计值.append(估计)
            if self.写入器 is not None:
                self.写入器.writerow(
                    [f"{self.元数据.还原目标(真实):.5f}", f"{self.元数据.还原目标(估计):.5f}"]
                )

    def 指标(self) -> Dict[str, float]:
        return {
            "loss": self.损失和 / max(1, len(self.真实值)),
            "mse": float(mean_squared_error(self.真实值, self.估计值)),
            "r2": float(r2_score(self.真实值, self.估计值)),
        }

    def 打印指标(self, 日志器: logging.Logger) -> None:
        日志器.info(f"R-squared：{self.指标()['r2']:.3f}")


def 创建评估器(元数据对象: 元数据, 写入器=None):
    """按目标类型选择评估器。"""

    if 元数据对象.目标类型 is 列类型.类别:
        return 分类评估器(元数据对象, 写入器)
    return 回归评估器(元数据对象, 写入器)


def 按列聚合注意力(掩码: torch.Tensor, 元数据对象: 元数据, 嵌入维度: int) -> np.ndarray:
    """把编码列上的mask按原始特征列求和。

    输入 (B, S, 编码列数)，输出 (B, S, 特征列数)，列顺序与元数据.特征列名一致。
    """

    批大小, 步数, _ = 掩码.shape
    连续数 = 元数据对象.连续特征数
    连续部分 = 掩码[:, :, :连续数]
    类别部分 = 掩码[:, :, 连续数:].reshape(批大小, 步数, 元数据对象.类别特征数, 嵌入维度).sum(dim=-1)
    return torch.cat([连续部分, 类别部分], dim=2).cpu().numpy()


def 评估模型(
    模型: Golem模型,
    数据: 数据集,
    预测文件: Optional[str | Path] = None,
    注意力文件: Optional[str | Path] = None,
    日志器: Optional[logging.Logger] = None,
    设备: Optional[torch.device] = None,
) -> Dict[str, float]:
    """按原始顺序评估数据集，可选写出预测文件与注意力文件。"""

    模型.eval()
    元数据对象 = 模型.元数据

    with ExitStack() as 资源:
        预测写入器 = None
        if 预测文件:
            预测写入器 = csv.writer(资源.enter_context(Path(预测文件).open("w", newline="", encoding="utf-8")))
        注意力写入器 = None
        if 注意力文件:
            注意力写入器 = csv.writer(资源.enter_context(Path(注意力文件).open("w", newline="", encoding="utf-8")))
            注意力写入器.writerow(["line", "step"] + 元数据对象.特征列名())

        评估器 = 创建评估器(元数据对象, 预测写入器)
        if 预测写入器 is not None:
            预测写入器.writerow(评估器.表头)

        with torch.no_grad():
            for 批次 in 数据.批次迭代(数据顺序.原始):
                张量 = 批次转张量(批次, 模型.分类目标, 设备)
                结果 = 模型(张量.连续特征, 张量.类别特征)
                评估器.评估预测(结果.输出.cpu(), 批次)

                if 注意力写入器 is not None and 结果.注意力掩码 is not None:
                    聚合 = 按列聚合注意力(结果.注意力掩码, 元数据对象, 模型.配置.类别嵌入维度)
                    for 记录, 每步 in zip(批次, 聚合):
                        for 步, 权重 in enumerate(每步):
                            注意力写入器.writerow([记录.行号, 步] + [f"{w:.5f}" for w in 权重])

    if 日志器 is not None:
        评估器.打印指标(日志器)
    return 评估器.指标()


def 评估检查点(
    模型路径: str | Path,
    输入文件: str | Path,
    预测文件: Optional[str | Path] = None,
    注意力文件: Optional[str | Path] = None,
    日志器: Optional[logging.Logger] = None,
    批大小: int = 64,
) -> Tuple[Dict[str, float], List[数据错误]]:
    """加载模型文件并在输入数据上评估。"""

    日志器 = 日志器 or 创建日志器("评估")
    模型 = 加载模型(模型路径)
    _, 数据, 错误列表 = 加载数据(Path(输入文件), 元数据对象=模型.元数据, 批大小=批大小)
    记录数据错误(错误列表, 日志器)

    指标 = 评估模型(模型, 数据, 预测文件, 注意力文件, 日志器)
    日志器.info(f"评估完成：{指标}")
    return 指标, 错误列表


def 记录数据错误(错误列表: List[数据错误], 日志器: logging.Logger) -> None:
    for 错误 in 错误列表:
        日志器.warning(f"第{错误.行号}行数据解析失败：{错误.信息}")
