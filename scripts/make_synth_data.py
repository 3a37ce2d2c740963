"""生成训练/测试用的表格数据。

- iris: scikit-learn自带的鸢尾花数据，连续特征+类别目标
- categorical: 全类别特征+二分类目标
- regression: 连续特征+连续目标
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.datasets import load_iris


def 解析参数() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="生成表格数据")
    parser.add_argument("--输出目录", type=str, default="data/synth", help="输出目录")
    parser.add_argument("--样本数", type=int, default=500, help="合成数据样本数")
    parser.add_argument("--类别特征数", type=int, default=9, help="全类别数据的特征数")
    parser.add_argument("--数值特征数", type=int, default=13, help="回归数据的特征数")
    parser.add_argument("--测试比例", type=float, default=0.2, help="测试集比例")
    parser.add_argument("--种子", type=int, default=42, help="随机种子")
    return parser.parse_args()


def 生成鸢尾花() -> pd.DataFrame:
    鸢尾花 = load_iris()
    数据 = pd.DataFrame(
        鸢尾花.data, columns=["sepal_length", "sepal_width", "petal_length", "petal_width"]
    )
    数据["species"] = [str(鸢尾花.target_names[i]) for i in 鸢尾花.target]
    return 数据


def 生成全类别(rng: np.random.Generator, 样本数: int, 特征数: int) -> pd.DataFrame:
    取值 = rng.integers(1, 11, size=(样本数, 特征数))
    数据 = pd.DataFrame({f"f{i}": 取值[:, i].astype(str) for i in range(特征数)})
    分数 = 取值[:, : max(1, 特征数 // 3)].sum(axis=1)
    数据["class"] = np.where(分数 > np.median(分数), "malignant", "benign")
    return 数据


def 生成回归(rng: np.random.Generator, 样本数: int, 特征数: int) -> pd.DataFrame:
    数值特征 = rng.normal(size=(样本数, 特征数))
    权重 = rng.normal(size=特征数)
    数据 = pd.DataFrame(数值特征, columns=[f"x{i}" for i in range(特征数)])
    数据["target"] = 数值特征 @ 权重 + 0.5 * rng.normal(size=样本数) + 20.0
    return 数据


def 写出划分(数据: pd.DataFrame, 输出目录: Path, 名称: str, 测试比例: float, 种子: int) -> None:
    打乱 = 数据.sample(frac=1.0, random_state=种子).reset_index(drop=True)
    测试数 = int(round(len(打乱) * 测试比例))
    训练路径 = 输出目录 / f"{名称}_train.csv"
    测试路径 = 输出目录 / f"{名称}_test.csv"
    打乱.iloc[测试数:].to_csv(训练路径, index=False)
    打乱.iloc[:测试数].to_csv(测试路径, index=False)
    print(f"{名称}：训练{len(打乱) - 测试数}条 -> {训练路径}，测试{测试数}条 -> {测试路径}")


def 主函数() -> None:
    参数 = 解析参数()
    输出目录 = Path(参数.输出目录)
    输出目录.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(参数.种子)

    写出划分(生成鸢尾花(), 输出目录, "iris", 参数.测试比例, 参数.种子)
    写出划分(生成全类别(rng, 参数.样本数, 参数.类别特征数), 输出目录, "categorical", 参数.测试比例, 参数.种子)
    写出划分(生成回归(rng, 参数.样本数, 参数.数值特征数), 输出目录, "regression", 参数.测试比例, 参数.种子)


if __name__ == "__main__":
    主函数()
