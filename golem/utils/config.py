"""配置工具。"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

默认运行配置: Dict[str, Any] = {
    "model": {
        "num_decision_steps": 3,
        "feature_dim": 8,
        "categorical_embedding_dim": 1,
        "relaxation_factor": 1.5,
        "batch_momentum": 0.9,
        "virtual_batch_size": 128,
        "sparsity_loss_weight": 1e-4,
        "reconstruction_loss_weight": 0.0,
        "target_loss_weight": 1.0,
    },
    "trainer": {
        "batch_size": 16,
        "epochs": 10,
        "lr": 0.01,
        "report_interval": 10,
        "seed": 42,
        "input_dropout": 0.0,
        "grad_clip": 2000.0,
        "num_threads": 0,
    },
}


def _读取yaml(文件) -> Any:
    return yaml.safe_load(文件)


配置读取器: Dict[str, Callable[[Any], Any]] = {
    ".yaml": _读取yaml,
    ".yml": _读取yaml,
    ".json": json.load,
}


def 读取配置(路径: str | Path) -> Dict[str, Any]:
    """按后缀选择读取器，读取运行配置文件。

    空文件视为空配置；顶层不是映射时报错，避免合并时把整个配置节替换掉。
    """

    路径对象 = Path(路径)
    读取器 = 配置读取器.get(路径对象.suffix.lower())
    if 读取器 is None:
        raise ValueError(f"不支持的配置格式：{路径对象.suffix}，可选：{', '.join(配置读取器)}")
    if not 路径对象.exists():
        raise FileNotFoundError(f"配置文件不存在：{路径对象}")

    with 路径对象.open("r", encoding="utf-8") as 文件:
        内容 = 读取器(文件)
    if 内容 is None:
        return {}
    if not isinstance(内容, dict):
        raise ValueError(f"配置文件顶层必须是映射：{路径对象}")
    return 内容


def 递归合并配置(默认配置: Dict[str, Any], 覆盖配置: Dict[str, Any]) -> Dict[str, Any]:
    """递归合并默认配置与覆盖配置，值为None的覆盖项被忽略。"""

    结果 = copy.deepcopy(默认配置)
    for 键, 值 in 覆盖配置.items():
        if 值 is None:
            continue
        if (
            键 in 结果
            and isinstance(结果[键], dict)
            and isinstance(值, dict)
        ):
            结果[键] = 递归合并配置(结果[键], 值)
        else:
            结果[键] = 值
    return 结果


def 校验运行配置(配置: Dict[str, Any]) -> None:
    """拒绝未知的配置节与配置项，避免拼写错误被静默忽略。"""

    for 节, 内容 in 配置.items():
        if 节 not in 默认运行配置:
            raise ValueError(f"未知的配置节：{节}")
        if not isinstance(内容, dict):
            raise ValueError(f"配置节{节}必须是映射")
        未知项 = sorted(set(内容) - set(默认运行配置[节]))
        if 未知项:
            raise ValueError(f"配置节{节}包含未知配置项：{', '.join(未知项)}")


def 保存配置(配置: Dict[str, Any], 结果目录: str | Path, 文件名: str = "最终配置.yaml") -> Path:
    """把合并后的运行配置写入结果目录，可直接作为下次训练的 --config。"""

    目标路径 = Path(结果目录) / 文件名
    目标路径.parent.mkdir(parents=True, exist_ok=True)
    with 目标路径.open("w", encoding="utf-8") as 文件:
        yaml.safe_dump(配置, 文件, allow_unicode=True, sort_keys=False)
    return 目标路径


def 打印配置摘要(配置: Dict[str, Any]) -> str:
    """每个配置节一行，列出与默认值不同的项。"""

    行列表 = ["当前配置摘要："]
    for 节, 内容 in 配置.items():
        默认节 = 默认运行配置.get(节, {})
        改动 = [f"{键}={值}" for 键, 值 in 内容.items() if 默认节.get(键) != 值]
        行列表.append(f"  {节}: {', '.join(改动) if 改动 else '全部默认'}")
    return "\n".join(行列表)


def 加载并合并配置(
    配置路径: Optional[str | Path] = None,
    默认配置: Optional[Dict[str, Any]] = None,
    覆盖配置: Optional[Dict[str, Any]] = None,
    结果目录: Optional[str | Path] = None,
) -> Dict[str, Any]:
    """默认值 < 配置文件 < 命令行覆盖，可选保存最终配置。"""

    合并后配置 = copy.deepcopy(默认配置 if 默认配置 is not None else 默认运行配置)
    if 配置路径:
        合并后配置 = 递归合并配置(合并后配置, 读取配置(配置路径))
    if 覆盖配置:
        合并后配置 = 递归合并配置(合并后配置, 覆盖配置)

    if 结果目录 is not None:
        保存配置(合并后配置, 结果目录)

    return 合并后配置
