"""命令行入口：train 与 test 两个子命令。"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from golem.models.tabnet_base import TabNet配置
from golem.train.eval import 评估检查点
from golem.train.train import 训练, 训练参数
from golem.utils.config import 加载并合并配置, 打印配置摘要, 校验运行配置
from golem.utils.logger import 创建日志器, 日志格式


def _添加训练参数(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-i", "--train-file", type=str, required=True, help="训练数据文件")
    parser.add_argument("--test-file", type=str, default="", help="每轮结束后评估的测试数据文件")
    parser.add_argument("-o", "--output-file", type=str, required=True, help="模型保存路径")
    parser.add_argument("-t", "--target-column", type=str, required=True, help="目标列名")
    parser.add_argument("--categorical-columns", type=str, default="", help="逗号分隔的类别列名")
    parser.add_argument("--config", type=str, default="", help="YAML或JSON配置文件")
    parser.add_argument("--output-dir", type=str, default="", help="日志与最终配置的输出目录")

    parser.add_argument("-b", "--batch-size", type=int, default=None, help="批大小")
    parser.add_argument("-l", "--learning-rate", type=float, default=None, help="学习率")
    parser.add_argument("-r", "--report-interval", type=int, default=None, help="损失报告间隔")
    parser.add_argument("-n", "--num-epochs", type=int, default=None, help="训练轮数")
    parser.add_argument("-x", "--random-seed", type=int, default=None, help="随机种子")
    parser.add_argument("--input-dropout-probability", type=float, default=None, help="输入丢弃概率")
    parser.add_argument("--num-threads", type=int, default=None, help="计算线程数，0表示不设置")

    parser.add_argument("-c", "--categorical-embedding-size", type=int, default=None, help="类别嵌入维度")
    parser.add_argument("-s", "--num-decision-steps", type=int, default=None, help="决策步数")
    parser.add_argument("-f", "--feature-dimension", type=int, default=None, help="中间特征维度")
    parser.add_argument("-g", "--relaxation-factor", type=float, default=None, help="松弛因子")
    parser.add_argument("--batch-momentum", type=float, default=None, help="批归一化动量")
    parser.add_argument("--virtual-batch-size", type=int, default=None, help="虚拟批大小")
    parser.add_argument("--sparsity-loss-weight", type=float, default=None, help="稀疏损失权重")
    parser.add_argument("--reconstruction-loss-weight", type=float, default=None, help="重构损失权重")
    parser.add_argument("--target-loss-weight", type=float, default=None, help="目标损失权重")


def _添加测试参数(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-m", "--model", type=str, required=True, help="模型文件")
    parser.add_argument("-i", "--input", type=str, required=True, help="评估数据文件")
    parser.add_argument("-o", "--output", type=str, default="", help="预测结果文件")
    parser.add_argument("-a", "--attention-map", type=str, default="", help="注意力输出文件")


def 解析参数(参数列表: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="golem", description="TabNet表格数据训练与评估")
    parser.add_argument("--log-level", type=str, default="info", help="日志级别：debug/info/warning/error")
    parser.add_argument("--log-format", type=str, default="pretty", choices=日志格式, help="日志格式：pretty或json")
    子命令 = parser.add_subparsers(dest="command", required=True)
    _添加训练参数(子命令.add_parser("train", help="训练并保存模型"))
    _添加测试参数(子命令.add_parser("test", help="加载模型并评估数据"))
    return parser.parse_args(参数列表)


def 命令行覆盖(参数: argparse.Namespace) -> Dict[str, Any]:
    """把命令行中显式给出的值整理为配置覆盖项。"""

    return {
        "model": {
            "num_decision_steps": 参数.num_decision_steps,
            "feature_dim": 参数.feature_dimension,
            "categorical_embedding_dim": 参数.categorical_embedding_size,
            "relaxation_factor": 参数.relaxation_factor,
            "batch_momentum": 参数.batch_momentum,
            "virtual_batch_size": 参数.virtual_batch_size,
            "sparsity_loss_weight": 参数.sparsity_loss_weight,
            "reconstruction_loss_weight": 参数.reconstruction_loss_weight,
            "target_loss_weight": 参数.target_loss_weight,
        },
        "trainer": {
            "batch_size": 参数.batch_size,
            "epochs": 参数.num_epochs,
            "lr": 参数.learning_rate,
            "report_interval": 参数.report_interval,
            "seed": 参数.random_seed,
            "input_dropout": 参数.input_dropout_probability,
            "num_threads": 参数.num_threads,
        },
    }


def 构建模型配置(配置: Dict[str, Any]) -> TabNet配置:
    model_cfg = 配置["model"]
    return TabNet配置(
        决策步数=model_cfg["num_decision_steps"],
        中间特征维度=model_cfg["feature_dim"],
        类别嵌入维度=model_cfg["categorical_embedding_dim"],
        松弛因子=model_cfg["relaxation_factor"],
        批动量=model_cfg["batch_momentum"],
        虚拟批大小=model_cfg["virtual_batch_size"],
        稀疏损失权重=model_cfg["sparsity_loss_weight"],
        重构损失权重=model_cfg["reconstruction_loss_weight"],
        目标损失权重=model_cfg["target_loss_weight"],
    )


def 构建训练参数(配置: Dict[str, Any]) -> 训练参数:
    trainer_cfg = 配置["trainer"]
    return 训练参数(
        批大小=trainer_cfg["batch_size"],
        训练轮数=trainer_cfg["epochs"],
        学习率=trainer_cfg["lr"],
        报告间隔=trainer_cfg["report_interval"],
        随机种子=trainer_cfg["seed"],
        输入丢弃概率=trainer_cfg["input_dropout"],
        梯度裁剪阈值=trainer_cfg["grad_clip"],
        线程数=trainer_cfg["num_threads"],
    )


def 运行训练(参数: argparse.Namespace) -> None:
    输出目录 = Path(参数.output_dir) if 参数.output_dir else None
    日志器 = 创建日志器("训练", 输出目录, 级别=参数.log_level, 格式名=参数.log_format)
    配置 = 加载并合并配置(参数.config or None, 覆盖配置=命令行覆盖(参数), 结果目录=输出目录)
    校验运行配置(配置)
    日志器.debug(打印配置摘要(配置))

    类别列 = [名称.strip() for 名称 in 参数.categorical_columns.split(",") if 名称.strip()]
    训练(
        参数.train_file,
        参数.target_column,
        类别列,
        构建模型配置(配置),
        构建训练参数(配置),
        测试文件=参数.test_file or None,
        输出文件=参数.output_file,
        日志器=日志器,
    )


def 运行测试(参数: argparse.Namespace) -> None:
    日志器 = 创建日志器("评估", 级别=参数.log_level, 格式名=参数.log_format)
    评估检查点(
        参数.model,
        参数.input,
        预测文件=参数.output or None,
        注意力文件=参数.attention_map or None,
        日志器=日志器,
    )


def 主函数(参数列表: Optional[List[str]] = None) -> None:
    参数 = 解析参数(参数列表)
    if 参数.command == "train":
        运行训练(参数)
    else:
        运行测试(参数)


main = 主函数


if __name__ == "__main__":
    主函数()
