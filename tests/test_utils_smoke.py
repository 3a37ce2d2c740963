"""工具模块最小测试。"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

pytest.importorskip("torch")
pytest.importorskip("yaml")

项目根目录 = Path(__file__).resolve().parents[1]
if str(项目根目录) not in sys.path:
    sys.path.insert(0, str(项目根目录))

from golem.utils.config import 默认运行配置, 加载并合并配置, 打印配置摘要, 校验运行配置, 读取配置, 递归合并配置
from golem.utils.logger import 创建日志器, 解析日志级别
from golem.utils.seed import 设置随机种子


def test_设置随机种子不报错() -> None:
    摘要 = 设置随机种子(1234)
    assert 摘要.种子 == 1234
    assert 摘要.python哈希种子 == 1234
    assert 摘要.线程数 >= 1


def test_logger能写文件(tmp_path: Path) -> None:
    日志器 = 创建日志器("测试日志", tmp_path)
    日志器.info("测试日志输出")

    日志文件 = tmp_path / "运行日志.log"
    assert 日志文件.exists()
    内容 = 日志文件.read_text(encoding="utf-8")
    assert "测试日志输出" in 内容


def test_logger不重复添加文件处理器(tmp_path: Path) -> None:
    创建日志器("重复日志", tmp_path)
    日志器 = 创建日志器("重复日志", tmp_path, 级别="debug")
    文件处理器 = [处理器 for 处理器 in 日志器.handlers if isinstance(处理器, logging.FileHandler)]
    assert len(文件处理器) == 1
    assert 日志器.level == logging.DEBUG


def test_日志级别解析() -> None:
    assert 解析日志级别("WARNING") == logging.WARNING
    assert 解析日志级别(logging.ERROR) == logging.ERROR
    with pytest.raises(ValueError):
        解析日志级别("verbose")


def test_config能读写(tmp_path: Path) -> None:
    配置路径 = tmp_path / "配置.json"
    配置路径.write_text(json.dumps({"a": 1, "b": {"c": 2}}), encoding="utf-8")

    默认配置 = {"b": {"d": 3}}
    合并配置 = 加载并合并配置(配置路径, 默认配置=默认配置, 结果目录=tmp_path)

    assert 合并配置["a"] == 1
    assert 合并配置["b"]["c"] == 2
    assert 合并配置["b"]["d"] == 3

    保存路径 = tmp_path / "最终配置.yaml"
    assert 保存路径.exists()
    读取内容 = 读取配置(保存路径)
    assert 读取内容["a"] == 1


def test_命令行覆盖优先且忽略None(tmp_path: Path) -> None:
    配置路径 = tmp_path / "run.yaml"
    配置路径.write_text("model:\n  feature_dim: 16\ntrainer:\n  epochs: 5\n", encoding="utf-8")

    合并配置 = 加载并合并配置(
        配置路径,
        覆盖配置={"trainer": {"epochs": 7, "lr": None}, "model": {"feature_dim": None}},
    )
    assert 合并配置["model"]["feature_dim"] == 16
    assert 合并配置["trainer"]["epochs"] == 7
    assert 合并配置["trainer"]["lr"] == 默认运行配置["trainer"]["lr"]
    # 默认配置本身不被修改
    assert 默认运行配置["trainer"]["epochs"] == 10


def test_递归合并() -> None:
    结果 = 递归合并配置({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4})
    assert 结果 == {"a": {"b": 1, "c": 3}, "d": 4}


def test_不支持的配置格式(tmp_path: Path) -> None:
    路径 = tmp_path / "配置.toml"
    路径.write_text("a = 1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        读取配置(路径)
    with pytest.raises(FileNotFoundError):
        读取配置(tmp_path / "missing.yaml")


def test_拒绝未知配置项() -> None:
    校验运行配置(加载并合并配置())
    with pytest.raises(ValueError, match="epoch"):
        校验运行配置(递归合并配置(默认运行配置, {"trainer": {"epoch": 3}}))
    with pytest.raises(ValueError):
        校验运行配置({"optimizer": {}})


def test_json日志格式逐行可解析(tmp_path: Path) -> None:
    日志器 = 创建日志器("json日志", tmp_path, 文件名="json.log", 格式名="json")
    日志器.info("第%d轮损失：%.3f", 3, 0.25)
    日志器.warning("丢弃记录")

    行列表 = (tmp_path / "json.log").read_text(encoding="utf-8").splitlines()
    日志 = [json.loads(行) for 行 in 行列表]
    assert [条目["level"] for 条目 in 日志] == ["info", "warning"]
    assert 日志[0]["message"] == "第3轮损失：0.250"
    assert 日志[0]["logger"] == "json日志"
    assert "time" in 日志[0]


def test_重复创建时切换日志格式(tmp_path: Path) -> None:
    创建日志器("切换格式", tmp_path, 文件名="switch.log")
    日志器 = 创建日志器("切换格式", tmp_path, 文件名="switch.log", 格式名="json")
    日志器.info("切换后")

    最后一行 = (tmp_path / "switch.log").read_text(encoding="utf-8").splitlines()[-1]
    assert json.loads(最后一行)["message"] == "切换后"


def test_不支持的日志格式() -> None:
    with pytest.raises(ValueError):
        创建日志器("坏格式", 格式名="xml")


def test_配置顶层必须是映射(tmp_path: Path) -> None:
    列表配置 = tmp_path / "list.json"
    列表配置.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        读取配置(列表配置)

    空配置 = tmp_path / "empty.yml"
    空配置.write_text("", encoding="utf-8")
    assert 读取配置(空配置) == {}


def test_配置摘要只列出改动项() -> None:
    配置 = 递归合并配置(默认运行配置, {"model": {"feature_dim": 16}})
    摘要 = 打印配置摘要(配置)

    assert "model: feature_dim=16" in 摘要
    assert "trainer: 全部默认" in 摘要
