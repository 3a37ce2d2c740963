"""元数据构建、记录编码与标准化测试。"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")

项目根目录 = Path(__file__).resolve().parents[1]
if str(项目根目录) not in sys.path:
    sys.path.insert(0, str(项目根目录))

from golem.data.errors import (
    元数据不匹配错误,
    元数据已冻结错误,
    列不存在错误,
    列数不匹配错误,
    无可用数据错误,
    未知目标错误,
    未知类别错误,
    特征解析错误,
    空表头错误,
)
from golem.data.metadata import 元数据, 列类型
from golem.data.preprocess import 加载数据

表头 = ["size", "color", "weight", "label"]


def _写入csv(路径: Path, 行列表: list[str]) -> Path:
    路径.write_text("\n".join(行列表) + "\n", encoding="utf-8")
    return 路径


def test_构建分配稠密索引() -> None:
    元数据对象 = 元数据.构建(表头, "label", ["color", "label"])

    assert 元数据对象.目标类型 is 列类型.类别
    assert 元数据对象.连续索引 == {0: 0, 2: 1}
    assert 元数据对象.类别索引 == {1: 0}
    assert 元数据对象.特征列名() == ["size", "weight", "color"]
    assert 元数据对象.特征列数(嵌入维度=3) == 2 + 3


def test_目标不在类别列中即为连续目标() -> None:
    元数据对象 = 元数据.构建(表头, "label", ["color"])
    assert 元数据对象.目标类型 is 列类型.连续
    assert 元数据对象.输出维度 == 1


def test_目标列不存在() -> None:
    with pytest.raises(列不存在错误):
        元数据.构建(表头, "price", ["color"])


def test_训练编码分配类别与目标索引() -> None:
    元数据对象 = 元数据.构建(表头, "label", ["color", "label"])
    记录1 = 元数据对象.编码记录(["1.0", "red", "2.0", "yes"], 2, 训练模式=True)
    记录2 = 元数据对象.编码记录(["3.0", "blue", "4.0", "no"], 3, 训练模式=True)
    记录3 = 元数据对象.编码记录(["5.0", "red", "6.0", "yes"], 4, 训练模式=True)

    assert 记录1.类别特征 == [0]
    assert 记录2.类别特征 == [1]
    assert 记录3.类别特征 == [0]
    assert (记录1.目标, 记录2.目标, 记录3.目标) == (0.0, 1.0, 0.0)
    assert 元数据对象.类别嵌入数 == 2
    assert 元数据对象.目标类别数 == 2
    assert 元数据对象.目标名称(1) == "no"
    np.testing.assert_allclose(记录2.连续特征, [3.0, 4.0])
    assert 记录2.行号 == 3


def test_同值不同列使用不同嵌入() -> None:
    元数据对象 = 元数据.构建(["a", "b", "y"], "y", ["a", "b"])
    记录 = 元数据对象.编码记录(["x", "x", "1.5"], 2, 训练模式=True)
    assert 记录.类别特征 == [0, 1]


def test_解析失败不修改元数据() -> None:
    元数据对象 = 元数据.构建(表头, "label", ["color", "label"])
    元数据对象.编码记录(["1.0", "red", "2.0", "yes"], 2, 训练模式=True)

    with pytest.raises(特征解析错误) as 异常:
        元数据对象.编码记录(["abc", "green", "2.0", "maybe"], 3, 训练模式=True)
    assert 异常.value.行号 == 3
    assert 元数据对象.类别嵌入数 == 1
    assert 元数据对象.目标类别数 == 1

    with pytest.raises(列数不匹配错误):
        元数据对象.编码记录(["1.0", "red"], 4, 训练模式=True)


def test_冻结后拒绝训练编码与未知值() -> None:
    元数据对象 = 元数据.构建(表头, "label", ["color", "label"])
    元数据对象.编码记录(["1.0", "red", "2.0", "yes"], 2, 训练模式=True)
    元数据对象.冻结()

    with pytest.raises(元数据已冻结错误):
        元数据对象.编码记录(["1.0", "red", "2.0", "yes"], 3, 训练模式=True)
    with pytest.raises(未知类别错误) as 异常:
        元数据对象.编码记录(["1.0", "green", "2.0", "yes"], 4, 训练模式=False)
    assert 异常.value.值 == "green"
    with pytest.raises(未知目标错误):
        元数据对象.编码记录(["1.0", "red", "2.0", "maybe"], 5, 训练模式=False)

    记录 = 元数据对象.编码记录(["7.0", "red", "8.0", "yes"], 6, 训练模式=False)
    assert 记录.类别特征 == [0]
    assert 元数据对象.类别嵌入数 == 1


def test_标准化后均值为0标准差为1(tmp_path: Path) -> None:
    rng = np.random.default_rng(3)
    行列表 = ["x1,x2,flat,color,y"]
    for _ in range(200):
        行列表.append(
            f"{rng.normal(5.0, 3.0):.6f},{rng.uniform(-10, 10):.6f},7,{rng.choice(['a', 'b'])},{rng.normal(100, 20):.6f}"
        )
    路径 = _写入csv(tmp_path / "train.csv", 行列表)

    元数据对象, 数据, 错误列表 = 加载数据(路径, "y", ["color"])
    assert 错误列表 == []
    assert 元数据对象.已冻结
    assert 数据.已标准化

    连续 = np.stack([记录.连续特征 for 记录 in 数据.记录列表()])
    np.testing.assert_allclose(连续[:, :2].mean(axis=0), 0.0, atol=1e-6)
    np.testing.assert_allclose(连续[:, :2].std(axis=0), 1.0, atol=1e-6)
    # 标准差为0的列只做中心化
    np.testing.assert_allclose(连续[:, 2], 0.0, atol=1e-12)

    目标 = np.array([记录.目标 for 记录 in 数据.记录列表()])
    assert abs(目标.mean()) < 1e-6
    assert abs(目标.std() - 1.0) < 1e-6
    原始 = 元数据对象.还原目标(目标[0])
    assert 原始 == pytest.approx(float(行列表[1].split(",")[-1]), abs=1e-4)


def test_评估数据使用训练统计量(tmp_path: Path) -> None:
    训练 = _写入csv(tmp_path / "train.csv", ["x,label", "1,a", "3,b", "5,a"])
    测试 = _写入csv(tmp_path / "test.csv", ["x,label", "3,a", "7,b"])

    元数据对象, _, _ = 加载数据(训练, "label", ["label"])
    _, 测试集, 错误列表 = 加载数据(测试, 元数据对象=元数据对象)
    assert 错误列表 == []

    标准差 = np.std([1.0, 3.0, 5.0])
    值 = [记录.连续特征[0] for 记录 in 测试集.记录列表()]
    np.testing.assert_allclose(值, [0.0, 4.0 / 标准差], atol=1e-9)


def test_错误记录带行号且被跳过(tmp_path: Path) -> None:
    路径 = _写入csv(tmp_path / "train.csv", ["x,c,label", "1,p,a", "oops,p,b", "2,q,b", "abc,r,a"])
    _, 数据, 错误列表 = 加载数据(路径, "label", ["c", "label"])

    assert len(数据) == 2
    assert [错误.行号 for 错误 in 错误列表] == [3, 5]
    assert [记录.行号 for 记录 in 数据.记录列表()] == [2, 4]


def test_字段过少的行按列数错误丢弃(tmp_path: Path) -> None:
    路径 = _写入csv(tmp_path / "train.csv", ["x,c,label", "1,p,a", "2,q", "3,p,b"])
    元数据对象, 数据, 错误列表 = 加载数据(路径, "label", ["c", "label"])

    assert len(数据) == 2
    assert [错误.行号 for 错误 in 错误列表] == [3]
    assert "列数为2" in 错误列表[0].信息
    # 缺失的目标不会成为新的类别
    assert 元数据对象.目标名称映射.索引到名称 == ["a", "b"]
    assert 元数据对象.输出维度 == 2


def test_字段过多的行按列数错误丢弃(tmp_path: Path) -> None:
    路径 = _写入csv(tmp_path / "train.csv", ["x,c,label", "1,p,a", "2,q,b,EXTRA", "3,p,b"])
    元数据对象, 数据, 错误列表 = 加载数据(路径, "label", ["c", "label"])

    assert len(数据) == 2
    assert [错误.行号 for 错误 in 错误列表] == [3]
    assert "列数为4" in 错误列表[0].信息
    assert 元数据对象.类别嵌入数 == 1


def test_空字段与缺失字段区分(tmp_path: Path) -> None:
    训练 = _写入csv(tmp_path / "train.csv", ["x,c,label", "1,,a", "2,q,b"])
    元数据对象, 数据, 错误列表 = 加载数据(训练, "label", ["c", "label"])

    assert 错误列表 == []
    assert len(数据) == 2
    assert (1, "") in 元数据对象.类别值索引


def test_空行之后的行号仍是物理行号(tmp_path: Path) -> None:
    路径 = _写入csv(tmp_path / "train.csv", ["x,label", "1,a", "", "2,b", "", "bad,a", "3,b"])
    _, 数据, 错误列表 = 加载数据(路径, "label", ["label"])

    assert [错误.行号 for 错误 in 错误列表] == [6]
    assert [记录.行号 for 记录 in 数据.记录列表()] == [2, 4, 7]


def test_评估数据的列数错误不致命(tmp_path: Path) -> None:
    训练 = _写入csv(tmp_path / "train.csv", ["x,label", "1,a", "2,b"])
    测试 = _写入csv(tmp_path / "test.csv", ["x,label", "1,a", "2", "3,b,c", "4,b"])
    元数据对象, _, _ = 加载数据(训练, "label", ["label"])

    _, 测试集, 错误列表 = 加载数据(测试, 元数据对象=元数据对象)
    assert [错误.行号 for 错误 in 错误列表] == [3, 4]
    assert [记录.行号 for 记录 in 测试集.记录列表()] == [2, 5]


def test_空文件缺少表头(tmp_path: Path) -> None:
    路径 = tmp_path / "empty.csv"
    路径.write_text("", encoding="utf-8")
    with pytest.raises(空表头错误):
        加载数据(路径, "label", ["label"])


def test_表头不一致与无可用数据(tmp_path: Path) -> None:
    训练 = _写入csv(tmp_path / "train.csv", ["x,label", "1,a", "2,b"])
    元数据对象, _, _ = 加载数据(训练, "label", ["label"])

    错表头 = _写入csv(tmp_path / "bad.csv", ["y,label", "1,a"])
    with pytest.raises(元数据不匹配错误):
        加载数据(错表头, 元数据对象=元数据对象)

    全错 = _写入csv(tmp_path / "empty.csv", ["x,label", "bad,a"])
    with pytest.raises(无可用数据错误):
        加载数据(全错, "label", ["label"])


def test_字典往返() -> None:
    元数据对象 = 元数据.构建(表头, "label", ["color", "label"])
    元数据对象.编码记录(["1.0", "red", "2.0", "yes"], 2, 训练模式=True)
    元数据对象.编码记录(["3.0", "blue", "4.0", "no"], 3, 训练模式=True)

    恢复 = 元数据.从字典(元数据对象.转字典())
    assert 恢复 == 元数据对象
    assert 恢复.已冻结
    assert 恢复.类别值索引 == 元数据对象.类别值索引
