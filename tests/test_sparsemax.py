"""稀疏化函数测试。"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

torch = pytest.importorskip("torch")

项目根目录 = Path(__file__).resolve().parents[1]
if str(项目根目录) not in sys.path:
    sys.path.insert(0, str(项目根目录))

from golem.models.sparsemax import sparsemax


def test_sparsemax求和为1() -> None:
    输入 = torch.tensor([[1.0, 2.0, 3.0], [0.5, 0.5, 0.5]])
    输出 = sparsemax(输入, dim=1)
    行和 = 输出.sum(dim=1)
    assert torch.allclose(行和, torch.ones_like(行和), atol=1e-6)
    assert (输出 >= 0).all()


def test_sparsemax产生稀疏() -> None:
    输入 = torch.tensor([[10.0, 0.0, -1.0]])
    输出 = sparsemax(输入, dim=1)
    assert torch.isclose(输出[0, 0], torch.tensor(1.0))
    assert 输出[0, 1] == 0.0
    assert 输出[0, 2] == 0.0


def test_sparsemax已知结果() -> None:
    输入 = torch.tensor([[0.1, 0.5, -0.3, 0.9]])
    输出 = sparsemax(输入, dim=1)
    期望 = torch.tensor([[0.0, 0.3, 0.0, 0.7]])
    assert torch.allclose(输出, 期望, atol=1e-6)


def test_sparsemax极端输入稳定() -> None:
    输入 = torch.tensor([[1000.0, -1000.0, 0.0]])
    输出 = sparsemax(输入, dim=1)
    assert not torch.isnan(输出).any()
    assert torch.allclose(输出.sum(dim=1), torch.ones(1), atol=1e-6)


def test_sparsemax平移不变() -> None:
    输入 = torch.tensor([[0.2, -0.4, 0.7, 0.1]])
    assert torch.allclose(sparsemax(输入, dim=1), sparsemax(输入 + 5.0, dim=1), atol=1e-6)


def test_sparsemax梯度正确() -> None:
    输入 = torch.tensor([[0.1, 0.5, -0.3, 0.9], [0.3, 0.2, 0.0, -0.6]], dtype=torch.float64, requires_grad=True)
    assert torch.autograd.gradcheck(lambda x: sparsemax(x, dim=1), (输入,), eps=1e-6, atol=1e-4)


def test_sparsemax梯度只在支撑集内() -> None:
    输入 = torch.tensor([[10.0, 0.0, -1.0]], requires_grad=True)
    输出 = sparsemax(输入, dim=1)
    (输出 * torch.tensor([[1.0, 2.0, 3.0]])).sum().backward()
    # 支撑集只有第0个分量，梯度在支撑集内减去均值后为0
    assert torch.allclose(输入.grad, torch.zeros_like(输入.grad))
