"""稀疏化激活函数。"""

from __future__ import annotations

import torch


class 稀疏最大化函数(torch.autograd.Function):
    """sparsemax前向与反向，反向只在支撑集内传播梯度。"""

    @staticmethod
    def forward(ctx, logits: torch.Tensor, dim: int = -1) -> torch.Tensor:
        ctx.dim = dim
        z = logits - logits.max(dim=dim, keepdim=True).values
        z_sorted, _ = torch.sort(z, dim=dim, descending=True)
        z_cumsum = torch.cumsum(z_sorted, dim=dim)

        dim_size = z.size(dim)
        序号 = torch.arange(1, dim_size + 1, device=logits.device, dtype=logits.dtype)
        形状 = [1] * z.dim()
        形状[dim] = dim_size
        序号 = 序号.view(形状)

        support = 1 + 序号 * z_sorted > z_cumsum
        support_size = support.sum(dim=dim, keepdim=True).clamp(min=1)
        tau = (z_cumsum.gather(dim, support_size - 1) - 1) / support_size.to(logits.dtype)

        输出 = torch.clamp(z - tau, min=0)
        ctx.save_for_backward(support_size, 输出)
        return 输出

    @staticmethod
    def backward(ctx, grad_output: torch.Tensor):
        support_size, 输出 = ctx.saved_tensors
        dim = ctx.dim
        支撑 = 输出 > 0
        grad_input = grad_output.masked_fill(~支撑, 0)
        v_hat = grad_input.sum(dim=dim, keepdim=True) / support_size.to(输出.dtype)
        grad_input = torch.where(支撑, grad_input - v_hat, grad_input)
        return grad_input, None


def sparsemax(logits: torch.Tensor, dim: int = -1) -> torch.Tensor:
    """把logits投影到概率单纯形上，可以得到严格为0的分量。"""

    if logits.numel() == 0:
        return logits
    return 稀疏最大化函数.apply(logits, dim)
