"""Precision policy for the accelerated backend.

- CUDA tensors: FP32 (complex64) for all operations
- CPU tensors: FP64 (complex128), matching the numpy reference backend
"""

import torch


def get_precision_dtype(device: torch.device, is_complex: bool = True) -> torch.dtype:
    """Get appropriate dtype based on device and precision policy.

    Args:
        device: Computation device
        is_complex: If True, return complex dtype

    Returns:
        Appropriate dtype for the device
    """
    if device.type == "cuda":
        return torch.complex64 if is_complex else torch.float32
    return torch.complex128 if is_complex else torch.float64


def enforce_device_precision(tensor: torch.Tensor, device: torch.device) -> torch.Tensor:
    """Move a tensor to `device` with the dtype the policy prescribes."""
    dtype = get_precision_dtype(device, is_complex=tensor.is_complex())
    return tensor.to(device=device, dtype=dtype)


__all__ = [
    "get_precision_dtype",
    "enforce_device_precision",
]
