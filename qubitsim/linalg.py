# qubitsim/linalg.py
# Thin adapters over numpy for the dense complex algebra the engine consumes.
import numpy as np
from .errors import DimensionError

DTYPE = np.complex128

EPS13 = 1e-13
ATOL = 1e-8
RTOL = 1e-5


def eps13(tol=None) -> float:
    return EPS13 if tol is None else tol


def is_power_of_two(d: int) -> bool:
    return d > 0 and (d & (d - 1)) == 0


def num_qubits(d: int) -> int:
    """log2 of a dimension that must be an exact power of two."""
    if not is_power_of_two(d):
        raise DimensionError(f"dimension {d} is not a power of 2")
    return d.bit_length() - 1


def identity(n: int, dtype=DTYPE) -> np.ndarray:
    return np.eye(1 << n, dtype=dtype)


def tensor_product(*mats) -> np.ndarray:
    """Kronecker product of matrices (or vectors), left to right."""
    out = mats[0]
    for m in mats[1:]:
        out = np.kron(out, m)
    return out


def tensor_product_n(m: np.ndarray, n: int) -> np.ndarray:
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    return tensor_product(*([m] * n))


def compose(*mats) -> np.ndarray:
    """Single operator equivalent to applying mats[0], then mats[1], ..."""
    out = mats[0]
    for m in mats[1:]:
        out = m @ out
    return out


def dagger(m: np.ndarray) -> np.ndarray:
    return m.conj().T


def inverse(m: np.ndarray) -> np.ndarray:
    return np.linalg.inv(m)


def outer(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """|a><b|"""
    return np.outer(a, b.conj())


def is_square(m: np.ndarray) -> bool:
    return m.ndim == 2 and m.shape[0] == m.shape[1]


def allclose(a, b, atol=ATOL, rtol=RTOL) -> bool:
    return bool(np.allclose(a, b, atol=atol, rtol=rtol))


def is_unitary(m: np.ndarray, atol=ATOL) -> bool:
    if not is_square(m):
        return False
    return allclose(m @ dagger(m), np.eye(m.shape[0]), atol=atol, rtol=0)


def is_hermitian(m: np.ndarray, atol=ATOL) -> bool:
    if not is_square(m):
        return False
    return allclose(m, dagger(m), atol=atol, rtol=0)
