# qubitsim/apply_serial.py
# numpy kernels. Bit position b is the MSB-first qubit index (mask 1 << (n-1-b)).
from typing import Sequence
import numpy as np
from .errors import DimensionError, check_index


def matvec(m: np.ndarray, psi: np.ndarray) -> np.ndarray:
    """Dense operator application, returns a new vector m @ psi."""
    if m.shape != (psi.shape[0], psi.shape[0]):
        raise DimensionError(f"operator shape {m.shape} does not match state of length {psi.shape[0]}")
    return (m @ psi).astype(psi.dtype, copy=False)

def apply_diagonal(d: np.ndarray, psi: np.ndarray):
    """Diagonal operator given by its diagonal d, in place."""
    if d.shape != psi.shape:
        raise DimensionError(f"diagonal of length {d.shape[0]} does not match state of length {psi.shape[0]}")
    psi *= d

def apply_single_qubit(psi: np.ndarray, U2: np.ndarray, n: int, target: int):
    """
    Apply a 2x2 gate U2 to qubit `target`, in place.
    Reshape-based kernel (no index arrays): the middle axis is the target bit.
    """
    assert U2.shape == (2, 2)
    check_index(n, target)
    left = 1 << target
    right = 1 << (n - target - 1)
    psi3 = psi.reshape(left, 2, right)
    # out[l, a, r] = sum_b U2[a,b] * psi3[l, b, r]
    psi3[:] = np.einsum('ab,lbr->lar', U2.astype(psi.dtype, copy=False), psi3)

def apply_controlled(psi: np.ndarray, U2: np.ndarray, n: int, controls: Sequence[int], target: int):
    """Apply U2 to `target` on every amplitude pair whose control bits are all 1, in place."""
    if not controls:
        return apply_single_qubit(psi, U2, n, target)
    check_index(n, target, *controls)
    if target in controls:
        raise ValueError(f"target {target} is also a control")
    mc = 0
    for c in controls:
        mc |= 1 << (n - 1 - c)
    mt = 1 << (n - 1 - target)

    idx = np.arange(psi.shape[0])
    i0 = idx[((idx & mc) == mc) & ((idx & mt) == 0)]
    i1 = i0 | mt
    a0 = psi[i0]
    a1 = psi[i1]
    psi[i0] = U2[0, 0]*a0 + U2[0, 1]*a1
    psi[i1] = U2[1, 0]*a0 + U2[1, 1]*a1
