# qubitsim/apply_numba.py
# Same kernels as apply_serial, JIT-compiled and parallel over rows / amplitude
# pairs. Each kernel returns only after every prange iteration has finished.
from typing import Sequence
import numpy as np
from numba import config, njit, prange, set_num_threads, get_num_threads
from .errors import DimensionError, check_index

# ---------- low-level kernels (Numba JIT) ----------

@njit(parallel=True, fastmath=True)
def _matvec_kernel(m, psi, out):
    N = psi.shape[0]
    for i in prange(N):
        acc = 0j
        for j in range(N):
            acc += m[i, j] * psi[j]
        out[i] = acc

@njit(parallel=True, fastmath=True)
def _diagonal_kernel(d, psi):
    for i in prange(psi.shape[0]):
        psi[i] = psi[i] * d[i]

@njit(parallel=True, fastmath=True)
def _single_qubit_kernel(psi, U2, step):
    N = psi.shape[0]
    block = step << 1
    nblocks = N // block
    for b in prange(nblocks):
        base = b * block
        for off in range(step):
            i0 = base + off
            i1 = i0 + step
            a0 = psi[i0]
            a1 = psi[i1]
            psi[i0] = U2[0,0]*a0 + U2[0,1]*a1
            psi[i1] = U2[1,0]*a0 + U2[1,1]*a1

@njit(parallel=True, fastmath=True)
def _controlled_kernel(psi, U2, cmask, step):
    N = psi.shape[0]
    # Iterate only bases with target bit 0 and all control bits 1 → disjoint pairs.
    for i0 in prange(N):
        if (i0 & step) == 0 and (i0 & cmask) == cmask:
            i1 = i0 | step
            a0 = psi[i0]
            a1 = psi[i1]
            psi[i0] = U2[0,0]*a0 + U2[0,1]*a1
            psi[i1] = U2[1,0]*a0 + U2[1,1]*a1

# ---------- user-facing apply helpers ----------

def set_threads(n: int) -> int:
    """Resize the active pool, clamped to [1, NUMBA_NUM_THREADS]; returns the size used."""
    n = max(1, min(int(n), config.NUMBA_NUM_THREADS))
    set_num_threads(n)
    return n

def get_threads() -> int:
    return get_num_threads()

def matvec(m: np.ndarray, psi: np.ndarray) -> np.ndarray:
    if m.shape != (psi.shape[0], psi.shape[0]):
        raise DimensionError(f"operator shape {m.shape} does not match state of length {psi.shape[0]}")
    out = np.empty_like(psi)
    _matvec_kernel(np.ascontiguousarray(m, dtype=psi.dtype), psi, out)
    return out

def apply_diagonal(d: np.ndarray, psi: np.ndarray):
    if d.shape != psi.shape:
        raise DimensionError(f"diagonal of length {d.shape[0]} does not match state of length {psi.shape[0]}")
    _diagonal_kernel(d.astype(psi.dtype), psi)

def apply_single_qubit(psi: np.ndarray, U2: np.ndarray, n: int, target: int):
    check_index(n, target)
    _single_qubit_kernel(psi, U2.astype(psi.dtype), 1 << (n - 1 - target))

def apply_controlled(psi: np.ndarray, U2: np.ndarray, n: int, controls: Sequence[int], target: int):
    if not controls:
        return apply_single_qubit(psi, U2, n, target)
    check_index(n, target, *controls)
    if target in controls:
        raise ValueError(f"target {target} is also a control")
    mc = 0
    for c in controls:
        mc |= 1 << (n - 1 - c)
    _controlled_kernel(psi, U2.astype(psi.dtype), mc, 1 << (n - 1 - target))
