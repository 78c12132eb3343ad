# qubitsim/gates.py
# Gate library. Single-qubit gates are 2x2; everything taking `n` returns a
# 2**n x 2**n operator (or its diagonal, for controlled_phase).
# Bit position b addresses mask 1 << (n-1-b): qubit 0 is the MSB.
from math import gcd
from typing import Sequence
import numpy as np
from .errors import check_index
from .linalg import DTYPE, compose, dagger, identity, tensor_product, tensor_product_n


def theta(k: int) -> float:
    """2*pi / 2**k"""
    return 2.0 * np.pi / (1 << k)


# ----------------------------- 2x2 gates -----------------------------

def I(dtype=DTYPE) -> np.ndarray:
    return np.eye(2, dtype=dtype)

def X(dtype=DTYPE) -> np.ndarray:
    return np.array([[0, 1],
                     [1, 0]], dtype=dtype)

def Y(dtype=DTYPE) -> np.ndarray:
    return np.array([[0, -1j],
                     [1j, 0]], dtype=dtype)

def Z(dtype=DTYPE) -> np.ndarray:
    return np.array([[1, 0],
                     [0, -1]], dtype=dtype)

def H(dtype=DTYPE) -> np.ndarray:
    s = np.sqrt(0.5)
    return np.array([[s, s],
                     [s, -s]], dtype=dtype)

def S(dtype=DTYPE) -> np.ndarray:
    return np.array([[1, 0],
                     [0, 1j]], dtype=dtype)

def T(dtype=DTYPE) -> np.ndarray:
    return np.array([[1, 0],
                     [0, np.exp(0.25j*np.pi)]], dtype=dtype)

def U(theta: float, phi: float, lam: float, dtype=DTYPE) -> np.ndarray:
    c, s = np.cos(theta/2.0), np.sin(theta/2.0)
    return np.array([[c, -np.exp(1j*lam)*s],
                     [np.exp(1j*phi)*s, np.exp(1j*(phi+lam))*c]], dtype=dtype)

def R(theta: float, dtype=DTYPE) -> np.ndarray:
    """Phase rotation diag(1, e^{i theta}); R(theta(k)) is the QFT rotation."""
    return np.array([[1, 0],
                     [0, np.exp(1j*theta)]], dtype=dtype)

def RX(theta: float, dtype=DTYPE) -> np.ndarray:
    c = np.cos(theta/2.0)
    s = -1j*np.sin(theta/2.0)
    return np.array([[c, s],
                     [s, c]], dtype=dtype)

def RY(theta: float, dtype=DTYPE) -> np.ndarray:
    c, s = np.cos(theta/2.0), np.sin(theta/2.0)
    return np.array([[c, -s],
                     [s, c]], dtype=dtype)

def RZ(theta: float, dtype=DTYPE) -> np.ndarray:
    return np.array([[np.exp(-0.5j*theta), 0],
                     [0, np.exp(+0.5j*theta)]], dtype=dtype)


# ------------------------------ lifting ------------------------------

def spread(u: np.ndarray, n: int) -> np.ndarray:
    """u on every one of n qubits: u (x) u (x) ... (x) u."""
    return tensor_product_n(u, n)

def on(u: np.ndarray, n: int, targets: Sequence[int]) -> np.ndarray:
    """u on each bit position in targets, identity on the rest."""
    check_index(n, *targets)
    idx = set(targets)
    eye = np.eye(2, dtype=u.dtype)
    return tensor_product(*[u if b in idx else eye for b in range(n)])


# ---------------------------- controlled -----------------------------

def _mask(n: int, bits: Sequence[int]) -> int:
    m = 0
    for b in bits:
        m |= 1 << (n - 1 - b)
    return m

def _check_controls(n: int, controls: Sequence[int], target: int):
    check_index(n, target, *controls)
    if target in controls:
        raise ValueError(f"target {target} is also a control")

def controlled(u: np.ndarray, n: int, controls: Sequence[int], target: int, dtype=DTYPE) -> np.ndarray:
    """
    Lift a 2x2 unitary u onto `target`, active only when every control bit is 1.

    M[r, c] = u[bit_t(r), bit_t(c)] for every pair (r, c) with all control bits
    set that differ at most in the target bit; identity everywhere else.
    """
    _check_controls(n, controls, target)
    mask = _mask(n, controls)
    mt = 1 << (n - 1 - target)

    g = identity(n, dtype=dtype)
    idx = np.arange(1 << n)
    i0 = idx[((idx & mask) == mask) & ((idx & mt) == 0)]   # target bit 0
    i1 = i0 | mt                                           # target bit 1
    g[i0, i0] = u[0, 0]; g[i0, i1] = u[0, 1]
    g[i1, i0] = u[1, 0]; g[i1, i1] = u[1, 1]
    return g

def controlled_phase(phase: complex, n: int, controls: Sequence[int], target: int, dtype=DTYPE) -> np.ndarray:
    """
    Diagonal (1-D, length 2**n) of the operator that multiplies by `phase`
    every basis state whose controls and target are all 1.
    Register.apply treats a 1-D array as a diagonal operator.
    """
    _check_controls(n, controls, target)
    mask = _mask(n, list(controls) + [target])
    d = np.ones(1 << n, dtype=dtype)
    idx = np.arange(1 << n)
    d[(idx & mask) == mask] *= phase
    return d

def controlled_not(n: int, controls: Sequence[int], target: int, dtype=DTYPE) -> np.ndarray:
    return controlled(X(dtype), n, controls, target, dtype=dtype)

def CNOT(n: int, c: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_not(n, [c], t, dtype=dtype)

def CCNOT(n: int, c0: int, c1: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_not(n, [c0, c1], t, dtype=dtype)

Toffoli = CCNOT

def CCCNOT(n: int, c0: int, c1: int, c2: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_not(n, [c0, c1, c2], t, dtype=dtype)

def controlled_z(n: int, controls: Sequence[int], target: int, dtype=DTYPE) -> np.ndarray:
    return np.diag(controlled_phase(-1, n, controls, target, dtype=dtype))

def CZ(n: int, c: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_z(n, [c], t, dtype=dtype)

def CCZ(n: int, c0: int, c1: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_z(n, [c0, c1], t, dtype=dtype)

def controlled_s(n: int, controls: Sequence[int], target: int, dtype=DTYPE) -> np.ndarray:
    return np.diag(controlled_phase(1j, n, controls, target, dtype=dtype))

def CS(n: int, c: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_s(n, [c], t, dtype=dtype)

def controlled_r(theta: float, n: int, controls: Sequence[int], target: int, dtype=DTYPE) -> np.ndarray:
    return np.diag(controlled_phase(np.exp(1j*theta), n, controls, target, dtype=dtype))

def CR(theta: float, n: int, c: int, t: int, dtype=DTYPE) -> np.ndarray:
    return controlled_r(theta, n, [c], t, dtype=dtype)


# ----------------------------- composite -----------------------------

def SWAP(n: int, a: int, b: int, dtype=DTYPE) -> np.ndarray:
    if a == b:
        raise ValueError("swap operands must differ")
    return compose(CNOT(n, a, b, dtype), CNOT(n, b, a, dtype), CNOT(n, a, b, dtype))

def reverse(n: int, qubits: Sequence[int], dtype=DTYPE) -> np.ndarray:
    """Reverse the order of `qubits` by swapping them pairwise from both ends."""
    qs = list(qubits)
    g = identity(n, dtype=dtype)
    for i in range(len(qs) // 2):
        g = SWAP(n, qs[i], qs[-1 - i], dtype) @ g
    return g

def Fredkin(n: int, c: int, t0: int, t1: int, dtype=DTYPE) -> np.ndarray:
    """Controlled swap of t0, t1."""
    if t0 == t1:
        raise ValueError("swap operands must differ")
    return compose(CNOT(n, t0, t1, dtype), CCNOT(n, c, t1, t0, dtype), CNOT(n, t0, t1, dtype))

def QFT(n: int, dtype=DTYPE) -> np.ndarray:
    g = identity(n, dtype=dtype)
    h = H(dtype)
    for i in range(n):
        g = on(h, n, [i]) @ g
        k = 2
        for j in range(i + 1, n):
            g = CR(theta(k), n, j, i, dtype) @ g
            k += 1
    return g

def IQFT(n: int, dtype=DTYPE) -> np.ndarray:
    return dagger(QFT(n, dtype))

def CModExp2(n: int, a: int, j: int, N: int, control: int, targets: Sequence[int], dtype=DTYPE) -> np.ndarray:
    """
    Controlled modular exponentiation |c>|k> -> |c>|a**(2**j) * k mod N>.
    Acts when the control bit is 1 and the target register value k < N;
    targets are read MSB first in the order given.
    """
    check_index(n, control, *targets)
    if control in targets:
        raise ValueError(f"control {control} is also a target")
    if len(targets) < N.bit_length():
        raise ValueError(f"len(targets)={len(targets)} < bit length of N={N}")
    if gcd(a, N) != 1:
        raise ValueError(f"a={a} is not coprime to N={N}")

    factor = pow(a, 1 << j, N)
    mc = 1 << (n - 1 - control)
    tmasks = [1 << (n - 1 - t) for t in targets]
    tclear = ~_mask(n, targets)
    width = len(targets)

    d = 1 << n
    g = np.zeros((d, d), dtype=dtype)
    for i in range(d):
        dst = i
        if i & mc:
            k = 0
            for m in tmasks:
                k = (k << 1) | (1 if i & m else 0)
            if k < N:
                v = (factor * k) % N
                dst = i & tclear
                for pos, m in enumerate(tmasks):
                    if (v >> (width - 1 - pos)) & 1:
                        dst |= m
        g[dst, i] = 1
    return g
