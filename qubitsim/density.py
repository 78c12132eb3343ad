# qubitsim/density.py
"""
Density matrices built from weighted ensembles of pure registers.

    rho = sum_i p_i |psi_i><psi_i|

Bit positions follow the register convention (qubit 0 is the MSB).
"""
import logging
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple
import numpy as np
from . import gates as G
from .errors import DimensionError, ProbabilityRangeError, check_index
from .linalg import DTYPE, ATOL, dagger, identity, is_hermitian, is_power_of_two, is_square, num_qubits as log2_dim
from .register import Register

logger = logging.getLogger(__name__)


class EnsembleState(NamedTuple):
    probability: float
    register: Register


def normalize_ensemble(ensemble: Iterable[Tuple[float, Register]]) -> List[EnsembleState]:
    """Copies of the ensemble members with probabilities rescaled to sum to 1."""
    members = [EnsembleState(float(p), r) for p, r in ensemble]
    if not members:
        raise ValueError("ensemble is empty")
    if any(m.probability < 0 for m in members):
        raise ValueError("ensemble probabilities must be non-negative")
    total = sum(m.probability for m in members)
    if total <= 0:
        raise ValueError("ensemble probabilities sum to zero")
    return [EnsembleState(m.probability / total, m.register) for m in members]


def _check_probability(p: float):
    if not (0 <= p <= 1):
        raise ProbabilityRangeError(f"p={p} is out of range [0, 1]")


class DensityMatrix:
    def __init__(self, rho: np.ndarray):
        rho = np.asarray(rho)
        if not is_square(rho):
            raise DimensionError(f"density matrix must be square, got shape {rho.shape}")
        if not is_power_of_two(rho.shape[0]):
            raise DimensionError(f"density matrix dimension {rho.shape[0]} is not a power of 2")
        self.rho = rho

    @staticmethod
    def from_ensemble(ensemble: Iterable[Tuple[float, Register]], dtype=DTYPE) -> "DensityMatrix":
        members = normalize_ensemble(ensemble)
        d = members[0].register.dimension
        rho = np.zeros((d, d), dtype=dtype)
        for p, reg in members:
            if reg.dimension != d:
                raise DimensionError(f"ensemble mixes dimensions {d} and {reg.dimension}")
            rho += p * reg.outer_product(reg)
        return DensityMatrix(rho)

    # --------------------------- accessors --------------------------

    @property
    def num_qubits(self) -> int:
        return log2_dim(self.rho.shape[0])

    @property
    def dimension(self) -> int:
        return self.rho.shape[0]

    def qubits(self) -> List[int]:
        return list(range(self.num_qubits))

    def at(self, i: int, j: int) -> complex:
        return complex(self.rho[i, j])

    def matrix(self) -> np.ndarray:
        return self.rho.copy()

    # --------------------------- evolution --------------------------

    def apply(self, u: np.ndarray) -> "DensityMatrix":
        """rho <- U rho U^dagger, in place."""
        u = np.asarray(u)
        if u.shape != self.rho.shape:
            raise DimensionError(f"operator shape {u.shape} does not match density matrix {self.rho.shape}")
        self.rho = u @ self.rho @ dagger(u)
        return self

    def apply_channel(self, kraus: Sequence[np.ndarray], qubit: Optional[int] = None) -> "DensityMatrix":
        """
        rho <- sum_k E_k rho E_k^dagger, in place.

        With `qubit`, 2x2 Kraus operators act on that qubit and identity on
        the rest.
        """
        n = self.num_qubits
        ops = [np.asarray(e) for e in kraus]
        if qubit is not None:
            ops = [G.on(e, n, [qubit]) for e in ops]
        out = np.zeros_like(self.rho)
        for e in ops:
            if e.shape != self.rho.shape:
                raise DimensionError(f"kraus operator shape {e.shape} does not match density matrix {self.rho.shape}")
            out += e @ self.rho @ dagger(e)
        logger.debug("applied %d-operator channel on %s", len(ops), "all qubits" if qubit is None else f"qubit {qubit}")
        self.rho = out
        return self

    # -------------------------- observables -------------------------

    def probability(self, reg: Register) -> float:
        """Re Tr(rho |r><r|)"""
        return float(np.trace(self.rho @ reg.outer_product(reg)).real)

    def expected_value(self, op: np.ndarray) -> float:
        """Re Tr(rho op)"""
        return float(np.trace(self.rho @ np.asarray(op)).real)

    def trace(self) -> float:
        return float(np.trace(self.rho).real)

    def purity(self) -> float:
        """Tr(rho^2)"""
        return float(np.trace(self.rho @ self.rho).real)

    squared_trace = purity

    def is_hermitian(self, atol=ATOL) -> bool:
        return is_hermitian(self.rho, atol=atol)

    # --------------------------- reductions -------------------------

    def partial_trace(self, *qubits: int) -> "DensityMatrix":
        """
        Trace out `qubits`; the rest keep their relative order.

        out[kept(i), kept(j)] += rho[i, j] whenever i and j carry the same bit
        pattern on the traced-out qubits.
        """
        n = self.num_qubits
        check_index(n, *qubits)
        if len(set(qubits)) != len(qubits):
            raise ValueError(f"duplicate qubits in {qubits}")
        if len(qubits) > n - 1:
            raise ValueError(f"can trace out at most {n - 1} of {n} qubits")

        traced = sorted(qubits)
        kept = [b for b in range(n) if b not in traced]
        idx = np.arange(1 << n)

        def gather(bits):
            v = np.zeros_like(idx)
            for b in bits:
                v = (v << 1) | ((idx >> (n - 1 - b)) & 1)
            return v

        elim, keep = gather(traced), gather(kept)
        d = 1 << len(kept)
        out = np.zeros((d, d), dtype=self.rho.dtype)
        for e in range(1 << len(traced)):
            rows = idx[elim == e]
            k = keep[rows]
            out[np.ix_(k, k)] += self.rho[np.ix_(rows, rows)]
        return DensityMatrix(out)

    # ---------------------------- channels --------------------------

    def depolarizing(self, p: float) -> "DensityMatrix":
        """(1-p) rho + p I / 2**n, as a new matrix."""
        _check_probability(p)
        n = self.num_qubits
        mixed = identity(n, dtype=self.rho.dtype) / (1 << n)
        return DensityMatrix((1 - p) * self.rho + p * mixed)

    def bit_flip(self, p: float, qubit: Optional[int] = None) -> "DensityMatrix":
        return self.apply_channel(bit_flip(p), qubit)

    def phase_flip(self, p: float, qubit: Optional[int] = None) -> "DensityMatrix":
        return self.apply_channel(phase_flip(p), qubit)

    def bit_phase_flip(self, p: float, qubit: Optional[int] = None) -> "DensityMatrix":
        return self.apply_channel(bit_phase_flip(p), qubit)

    def __repr__(self):
        return f"DensityMatrix(n={self.num_qubits}, rho={self.rho})"


def density(ensemble: Iterable[Tuple[float, Register]], dtype=DTYPE) -> DensityMatrix:
    return DensityMatrix.from_ensemble(ensemble, dtype=dtype)


# ------------------------------ flip channels ------------------------------

def flip(p: float, m: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Kraus pair (sqrt(p) I, sqrt(1-p) m) for any square power-of-two m;
    p is the weight of the identity branch.
    """
    _check_probability(p)
    m = np.asarray(m)
    if not is_square(m):
        raise DimensionError("the matrix is not square")
    if not is_power_of_two(m.shape[0]):
        raise DimensionError("the matrix dimension is not a power of 2")
    n = log2_dim(m.shape[0])
    e0 = identity(n, dtype=DTYPE) * np.sqrt(p)
    e1 = m.astype(DTYPE) * np.sqrt(1 - p)
    return e0, e1

def bit_flip(p: float) -> Tuple[np.ndarray, np.ndarray]:
    return flip(p, G.X())

def phase_flip(p: float) -> Tuple[np.ndarray, np.ndarray]:
    return flip(p, G.Z())

def bit_phase_flip(p: float) -> Tuple[np.ndarray, np.ndarray]:
    return flip(p, G.Y())
