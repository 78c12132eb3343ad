# qubitsim/register.py
"""
State-vector register.

A Register owns one amplitude vector of length 2**n (qubit 0 is the most
significant bit of the basis index) and one random source that is only read by
measure(). Gate application, tensor growth and measurement mutate the register
in place and return it, except measure(), which returns a fresh Measurement.
"""
import copy
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence
import numpy as np
from .backends import backend as get_backend
from .errors import DimensionError, check_index
from .linalg import DTYPE, eps13, is_power_of_two, num_qubits as log2_dim, outer
from .state import State, round_amplitude, take

logger = logging.getLogger(__name__)


def _default_rng():
    return np.random.default_rng()


@dataclass(frozen=True)
class Measurement:
    """Outcome of measuring one qubit. Not a view into the measured register."""
    bit: int
    probability: float

    def is_zero(self) -> bool:
        return self.bit == 0

    def is_one(self) -> bool:
        return self.bit == 1

    def register(self, dtype=DTYPE) -> "Register":
        """Fresh, unentangled single-qubit register in the observed basis state."""
        return Register.one(1, dtype=dtype) if self.bit else Register.zero(1, dtype=dtype)


class Register:
    def __init__(self, psi, rng=None, backend: str = "serial"):
        psi = np.array(psi, copy=True, order="C")
        if psi.ndim != 1 or not is_power_of_two(psi.shape[0]):
            raise DimensionError(f"amplitude vector length {psi.shape} is not a power of 2")
        if not np.iscomplexobj(psi):
            psi = psi.astype(DTYPE)
        self.psi = psi
        self.rng = rng if rng is not None else _default_rng()
        self.backend = backend
        self._kernels = get_backend(backend)

    # ------------------------- construction -------------------------

    @staticmethod
    def new(*amps, rng=None, backend="serial", dtype=DTYPE) -> "Register":
        """Register from explicit amplitudes, normalized."""
        return Register(np.array(amps, dtype=dtype), rng=rng, backend=backend).normalize()

    @staticmethod
    def zero(n: int = 1, rng=None, backend="serial", dtype=DTYPE) -> "Register":
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        psi = np.zeros(1 << n, dtype=dtype)
        psi[0] = 1.0 + 0.0j
        return Register(psi, rng=rng, backend=backend)

    @staticmethod
    def one(n: int = 1, rng=None, backend="serial", dtype=DTYPE) -> "Register":
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        psi = np.zeros(1 << n, dtype=dtype)
        psi[-1] = 1.0 + 0.0j
        return Register(psi, rng=rng, backend=backend)

    @staticmethod
    def from_binary_string(s: str, rng=None, backend="serial", dtype=DTYPE) -> "Register":
        """'0110' -> |0110>."""
        if not s or any(ch not in "01" for ch in s):
            raise ValueError(f"invalid binary string: {s!r}")
        psi = np.zeros(1 << len(s), dtype=dtype)
        psi[int(s, 2)] = 1.0 + 0.0j
        return Register(psi, rng=rng, backend=backend)

    # --------------------------- accessors --------------------------

    @property
    def n(self) -> int:
        return log2_dim(self.psi.shape[0])

    num_qubits = n

    @property
    def dimension(self) -> int:
        return self.psi.shape[0]

    @property
    def dtype(self):
        return self.psi.dtype

    def amplitudes(self) -> np.ndarray:
        return self.psi.copy()

    def probabilities(self) -> np.ndarray:
        return np.abs(self.psi)**2

    def norm2(self) -> float:
        return float(np.vdot(self.psi, self.psi).real)

    def check_normalized(self, tol=1e-9):
        n2 = self.norm2()
        if not (abs(1.0 - n2) <= tol):
            raise AssertionError(f"Normalization failed: ||psi||^2={n2}")

    # --------------------------- evolution --------------------------

    def normalize(self) -> "Register":
        n2 = self.norm2()
        if n2 == 0.0:
            raise ValueError("cannot normalize a zero vector")
        self.psi = (self.psi / np.sqrt(n2)).astype(self.psi.dtype, copy=False)
        return self

    def apply(self, *ops) -> "Register":
        """
        Apply operators in order: psi <- op @ psi.
        A 2-D op is a dense 2**n x 2**n operator; a 1-D op is the diagonal of
        a diagonal operator and takes the O(2**n) path.
        """
        for op in ops:
            op = np.asarray(op)
            if op.ndim == 1:
                self._kernels.apply_diagonal(op, self.psi)
            elif op.ndim == 2:
                self.psi = self._kernels.matvec(op, self.psi)
            else:
                raise DimensionError(f"operator must be 1-D or 2-D, got shape {op.shape}")
        return self

    def apply_gate(self, u2: np.ndarray, target: int, controls: Sequence[int] = ()) -> "Register":
        """2x2 unitary on `target`, optionally controlled, without building the full operator."""
        u2 = np.asarray(u2)
        if u2.shape != (2, 2):
            raise DimensionError(f"expected a 2x2 gate, got shape {u2.shape}")
        self._kernels.apply_controlled(self.psi, u2, self.n, list(controls), target)
        return self

    def tensor_product(self, *others: "Register") -> "Register":
        """psi <- psi (x) other.psi; the other qubits are appended after ours."""
        for other in others:
            self.psi = np.kron(self.psi, other.psi)
        return self

    # -------------------------- measurement -------------------------

    def measure(self, bit: int) -> Measurement:
        """
        Measure qubit `bit` and collapse the register in place.

        The amplitudes inconsistent with the observed value are zeroed and the
        rest renormalized. The returned Measurement is a new value, unrelated
        to this register's vector.
        """
        n = self.n
        check_index(n, bit)
        mask = 1 << (n - 1 - bit)

        ones = (np.arange(self.dimension) & mask) != 0
        p = self.probabilities()
        prob0 = float(p[~ones].sum())
        prob1 = float(p[ones].sum())

        if prob0 <= 0.0:
            zero = False
        elif prob1 <= 0.0:
            zero = True
        else:
            zero = self.rng.random() < prob0

        if zero:
            self.psi[ones] = 0
        else:
            self.psi[~ones] = 0
        self.normalize()

        m = Measurement(bit=0 if zero else 1, probability=prob0 if zero else prob1)
        logger.debug("measured qubit %d of %d: %d (p=%.6f)", bit, n, m.bit, m.probability)
        return m

    def measure_all(self, bits: Optional[Sequence[int]] = None) -> List[Measurement]:
        """Measure `bits` (default: every qubit) one at a time, in order."""
        if bits is None:
            bits = range(self.n)
        return [self.measure(b) for b in bits]

    def measure_as_int(self, *bits: int) -> int:
        """Measure `bits` (default: every qubit) in place; the outcomes read MSB first."""
        ms = self.measure_all(bits or None)
        return int("".join(str(m.bit) for m in ms), 2)

    def binary_string(self, *bits: int) -> str:
        """Measure `bits` (default: every qubit) on a clone; this register is left untouched."""
        c = self.clone()
        return "".join(str(m.bit) for m in c.measure_all(bits or None))

    def as_int(self, *bits: int) -> int:
        return int(self.binary_string(*bits), 2)

    def estimate(self, bit: int, shots: int = 1000) -> "Register":
        """
        Single-qubit register with amplitudes sqrt(c0/shots), sqrt(c1/shots),
        where c0, c1 count the outcomes of measuring `bit` on `shots` clones.
        """
        if shots < 1:
            raise ValueError(f"shots must be >= 1, got {shots}")
        check_index(self.n, bit)
        c1 = sum(self.clone().measure(bit).bit for _ in range(shots))
        c0 = shots - c1
        return Register.new(np.sqrt(c0 / shots), np.sqrt(c1 / shots), dtype=self.dtype)

    # ---------------------------- reports ---------------------------

    def state(self, *groups: Sequence[int], tol=None) -> List[State]:
        """
        Nonzero amplitudes labelled per group of bit positions.

        Each group is read in the order given; groups may subset, reorder or
        overlap the qubits. With no groups, a single group of every qubit.
        """
        n = self.n
        if not groups:
            groups = (list(range(n)),)
        for g in groups:
            check_index(n, *g)

        out = []
        for i, a in enumerate(self.psi):
            amp = round_amplitude(complex(a), tol)
            if amp == 0:
                continue
            out.append(State.from_amplitude(amp, *[take(n, i, g) for g in groups]))
        return out

    # ------------------------- comparisons --------------------------

    def inner_product(self, other: "Register") -> complex:
        """<self|other>"""
        return complex(np.vdot(self.psi, other.psi))

    def outer_product(self, other: "Register") -> np.ndarray:
        """|self><other|"""
        return outer(self.psi, other.psi)

    def fidelity(self, other: "Register") -> float:
        return float(np.sum(np.sqrt(self.probabilities() * other.probabilities())))

    def trace_distance(self, other: "Register") -> float:
        return float(np.sum(np.abs(self.probabilities() - other.probabilities())) / 2)

    def equals(self, other: "Register", tol=None) -> bool:
        if self.dimension != other.dimension:
            return False
        return bool(np.allclose(self.psi, other.psi, atol=eps13(tol), rtol=0))

    def is_zero(self, tol=None) -> bool:
        return self.equals(Register.zero(1), tol)

    def is_one(self, tol=None) -> bool:
        return self.equals(Register.one(1), tol)

    # ---------------------------- copying ---------------------------

    def clone(self) -> "Register":
        """Deep copy. A numpy Generator is replaced by an independent child stream."""
        if isinstance(self.rng, np.random.Generator):
            rng = self.rng.spawn(1)[0]
        else:
            rng = copy.deepcopy(self.rng)
        return Register(self.psi.copy(), rng=rng, backend=self.backend)

    def __repr__(self):
        return f"Register(n={self.n}, psi={self.psi})"


# --------------------------- module helpers ---------------------------

def custom(*amps, **kwargs) -> Register:
    return Register.new(*amps, **kwargs)

def zero(n: int = 1, **kwargs) -> Register:
    return Register.zero(n, **kwargs)

def one(n: int = 1, **kwargs) -> Register:
    return Register.one(n, **kwargs)

def from_binary_string(s: str, **kwargs) -> Register:
    return Register.from_binary_string(s, **kwargs)

def tensor_product(*regs: Register) -> Register:
    """Tensor regs[1:] into regs[0], in place, and return it."""
    if not regs:
        raise ValueError("tensor_product needs at least one register")
    return regs[0].tensor_product(*regs[1:])
