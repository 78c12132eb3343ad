# qubitsim/circuit.py
from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Tuple
import numpy as np
from .register import Measurement, Register
from .linalg import DTYPE, compose, identity
from . import gates as G

Op = Tuple[str, Tuple]  # e.g., ("H",(k,)) or ("CNOT",((c,),t)) or ("RZ",(k,theta))

# name -> 2x2 builder taking (theta..., dtype)
_ONE_QUBIT = {
    "I": G.I, "X": G.X, "Y": G.Y, "Z": G.Z, "H": G.H, "S": G.S, "T": G.T,
}
_ROTATIONS = {"RX": G.RX, "RY": G.RY, "RZ": G.RZ, "R": G.R}

# ops that read or write the measurement record
_CLASSICAL = {"MEASURE", "X_IF", "Z_IF"}


class Run(NamedTuple):
    register: Register
    measurements: List[Measurement]

    def bits(self, *indices: int) -> str:
        """Recorded outcomes as a bit string (default: the whole record, in order)."""
        ms = self.measurements if not indices else [self.measurements[i] for i in indices]
        return "".join(str(m.bit) for m in ms)


@dataclass
class Circuit:
    n: int
    ops: List[Op]

    @staticmethod
    def empty(n: int) -> "Circuit":
        return Circuit(n, [])

    def _add(self, name: str, *args) -> "Circuit":
        self.ops.append((name, args)); return self

    def i(self, k:int): return self._add("I", k)
    def h(self, k:int): return self._add("H", k)
    def x(self, k:int): return self._add("X", k)
    def y(self, k:int): return self._add("Y", k)
    def z(self, k:int): return self._add("Z", k)
    def s(self, k:int): return self._add("S", k)
    def t(self, k:int): return self._add("T", k)
    def rx(self, k:int, theta:float): return self._add("RX", k, theta)
    def ry(self, k:int, theta:float): return self._add("RY", k, theta)
    def rz(self, k:int, theta:float): return self._add("RZ", k, theta)
    def r(self, k:int, theta:float): return self._add("R", k, theta)
    def u(self, k:int, theta:float, phi:float, lam:float): return self._add("U", k, theta, phi, lam)
    def cnot(self, c:int, t:int): return self._add("CNOT", (c,), t)
    def ccnot(self, c0:int, c1:int, t:int): return self._add("CNOT", (c0, c1), t)
    def cccnot(self, c0:int, c1:int, c2:int, t:int): return self._add("CNOT", (c0, c1, c2), t)
    def cz(self, c:int, t:int): return self._add("CZ", (c,), t)
    def ccz(self, c0:int, c1:int, t:int): return self._add("CZ", (c0, c1), t)
    def cr(self, c:int, t:int, theta:float): return self._add("CR", (c,), t, theta)

    def swap(self, *qubits: int):
        """Reverse the order of `qubits`: swap(a, b) exchanges two, swap(a, b, c, d) pairs a-d and b-c."""
        if len(qubits) < 2:
            raise ValueError("swap needs at least two qubits")
        for i in range(len(qubits) // 2):
            self._add("SWAP", qubits[i], qubits[-1 - i])
        return self

    def condition_x(self, flag: bool, *qubits: int):
        """X on each of `qubits` when `flag` is already known to be true."""
        if flag:
            for k in qubits:
                self.x(k)
        return self

    def condition_z(self, flag: bool, *qubits: int):
        if flag:
            for k in qubits:
                self.z(k)
        return self

    def qft(self, qubits: Sequence[int] = None):
        """H then controlled rotations CR(theta(k)) from every later qubit."""
        qs = list(range(self.n)) if qubits is None else list(qubits)
        for i, q in enumerate(qs):
            self.h(q)
            for k, c in enumerate(qs[i+1:], start=2):
                self.cr(c, q, G.theta(k))
        return self

    def iqft(self, qubits: Sequence[int] = None):
        qs = list(range(self.n)) if qubits is None else list(qubits)
        for i in reversed(range(len(qs))):
            for k, c in reversed(list(enumerate(qs[i+1:], start=2))):
                self.cr(c, qs[i], -G.theta(k))
            self.h(qs[i])
        return self

    def cmodexp2(self, a:int, j:int, N:int, c:int, targets: Sequence[int]):
        return self._add("CMODEXP2", a, j, N, c, tuple(targets))

    def cmodexp2_all(self, a:int, N:int, controls: Sequence[int], targets: Sequence[int]):
        """controls[j] raises the target register by a**(2**j) mod N, for every j."""
        for j, c in enumerate(controls):
            self.cmodexp2(a, j, N, c, targets)
        return self

    # ---------------------- mid-circuit measurement ----------------------

    def num_measurements(self) -> int:
        return sum(1 for name, _ in self.ops if name == "MEASURE")

    def measure(self, *qubits: int):
        """Measure each of `qubits` in order; each outcome is appended to the run's record."""
        for k in qubits:
            self._add("MEASURE", k)
        return self

    def _conditioned(self, name: str, ms: Sequence[int], bits: str, qubits: Sequence[int]):
        ms = tuple(ms)
        recorded = self.num_measurements()
        for m in ms:
            if not (0 <= m < recorded):
                raise IndexError(f"measurement {m} is not recorded before this point")
        if len(bits) != len(ms) or any(ch not in "01" for ch in bits):
            raise ValueError(f"bits {bits!r} do not match measurements {ms}")
        return self._add(name, ms, bits, tuple(qubits))

    def x_when(self, ms: Sequence[int], bits: str, *qubits: int):
        """X on each of `qubits` when recorded measurements `ms` read `bits`."""
        return self._conditioned("X_IF", ms, bits, qubits)

    def z_when(self, ms: Sequence[int], bits: str, *qubits: int):
        return self._conditioned("Z_IF", ms, bits, qubits)

    def x_if(self, m: int, *qubits: int):
        """X on each of `qubits` when recorded measurement `m` came out 1."""
        return self.x_when((m,), "1", *qubits)

    def z_if(self, m: int, *qubits: int):
        return self.z_when((m,), "1", *qubits)

    # ------------------------------------------------------------------

    def _gate(self, name: str, args: Tuple, dtype) -> np.ndarray:
        """Dense 2**n operator of one recorded op."""
        n = self.n
        if name in _ONE_QUBIT:
            (k,) = args; return G.on(_ONE_QUBIT[name](dtype), n, [k])
        elif name in _ROTATIONS:
            k, theta = args; return G.on(_ROTATIONS[name](theta, dtype), n, [k])
        elif name == "U":
            k, theta, phi, lam = args; return G.on(G.U(theta, phi, lam, dtype), n, [k])
        elif name == "CNOT":
            cs, t = args; return G.controlled_not(n, cs, t, dtype)
        elif name == "CZ":
            cs, t = args; return G.controlled_z(n, cs, t, dtype)
        elif name == "CR":
            cs, t, theta = args; return G.controlled_r(theta, n, cs, t, dtype)
        elif name == "SWAP":
            a, b = args; return G.SWAP(n, a, b, dtype)
        elif name == "CMODEXP2":
            a, j, N, c, ts = args; return G.CModExp2(n, a, j, N, c, ts, dtype)
        elif name in _CLASSICAL:
            raise ValueError(f"{name} is not a unitary operation")
        else:
            raise ValueError(f"Unknown gate {name}")

    def unitary(self, dtype=DTYPE) -> np.ndarray:
        """The whole circuit as one dense operator. Circuits with measurements have none."""
        if any(name in _CLASSICAL for name, _ in self.ops):
            raise ValueError("circuit contains measurements; it has no single unitary")
        if not self.ops:
            return identity(self.n, dtype=dtype)
        return compose(*[self._gate(name, args, dtype) for name, args in self.ops])

    def _step(self, st: Register, name: str, args: Tuple, record: List[Measurement], dtype):
        if name in _ONE_QUBIT:
            (k,) = args; st.apply_gate(_ONE_QUBIT[name](dtype), k)
        elif name in _ROTATIONS:
            k, theta = args; st.apply_gate(_ROTATIONS[name](theta, dtype), k)
        elif name == "U":
            k, theta, phi, lam = args; st.apply_gate(G.U(theta, phi, lam, dtype), k)
        elif name == "CNOT":
            cs, t = args; st.apply_gate(G.X(dtype), t, cs)
        elif name == "CZ":
            cs, t = args; st.apply(G.controlled_phase(-1, self.n, cs, t, dtype))
        elif name == "CR":
            cs, t, theta = args; st.apply(G.controlled_phase(np.exp(1j*theta), self.n, cs, t, dtype))
        elif name == "SWAP":
            a, b = args
            st.apply_gate(G.X(dtype), b, [a]).apply_gate(G.X(dtype), a, [b]).apply_gate(G.X(dtype), b, [a])
        elif name == "CMODEXP2":
            st.apply(self._gate(name, args, dtype))
        elif name == "MEASURE":
            (k,) = args; record.append(st.measure(k))
        elif name in ("X_IF", "Z_IF"):
            ms, bits, qs = args
            if "".join(str(record[m].bit) for m in ms) == bits:
                u = G.X(dtype) if name == "X_IF" else G.Z(dtype)
                for k in qs:
                    st.apply_gate(u, k)
        else:
            raise ValueError(f"Unknown gate {name}")

    def execute(self, backend:str="serial", dtype=DTYPE, rng=None, check_norm=True, num_threads=None, check_norm_tol=1e-9) -> Run:
        """Replay the ops onto |0...0>; returns the register and the measurement record."""
        st = Register.zero(self.n, rng=rng, backend=backend, dtype=dtype)

        if backend == "numba" and num_threads is not None:
            from .apply_numba import set_threads
            set_threads(int(num_threads))

        record: List[Measurement] = []
        for name, args in self.ops:
            self._step(st, name, args, record, dtype)

        if check_norm:
            st.check_normalized(tol=check_norm_tol)
        return Run(st, record)

    def run(self, backend:str="serial", dtype=DTYPE, rng=None, check_norm=True, num_threads=None, check_norm_tol=1e-9) -> Register:
        return self.execute(backend=backend, dtype=dtype, rng=rng, check_norm=check_norm,
                            num_threads=num_threads, check_norm_tol=check_norm_tol).register

    def estimate(self, k: int, shots: int = 1000, **run_kwargs) -> Register:
        """Run once, then sample qubit k on `shots` clones of the final register."""
        return self.run(**run_kwargs).estimate(k, shots)
