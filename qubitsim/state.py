# qubitsim/state.py
from dataclasses import dataclass
from typing import List, Sequence, Tuple
import numpy as np
from .linalg import eps13


def round_amplitude(a: complex, tol=None) -> complex:
    """Snap real/imag parts within tol (default 1e-13) of zero to exactly zero."""
    e = eps13(tol)
    re, im = a.real, a.imag
    if abs(re) < e:
        re = 0.0
    if abs(im) < e:
        im = 0.0
    return complex(re, im)


def take(n: int, i: int, bits: Sequence[int]) -> str:
    """Binary string of basis index i read at `bits`, in the order given."""
    s = format(i, f"0{n}b")
    return "".join(s[b] for b in bits)


@dataclass(frozen=True)
class State:
    """One nonzero amplitude of a register, labelled per group of bit positions."""
    amplitude: complex
    probability: float
    binary_strings: Tuple[str, ...]
    ints: Tuple[int, ...]

    @staticmethod
    def from_amplitude(amp: complex, *binary: str) -> "State":
        return State(
            amplitude=amp,
            probability=abs(amp)**2,
            binary_strings=tuple(binary),
            ints=tuple(int(b, 2) if b else 0 for b in binary),
        )

    def equals(self, other: "State", tol=None) -> bool:
        if self.binary_strings != other.binary_strings:
            return False
        return bool(np.isclose(self.amplitude, other.amplitude, atol=eps13(tol), rtol=0))

    def __str__(self):
        bins = " ".join(self.binary_strings)
        ints = " ".join(f"{v:3d}" for v in self.ints)
        a = self.amplitude
        return f"[{bins}][{ints}]({a.real: .4f}{a.imag: .4f}i): {self.probability:.4f}"


def states_equal(s: List[State], v: List[State], tol=None) -> bool:
    if len(s) != len(v):
        return False
    return all(a.equals(b, tol) for a, b in zip(s, v))
