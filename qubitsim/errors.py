# qubitsim/errors.py


class DimensionError(ValueError):
    """Operator, vector or matrix size does not fit the register."""


class QubitIndexError(IndexError):
    """Bit position outside [0, n)."""


class ProbabilityRangeError(ValueError):
    """Channel probability outside [0, 1]."""


def check_index(n: int, *bits: int):
    for b in bits:
        if not (0 <= b < n):
            raise QubitIndexError(f"qubit index {b} out of range for {n} qubits")
