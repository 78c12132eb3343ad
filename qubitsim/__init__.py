# qubitsim/__init__.py
from .register import Register, Measurement, zero, one, custom, from_binary_string, tensor_product
from .state import State, states_equal
from .density import DensityMatrix, density, flip, bit_flip, phase_flip, bit_phase_flip
from .circuit import Circuit, Run
from .errors import DimensionError, QubitIndexError, ProbabilityRangeError
from . import gates

__version__ = "0.1.0"
