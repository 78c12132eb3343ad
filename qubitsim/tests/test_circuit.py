# qubitsim/tests/test_circuit.py
import numpy as np
import pytest
from qubitsim import gates as G
from qubitsim.circuit import Circuit
from qubitsim.register import custom, from_binary_string, tensor_product


class FixedRandom:
    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def random(self):
        v = self.values[self.calls % len(self.values)]
        self.calls += 1
        return v


def almost(p, q, tol=1e-9):
    return np.allclose(p, q, atol=tol, rtol=0)

# |phi> = sqrt(0.2)|0> + sqrt(0.8)|1>
PHI_THETA = 2 * np.arccos(np.sqrt(0.2))

def phi():
    return custom(np.sqrt(0.2), np.sqrt(0.8))

def teleport():
    return (Circuit.empty(3).ry(0, PHI_THETA)
            .h(1).cnot(1, 2)
            .cnot(0, 1).h(0)
            .measure(0, 1)
            .x_if(1, 2).z_if(0, 2))

@pytest.mark.parametrize("draws", [(0.25, 0.25), (0.25, 0.75), (0.75, 0.25), (0.75, 0.75)])
def test_teleportation_circuit(draws):
    out = teleport().execute(rng=FixedRandom(*draws))
    m0, m1 = out.measurements
    assert out.bits() == f"{m0.bit}{m1.bit}"
    assert np.isclose(m0.probability, 0.5) and np.isclose(m1.probability, 0.5)
    expect = tensor_product(from_binary_string(out.bits()), phi())
    assert out.register.equals(expect, tol=1e-9)

def test_teleportation_covers_every_outcome():
    seen = {teleport().execute(rng=FixedRandom(*d)).bits()
            for d in [(0.25, 0.25), (0.25, 0.75), (0.75, 0.25), (0.75, 0.75)]}
    assert seen == {"00", "01", "10", "11"}

def test_estimate_teleported_qubit():
    e = teleport().estimate(2, shots=4000, rng=np.random.default_rng(0))
    p = e.probabilities()
    assert abs(p[0] - 0.2) < 0.05 and abs(p[1] - 0.8) < 0.05

def test_bit_flip_code_corrects_one_error():
    c = (Circuit.empty(5).ry(0, PHI_THETA)
         .cnot(0, 1).cnot(0, 2)          # encode
         .x(1)                           # error
         .cnot(0, 3).cnot(1, 3).cnot(1, 4).cnot(2, 4)
         .measure(3, 4)
         .x_when((0, 1), "10", 0).x_when((0, 1), "11", 1).x_when((0, 1), "01", 2)
         .cnot(0, 2).cnot(0, 1))         # decode
    out = c.execute(rng=FixedRandom(0.5))
    assert out.bits() == "11"
    assert out.register.equals(tensor_product(phi(), from_binary_string("0011")), tol=1e-9)

def test_condition_x_and_z_on_known_flags():
    c = Circuit.empty(2).condition_x(True, 0, 1).condition_x(False, 0)
    assert c.run().equals(from_binary_string("11"))
    c = Circuit.empty(1).h(0).condition_z(True, 0).condition_z(False, 0).h(0)
    assert c.run().equals(from_binary_string("1"))

def test_conditioned_ops_validate_record():
    with pytest.raises(IndexError):
        Circuit.empty(2).x_if(0, 1)
    with pytest.raises(IndexError):
        Circuit.empty(2).measure(0).z_if(1, 1)
    with pytest.raises(ValueError):
        Circuit.empty(2).measure(0).x_when((0,), "10", 1)

def test_measured_circuit_has_no_unitary():
    with pytest.raises(ValueError):
        Circuit.empty(1).h(0).measure(0).unitary()

def test_run_returns_register_only():
    r = Circuit.empty(2).x(1).measure(1).run()
    assert r.equals(from_binary_string("01"))

def test_swap_reverses_qubit_list():
    c = Circuit.empty(4).x(0).x(1).swap(0, 1, 2, 3)
    assert sum(1 for name, _ in c.ops if name == "SWAP") == 2
    assert c.run().equals(from_binary_string("0011"))
    assert almost(Circuit.empty(4).swap(0, 1, 2, 3).unitary(), G.reverse(4, [0, 1, 2, 3]))
    with pytest.raises(ValueError):
        Circuit.empty(2).swap(0)

def test_cccnot_circuit():
    c = Circuit.empty(4).x(0).x(1).x(2).cccnot(0, 1, 2, 3)
    assert c.run().equals(from_binary_string("1111"))
    assert almost(Circuit.empty(4).cccnot(0, 1, 2, 3).unitary(), G.CCCNOT(4, 0, 1, 2, 3))

def test_cmodexp2_all_tabulates_powers_of_7_mod_15():
    c = Circuit.empty(7).x(6).h(0).h(1).h(2).cmodexp2_all(7, 15, [0, 1, 2], [3, 4, 5, 6])
    assert len(c.ops) == 4 + 3
    r = c.run()
    table = {s.binary_strings[0]: s.ints[1] for s in r.state([0, 1, 2], [3, 4, 5, 6])}
    assert table == {"000": 1, "100": 7, "010": 4, "001": 1,
                     "110": 13, "101": 7, "011": 4, "111": 13}
    probs = {}
    for s in r.state([3, 4, 5, 6]):
        probs[s.ints[0]] = probs.get(s.ints[0], 0.0) + s.probability
    assert sorted(probs) == [1, 4, 7, 13]
    assert all(np.isclose(p, 0.25) for p in probs.values())
