# qubitsim/tests/test_density.py
import numpy as np
import pytest
from qubitsim import gates as G
from qubitsim.density import (DensityMatrix, EnsembleState, bit_flip, bit_phase_flip, density, flip,
                              normalize_ensemble, phase_flip)
from qubitsim.errors import DimensionError, ProbabilityRangeError, QubitIndexError
from qubitsim.register import custom, one, zero

def almost(a, b, tol=1e-9):
    return np.allclose(a, b, atol=tol, rtol=0)

def bell():
    return zero(2).apply(G.on(G.H(), 2, [0]), G.CNOT(2, 0, 1))

def mixed_qft(n):
    return density([(0.5, zero(n).apply(G.QFT(n))), (0.5, one(n).apply(G.QFT(n)))])

# ------------------------------------------------------------------ construction

def test_pure_state():
    rho = density([(1.0, zero())])
    assert almost(rho.matrix(), [[1, 0], [0, 0]])
    assert np.isclose(rho.trace(), 1.0)
    assert np.isclose(rho.purity(), 1.0)
    assert rho.num_qubits == 1 and rho.dimension == 2
    assert rho.qubits() == [0]

def test_ensemble_is_normalized():
    rho = density([(1, zero()), (3, one())])
    assert almost(rho.matrix(), [[0.25, 0], [0, 0.75]])
    assert np.isclose(rho.trace(), 1.0)
    assert np.isclose(rho.purity(), 0.25**2 + 0.75**2)

def test_normalize_ensemble_returns_copies():
    ens = [(2.0, zero()), (2.0, one())]
    out = normalize_ensemble(ens)
    assert all(isinstance(s, EnsembleState) for s in out)
    assert [s.probability for s in out] == [0.5, 0.5]
    assert ens[0][0] == 2.0

def test_construction_errors():
    with pytest.raises(ValueError):
        density([])
    with pytest.raises(ValueError):
        density([(0, zero())])
    with pytest.raises(ValueError):
        density([(-0.5, zero()), (1.5, one())])
    with pytest.raises(DimensionError):
        density([(0.5, zero(1)), (0.5, zero(2))])
    with pytest.raises(DimensionError):
        DensityMatrix(np.eye(3))

def test_hermitian_unit_trace_for_random_ensemble():
    rng = np.random.default_rng(3)
    ens = []
    for _ in range(4):
        amps = rng.normal(size=8) + 1j*rng.normal(size=8)
        ens.append((float(rng.uniform(0.1, 1)), custom(*amps)))
    rho = density(ens)
    assert rho.is_hermitian()
    assert np.isclose(rho.trace(), 1.0)
    assert 0 < rho.purity() <= 1 + 1e-9

# ------------------------------------------------------------------ evolution

def test_apply_unitary_conjugation():
    rho = density([(1.0, zero())]).apply(G.H())
    assert almost(rho.matrix(), np.full((2, 2), 0.5))
    # U rho U^dagger with a non-Hermitian U
    rho = density([(1.0, zero())]).apply(G.RX(np.pi/2))
    psi = G.RX(np.pi/2) @ np.array([1, 0])
    assert almost(rho.matrix(), np.outer(psi, psi.conj()))
    with pytest.raises(DimensionError):
        density([(1.0, zero())]).apply(G.CNOT(2, 0, 1))

def test_apply_matches_register_evolution():
    u = G.QFT(3) @ G.CCNOT(3, 0, 1, 2)
    r = custom(1, 2, 3, 4, 5, 6, 7, 8)
    rho = density([(1.0, r.clone())]).apply(u)
    r.apply(u)
    assert almost(rho.matrix(), r.outer_product(r))

# ------------------------------------------------------------------ observables

def test_probability_and_expected_value():
    rho = density([(0.1, zero()), (0.9, one())])
    assert np.isclose(rho.probability(zero()), 0.1)
    assert np.isclose(rho.probability(one()), 0.9)
    assert np.isclose(rho.expected_value(G.Z()), 0.1 - 0.9)
    assert np.isclose(rho.probability(custom(1, 1)), 0.5)

# ------------------------------------------------------------------ partial trace

def test_partial_trace_of_bell_is_maximally_mixed():
    rho = density([(1.0, bell())])
    for q in (0, 1):
        p = rho.partial_trace(q)
        assert almost(p.matrix(), np.eye(2) / 2)
        assert np.isclose(p.trace(), 1.0)
        assert np.isclose(p.purity(), 0.5)

def test_partial_trace_explicit_2x2():
    rho = mixed_qft(2)
    m = rho.matrix()
    p0 = rho.partial_trace(0).matrix()
    assert almost(p0, [[m[0,0] + m[2,2], m[0,1] + m[2,3]],
                       [m[1,0] + m[3,2], m[1,1] + m[3,3]]])
    p1 = rho.partial_trace(1).matrix()
    assert almost(p1, [[m[0,0] + m[1,1], m[0,2] + m[1,3]],
                       [m[2,0] + m[3,1], m[2,2] + m[3,3]]])
    assert np.isclose(rho.purity(), 0.5)

def test_partial_trace_of_product_state():
    a = custom(0.6, 0.8)
    b = custom(1, 1j)
    rho = density([(1.0, a.clone().tensor_product(b))])
    assert almost(rho.partial_trace(1).matrix(), a.outer_product(a))
    assert almost(rho.partial_trace(0).matrix(), b.outer_product(b))

def test_partial_trace_multiple_qubits():
    u = G.CNOT(4, 0, 2) @ G.CNOT(4, 1, 3) @ np.kron(np.kron(G.spread(G.H(), 2), G.X()), G.Z())
    rho = density([(1.0, zero(4).apply(u))])
    p01 = rho.partial_trace(0, 1)
    assert p01.num_qubits == 2
    assert np.isclose(p01.trace(), 1.0)
    assert np.isclose(p01.purity(), 0.25)
    assert almost(rho.partial_trace(1, 0).matrix(), p01.matrix())

@pytest.mark.parametrize("traced", [(0,), (1,), (2,), (0, 2), (1, 2), (0, 1)])
def test_partial_trace_preserves_trace(traced):
    rho = mixed_qft(3)
    p = rho.partial_trace(*traced)
    assert p.dimension == 1 << (3 - len(traced))
    assert np.isclose(p.trace(), rho.trace())
    assert p.purity() <= 1 + 1e-9
    assert p.is_hermitian()

def test_partial_trace_errors():
    rho = mixed_qft(2)
    with pytest.raises(QubitIndexError):
        rho.partial_trace(2)
    with pytest.raises(ValueError):
        rho.partial_trace(0, 0)
    with pytest.raises(ValueError):
        rho.partial_trace(0, 1)

# ------------------------------------------------------------------ channels

def test_depolarizing():
    rho = density([(1.0, zero(2))])
    full = rho.depolarizing(1.0)
    assert almost(full.matrix(), np.eye(4) / 4)
    half = rho.depolarizing(0.5)
    assert np.isclose(half.trace(), 1.0)
    assert half.purity() < 1.0
    assert almost(rho.depolarizing(0.0).matrix(), rho.matrix())
    for p in (-0.1, 1.1):
        with pytest.raises(ProbabilityRangeError):
            rho.depolarizing(p)

def test_flip_kraus_pairs():
    s = 1/np.sqrt(2)
    e0, e1 = bit_flip(0.5)
    assert almost(e0, [[s, 0], [0, s]])
    assert almost(e1, [[0, s], [s, 0]])
    e0, e1 = phase_flip(0.5)
    assert almost(e1, [[s, 0], [0, -s]])
    e0, e1 = bit_phase_flip(0.5)
    assert almost(e1, [[0, -1j*s], [1j*s, 0]])
    # completeness: sum E^dagger E = I
    for e0, e1 in (bit_flip(0.3), phase_flip(0.7), flip(0.2, G.CNOT(2, 0, 1))):
        assert almost(e0.conj().T @ e0 + e1.conj().T @ e1, np.eye(e0.shape[0]))

def test_flip_errors():
    with pytest.raises(ProbabilityRangeError):
        bit_phase_flip(-1)
    with pytest.raises(ProbabilityRangeError):
        bit_flip(1.5)
    with pytest.raises(ProbabilityRangeError):
        phase_flip(float("nan"))
    with pytest.raises(ProbabilityRangeError):
        density([(1.0, zero())]).depolarizing(float("nan"))
    with pytest.raises(DimensionError):
        flip(1, np.ones((3, 2)))
    with pytest.raises(DimensionError):
        flip(1, np.ones((3, 3)))

def test_bit_flip_channel_on_density():
    rho = density([(1.0, zero())]).bit_flip(0.3)
    assert almost(rho.matrix(), [[0.3, 0], [0, 0.7]])
    assert np.isclose(rho.trace(), 1.0)

def test_phase_flip_channel_on_one_qubit_of_two():
    rho = density([(1.0, zero(2).apply(G.spread(G.H(), 2)))])
    rho.phase_flip(0.0, qubit=1)
    # p=0: Z applied with certainty on qubit 1 -> |+->
    plus_minus = zero(2).apply(G.spread(G.H(), 2), G.on(G.Z(), 2, [1]))
    assert np.isclose(rho.probability(plus_minus), 1.0)
    rho.bit_phase_flip(0.5, qubit=0)
    assert np.isclose(rho.trace(), 1.0)
    assert rho.is_hermitian()

def test_apply_channel_dimension_error():
    rho = density([(1.0, zero(2))])
    with pytest.raises(DimensionError):
        rho.apply_channel(bit_flip(0.5))
