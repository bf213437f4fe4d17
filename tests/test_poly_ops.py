import numpy as np
import pytest

from kyber_constants import N, Q
from poly_ops import PolyOps, PO


def x_pow(ops, d):
    coeffs = [0] * N
    coeffs[d] = 1
    return ops.poly(coeffs)


# ── Construction ──────────────────────────────────────────────────────────────
def test_poly_pads_missing_coefficients_with_zero(ops):
    p = ops.poly([5, 6, 7])
    assert p.shape == (N,)
    assert list(p[:3]) == [5, 6, 7]
    assert not p[3:].any()


def test_poly_truncates_and_reduces(ops):
    p = ops.poly(list(range(N + 10)) + [Q + 3])
    assert p.shape == (N,)
    assert p[N - 1] == N - 1
    assert ops.poly([-1, Q, Q + 5])[:3].tolist() == [Q - 1, 0, 5]


def test_poly_without_coefficients_is_zero(ops):
    assert not ops.poly().any()
    assert np.array_equal(ops.zero(), ops.poly([]))


# ── Addition / subtraction ────────────────────────────────────────────────────
def test_add_is_commutative_and_associative(ops):
    a, b, c = ops.sample_uniform(), ops.sample_uniform(), ops.sample_uniform()
    assert np.array_equal(ops.poly_add(a, b), ops.poly_add(b, a))
    assert np.array_equal(ops.poly_add(ops.poly_add(a, b), c),
                          ops.poly_add(a, ops.poly_add(b, c)))
    assert np.array_equal(ops.poly_add(a, ops.zero()), a)


def test_sub_undoes_add(ops):
    a, b = ops.sample_uniform(), ops.sample_uniform()
    assert np.array_equal(ops.poly_sub(ops.poly_add(a, b), b), a)


def test_sub_stays_non_negative(ops):
    d = ops.poly_sub(ops.poly([1]), ops.poly([2]))
    assert d[0] == Q - 1
    assert d.min() >= 0


# ── Multiplication ────────────────────────────────────────────────────────────
def test_mul_wraps_negacyclically(ops):
    # x * x^(N-1) = x^N = -1
    p = ops.poly_mul(x_pow(ops, 1), x_pow(ops, N - 1))
    assert p[0] == Q - 1
    assert not p[1:].any()


def test_mul_small_polynomials(ops):
    # (1 + x)^2 = 1 + 2x + x^2
    one_plus_x = ops.poly([1, 1])
    assert ops.poly_mul(one_plus_x, one_plus_x)[:4].tolist() == [1, 2, 1, 0]


def test_mul_by_one_is_identity(ops):
    a = ops.sample_uniform()
    assert np.array_equal(ops.poly_mul(a, ops.poly([1])), a)


def test_short_operands_are_zero_padded(ops):
    prod = ops.poly_mul([1, 1], [1, 1])
    assert prod.shape == (N,)
    assert prod[:4].tolist() == [1, 2, 1, 0]
    total = ops.poly_add([1, 2, 3], ops.sample_uniform())
    assert total.shape == (N,)
    diff = ops.poly_sub([5], [7, 1])
    assert diff.shape == (N,)
    assert diff[:2].tolist() == [Q - 2, Q - 1]


def test_mul_output_is_reduced(ops):
    for _ in range(5):
        p = ops.poly_mul(ops.sample_uniform(), ops.sample_uniform())
        assert p.shape == (N,)
        assert p.min() >= 0 and p.max() < Q


def test_mul_is_commutative_and_distributes(ops):
    a, b, c = ops.sample_uniform(), ops.sample_uniform(), ops.sample_uniform()
    assert np.array_equal(ops.poly_mul(a, b), ops.poly_mul(b, a))
    assert np.array_equal(ops.poly_mul(a, ops.poly_add(b, c)),
                          ops.poly_add(ops.poly_mul(a, b), ops.poly_mul(a, c)))


def test_results_are_new_read_only_arrays(ops):
    a, b = ops.sample_uniform(), ops.sample_uniform()
    a_before = a.copy()
    c = ops.poly_add(a, b)
    assert np.array_equal(a, a_before)
    assert not c.flags.writeable
    with pytest.raises(ValueError):
        c[0] = 1


# ── Sampling ──────────────────────────────────────────────────────────────────
def test_sample_uniform_range(ops):
    p = ops.sample_uniform()
    assert p.shape == (N,)
    assert p.min() >= 0 and p.max() < Q


def test_cbd_support_and_moments(ops):
    raw = np.concatenate([ops.sample_cbd(2) for _ in range(40)])   # 10,240 samples
    assert set(raw.tolist()) <= {0, 1, 2, Q - 2, Q - 1}
    centered = ops.center_reduce(raw)
    assert abs(centered.mean()) < 0.05
    assert abs(centered.var() - 1.0) < 0.1


def test_cbd_eta3_support(ops):
    centered = ops.center_reduce(ops.sample_cbd(3))
    assert centered.min() >= -3 and centered.max() <= 3


def test_seeded_engines_are_reproducible():
    a, b = PolyOps(N, Q, seed=99), PolyOps(N, Q, seed=99)
    assert np.array_equal(a.sample_uniform(), b.sample_uniform())
    assert np.array_equal(a.sample_cbd(2), b.sample_cbd(2))


def test_injected_generator_is_used():
    rng = np.random.default_rng(5)
    ops = PolyOps(N, Q, rng=rng)
    assert ops.rng is rng


# ── Message encoding ──────────────────────────────────────────────────────────
def test_encode_bit():
    assert PO.encode_bit(1)[0] == 1664
    assert not PO.encode_bit(1)[1:].any()
    assert not PO.encode_bit(0).any()


def test_encoding_bounds_for_q_3329():
    assert (PO.q_half, PO.decode_lower, PO.decode_upper) == (1664, 832, 2497)
    small = PolyOps(N, 17)
    assert (small.q_half, small.decode_lower, small.decode_upper) == (8, 4, 12)
    assert small.encode_bit(1)[0] == 8
    assert small.decode_coefficient(12) == 1 and small.decode_coefficient(13) == 0


def test_decode_round_trip_without_noise():
    assert PO.decode_coefficient(PO.encode_bit(1)[0]) == 1
    assert PO.decode_coefficient(PO.encode_bit(0)[0]) == 0


@pytest.mark.parametrize("c, bit", [(831, 0), (832, 1), (2497, 1), (2498, 0), (0, 0), (Q - 1, 0)])
def test_decode_band_is_inclusive(c, bit):
    assert PO.decode_coefficient(c) == bit


# ── Vector / matrix helpers ───────────────────────────────────────────────────
def test_transpose_product_matches_explicit_sum(ops):
    k = 2
    A = ops.sample_uniform_matrix(k)
    x = ops.sample_cbd_vector(k, 2)
    At_x = ops.matrix_transpose_vector_mul(A, x)
    expected = ops.poly_add(ops.poly_mul(A[0][1], x[0]), ops.poly_mul(A[1][1], x[1]))
    assert np.array_equal(At_x[1], expected)
    A_x = ops.matrix_vector_mul(A, x)
    expected = ops.poly_add(ops.poly_mul(A[1][0], x[0]), ops.poly_mul(A[1][1], x[1]))
    assert np.array_equal(A_x[1], expected)


# ── Inspection helpers ────────────────────────────────────────────────────────
def test_center_reduce_and_infinity_norm():
    p = PO.poly([0, 1, Q - 1, Q // 2, Q // 2 + 1])
    assert PO.center_reduce(p)[:5].tolist() == [0, 1, -1, 1664, -1664]
    assert PO.infinity_norm(PO.poly([3, Q - 7])) == 7


def test_poly_statistics():
    stats = PO.poly_statistics(PO.poly([3, 4]))
    assert stats["max"] == 4
    assert stats["min"] == 0
    assert stats["norm"] == pytest.approx(5.0)
    assert stats["mean"] == pytest.approx(7 / N)
