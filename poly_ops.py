import numpy as np
from kyber_constants import N, Q


class PolyOps:
    """
    A class to handle polynomial arithmetic in the ring R_q = Z_q[x] / (x^N + 1).
    Performs reduction modulo Q and modulo (x^N + 1).

    Polynomials are length-N int64 numpy arrays with coefficients in [0, Q).
    Every array returned here is read-only, so results never alias an operand
    that a later operation could mutate.

    The random source is a numpy Generator owned by this instance. Pass `rng`
    or `seed` for reproducible runs. It is not a cryptographic generator.
    """
    def __init__(self, N, Q, rng=None, seed=None):
        self.N = N
        self.Q = Q
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        # Message encoding: bit 1 -> q_half, decoded back to 1 on [decode_lower, decode_upper]
        self.q_half = Q // 2
        self.decode_lower = Q // 4
        self.decode_upper = (3 * Q) // 4

    @staticmethod
    def _freeze(p):
        p.flags.writeable = False
        return p

    def poly(self, coeffs=None):
        """
        Builds a polynomial from a coefficient sequence.
        Missing coefficients are zero, extra ones are dropped.
        """
        p = np.zeros(self.N, dtype=np.int64)
        if coeffs is not None:
            c = np.asarray(coeffs, dtype=np.int64).ravel()[:self.N]
            p[:len(c)] = c
        return self.reduce_mod_q(p)

    def zero(self):
        return self.poly()

    def reduce_mod_q(self, p):
        """Reduces all coefficients of a polynomial modulo Q."""
        return self._freeze(np.mod(np.asarray(p, dtype=np.int64), self.Q))

    def poly_add(self, p1, p2):
        return self.reduce_mod_q(self.poly(p1) + self.poly(p2))

    def poly_sub(self, p1, p2):
        return self.reduce_mod_q(self.poly(p1) - self.poly(p2))

    def poly_mul(self, p1, p2):
        """
        Multiplies two polynomials p1 and p2 and reduces the result
        modulo (x^N + 1) and modulo Q.
        """
        # 1. Standard polynomial multiplication (convolution), length 2N - 1
        p_long = np.convolve(self.poly(p1), self.poly(p2))

        # 2. Reduction modulo (x^N + 1): x^N = -1, so r[i - N] -= r[i]
        p_reduced = p_long[:self.N].copy()
        p_reduced[:len(p_long) - self.N] -= p_long[self.N:]

        # 3. Reduction modulo Q
        return self.reduce_mod_q(p_reduced)

    # --- Sampling ---

    def sample_uniform(self):
        """Generates a public polynomial with uniform random coefficients in Z_Q."""
        return self._freeze(self.rng.integers(0, self.Q, size=self.N, dtype=np.int64))

    def sample_cbd(self, eta):
        """
        Samples a 'small' polynomial (secret key s or error e) from the
        centered binomial distribution CBD_eta: support {-eta, ..., eta},
        mean 0, variance eta / 2. Negative values are stored as Q + x.
        """
        b1 = self.rng.integers(0, 2, size=(self.N, eta), dtype=np.int64)
        b2 = self.rng.integers(0, 2, size=(self.N, eta), dtype=np.int64)
        return self.reduce_mod_q(b1.sum(axis=1) - b2.sum(axis=1))

    def sample_uniform_matrix(self, k):
        return [[self.sample_uniform() for _ in range(k)] for _ in range(k)]

    def sample_cbd_vector(self, k, eta):
        return [self.sample_cbd(eta) for _ in range(k)]

    # --- Vector / matrix products over R_q ---

    def vector_add(self, x, y):
        return [self.poly_add(a, b) for a, b in zip(x, y)]

    def inner_product(self, x, y):
        """x^T . y = sum_i x[i] * y[i]"""
        acc = self.zero()
        for a, b in zip(x, y):
            acc = self.poly_add(acc, self.poly_mul(a, b))
        return acc

    def matrix_vector_mul(self, A, x):
        """(A . x)[row] = sum_col A[row][col] * x[col]"""
        return [self.inner_product(row, x) for row in A]

    def matrix_transpose_vector_mul(self, A, x):
        """(A^T . x)[col] = sum_row A[row][col] * x[row]"""
        k = len(A)
        return [self.inner_product([A[row][col] for row in range(k)], x) for col in range(k)]

    # --- Single-bit message encoding ---

    def encode_bit(self, bit):
        """Places floor(Q/2) in coefficient 0 for bit 1, leaves the zero polynomial for bit 0."""
        return self.poly([self.q_half if bit else 0])

    def decode_coefficient(self, c):
        """1 if c lies in [floor(Q/4), floor(3Q/4)] (both ends inclusive), else 0."""
        return 1 if self.decode_lower <= c <= self.decode_upper else 0

    # --- Inspection helpers ---

    def center_reduce(self, p):
        """Maps coefficients from [0, Q) into the centered range (-Q/2, Q/2]."""
        p = np.mod(np.asarray(p, dtype=np.int64), self.Q)
        return self._freeze(np.where(p > self.q_half, p - self.Q, p))

    def infinity_norm(self, p):
        return int(np.max(np.abs(self.center_reduce(p))))

    def poly_statistics(self, p):
        """Mean, standard deviation, max, min and L2 norm of the raw coefficients."""
        c = np.asarray(p, dtype=np.float64)
        return {
            "mean": float(np.mean(c)),
            "std_dev": float(np.std(c)),
            "max": int(np.max(c)),
            "min": int(np.min(c)),
            "norm": float(np.linalg.norm(c)),
        }


# Instantiate the PolyOps helper for use in kyber_pke.py
PO = PolyOps(N, Q)
