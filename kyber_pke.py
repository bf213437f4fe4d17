"""
Toy Kyber public-key encryption over R_q = Z_q[x] / (x^N + 1).

Single-bit messages, schoolbook multiplication, no compression and a
non-cryptographic sampler. For teaching only: this is not a usable KEM and
offers no protection against timing or other side channels.
"""
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from poly_ops import PO
from kyber_constants import K, ETA


class KyberError(Exception):
    """Base class for Kyber usage errors."""


class PreconditionError(KyberError):
    """A phase was invoked before the phase it depends on."""


class InvalidInputError(KyberError, ValueError):
    """The message is not a single bit."""


@dataclass(frozen=True)
class KeyGenResult:
    A: List[List[np.ndarray]]   # public matrix (k x k)
    t: List[np.ndarray]         # public vector t = A.s + e
    s: List[np.ndarray]         # secret vector
    e: List[np.ndarray]         # error vector, only kept for inspection

    @property
    def public_key(self):
        return self.A, self.t


@dataclass(frozen=True)
class EncryptResult:
    u: List[np.ndarray]         # u = A^T.r + e1
    v: np.ndarray               # v = t.r + e2 + encode(m)
    r: List[np.ndarray]
    e1: List[np.ndarray]
    e2: np.ndarray

    @property
    def ciphertext(self):
        return self.u, self.v


def _is_empty(x):
    return x is None or len(x) == 0


def KeyGen(k=K, eta=ETA, ops=PO):
    """
    Key generation.
    Returns A, t (public key) and s (secret key); e is returned for inspection
    and is not needed afterwards.
    """
    A = ops.sample_uniform_matrix(k)
    s = ops.sample_cbd_vector(k, eta)
    e = ops.sample_cbd_vector(k, eta)
    t = ops.vector_add(ops.matrix_vector_mul(A, s), e)
    return KeyGenResult(A=A, t=t, s=s, e=e)


def Encrypt(A, t, bit, eta=ETA, eta2: Optional[int] = None, ops=PO):
    """
    Encrypts one bit under the public key (A, t).
    Input:  bit in {0, 1}. The module rank k is len(t).
    Output: ciphertext (u, v) together with the fresh r, e1, e2 used.
    r, e1 and e2 must never be reused for another encryption.
    """
    if _is_empty(A) or _is_empty(t):
        raise PreconditionError("Keys must be generated before encryption.")
    if bit not in (0, 1):
        raise InvalidInputError(f"Message must be a single bit (0 or 1), got {bit!r}.")
    if eta2 is None:
        eta2 = eta

    k = len(t)
    r = ops.sample_cbd_vector(k, eta)
    e1 = ops.sample_cbd_vector(k, eta2)
    e2 = ops.sample_cbd(eta2)

    u = ops.vector_add(ops.matrix_transpose_vector_mul(A, r), e1)
    v = ops.poly_add(ops.poly_add(ops.inner_product(t, r), e2), ops.encode_bit(bit))
    return EncryptResult(u=u, v=v, r=r, e1=e1, e2=e2)


def NoisyMessage(s, u, v, ops=PO):
    """m' = v - s^T.u = encode(m) + (e2 + s^T.e1 - e^T.r)"""
    if _is_empty(s):
        raise PreconditionError("Secret key is missing.")
    if _is_empty(u) or v is None:
        raise PreconditionError("Nothing to decrypt: encrypt a bit first.")
    if len(s) != len(u):
        raise PreconditionError(
            f"Secret key has rank {len(s)} but the ciphertext has rank {len(u)}."
        )
    return ops.poly_sub(v, ops.inner_product(s, u))


def Decrypt(s, u, v, ops=PO):
    """
    Recovers the bit from ciphertext (u, v) with secret key s.
    Correct with high probability while the accumulated noise stays below Q/4.
    """
    m_prime = NoisyMessage(s, u, v, ops=ops)
    return ops.decode_coefficient(m_prime[0])
