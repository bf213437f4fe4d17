import enum
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from kyber_constants import get_params
from kyber_pke import KeyGen, Encrypt, NoisyMessage, PreconditionError
from poly_ops import PolyOps

logger = logging.getLogger(__name__)

MAX_EVENTS = 50  # Oldest events are dropped beyond this


class CryptoOperation(enum.Enum):
    KEY_GENERATION = "keygen"
    ENCRYPTION = "encrypt"
    DECRYPTION = "decrypt"


@dataclass(frozen=True)
class KyberEvent:
    """One step of a session, with the statistics computed at that step."""
    operation: CryptoOperation
    step: str
    message: str
    level: int = logging.INFO
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class KyberKeyState:
    """Everything produced by one KeyGen and the latest Encrypt."""
    A: List[List[np.ndarray]] = field(default_factory=list)
    s: List[np.ndarray] = field(default_factory=list)
    e: List[np.ndarray] = field(default_factory=list)
    t: List[np.ndarray] = field(default_factory=list)
    r: List[np.ndarray] = field(default_factory=list)
    e1: List[np.ndarray] = field(default_factory=list)
    e2: Optional[np.ndarray] = None
    u: List[np.ndarray] = field(default_factory=list)
    v: Optional[np.ndarray] = None
    msg_bit: int = 0


class KyberSession:
    """
    Runs KeyGen -> Encrypt -> Decrypt over a single-owner key state.

    Re-running generate_keys() drops any ciphertext made under the old key.
    Every step is logged and kept in `events` (at most MAX_EVENTS).
    A session is not safe to share between threads.
    """
    def __init__(self, params=None, ops=None, seed=None):
        self.params = params or get_params()
        self.ops = ops or PolyOps(self.params.n, self.params.q, seed=seed)
        self.state = KyberKeyState()
        self.events = deque(maxlen=MAX_EVENTS)
        logger.debug(f"Session ready: {self.params.name} (N={self.params.n}, Q={self.params.q}, k={self.params.k})")

    def _record(self, operation, step, message, level=logging.INFO, **data):
        self.events.append(KyberEvent(operation, step, message, level, data))
        logger.log(level, message)

    def _stats(self, polys):
        return [self.ops.poly_statistics(p) for p in polys]

    def clear_events(self):
        self.events.clear()

    def has_keys(self):
        return len(self.state.t) > 0

    def has_ciphertext(self):
        return len(self.state.u) > 0 and self.state.v is not None

    def reset(self):
        self.state = KyberKeyState()
        self.clear_events()
        self._record(CryptoOperation.KEY_GENERATION, "reset", "Session reset.")

    # --- Phases ---

    def generate_keys(self):
        """Runs KeyGen and returns the public key (A, t)."""
        p = self.params
        op = CryptoOperation.KEY_GENERATION
        self._record(op, "start", f"KeyGen {p.name}: N={p.n}, Q={p.q}, k={p.k}, eta1={p.eta1}")
        keys = KeyGen(p.k, p.eta1, ops=self.ops)
        self.state = KyberKeyState(A=keys.A, s=keys.s, e=keys.e, t=keys.t)
        self._record(op, "secret_s", f"Secret s sampled from CBD(eta={p.eta1}).",
                     logging.DEBUG, vector_stats=self._stats(keys.s))
        self._record(op, "public_key", "Public key t = A.s + e computed.",
                     public_key_stats=self._stats(keys.t))
        return keys.public_key

    def encrypt(self, bit):
        """Encrypts one bit with fresh randomness and returns the ciphertext (u, v)."""
        if not self.has_keys():
            raise PreconditionError("Keys must be generated before encryption.")
        p = self.params
        result = Encrypt(self.state.A, self.state.t, bit, eta=p.eta1, eta2=p.eta2, ops=self.ops)
        st = self.state
        st.r, st.e1, st.e2 = result.r, result.e1, result.e2
        st.u, st.v = result.u, result.v
        st.msg_bit = int(bit)
        self._record(CryptoOperation.ENCRYPTION, "complete",
                     f"Encrypted m={bit}: ciphertext (u, v) ready.",
                     ciphertext_stats={"u": self._stats(result.u),
                                       "v": self.ops.poly_statistics(result.v)})
        return result.ciphertext

    def decrypt(self):
        """Decrypts the stored ciphertext with the stored secret key."""
        st = self.state
        if not st.s:
            raise PreconditionError("Secret key is missing: generate keys first.")
        if not self.has_ciphertext():
            raise PreconditionError("Nothing to decrypt: encrypt a bit first.")

        ops = self.ops
        m_prime = NoisyMessage(st.s, st.u, st.v, ops=ops)
        coeff = int(m_prime[0])
        bit = ops.decode_coefficient(coeff)
        op = CryptoOperation.DECRYPTION
        self._record(op, "decode",
                     f"m'[0]={coeff}, band [{ops.decode_lower}, {ops.decode_upper}] -> {bit}",
                     logging.DEBUG, coefficient=coeff,
                     bounds=(ops.decode_lower, ops.decode_upper),
                     noisy_stats=ops.poly_statistics(m_prime))
        if bit == st.msg_bit:
            self._record(op, "complete", f"Decrypted m'={bit}.")
        else:
            self._record(op, "complete", f"Decryption failure: expected {st.msg_bit}, got {bit}.",
                         logging.WARNING)
        return bit

    def noise(self):
        """
        Centered noise e2 + s.e1 - e.r left in m' after removing encode(m).
        Decryption is correct while |noise[0]| stays below Q/4.
        """
        st = self.state
        if not st.s or not self.has_ciphertext():
            raise PreconditionError("Noise needs both a key pair and a ciphertext.")
        m_prime = NoisyMessage(st.s, st.u, st.v, ops=self.ops)
        return self.ops.center_reduce(self.ops.poly_sub(m_prime, self.ops.encode_bit(st.msg_bit)))

    def named_polynomial(self, name):
        """
        Looks up a polynomial of the state by name: 'v', 'e2', or an indexed
        entry such as 's[0]', 'e1[1]' or 'A[0][1]' (row 0, column 1).

        Raises KeyError for names or indices that cannot exist at this rank,
        PreconditionError for ones that have not been computed yet.
        """
        st = self.state
        name = name.replace(" ", "")
        if name in ("v", "e2"):
            p = getattr(st, name)
            if p is None:
                raise PreconditionError(f"'{name}' has not been computed yet.")
            return p

        match = _NAME_RE.match(name)
        if not match:
            raise KeyError(name)
        vec, i, j = match.groups()
        if (vec == "A") != (j is not None):
            raise KeyError(name)
        p = _lookup(name, getattr(st, vec), int(i))
        if j is not None:
            p = _lookup(name, p, int(j))
        return p


_NAME_RE = re.compile(r'^(A|s|e|t|r|u|e1)\[(\d+)\](?:\[(\d+)\])?$')


def _lookup(name, seq, i):
    if len(seq) == 0:
        raise PreconditionError(f"'{name}' has not been computed yet.")
    if i >= len(seq):
        raise KeyError(name)
    return seq[i]
