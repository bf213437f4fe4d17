from dataclasses import dataclass

# --- RING CONFIGURATION ---
N = 256      # Degree of the polynomial ring (x^n + 1). Must be a power of 2.
Q = 3329     # Modulus (prime number).

# Toy Kyber-512 defaults (same eta for secrets and encryption noise).
K = 2        # Module rank.
ETA = 2      # CBD parameter for secret and error sampling.


@dataclass(frozen=True)
class KyberParams:
    """
    A Kyber parameter set.

    Only k and the two CBD parameters vary between security levels here;
    du/dv ciphertext compression is not implemented.
    """
    name: str
    k: int       # Module rank
    eta1: int    # CBD parameter for s, e and r
    eta2: int    # CBD parameter for e1 and e2
    n: int = N
    q: int = Q


PARAMETER_SETS = {
    "toy512": KyberParams("toy512", k=K, eta1=ETA, eta2=ETA),
    "kyber512": KyberParams("kyber512", k=2, eta1=3, eta2=2),
    "kyber768": KyberParams("kyber768", k=3, eta1=2, eta2=2),
    "kyber1024": KyberParams("kyber1024", k=4, eta1=2, eta2=2),
}

DEFAULT_LEVEL = "toy512"


def get_params(name=DEFAULT_LEVEL):
    """Looks up a parameter set by name (case-insensitive)."""
    try:
        return PARAMETER_SETS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown parameter set '{name}'. Choose one of: {', '.join(PARAMETER_SETS)}"
        ) from None
