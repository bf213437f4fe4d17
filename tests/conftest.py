import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from kyber_constants import N, Q
from poly_ops import PolyOps


@pytest.fixture
def ops():
    return PolyOps(N, Q, seed=1234)
