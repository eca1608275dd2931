import jax.numpy as jnp
import pytest

from sigmafusion.config import set_condition_limit, set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision and the default condition limit before every test.

    Each test gets float64 unless it explicitly overrides it (e.g.
    test_config.py has its own autouse fixture that sets float32).
    """
    set_dtype(jnp.float64)
    set_condition_limit(None)
