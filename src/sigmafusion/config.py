"""Module-wide floating-point precision and conditioning configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
throughout sigmafusion.  The default is ``jnp.float32`` for GPU/TPU
compatibility.  Switching to ``jnp.float64`` automatically enables
JAX's 64-bit mode (``jax_enable_x64``).

Call ``set_dtype`` **before** any JIT compilation, just like JAX's own
``jax.config.update("jax_enable_x64", True)``.  Under JIT, ``get_dtype()``
runs during tracing and its result is baked into the compiled program.

The condition-number limit used to decide whether a covariance or
information matrix may be inverted scales with the configured dtype and
can be overridden with ``set_condition_limit``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64)

_dtype = jnp.float32

_condition_limit: float | None = None


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for sigmafusion.

    Must be called **before** any ``jax.jit`` compilation.  In eager mode
    the change takes effect immediately.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is automatically
    enabled via ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32``,
            or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float32``).
    """
    return _dtype


def set_condition_limit(limit: float | None) -> None:
    """Override the condition-number limit for matrix inversion.

    Args:
        limit: Largest condition number accepted before a matrix is treated
            as singular. ``None`` restores the dtype-adaptive default.

    Raises:
        ValueError: If *limit* is not a number greater than 1.
    """
    global _condition_limit
    if limit is not None and not limit > 1.0:
        raise ValueError(f"Condition limit must be greater than 1, got {limit!r}")
    _condition_limit = None if limit is None else float(limit)


def get_condition_limit() -> float:
    """Return the condition-number limit for matrix inversion.

    Unless overridden with :func:`set_condition_limit`, the limit scales
    with the precision of the configured float dtype:

    - ``float64``:  1e12
    - ``float32``:  1e6
    - ``float16``:  1e3
    - ``bfloat16``: 1e3

    Returns:
        float: Maximum accepted condition number.
    """
    if _condition_limit is not None:
        return _condition_limit
    if _dtype == jnp.float64:
        return 1e12
    if _dtype == jnp.float32:
        return 1e6
    # float16 and bfloat16
    return 1e3
