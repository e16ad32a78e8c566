"""Truncated power series shared by the SO(3) and SE(3) maps.

Every series is a plain Python loop over a static number of terms, so it
unrolls cleanly under ``jax.jit``.
"""

import jax
import jax.numpy as jnp

from .constants import MAX_BERNOULLI_TERMS

Array = jax.Array

# B_0 ... B_20 with the B_1 = -1/2 convention
BERNOULLI_NUMBERS = (
    1.0, -1.0 / 2.0, 1.0 / 6.0, 0.0, -1.0 / 30.0, 0.0, 1.0 / 42.0, 0.0,
    -1.0 / 30.0, 0.0, 5.0 / 66.0, 0.0, -691.0 / 2730.0, 0.0, 7.0 / 6.0, 0.0,
    -3617.0 / 510.0, 0.0, 43867.0 / 798.0, 0.0, -174611.0 / 330.0,
)


def exp_series(X: Array, num_terms: int) -> Array:
    """
    Matrix exponential truncated after ``num_terms`` terms.

    Computes I + X + X^2/2! + ... + X^n/n! with n = num_terms.

    Args:
        X: (n, n) square matrix
        num_terms: highest power of X kept in the expansion

    Returns:
        (n, n) truncated exponential
    """
    result = jnp.eye(X.shape[-1], dtype=X.dtype)
    term = result
    for n in range(1, num_terms + 1):
        term = jnp.matmul(term, X) / n
        result = result + term
    return result


def jac_series(X: Array, num_terms: int) -> Array:
    """
    Left Jacobian series I + X/2! + X^2/3! + ... + X^n/(n+1)!.

    Args:
        X: (n, n) square matrix, the hat or curlyhat of an algebra vector
        num_terms: highest power of X kept in the expansion

    Returns:
        (n, n) truncated Jacobian
    """
    result = jnp.eye(X.shape[-1], dtype=X.dtype)
    term = result
    for n in range(1, num_terms + 1):
        term = jnp.matmul(term, X) / (n + 1)
        result = result + term
    return result


def jacinv_series(X: Array, num_terms: int) -> Array:
    """
    Inverse left Jacobian series sum_n B_n / n! X^n.

    Args:
        X: (n, n) square matrix, the hat or curlyhat of an algebra vector
        num_terms: highest power of X kept, at most MAX_BERNOULLI_TERMS

    Returns:
        (n, n) truncated inverse Jacobian

    Raises:
        ValueError: if more terms are requested than Bernoulli numbers exist
    """
    if num_terms > MAX_BERNOULLI_TERMS:
        raise ValueError(
            f"num_terms must be at most {MAX_BERNOULLI_TERMS} for the inverse "
            f"Jacobian series, got {num_terms}"
        )
    result = jnp.eye(X.shape[-1], dtype=X.dtype)
    term = result
    for n in range(1, num_terms + 1):
        term = jnp.matmul(term, X) / n
        result = result + BERNOULLI_NUMBERS[n] * term
    return result
