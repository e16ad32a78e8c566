"""SO(3) and so(3) Lie group operations in JAX.

This module implements the mathematical foundation for 3D rotations using
rotation matrices and axis-angle representations. All functions are pure,
JIT-able, and operate on single JAX arrays; use ``jax.vmap`` for batches.
"""

import logging

import jax
import jax.numpy as jnp

from ..core.constants import NEAR_PI_TOL, REPROJECTION_TOL, SMALL_ANGLE_TOL
from ..core.series import exp_series, jac_series, jacinv_series

Array = jax.Array

logger = logging.getLogger(__name__)


def hat(v: Array) -> Array:
    """
    Convert 3D vector to skew-symmetric (cross-product) matrix.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix with hat(v) @ u == cross(v, u)
    """
    v = jnp.asarray(v, dtype=float)
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


def vee(S: Array) -> Array:
    """
    Extract the 3D vector of a skew-symmetric matrix (inverse of hat).

    Only the lower-triangular entries are read; the matrix is not checked
    for skew-symmetry.

    Args:
        S: (..., 3, 3) skew-symmetric matrix

    Returns:
        (..., 3) vector
    """
    S = jnp.asarray(S, dtype=float)
    return jnp.stack([S[..., 2, 1], S[..., 0, 2], S[..., 1, 0]], axis=-1)


def vec2rot(aaxis: Array, num_terms: int = 0) -> Array:
    """
    SO(3) exponential map: convert axis-angle vector to rotation matrix.

    With num_terms == 0 this is Rodrigues' formula
    C = I + sin(θ)/θ · φ^ + (1 - cos(θ))/θ² · φ^², evaluated with Taylor
    coefficients for tiny angles so the zero vector maps to the identity
    without dividing by zero. With num_terms > 0 the matrix exponential
    series is truncated after that many terms instead.

    The angle is used as given; it is not wrapped into [0, π].

    Args:
        aaxis: (3,) axis-angle vector φ = θ·n
        num_terms: 0 for the closed form, otherwise the series order

    Returns:
        (3, 3) rotation matrix
    """
    aaxis = jnp.asarray(aaxis, dtype=float)
    K = hat(aaxis)

    if num_terms > 0:
        logger.debug("Using %d-term series for the SO(3) exponential", num_terms)
        return exp_series(K, num_terms)

    angle = jnp.linalg.norm(aaxis)
    angle_sq = angle * angle

    # Swap in a harmless angle for the branch that is discarded, so neither
    # the value nor its gradient picks up a 0/0
    small_angle = angle < SMALL_ANGLE_TOL
    safe_angle = jnp.where(small_angle, 1.0, angle)

    # A = sin(θ)/θ ≈ 1 - θ²/6 + θ⁴/120
    A = jnp.where(small_angle,
                  1.0 - angle_sq / 6.0 + angle_sq * angle_sq / 120.0,
                  jnp.sin(safe_angle) / safe_angle)
    # B = (1 - cos(θ))/θ² ≈ 1/2 - θ²/24 + θ⁴/720
    B = jnp.where(small_angle,
                  0.5 - angle_sq / 24.0 + angle_sq * angle_sq / 720.0,
                  (1.0 - jnp.cos(safe_angle)) / (safe_angle * safe_angle))

    I = jnp.eye(3, dtype=aaxis.dtype)
    return I + A * K + B * jnp.matmul(K, K)


def rot2vec(C: Array) -> Array:
    """
    SO(3) logarithm map: convert rotation matrix to axis-angle vector.

    This is the inverse of vec2rot() on angles in [0, π]. Three regimes are
    handled:

    * near zero, φ = vee(C - Cᵀ)/2, which is exactly zero for the identity;
    * near π, where sin(θ) vanishes, the axis is read from the dominant
      column of the symmetric part (C + Cᵀ)/2 - cos(θ)·I = (1 - cos(θ))·n·nᵀ
      and its sign is matched to the antisymmetric part C - Cᵀ;
    * otherwise φ = θ / (2 sin(θ)) · vee(C - Cᵀ).

    At exactly θ = π the sign of the axis is arbitrary, as both signs give
    the same rotation.

    Args:
        C: (3, 3) rotation matrix, assumed close to SO(3)

    Returns:
        (3,) axis-angle vector with norm in [0, π]
    """
    C = jnp.asarray(C, dtype=float)

    # Compute angle, clamping round-off outside the domain of arccos
    cos_angle = jnp.clip((jnp.trace(C) - 1.0) / 2.0, -1.0, 1.0)
    angle = jnp.arccos(cos_angle)

    small_angle = angle < SMALL_ANGLE_TOL
    near_pi = angle > jnp.pi - NEAR_PI_TOL

    # vee(C - Cᵀ) = 2 sin(θ) n
    skew_part = vee(C - jnp.swapaxes(C, -1, -2))

    # Small angles: sin(θ) ≈ θ
    vec_small = 0.5 * skew_part

    # General case
    safe_sin = jnp.where(small_angle | near_pi, 1.0, jnp.sin(angle))
    vec_general = angle / (2.0 * safe_sin) * skew_part

    # Near π: largest column of (1 - cos(θ)) n nᵀ, which cannot vanish there
    sym = 0.5 * (C + jnp.swapaxes(C, -1, -2)) - cos_angle * jnp.eye(3, dtype=C.dtype)
    max_idx = jnp.argmax(jnp.diagonal(sym))
    column = sym[:, max_idx]
    column_norm = jnp.linalg.norm(column)
    axis = column / jnp.where(column_norm > 0.0, column_norm, 1.0)
    axis = jnp.where(jnp.dot(axis, skew_part) < 0.0, -axis, axis)
    vec_pi = angle * axis

    return jnp.where(small_angle, vec_small, jnp.where(near_pi, vec_pi, vec_general))


def vec2jac(aaxis: Array, num_terms: int = 0) -> Array:
    """
    Left Jacobian of SO(3).

    J = I + (1 - cos(θ))/θ² · φ^ + (θ - sin(θ))/θ³ · φ^², which tends to
    the identity as θ → 0. With num_terms > 0 the series
    sum_n (φ^)^n / (n+1)! is used instead.

    Args:
        aaxis: (3,) axis-angle vector
        num_terms: 0 for the closed form, otherwise the series order

    Returns:
        (3, 3) left Jacobian
    """
    aaxis = jnp.asarray(aaxis, dtype=float)
    K = hat(aaxis)

    if num_terms > 0:
        return jac_series(K, num_terms)

    angle = jnp.linalg.norm(aaxis)
    angle_sq = angle * angle
    small_angle = angle < SMALL_ANGLE_TOL
    safe_angle = jnp.where(small_angle, 1.0, angle)

    # A = (1 - cos(θ))/θ² = 2 sin²(θ/2)/θ² ≈ 1/2 - θ²/24
    # Half-angle form, free of cancellation
    sinc_half = jnp.sin(0.5 * safe_angle) / (0.5 * safe_angle)
    A = jnp.where(small_angle,
                  0.5 - angle_sq / 24.0,
                  0.5 * sinc_half * sinc_half)
    # B = (θ - sin(θ))/θ³ ≈ 1/6 - θ²/120
    B = jnp.where(small_angle,
                  1.0 / 6.0 - angle_sq / 120.0,
                  (safe_angle - jnp.sin(safe_angle)) / (safe_angle ** 3))

    I = jnp.eye(3, dtype=aaxis.dtype)
    return I + A * K + B * jnp.matmul(K, K)


def vec2jacinv(aaxis: Array, num_terms: int = 0) -> Array:
    """
    Inverse left Jacobian of SO(3).

    J⁻¹ = I - φ^/2 + (1 - (θ/2)·cot(θ/2))/θ² · φ^². Well defined for
    θ < 2π, which always holds for the output of rot2vec(). With
    num_terms > 0 the Bernoulli series sum_n B_n/n! (φ^)^n is used.

    Args:
        aaxis: (3,) axis-angle vector
        num_terms: 0 for the closed form, otherwise the series order (<= 20)

    Returns:
        (3, 3) inverse left Jacobian
    """
    aaxis = jnp.asarray(aaxis, dtype=float)
    K = hat(aaxis)

    if num_terms > 0:
        return jacinv_series(K, num_terms)

    angle = jnp.linalg.norm(aaxis)
    angle_sq = angle * angle
    small_angle = angle < SMALL_ANGLE_TOL
    safe_angle = jnp.where(small_angle, 1.0, angle)
    half_angle = safe_angle / 2.0

    # cot(x) = cos(x)/sin(x); for small angles the coefficient C -> 1/12
    cot_half_angle = jnp.cos(half_angle) / jnp.sin(half_angle)
    C = jnp.where(small_angle,
                  1.0 / 12.0 + angle_sq / 720.0,
                  (1.0 - half_angle * cot_half_angle) / (safe_angle * safe_angle))

    I = jnp.eye(3, dtype=aaxis.dtype)
    return I - 0.5 * K + C * jnp.matmul(K, K)


def reproject(C: Array, force: bool = False) -> Array:
    """
    Snap a drifted rotation matrix back onto SO(3).

    The matrix is rebuilt as vec2rot(rot2vec(C)). Unless ``force`` is set
    this only happens when |1 - det(C)| exceeds REPROJECTION_TOL; the check is
    a ``lax.cond`` so the trigonometric round trip is skipped at run time
    when the matrix is still valid.

    Args:
        C: (3, 3) rotation matrix, possibly off the manifold
        force: static flag, reproject unconditionally when True

    Returns:
        (3, 3) rotation matrix
    """
    C = jnp.asarray(C, dtype=float)

    if force:
        logger.debug("Forcing reprojection of rotation matrix onto SO(3)")
        return vec2rot(rot2vec(C))

    drifted = jnp.abs(1.0 - jnp.linalg.det(C)) > REPROJECTION_TOL
    return jax.lax.cond(drifted, lambda c: vec2rot(rot2vec(c)), lambda c: c, C)
