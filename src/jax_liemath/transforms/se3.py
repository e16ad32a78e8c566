"""SE(3) and se(3) Lie group operations in JAX.

This module implements SE(3) rigid body transforms stored as a rotation
matrix C and a translation r, and 6D twist vectors xi = [rho, phi] with the
translational part first. All functions are pure, JIT-able, and operate on
single JAX arrays. This implementation focuses on numerical stability,
especially for small angles.
"""

import logging
from typing import Tuple

import jax
import jax.numpy as jnp

from . import so3
from ..core.constants import Q_SMALL_ANGLE_TOL
from ..core.series import exp_series, jac_series, jacinv_series

Array = jax.Array

logger = logging.getLogger(__name__)

# Taylor coefficients in θ² of the three Q coefficients:
# (-1)^k / (2k+3)!, (-1)^k / (2k+4)! and (-1)^k (k+1) / (2k+5)!
_Q_C1_TAYLOR = (1.0 / 6.0, -1.0 / 120.0, 1.0 / 5040.0, -1.0 / 362880.0, 1.0 / 39916800.0)
_Q_C2_TAYLOR = (1.0 / 24.0, -1.0 / 720.0, 1.0 / 40320.0, -1.0 / 3628800.0, 1.0 / 479001600.0)
_Q_C3_TAYLOR = (1.0 / 120.0, -1.0 / 2520.0, 1.0 / 120960.0, -1.0 / 9979200.0, 1.0 / 1245404160.0)


def _even_series(coefficients, angle_sq):
    """Horner evaluation of sum_k coefficients[k] * θ^(2k)."""
    result = jnp.zeros_like(angle_sq)
    for c in reversed(coefficients):
        result = result * angle_sq + c
    return result


def tran_matrix(C: Array, r: Array) -> Array:
    """
    Build the homogeneous matrix of a transformation.

    Args:
        C: (3, 3) rotation matrix
        r: (3,) translation vector

    Returns:
        (4, 4) homogeneous transformation matrix [[C, r], [0, 1]]
    """
    C = jnp.asarray(C, dtype=float)
    r = jnp.asarray(r, dtype=float)

    T = jnp.eye(4, dtype=C.dtype)
    T = T.at[:3, :3].set(C)
    T = T.at[:3, 3].set(r)
    return T


def hat(xi: Array) -> Array:
    """
    Convert a twist to its 4x4 se(3) matrix.

    Args:
        xi: (6,) twist [rho, phi]

    Returns:
        (4, 4) matrix [[phi^, rho], [0, 0]]
    """
    xi = jnp.asarray(xi, dtype=float)

    X = jnp.zeros((4, 4), dtype=xi.dtype)
    X = X.at[:3, :3].set(so3.hat(xi[3:]))
    X = X.at[:3, 3].set(xi[:3])
    return X


def curlyhat(xi: Array) -> Array:
    """
    Convert a twist to its 6x6 adjoint (curly-hat) matrix.

    curlyhat(xi) @ zeta is the Lie bracket of the two twists.

    Args:
        xi: (6,) twist [rho, phi]

    Returns:
        (6, 6) matrix [[phi^, rho^], [0, phi^]]
    """
    xi = jnp.asarray(xi, dtype=float)
    rho_hat = so3.hat(xi[:3])
    phi_hat = so3.hat(xi[3:])

    top = jnp.concatenate([phi_hat, rho_hat], axis=-1)
    bottom = jnp.concatenate([jnp.zeros_like(phi_hat), phi_hat], axis=-1)
    return jnp.concatenate([top, bottom], axis=-2)


def point2fs(p: Array, scale: float = 1.0) -> Array:
    """
    4x6 operator with hat(xi) @ [p, scale] == point2fs(p, scale) @ xi.

    Args:
        p: (3,) point
        scale: homogeneous coordinate of the point

    Returns:
        (4, 6) matrix [[scale * I, -p^], [0, 0]]
    """
    p = jnp.asarray(p, dtype=float)

    fs = jnp.zeros((4, 6), dtype=p.dtype)
    fs = fs.at[:3, :3].set(scale * jnp.eye(3, dtype=p.dtype))
    fs = fs.at[:3, 3:].set(-so3.hat(p))
    return fs


def point2sf(p: Array) -> Array:
    """
    6x4 operator with [p, s] @ hat(xi) == xi @ point2sf(p) for any s.

    Args:
        p: (3,) point

    Returns:
        (6, 4) matrix [[0, p], [-p^, 0]]
    """
    p = jnp.asarray(p, dtype=float)

    sf = jnp.zeros((6, 4), dtype=p.dtype)
    sf = sf.at[:3, 3].set(p)
    sf = sf.at[3:, :3].set(-so3.hat(p))
    return sf


def vec2tran(xi: Array, num_terms: int = 0) -> Tuple[Array, Array]:
    """
    SE(3) exponential map: convert twist to rotation and translation.

    The rotation is so3.vec2rot(phi) and the translation is J(phi) @ rho with
    J the SO(3) left Jacobian. With num_terms > 0 the matrix exponential of
    hat(xi) is truncated after that many terms instead, which keeps the
    rotation block identical to the series form of so3.vec2rot().

    Args:
        xi: (6,) twist [rho, phi]. The first 3 elements are translational,
            last 3 are rotational.
        num_terms: 0 for the closed form, otherwise the series order

    Returns:
        Tuple of the (3, 3) rotation matrix and (3,) translation vector.
    """
    xi = jnp.asarray(xi, dtype=float)

    if num_terms > 0:
        logger.debug("Using %d-term series for the SE(3) exponential", num_terms)
        T = exp_series(hat(xi), num_terms)
        return T[:3, :3], T[:3, 3]

    rho, phi = xi[:3], xi[3:]

    # Rotation part is just the SO(3) exponential map
    C = so3.vec2rot(phi)

    # Translation part requires the left Jacobian
    r = jnp.matmul(so3.vec2jac(phi), rho)

    return C, r


def tran2vec(C: Array, r: Array) -> Array:
    """
    SE(3) logarithm map: convert rotation and translation to twist.

    phi = so3.rot2vec(C), inheriting its handling of angles near 0 and pi,
    and rho = J(phi)^-1 @ r.

    Args:
        C: (3, 3) rotation matrix
        r: (3,) translation vector

    Returns:
        (6,) twist [rho, phi]
    """
    r = jnp.asarray(r, dtype=float)

    # Angular part is the SO(3) logarithm
    phi = so3.rot2vec(C)

    # Linear part requires the inverse of the left Jacobian
    rho = jnp.matmul(so3.vec2jacinv(phi), r)

    return jnp.concatenate([rho, phi], axis=-1)


def vec2q(xi: Array) -> Array:
    """
    Off-diagonal Q block of the SE(3) left Jacobian.

    Q = rho^/2
        + (θ - sin θ)/θ³ (phi^ rho^ + rho^ phi^ + phi^ rho^ phi^)
        + (θ² + 2 cos θ - 2)/(2θ⁴) (phi^ phi^ rho^ + rho^ phi^ phi^ - 3 phi^ rho^ phi^)
        + (2θ - 3 sin θ + θ cos θ)/(2θ⁵) (phi^ rho^ phi^ phi^ + phi^ phi^ rho^ phi^)

    The numerators vanish to O(θ³), O(θ⁴) and O(θ⁵), so below
    Q_SMALL_ANGLE_TOL each coefficient is taken from its Taylor expansion.

    Args:
        xi: (6,) twist [rho, phi]

    Returns:
        (3, 3) matrix Q
    """
    xi = jnp.asarray(xi, dtype=float)
    rho_hat = so3.hat(xi[:3])
    phi_hat = so3.hat(xi[3:])

    angle = jnp.linalg.norm(xi[3:])
    angle_sq = angle * angle
    small_angle = angle < Q_SMALL_ANGLE_TOL
    safe_angle = jnp.where(small_angle, 1.0, angle)
    sin_angle = jnp.sin(safe_angle)
    cos_angle = jnp.cos(safe_angle)
    sin_half = jnp.sin(0.5 * safe_angle)

    c1 = jnp.where(small_angle,
                   _even_series(_Q_C1_TAYLOR, angle_sq),
                   (safe_angle - sin_angle) / safe_angle ** 3)
    # θ² + 2 cos θ - 2 == θ² - 4 sin²(θ/2)
    c2 = jnp.where(small_angle,
                   _even_series(_Q_C2_TAYLOR, angle_sq),
                   (safe_angle ** 2 - 4.0 * sin_half * sin_half) / (2.0 * safe_angle ** 4))
    c3 = jnp.where(small_angle,
                   _even_series(_Q_C3_TAYLOR, angle_sq),
                   (2.0 * safe_angle - 3.0 * sin_angle + safe_angle * cos_angle)
                   / (2.0 * safe_angle ** 5))

    pr = jnp.matmul(phi_hat, rho_hat)
    rp = jnp.matmul(rho_hat, phi_hat)
    prp = jnp.matmul(pr, phi_hat)

    return (0.5 * rho_hat
            + c1 * (pr + rp + prp)
            + c2 * (jnp.matmul(phi_hat, pr) + jnp.matmul(rp, phi_hat) - 3.0 * prp)
            + c3 * (jnp.matmul(prp, phi_hat) + jnp.matmul(phi_hat, prp)))


def vec2jac(xi: Array, num_terms: int = 0) -> Array:
    """
    Left Jacobian of SE(3).

    Args:
        xi: (6,) twist [rho, phi]
        num_terms: 0 for the closed form [[J, Q], [0, J]], otherwise the order
            of the series sum_n curlyhat(xi)^n / (n+1)!

    Returns:
        (6, 6) left Jacobian
    """
    xi = jnp.asarray(xi, dtype=float)

    if num_terms > 0:
        return jac_series(curlyhat(xi), num_terms)

    J = so3.vec2jac(xi[3:])
    Q = vec2q(xi)

    top = jnp.concatenate([J, Q], axis=-1)
    bottom = jnp.concatenate([jnp.zeros_like(J), J], axis=-1)
    return jnp.concatenate([top, bottom], axis=-2)


def vec2jacinv(xi: Array, num_terms: int = 0) -> Array:
    """
    Inverse left Jacobian of SE(3).

    Args:
        xi: (6,) twist [rho, phi]
        num_terms: 0 for the closed form [[J⁻¹, -J⁻¹ Q J⁻¹], [0, J⁻¹]],
            otherwise the order (<= 20) of the Bernoulli series in curlyhat(xi)

    Returns:
        (6, 6) inverse left Jacobian
    """
    xi = jnp.asarray(xi, dtype=float)

    if num_terms > 0:
        return jacinv_series(curlyhat(xi), num_terms)

    J_inv = so3.vec2jacinv(xi[3:])
    Q = vec2q(xi)

    top = jnp.concatenate([J_inv, -jnp.matmul(jnp.matmul(J_inv, Q), J_inv)], axis=-1)
    bottom = jnp.concatenate([jnp.zeros_like(J_inv), J_inv], axis=-1)
    return jnp.concatenate([top, bottom], axis=-2)


def tran_ad(C: Array, r: Array) -> Array:
    """
    Compute the adjoint matrix of an SE(3) transformation.

    The adjoint maps a twist expressed in one frame into the other:
    T exp(xi^) T⁻¹ == exp((tran_ad(C, r) @ xi)^).

    Args:
        C: (3, 3) rotation matrix
        r: (3,) translation vector

    Returns:
        (6, 6) adjoint matrix [[C, r^ C], [0, C]]
    """
    C = jnp.asarray(C, dtype=float)

    # Skew-symmetric matrix of translation
    r_skew = so3.hat(r)

    top = jnp.concatenate([C, jnp.matmul(r_skew, C)], axis=-1)
    bottom = jnp.concatenate([jnp.zeros_like(C), C], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)
