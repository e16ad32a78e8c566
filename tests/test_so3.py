"""Tests for the so3 module."""

import hypothesis
import jax
import jax.numpy as jnp
import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from jax_liemath.core import MAX_BERNOULLI_TERMS
from jax_liemath.transforms import so3

# Use hypothesis profile for CI
hypothesis.settings.register_profile("ci", max_examples=10, deadline=None)


def random_aaxis(seed, max_angle):
    """Axis-angle vector with a uniform random axis and angle in [0, max_angle)."""
    key_axis, key_angle = jax.random.split(jax.random.PRNGKey(seed))
    axis = jax.random.normal(key_axis, (3,), dtype=jnp.float64)
    axis = axis / jnp.linalg.norm(axis)
    angle = jax.random.uniform(key_angle, (), dtype=jnp.float64, minval=0.0, maxval=max_angle)
    return angle * axis


# Skew-symmetric operator
def test_hat():
    """Test skew-symmetric matrix function."""
    v = jnp.array([1.0, 2.0, 3.0])
    K = so3.hat(v)

    expected = jnp.array([[0.0, -3.0, 2.0], [3.0, 0.0, -1.0], [-2.0, 1.0, 0.0]])
    np.testing.assert_allclose(K, expected, rtol=1e-12, atol=1e-12)

    # Should be skew-symmetric
    np.testing.assert_allclose(K, -K.T, rtol=1e-12, atol=1e-12)


def test_hat_is_cross_product():
    v = jnp.array([0.3, -1.2, 2.0])
    u = jnp.array([-0.7, 0.4, 1.5])
    np.testing.assert_allclose(so3.hat(v) @ u, jnp.cross(v, u), rtol=1e-12, atol=1e-12)


def test_vee_inverts_hat():
    v = jnp.array([0.3, -1.2, 2.0])
    np.testing.assert_allclose(so3.vee(so3.hat(v)), v, rtol=1e-12, atol=1e-12)


# Exponential map
def test_vec2rot_identity():
    """Test SO(3) exp with zero vector gives exactly the identity."""
    C = so3.vec2rot(jnp.zeros(3))
    np.testing.assert_array_equal(C, jnp.eye(3))


def test_vec2rot_quarter_turn_about_z():
    """A quarter turn about z takes the x-axis to the y-axis."""
    aaxis = jnp.array([0.0, 0.0, jnp.pi / 2])
    C = so3.vec2rot(aaxis)

    expected = jnp.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    np.testing.assert_allclose(C, expected, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(so3.rot2vec(C), aaxis, rtol=1e-12, atol=1e-12)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_vec2rot_is_orthonormal(seed):
    """Test exp lands on SO(3) for angles well past pi."""
    C = so3.vec2rot(random_aaxis(seed, 3.0 * jnp.pi))

    np.testing.assert_allclose(C.T @ C, jnp.eye(3), rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(jnp.linalg.det(C), 1.0, rtol=1e-12, atol=1e-12)


def test_vec2rot_small_angle():
    """Tiny angles stay finite and agree with the first-order expansion."""
    aaxis = jnp.array([1e-9, -2e-9, 3e-9])
    C = so3.vec2rot(aaxis)

    assert jnp.all(jnp.isfinite(C))
    np.testing.assert_allclose(C, jnp.eye(3) + so3.hat(aaxis), rtol=0.0, atol=1e-16)


def test_vec2rot_does_not_wrap_angle():
    """An angle past 2*pi gives the same rotation as the wrapped angle."""
    C = so3.vec2rot(jnp.array([0.0, 0.0, 2.0 * jnp.pi + 0.1]))
    expected = so3.vec2rot(jnp.array([0.0, 0.0, 0.1]))

    np.testing.assert_allclose(C, expected, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(so3.rot2vec(C), jnp.array([0.0, 0.0, 0.1]), rtol=1e-10, atol=1e-10)


def test_vec2rot_first_order_series():
    aaxis = jnp.array([0.1, 0.2, 0.3])
    C = so3.vec2rot(aaxis, num_terms=1)
    np.testing.assert_allclose(C, jnp.eye(3) + so3.hat(aaxis), rtol=1e-12, atol=1e-12)


def test_vec2rot_series_converges_to_closed_form():
    aaxis = jnp.array([0.3, -0.2, 0.5])
    C_series = so3.vec2rot(aaxis, num_terms=20)
    C_closed = so3.vec2rot(aaxis)
    np.testing.assert_allclose(C_series, C_closed, rtol=1e-12, atol=1e-12)


def test_vec2rot_truncated_series_is_approximate():
    aaxis = jnp.array([0.3, -0.2, 0.5])
    C_series = so3.vec2rot(aaxis, num_terms=2)
    C_closed = so3.vec2rot(aaxis)
    assert jnp.max(jnp.abs(C_series - C_closed)) > 1e-4


# Logarithmic map
def test_rot2vec_identity():
    """Test SO(3) log with identity matrix gives zero vector."""
    np.testing.assert_array_equal(so3.rot2vec(jnp.eye(3)), jnp.zeros(3))


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_rot2vec_roundtrip(seed):
    """Test rot2vec(vec2rot(phi)) == phi for angles below pi."""
    aaxis = random_aaxis(seed, jnp.pi - 1e-6)

    log_r = so3.rot2vec(so3.vec2rot(aaxis))

    np.testing.assert_allclose(log_r, aaxis, rtol=1e-8, atol=1e-8)


def test_rot2vec_small_angle():
    aaxis = jnp.array([1e-9, 2e-9, -1e-9])
    np.testing.assert_allclose(so3.rot2vec(so3.vec2rot(aaxis)), aaxis, rtol=1e-6, atol=1e-15)


@pytest.mark.parametrize("delta", [0.0, 2.2e-16, 1e-15, 1e-12, 1e-9, 1e-8, 1e-6, 1e-4, 2e-3])
def test_rot2vec_near_pi(delta):
    """Angles within round-off of pi recover the vector up to the axis sign."""
    axis = jnp.array([1.0, -2.0, 3.0]) / jnp.sqrt(14.0)
    aaxis = (jnp.pi - delta) * axis
    C = so3.vec2rot(aaxis)

    log_r = so3.rot2vec(C)

    assert jnp.all(jnp.isfinite(log_r))
    np.testing.assert_allclose(jnp.linalg.norm(log_r), jnp.pi - delta, rtol=0.0, atol=1e-7)
    error = min(jnp.linalg.norm(log_r - aaxis), jnp.linalg.norm(log_r + aaxis))
    assert error < 1e-7
    np.testing.assert_allclose(so3.vec2rot(log_r), C, rtol=0.0, atol=1e-7)


@pytest.mark.parametrize("delta", [1e-6, 1e-4, 2e-3])
def test_rot2vec_near_pi_keeps_axis_sign(delta):
    """Below pi the sign of the axis is fixed by the antisymmetric part."""
    axis = jnp.array([-2.0, 1.0, 0.5]) / jnp.sqrt(5.25)
    aaxis = (jnp.pi - delta) * axis

    log_r = so3.rot2vec(so3.vec2rot(aaxis))

    np.testing.assert_allclose(log_r, aaxis, rtol=0.0, atol=1e-8)


@pytest.mark.parametrize("C", [
    jnp.diag(jnp.array([1.0, -1.0, -1.0])),
    jnp.diag(jnp.array([-1.0, 1.0, -1.0])),
    jnp.diag(jnp.array([-1.0, -1.0, 1.0])),
    jnp.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]]),
])
def test_rot2vec_trace_minus_one(C):
    """A half turn (trace exactly -1) gives an axis scaled by pi."""
    log_r = so3.rot2vec(C)

    assert jnp.all(jnp.isfinite(log_r))
    np.testing.assert_allclose(jnp.linalg.norm(log_r), jnp.pi, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(so3.vec2rot(log_r), C, rtol=1e-12, atol=1e-12)


def test_rot2vec_half_turn_about_diagonal():
    C = jnp.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]])
    expected = jnp.pi / jnp.sqrt(2.0) * jnp.array([1.0, 1.0, 0.0])
    np.testing.assert_allclose(jnp.abs(so3.rot2vec(C)), expected, rtol=1e-12, atol=1e-12)


# Jacobians
def test_vec2jac_identity():
    np.testing.assert_array_equal(so3.vec2jac(jnp.zeros(3)), jnp.eye(3))
    np.testing.assert_array_equal(so3.vec2jacinv(jnp.zeros(3)), jnp.eye(3))


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_vec2jacinv_inverts_vec2jac(seed):
    aaxis = random_aaxis(seed, jnp.pi)
    J = so3.vec2jac(aaxis)
    J_inv = so3.vec2jacinv(aaxis)
    np.testing.assert_allclose(J @ J_inv, jnp.eye(3), rtol=1e-10, atol=1e-10)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_vec2jac_relates_to_vec2rot(seed):
    """C = I + phi^ J(phi)."""
    aaxis = random_aaxis(seed, jnp.pi)
    C = so3.vec2rot(aaxis)
    np.testing.assert_allclose(C, jnp.eye(3) + so3.hat(aaxis) @ so3.vec2jac(aaxis), rtol=1e-10, atol=1e-10)


def test_vec2jac_small_angle():
    aaxis = jnp.array([1e-8, 0.0, -1e-8])
    np.testing.assert_allclose(so3.vec2jac(aaxis), jnp.eye(3) + 0.5 * so3.hat(aaxis), rtol=0.0, atol=1e-15)
    np.testing.assert_allclose(so3.vec2jacinv(aaxis), jnp.eye(3) - 0.5 * so3.hat(aaxis), rtol=0.0, atol=1e-15)


@pytest.mark.parametrize("angle", [2e-6, 1e-5, 1e-4, 1e-3])
def test_vec2jac_full_precision_above_small_angle_switch(angle):
    aaxis = angle * jnp.array([1.0, -2.0, 3.0]) / jnp.sqrt(14.0)
    np.testing.assert_allclose(so3.vec2jac(aaxis), so3.vec2jac(aaxis, num_terms=20), rtol=0.0, atol=1e-14)
    np.testing.assert_allclose(
        so3.vec2jacinv(aaxis), so3.vec2jacinv(aaxis, num_terms=MAX_BERNOULLI_TERMS), rtol=0.0, atol=1e-14
    )


def test_jacobian_series_converge_to_closed_form():
    aaxis = jnp.array([0.3, -0.2, 0.5])
    np.testing.assert_allclose(so3.vec2jac(aaxis, num_terms=20), so3.vec2jac(aaxis), rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(
        so3.vec2jacinv(aaxis, num_terms=MAX_BERNOULLI_TERMS), so3.vec2jacinv(aaxis), rtol=1e-12, atol=1e-12
    )


def test_vec2jacinv_series_order_limit():
    with pytest.raises(ValueError):
        so3.vec2jacinv(jnp.array([0.1, 0.2, 0.3]), num_terms=MAX_BERNOULLI_TERMS + 1)


# Reprojection
def test_reproject_keeps_valid_rotation():
    """A valid rotation is returned untouched unless forced."""
    C = so3.vec2rot(jnp.array([0.1, -0.4, 0.7]))
    np.testing.assert_array_equal(so3.reproject(C), C)


def test_reproject_force_on_valid_rotation():
    C = so3.vec2rot(jnp.array([0.1, -0.4, 0.7]))
    np.testing.assert_allclose(so3.reproject(C, force=True), C, rtol=1e-12, atol=1e-12)


def test_reproject_corrects_drift():
    C = so3.vec2rot(jnp.array([0.1, -0.4, 0.7]))
    noise = 1e-3 * jax.random.normal(jax.random.PRNGKey(7), (3, 3), dtype=jnp.float64)
    drifted = C + noise
    assert jnp.abs(1.0 - jnp.linalg.det(drifted)) > 1e-6

    C_fixed = so3.reproject(drifted)

    np.testing.assert_allclose(C_fixed.T @ C_fixed, jnp.eye(3), rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(jnp.linalg.det(C_fixed), 1.0, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(C_fixed, C, rtol=0.0, atol=1e-2)


# JIT and vmap
def test_so3_jit_compatibility():
    """Test SO(3) functions are JIT compatible, including the pi branch."""
    jitted_exp = jax.jit(so3.vec2rot)
    jitted_log = jax.jit(so3.rot2vec)
    jitted_reproject = jax.jit(so3.reproject)

    aaxis = jnp.array([0.1, 0.2, 0.3])
    C = jitted_exp(aaxis)
    np.testing.assert_allclose(jitted_log(C), aaxis, rtol=1e-10, atol=1e-10)
    np.testing.assert_allclose(jitted_reproject(C), C, rtol=1e-12, atol=1e-12)

    half_turn = jnp.diag(jnp.array([1.0, -1.0, -1.0]))
    np.testing.assert_allclose(jnp.abs(jitted_log(half_turn)), jnp.array([jnp.pi, 0.0, 0.0]), rtol=1e-12, atol=1e-12)


def test_so3_vmap():
    """Batches are handled by vmapping the single-element maps."""
    aaxes = jax.random.uniform(jax.random.PRNGKey(42), (5, 3), dtype=jnp.float64, minval=-1.0, maxval=1.0)

    C_batch = jax.vmap(so3.vec2rot)(aaxes)
    log_r_batch = jax.vmap(so3.rot2vec)(C_batch)

    assert C_batch.shape == (5, 3, 3)
    assert log_r_batch.shape == (5, 3)
    np.testing.assert_allclose(log_r_batch, aaxes, rtol=1e-10, atol=1e-10)
