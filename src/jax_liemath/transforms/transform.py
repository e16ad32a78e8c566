"""SE(3) rigid-body transformation value type built on the se3 maps."""

from typing import Union

import jax
import jax.numpy as jnp
from flax import struct

from . import se3, so3
from ..core.errors import DimensionError

Array = jax.Array


@struct.dataclass
class Transformation:
    """Immutable transformation T_ba = [[C_ba, r_ab_inb], [0, 1]].

    Maps homogeneous points in frame a into frame b. Composition, inverse
    composition and inversion trigger a conditional reprojection of the
    rotation block, which only does work once floating-point drift has moved
    det(C_ba) away from 1. The translation is never reprojected.

    Attributes:
        C_ba: (3, 3) rotation matrix
        r_ab_inb: (3,) translation from b to a, expressed in b
    """
    C_ba: Array
    r_ab_inb: Array

    # Constructors
    @classmethod
    def identity(cls) -> "Transformation":
        return cls(jnp.eye(3, dtype=float), jnp.zeros(3, dtype=float))

    @classmethod
    def from_matrix(cls, T: Array) -> "Transformation":
        """Wrap a 4x4 homogeneous matrix; the bottom row is not read."""
        T = jnp.asarray(T, dtype=float)
        if T.shape != (4, 4):
            raise DimensionError(f"matrix must have shape (4, 4), got {T.shape}")
        return cls(so3.reproject(T[:3, :3]), T[:3, 3])

    @classmethod
    def from_rotation_translation(cls, C_ba: Array, r_ab_inb: Array) -> "Transformation":
        """
        Build from a rotation and the translation column of the matrix.

        The translation is r_ab_inb, stored as is. For the translation from a
        to b expressed in a use from_rotation_translation_ba_ina().
        """
        C_ba = jnp.asarray(C_ba, dtype=float)
        r_ab_inb = jnp.asarray(r_ab_inb, dtype=float)
        if C_ba.shape != (3, 3):
            raise DimensionError(f"rotation matrix must have shape (3, 3), got {C_ba.shape}")
        if r_ab_inb.shape != (3,):
            raise DimensionError(f"translation must have shape (3,), got {r_ab_inb.shape}")
        return cls(so3.reproject(C_ba), r_ab_inb)

    @classmethod
    def from_rotation_translation_ba_ina(cls, C_ba: Array, r_ba_ina: Array) -> "Transformation":
        """Build from a rotation and r_ba_ina; stores r_ab_inb = -C_ba @ r_ba_ina."""
        r_ba_ina = jnp.asarray(r_ba_ina, dtype=float)
        if r_ba_ina.shape != (3,):
            raise DimensionError(f"translation must have shape (3,), got {r_ba_ina.shape}")
        T = cls.from_rotation_translation(C_ba, jnp.zeros(3, dtype=float))
        return cls(T.C_ba, -jnp.matmul(T.C_ba, r_ba_ina))

    @classmethod
    def from_vector(cls, xi_ab: Array, num_terms: int = 0) -> "Transformation":
        """Transformation T_ba = vec2tran(xi_ab); the vector must have length 6."""
        xi_ab = jnp.asarray(xi_ab, dtype=float)
        if xi_ab.shape != (6,):
            raise DimensionError(
                f"Tried to initialize a transformation from a vector of shape {xi_ab.shape}, expected (6,)"
            )
        C_ba, r_ab_inb = se3.vec2tran(xi_ab, num_terms)
        return cls(C_ba, r_ab_inb)

    # Accessors
    def matrix(self) -> Array:
        return se3.tran_matrix(self.C_ba, self.r_ab_inb)

    def r_ba_ina(self) -> Array:
        """Translation from a to b, expressed in a: -C_ba^T r_ab_inb."""
        return -jnp.matmul(jnp.swapaxes(self.C_ba, -1, -2), self.r_ab_inb)

    def vec(self) -> Array:
        """Twist [rho, phi] through the logarithmic map."""
        return se3.tran2vec(self.C_ba, self.r_ab_inb)

    def adjoint(self) -> Array:
        return se3.tran_ad(self.C_ba, self.r_ab_inb)

    # Basic operations
    def inverse(self) -> "Transformation":
        """SE(3) inverse using the block structure."""
        C_inv = so3.reproject(jnp.swapaxes(self.C_ba, -1, -2))
        return Transformation(C_inv, -jnp.matmul(C_inv, self.r_ab_inb))

    def reproject(self, force: bool = True) -> "Transformation":
        return Transformation(so3.reproject(self.C_ba, force), self.r_ab_inb)

    def __mul__(self, other: Union["Transformation", Array]) -> Union["Transformation", Array]:
        """
        Compose with another transformation, or transform a point.

        Accepted points
        ---------------
        * (4,)  homogeneous point, returned in homogeneous form
        * (3,)  Cartesian point, returned as C_ba @ p + r_ab_inb
        """
        if isinstance(other, Transformation):
            r = self.r_ab_inb + jnp.matmul(self.C_ba, other.r_ab_inb)
            C = so3.reproject(jnp.matmul(self.C_ba, other.C_ba))
            return Transformation(C, r)

        p_a = jnp.asarray(other, dtype=float)
        if p_a.shape == (4,):
            p_b = jnp.matmul(self.C_ba, p_a[:3]) + self.r_ab_inb * p_a[3]
            return jnp.concatenate([p_b, p_a[3:]])
        if p_a.shape == (3,):
            return jnp.matmul(self.C_ba, p_a) + self.r_ab_inb
        raise DimensionError(f"point must have shape (3,) or (4,), got {p_a.shape}")

    def __truediv__(self, other: "Transformation") -> "Transformation":
        """Compose with the inverse of another transformation."""
        if not isinstance(other, Transformation):
            return NotImplemented
        C =jnp.matmul(self.C_ba, jnp.swapaxes(other.C_ba, -1, -2))
        r = self.r_ab_inb - jnp.matmul(C, other.r_ab_inb)
        return Transformation(so3.reproject(C), r)

    def __str__(self) -> str:
        return f"\n{self.matrix()}\n"
