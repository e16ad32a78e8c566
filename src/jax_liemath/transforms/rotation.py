"""SO(3) rotation value type built on the so3 maps."""

from typing import Union

import jax
import jax.numpy as jnp
from flax import struct

from . import so3
from ..core.errors import DimensionError

Array = jax.Array


@struct.dataclass
class Rotation:
    """Immutable rotation C_ba, mapping vectors in frame a into frame b.

    A PyTree, so instances can be passed through jit / grad / vmap. The
    in-place operators ``*=`` and ``/=`` rebind the name to a new Rotation.

    Attributes:
        C_ba: (3, 3) rotation matrix
    """
    C_ba: Array

    # Constructors
    @classmethod
    def identity(cls) -> "Rotation":
        return cls(jnp.eye(3, dtype=float))

    @classmethod
    def from_matrix(cls, C: Array, reproject: bool = True) -> "Rotation":
        """Wrap a 3x3 matrix, by default snapping it onto SO(3) first."""
        C = jnp.asarray(C, dtype=float)
        if C.shape != (3, 3):
            raise DimensionError(f"rotation matrix must have shape (3, 3), got {C.shape}")
        if reproject:
            C = so3.reproject(C, force=True)
        return cls(C)

    @classmethod
    def from_vector(cls, aaxis_ab: Array, num_terms: int = 0) -> "Rotation":
        """Rotation C_ba = vec2rot(aaxis_ab); the vector must have length 3."""
        aaxis_ab = jnp.asarray(aaxis_ab, dtype=float)
        if aaxis_ab.shape != (3,):
            raise DimensionError(
                f"Tried to initialize a rotation from a vector of shape {aaxis_ab.shape}, expected (3,)"
            )
        return cls(so3.vec2rot(aaxis_ab, num_terms))

    # Basic operations
    def matrix(self) -> Array:
        return self.C_ba

    def vec(self) -> Array:
        """Axis-angle vector through the logarithmic map."""
        return so3.rot2vec(self.C_ba)

    def inverse(self) -> "Rotation":
        return Rotation(jnp.swapaxes(self.C_ba, -1, -2))

    def reproject(self, force: bool = True) -> "Rotation":
        return Rotation(so3.reproject(self.C_ba, force))

    def __mul__(self, other: Union["Rotation", Array]) -> Union["Rotation", Array]:
        """Compose with another rotation, or rotate a 3D point."""
        if isinstance(other, Rotation):
            return Rotation(jnp.matmul(self.C_ba, other.C_ba))

        p_a = jnp.asarray(other, dtype=float)
        if p_a.shape != (3,):
            raise DimensionError(f"point must have shape (3,), got {p_a.shape}")
        return jnp.matmul(self.C_ba, p_a)

    def __truediv__(self, other: "Rotation") -> "Rotation":
        """Compose with the inverse of another rotation."""
        if not isinstance(other, Rotation):
            return NotImplemented
        return Rotation(jnp.matmul(self.C_ba, jnp.swapaxes(other.C_ba, -1, -2)))

    def __str__(self) -> str:
        return f"\n{self.C_ba}\n"
