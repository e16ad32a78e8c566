"""
JAX-based Lie group transforms for robotics and state estimation.

This module provides numerically careful, JIT-compilable implementations of:
- SO(3) rotations (so3 module)
- SE(3) rigid body transforms (se3 module)
- Rotation and Transformation value types built on both

All map functions are pure and stateless.
"""

# Core Lie group modules
from . import so3
from . import se3
from .rotation import Rotation
from .transform import Transformation

__all__ = [
    "so3",
    "se3",
    "Rotation",
    "Transformation",
]
