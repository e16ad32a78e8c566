"""
JAX Lie Math: closed-form SO(3)/SE(3) Lie group operations for robotics.

This library provides numerically careful, JIT-compilable exponential and
logarithmic maps, Jacobians and adjoints for rotations and rigid-body
transformations, together with light value types built on top of them.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import core
from . import transforms

__version__ = "0.1.0"
__all__ = ["core", "transforms"]
