"""
Numerical tolerances used by the SO(3) and SE(3) maps.

These select a computational path only. Each threshold sits where both the
Taylor expansion and the closed form it replaces are accurate to a few ulps
in the quantities the maps return.
"""

# Rotation angle (rad) below which the Rodrigues and SO(3) Jacobian
# coefficients are replaced by their Taylor expansions. Two series terms are
# exact to ~1e-28 here.
SMALL_ANGLE_TOL = 1e-6

# Rotation angle (rad) below which the coefficients of the SE(3) Q block use
# their Taylor expansions. Their closed forms cancel to O(θ⁴) and O(θ⁵), so
# they only recover full precision well above SMALL_ANGLE_TOL. Five series
# terms are exact to ~1e-20 here.
Q_SMALL_ANGLE_TOL = 1e-1

# Distance from pi (rad) inside which the logarithmic map reads the axis from
# the symmetric part of C instead of dividing by sin(angle).
NEAR_PI_TOL = 1e-3

# Largest |1 - det(C)| tolerated before a conditional reprojection snaps C
# back onto SO(3).
REPROJECTION_TOL = 1e-6

# Number of tabulated Bernoulli numbers (B_1 ... B_20) available to the series
# form of the inverse Jacobians.
MAX_BERNOULLI_TERMS = 20
