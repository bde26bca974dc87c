"""Package-wide numerical constants.

These values are read at import time by the numba kernels and by the
configuration defaults; they are not meant to be mutated at runtime.
"""

TOL = 1e-10

FASTMATH = False  # Global flag for Numba's fastmath option

EPS_TIME = 1e-10  # default event time tolerance
