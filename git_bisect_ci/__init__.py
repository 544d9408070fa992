"""
Git Bisect CI - find CI-evaluated commits closest to the current bisect step.

During a ``git bisect`` this tool lists the commits nearest to HEAD, within
the remaining bisection range, that a Hydra jobset has already evaluated, so
their build results can be reused instead of building from scratch.
"""

__version__ = "0.1.0"
