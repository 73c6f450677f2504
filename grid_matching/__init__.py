"""Grid Scan Matching Examples.

Examples:
    - example_grid_scan_matching.py: Refine a perturbed pose by matching an
      L-shaped wall scan against a correspondence-cost grid

Dependencies:
    - gridmatch.slam: cost grid, occupied-space cost, matching adapter
    - matplotlib: Visualization
    - numpy: Numerical operations

Author: Navigation Engineer
Date: October 2026
"""

__all__ = []
