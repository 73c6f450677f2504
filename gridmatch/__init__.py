"""Grid-based scan matching for 2D SLAM.

This package contains the components needed to score and refine a 2D pose
against a correspondence-cost grid:
- slam: SE(2) transforms, the padded grid adapter, bicubic interpolation,
  the occupied-space cost function and a least-squares matching adapter
"""

__version__ = "0.1.0"
