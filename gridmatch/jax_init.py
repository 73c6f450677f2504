"""Single import point for JAX.

Padded grid coordinates are around 2**20, which float32 cannot resolve to
sub-cell precision, so JAX must run with 64-bit floats. Import ``jax`` and
``jnp`` from here so the flag is set before any array is created.

Author: Navigation Engineer
Date: October 2026
"""

import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp  # noqa: E402

__all__ = ["jax", "jnp"]
