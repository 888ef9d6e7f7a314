"""
Pure JAX implementation of noise generation for cosmological simulations.

The white noise stream is cut into sub-sequences of `nsub` numbers, each
drawn from its own key folded from the run seed. Any contiguous range of
the stream can be regenerated without drawing the rest, so a slab of the
grid does not depend on how the grid is partitioned.
"""
import jax
import jax.numpy as jnp
import jax.random as rnd
from typing import Tuple

# Length of one independently keyed sub-sequence of the noise stream
DEFAULT_NSUB = 128**3


def _generate_stream(
    seed: int,
    gen_start_offset: int,
    gen_size: int,
    dtype: jnp.dtype,
    nsub: int
) -> jnp.ndarray:
    """Return entries [gen_start_offset, gen_start_offset + gen_size) of the noise stream."""
    if gen_size == 0:
        return jnp.array([], dtype=dtype)

    _PRNGkey = rnd.PRNGKey(seed)

    start_seqID = gen_start_offset // nsub
    end_seqID = (gen_start_offset + gen_size - 1) // nsub

    seqIDs = jnp.arange(start_seqID, end_seqID + 1, dtype=jnp.int32)
    sub_keys = jax.vmap(lambda key, val: rnd.fold_in(key, jnp.uint32(val)), in_axes=(None, 0), out_axes=0)(_PRNGkey, seqIDs)

    all_subsequences = []
    for i, seqID_val in enumerate(range(start_seqID, end_seqID + 1)):
        subseq_full = rnd.normal(sub_keys[i], shape=(nsub,), dtype=dtype)

        current_block_abs_start = seqID_val * nsub
        slice_start_in_subseq = max(0, gen_start_offset - current_block_abs_start)
        # gen_start_offset + gen_size - 1 is the index of the last element needed from the stream
        slice_end_in_subseq = min(nsub - 1, (gen_start_offset + gen_size - 1) - current_block_abs_start)

        all_subsequences.append(subseq_full[slice_start_in_subseq : slice_end_in_subseq + 1])

    noise_1d = jnp.concatenate(all_subsequences)

    if noise_1d.shape[0] != gen_size:
        raise RuntimeError(
            f"Internal error: Generated noise_1d size {noise_1d.shape[0]} "
            f"does not match expected gen_size {gen_size}."
        )
    return noise_1d


def generate_white_noise(
    grid_shape: Tuple[int, int, int],
    seed: int = 13579,
    dtype: jnp.dtype = jnp.float32,
    nsub: int = DEFAULT_NSUB
) -> jnp.ndarray:
    """
    Generate a unit-variance white noise field.

    Parameters:
    -----------
    grid_shape : Tuple[int, int, int]
        Shape of the 3D grid (N, N, N). Must be cubic.
    seed : int
        Random seed for reproducible generation.
    dtype : jnp.dtype
        Data type for the noise field.
    nsub : int
        The nsub parameter controlling the size of intermediate random number blocks.

    Returns:
    --------
    noise : jnp.ndarray
        White noise field with shape grid_shape, C-ordered along the stream.
    """
    N = grid_shape[0]
    if not (grid_shape[0] == grid_shape[1] == grid_shape[2]):
        raise ValueError(
            "grid_shape must be (N, N, N) for this function."
        )
    if N == 0:
        return jnp.empty((0, 0, 0), dtype=dtype)

    noise_1d = _generate_stream(seed, 0, N**3, dtype, nsub)
    return jnp.reshape(noise_1d, (N, N, N))


def generate_distributed_noise(
    grid_shape: Tuple[int, int, int],
    slab_slice: slice,
    seed: int = 13579,
    dtype: jnp.dtype = jnp.float32,
    nsub: int = DEFAULT_NSUB
) -> jnp.ndarray:
    """
    Generate a slab of the white noise field along the first axis.

    Parameters:
    -----------
    grid_shape : Tuple[int, int, int]
        Shape of the full 3D grid (N, N, N). Must be cubic.
    slab_slice : slice
        Range of indices along the first axis owned by this slab.
    seed : int
        Random seed for reproducible generation (must be the same for all slabs).
    dtype : jnp.dtype
        Data type for the noise field.
    nsub : int
        The nsub parameter controlling the size of intermediate random number blocks.

    Returns:
    --------
    noise_slab : jnp.ndarray
        Array of shape (slab_size, N, N), identical to the same slab of
        generate_white_noise(grid_shape, seed).
    """
    N = grid_shape[0]
    if not (grid_shape[0] == grid_shape[1] == grid_shape[2]):
        raise ValueError(
            "grid_shape must be (N, N, N) for this function."
        )

    slab_axis_size = slab_slice.stop - slab_slice.start
    if slab_axis_size < 0:
        raise ValueError("slab_slice results in a negative size.")
    if N == 0 or slab_axis_size == 0:
        return jnp.empty((slab_axis_size, N, N), dtype=dtype)

    gen_start_offset = slab_slice.start * (N * N)
    gen_size = slab_axis_size * (N * N)

    noise_1d = _generate_stream(seed, gen_start_offset, gen_size, dtype, nsub)
    return jnp.reshape(noise_1d, (slab_axis_size, N, N))
