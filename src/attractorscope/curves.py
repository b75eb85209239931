"""
Space-filling curve mapping.

Maps a scalar in [0, 1] onto a self-similar curve that fills the square
[-1, 1]^2 or the cube [-1, 1]^3. Nearby scalars land on nearby points, so
small changes in frequency give small changes in position.

Each level splits [0, 1] into one interval per vertex (4 for the square,
8 for the cube). At depth 0 the remainder walks a short edge path near the
vertex; at deeper levels the sub-curve is rotated, halved and moved into
the vertex's cell.
"""

import numpy as np

# Vertex order defines the curve's traversal
SQUARE_VERTICES = np.array(
    [(1.0, 1.0), (1.0, -1.0), (-1.0, -1.0), (-1.0, 1.0)]
)

# (start, middle, end) of the depth-0 edge path for each square vertex
SQUARE_PATHS = np.array([
    [(1.0, 1.0), (1.0, 0.5), (1.0, 0.0)],
    [(1.0, 0.0), (1.0, -1.0), (0.0, -1.0)],
    [(0.0, -1.0), (-1.0, -1.0), (-1.0, 0.0)],
    [(-1.0, 0.0), (-1.0, 0.5), (-1.0, 1.0)],
])

_SWAP_XY = ((0, 1), (1, 0))
_IDENTITY_2D = ((1, 0), (0, 1))
_FLIP_SWAP_XY = ((0, -1), (-1, 0))

SQUARE_ROTATIONS = np.array(
    [_SWAP_XY, _IDENTITY_2D, _IDENTITY_2D, _FLIP_SWAP_XY], dtype=float
)

CUBE_VERTICES = np.array([
    (1.0, 1.0, -1.0),
    (1.0, -1.0, -1.0),
    (-1.0, -1.0, -1.0),
    (-1.0, 1.0, -1.0),
    (-1.0, 1.0, 1.0),
    (-1.0, -1.0, 1.0),
    (1.0, -1.0, 1.0),
    (1.0, 1.0, 1.0),
])

CUBE_PATHS = np.array([
    [(1.0, 1.0, -1.0), (1.0, 0.5, -1.0), (1.0, 0.0, -1.0)],
    [(1.0, 0.0, -1.0), (1.0, -1.0, -1.0), (0.0, -1.0, -1.0)],
    [(0.0, -1.0, -1.0), (-1.0, -1.0, -1.0), (-1.0, 0.0, -1.0)],
    [(-1.0, 0.0, -1.0), (-1.0, 1.0, -1.0), (-1.0, 1.0, 0.0)],
    [(-1.0, 1.0, 0.0), (-1.0, 1.0, 1.0), (-1.0, 0.0, 1.0)],
    [(-1.0, 0.0, 1.0), (-1.0, -1.0, 1.0), (0.0, -1.0, 1.0)],
    [(0.0, -1.0, 1.0), (1.0, -1.0, 1.0), (1.0, 0.0, 1.0)],
    [(1.0, 0.0, 1.0), (1.0, 0.5, 1.0), (1.0, 1.0, 1.0)],
])

# Rows give the rotated (x, y, z) in terms of the input axes
_R0 = ((0, 1, 0), (0, 0, -1), (-1, 0, 0))   # (y, -z, -x)
_R1 = ((0, 0, -1), (1, 0, 0), (0, -1, 0))   # (-z, x, -y)
_R2 = ((-1, 0, 0), (0, -1, 0), (0, 0, 1))   # (-x, -y, z)
_R3 = ((0, 0, 1), (1, 0, 0), (0, 1, 0))     # (z, x, y)
_R4 = ((0, 1, 0), (0, 0, 1), (1, 0, 0))     # (y, z, x)

CUBE_ROTATIONS = np.array([_R0, _R1, _R1, _R2, _R2, _R3, _R3, _R4], dtype=float)

# Default depths used by the visualizer
SQUARE_LATTICE_DEPTH = 6
CUBE_LATTICE_DEPTH = 4
ATTRACTOR_DEPTH = 6


def _split(x: float, n_vertices: int) -> tuple[int, float]:
    """Return the vertex owning ``x`` and the remainder rescaled to [0, 1]."""
    scaled = x * n_vertices
    vertex = min(int(scaled), n_vertices - 1)
    return vertex, scaled - vertex


def _walk_path(path: np.ndarray, t: float) -> tuple[float, ...]:
    """Interpolate along a (start, middle, end) waypoint triple."""
    if t < 0.5:
        a, b, u = path[0], path[1], t * 2.0
    else:
        a, b, u = path[1], path[2], (t - 0.5) * 2.0
    return tuple(float(v) for v in a + (b - a) * u)


def _curve_point(
    x: float,
    depth: int,
    paths: np.ndarray,
    rotations: np.ndarray,
    vertices: np.ndarray,
) -> tuple[float, ...]:
    vertex, remainder = _split(x, len(vertices))
    if depth == 0:
        return _walk_path(paths[vertex], remainder)

    inner = np.array(_curve_point(remainder, depth - 1, paths, rotations, vertices))
    point = 0.5 * vertices[vertex] + 0.5 * (rotations[vertex] @ inner)
    return tuple(float(v) for v in point)


def _check_depth(depth: int) -> int:
    depth = int(depth)
    if depth < 0:
        raise ValueError(f"Curve depth must be >= 0, got {depth}")
    return depth


def curve_to_square(x: float, depth: int) -> tuple[float, float]:
    """
    Map ``x`` in [0, 1] onto the square [-1, 1]^2.

    Args:
        x: Position along the curve. Values outside [0, 1] are clipped.
        depth: Number of recursive subdivisions (0 is a single ring of
            four edge paths).

    Returns:
        (x, y) point on the curve.
    """
    depth = _check_depth(depth)
    x = min(max(float(x), 0.0), 1.0)
    return _curve_point(x, depth, SQUARE_PATHS, SQUARE_ROTATIONS, SQUARE_VERTICES)


def curve_to_cube(x: float, depth: int) -> tuple[float, float, float]:
    """
    Map ``x`` in [0, 1] onto the cube [-1, 1]^3.

    Args:
        x: Position along the curve. Values outside [0, 1] are clipped.
        depth: Number of recursive subdivisions.

    Returns:
        (x, y, z) point on the curve.
    """
    depth = _check_depth(depth)
    x = min(max(float(x), 0.0), 1.0)
    return _curve_point(x, depth, CUBE_PATHS, CUBE_ROTATIONS, CUBE_VERTICES)


def _map_array(
    xs: np.ndarray,
    depth: int,
    paths: np.ndarray,
    rotations: np.ndarray,
    vertices: np.ndarray,
) -> np.ndarray:
    depth = _check_depth(depth)
    n_vertices = len(vertices)
    remainder = np.clip(np.asarray(xs, dtype=np.float64).ravel(), 0.0, 1.0)

    # Walk down the levels, remembering which cell each sample fell into
    levels = []
    for _ in range(depth + 1):
        scaled = remainder * n_vertices
        vertex = np.minimum(scaled.astype(np.int64), n_vertices - 1)
        remainder = scaled - vertex
        levels.append(vertex)

    # Innermost edge path
    path = paths[levels[-1]]
    first_half = (remainder < 0.5)[:, None]
    u_first = (remainder * 2.0)[:, None]
    u_second = ((remainder - 0.5) * 2.0)[:, None]
    points = np.where(
        first_half,
        path[:, 0] + (path[:, 1] - path[:, 0]) * u_first,
        path[:, 1] + (path[:, 2] - path[:, 1]) * u_second,
    )

    # Climb back out through each cell transform
    for vertex in reversed(levels[:-1]):
        rotated = np.einsum("nij,nj->ni", rotations[vertex], points)
        points = 0.5 * vertices[vertex] + 0.5 * rotated

    return points


def map_to_square(xs, depth: int) -> np.ndarray:
    """Vectorized :func:`curve_to_square`. Returns shape (n, 2)."""
    return _map_array(xs, depth, SQUARE_PATHS, SQUARE_ROTATIONS, SQUARE_VERTICES)


def map_to_cube(xs, depth: int) -> np.ndarray:
    """Vectorized :func:`curve_to_cube`. Returns shape (n, 3)."""
    return _map_array(xs, depth, CUBE_PATHS, CUBE_ROTATIONS, CUBE_VERTICES)


def square_lattice(count: int, depth: int = SQUARE_LATTICE_DEPTH) -> np.ndarray:
    """
    Static 2D particle positions: particle ``i`` sits at ``i / count``.

    Returns:
        float32 array of shape (count, 2).
    """
    if count < 0:
        raise ValueError(f"Particle count must be >= 0, got {count}")
    xs = np.arange(count, dtype=np.float64) / max(count, 1)
    return map_to_square(xs, depth).astype(np.float32)


def cube_lattice(count: int, depth: int = CUBE_LATTICE_DEPTH) -> np.ndarray:
    """
    Static 3D particle positions: particle ``i`` sits at ``i / count``.

    Returns:
        float32 array of shape (count, 3).
    """
    if count < 0:
        raise ValueError(f"Particle count must be >= 0, got {count}")
    xs = np.arange(count, dtype=np.float64) / max(count, 1)
    return map_to_cube(xs, depth).astype(np.float32)
