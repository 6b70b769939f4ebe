import numpy as np
from collections import namedtuple


class BoundaryVertex(namedtuple('BoundaryVertex', ['pos', 'ray_angle'])):
    """
    A vertex of one of the two boundary arms.

    pos: position in the z=0 plane (a 2D position is promoted to z=0).
    ray_angle: polar angle (radians) of the crease ray leaving the vertex
               into the pattern.
    """
    __slots__ = ()

    def __new__(cls, pos, ray_angle):
        pos = np.array(pos, dtype=np.float64)
        if pos.shape == (2,):
            pos = np.append(pos, 0.0)
        if pos.shape != (3,):
            raise ValueError(f"Boundary position must have 2 or 3 coordinates, got shape {pos.shape}")
        pos.setflags(write=False)
        return super().__new__(cls, pos, float(ray_angle))


def validate_boundary(horizontal, vertical):
    """
    Checks the two arms and returns the (rows, cols) of the grid they span.
    rows = len(vertical) + 1, cols = len(horizontal).
    """
    if len(horizontal) < 2:
        raise ValueError(f"Horizontal boundary needs at least 2 vertices, got {len(horizontal)}")
    if len(vertical) < 1:
        raise ValueError(f"Vertical boundary needs at least 1 vertex, got {len(vertical)}")
    for v in list(horizontal) + list(vertical):
        if not isinstance(v, BoundaryVertex):
            raise ValueError(f"Expected BoundaryVertex, got {type(v).__name__}")
    return len(vertical) + 1, len(horizontal)


def generate_miura_boundary(x_verts, y_verts, theta, h_length=1.0, v_length=1.0, center=True):
    """
    Sets up the boundary of a regular Miura-Ori.

    Args:
        x_verts: number of vertices on the horizontal (zigzag) arm, >= 2
        y_verts: number of vertices on the vertical arm including the shared
                 corner, >= 2 (the returned vertical list has y_verts - 1)
        theta: sector angle in degrees between a zigzag edge and the
               straight vertical crease. 90 gives a rectangular grid.
        h_length, v_length: zigzag and vertical edge lengths
        center: shift the boundary so the pattern is roughly centered

    Returns:
        (horizontal, vertical) lists of BoundaryVertex
    """
    if x_verts < 2 or y_verts < 2:
        raise ValueError(f"x_verts and y_verts must be >= 2, got {x_verts}, {y_verts}")
    if not 0 < theta < 180:
        raise ValueError(f"theta must lie in (0, 180) degrees, got {theta}")

    zigzag = np.deg2rad(90 - theta)

    # Horizontal
    positions = [np.zeros(3)]
    rays = [np.pi - zigzag]
    angle = zigzag
    for _ in range(1, x_verts):
        step = h_length * np.array([np.cos(angle), np.sin(angle), 0.0])
        positions.append(positions[-1] + step)
        rays.append(np.pi / 2)
        angle = -angle

    # Vertical
    v_positions = [np.array([0.0, j * v_length, 0.0]) for j in range(1, y_verts)]

    if center:
        width = positions[x_verts - 1 - (1 - x_verts % 2)][0]
        height = v_positions[-1][1]
        shift = np.array([-width / 2, -height / 2, 0.0])
        positions = [p + shift for p in positions]
        v_positions = [p + shift for p in v_positions]

    horizontal = [BoundaryVertex(p, a) for p, a in zip(positions, rays)]
    vertical = [BoundaryVertex(p, zigzag) for p in v_positions]
    return horizontal, vertical
