import numpy as np
from scipy.spatial.distance import pdist
from numba import njit

# ===================================================================
# 1. Planar Helpers
# ===================================================================

def rot_z(angle):
    """Fast rotation matrix about Z-axis."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [  c,  -s, 0.0],
        [  s,   c, 0.0],
        [0.0, 0.0, 1.0]
    ])

def rotate_in_plane(vec, angle):
    """Rotates a vector in the XY plane. The result always has z = 0."""
    out = rot_z(angle) @ np.array([vec[0], vec[1], 0.0])
    out[2] = 0.0
    return out

def direction_angle(p_from, p_to):
    """Polar angle of the segment p_from -> p_to in the XY plane."""
    d = p_to - p_from
    return np.arctan2(d[1], d[0])

def sector_angle(v1, v2):
    """Unsigned angle between two edge vectors leaving the same vertex."""
    v1 = v1 / np.linalg.norm(v1)
    v2 = v2 / np.linalg.norm(v2)
    dp = np.clip(np.dot(v1, v2), -1, 1)
    return np.arccos(dp)

# ===================================================================
# 2. Crease Rotation Kernel
# ===================================================================

@njit
def rotate_points(points, origin, axis, angle):
    """
    Rotates a (n, m, 3) block of points in place about the line through
    `origin` with unit direction `axis`.
    Rodrigues: R = cI + s[k]x + (1 - c) k k^T
    """
    c, s = np.cos(angle), np.sin(angle)
    t = 1.0 - c
    kx, ky, kz = axis[0], axis[1], axis[2]

    r00 = c + t * kx * kx
    r01 = t * kx * ky - s * kz
    r02 = t * kx * kz + s * ky
    r10 = t * ky * kx + s * kz
    r11 = c + t * ky * ky
    r12 = t * ky * kz - s * kx
    r20 = t * kz * kx - s * ky
    r21 = t * kz * ky + s * kx
    r22 = c + t * kz * kz

    ox, oy, oz = origin[0], origin[1], origin[2]
    for r in range(points.shape[0]):
        for q in range(points.shape[1]):
            # Local frame relative to the rotation origin
            px = points[r, q, 0] - ox
            py = points[r, q, 1] - oy
            pz = points[r, q, 2] - oz
            points[r, q, 0] = r00 * px + r01 * py + r02 * pz + ox
            points[r, q, 1] = r10 * px + r11 * py + r12 * pz + oy
            points[r, q, 2] = r20 * px + r21 * py + r22 * pz + oz

# ===================================================================
# 3. Grid Utilities
# ===================================================================

def center_dots(dots):
    """
    Moves the whole point grid so its bounding box center is at the origin.
    Works in place and returns the grid.
    """
    pts = dots.reshape(-1, 3)
    center = 0.5 * (pts.min(axis=0) + pts.max(axis=0))
    dots -= center
    return dots

def grid_faces(rows, cols):
    """Quad faces of a rows x cols grid, flat-indexed (i * cols + j), CCW."""
    faces = []
    for i in range(rows - 1):
        for j in range(cols - 1):
            n0 = i*cols + j
            n1 = i*cols + (j+1)
            n2 = (i+1)*cols + (j+1)
            n3 = (i+1)*cols + j
            faces.append([n0, n1, n2, n3])
    return faces

def face_distortion(flat_dots, folded_dots):
    """
    Largest change of any of the six pairwise distances inside a quad face
    between the flat and the folded grid. Zero for a rigid fold.
    """
    flat_dots = np.asarray(flat_dots, dtype=np.float64)
    folded_dots = np.asarray(folded_dots, dtype=np.float64)
    if flat_dots.shape != folded_dots.shape:
        raise ValueError(f"Grid shapes differ: {flat_dots.shape} vs {folded_dots.shape}")

    rows, cols = flat_dots.shape[:2]
    flat_pts = flat_dots.reshape(-1, 3)
    folded_pts = folded_dots.reshape(-1, 3)

    worst = 0.0
    for face in grid_faces(rows, cols):
        d_flat = pdist(flat_pts[face])
        d_folded = pdist(folded_pts[face])
        worst = max(worst, float(np.max(np.abs(d_folded - d_flat))))
    return worst
