import json

import numpy as np

from miura_boundary import BoundaryVertex, validate_boundary
from origami_geometry import grid_faces

ANGLE_UNITS = ('rad', 'deg')

# ===================================================================
# 1. Boundary Files
# ===================================================================

def _with_extension(filename, ext):
    if not filename.endswith(ext):
        filename = filename + ext
    return filename

def load_boundary(filename):
    """
    Reads the two boundary arms from a JSON file:

        {"angle_unit": "deg",
         "horizontal": [{"pos": [x, y, z], "ray_angle": a}, ...],
         "vertical":   [{"pos": [x, y, z], "ray_angle": a}, ...]}

    angle_unit defaults to radians. Returns (horizontal, vertical).
    """
    filename = _with_extension(filename, '.json')
    with open(filename, 'r') as f:
        data = json.load(f)

    unit = data.get('angle_unit', 'rad')
    if unit not in ANGLE_UNITS:
        raise ValueError(f"angle_unit must be one of {ANGLE_UNITS}, got {unit!r}")

    arms = []
    for key in ('horizontal', 'vertical'):
        if key not in data:
            raise ValueError(f"Boundary file {filename} has no '{key}' arm")
        arm = []
        for entry in data[key]:
            ray = entry['ray_angle']
            if unit == 'deg':
                ray = np.deg2rad(ray)
            arm.append(BoundaryVertex(entry['pos'], ray))
        arms.append(arm)

    horizontal, vertical = arms
    validate_boundary(horizontal, vertical)
    return horizontal, vertical

def save_boundary(filename, horizontal, vertical, angle_unit='rad'):
    if angle_unit not in ANGLE_UNITS:
        raise ValueError(f"angle_unit must be one of {ANGLE_UNITS}, got {angle_unit!r}")
    validate_boundary(horizontal, vertical)

    def encode(arm):
        out = []
        for v in arm:
            ray = np.rad2deg(v.ray_angle) if angle_unit == 'deg' else v.ray_angle
            out.append({'pos': [float(c) for c in v.pos], 'ray_angle': float(ray)})
        return out

    data = {
        'angle_unit': angle_unit,
        'horizontal': encode(horizontal),
        'vertical': encode(vertical),
    }
    filename = _with_extension(filename, '.json')
    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)
    return filename

# ===================================================================
# 2. FOLD Export
# ===================================================================

def _edge_fold_angle(crease_angles, u, v, rows, cols):
    """
    Fold angle of the interior grid edge u-v (grid cells), read from the
    internal vertex that owns it. Zero when no internal vertex touches it.
    """
    (i0, j0), (i1, j1) = u, v
    if i0 == i1:
        # Edge along a row: g1 of its left vertex, or g3 of its right one
        i = i0
        if 1 <= j0 <= cols - 2:
            angle = crease_angles[i, j0, 0]
        elif 1 <= j1 <= cols - 2:
            angle = crease_angles[i, j1, 2]
        else:
            return 0.0
    else:
        # Edge along a column: g2 of its lower vertex, or g4 of its upper one
        j = j0
        if 1 <= i0 <= rows - 2:
            angle = crease_angles[i0, j, 1]
        elif 1 <= i1 <= rows - 2:
            angle = crease_angles[i1, j, 3]
        else:
            return 0.0
    return 0.0 if np.isnan(angle) else float(angle)

def fold_dict(dots, crease_angles=None):
    """
    FOLD 1.1 document of a (rows, cols, 3) grid. Boundary edges are 'B';
    interior creases are 'V' (positive angle), 'M' (negative) or 'F' (flat),
    or 'U' when no crease angles are given.
    """
    dots = np.asarray(dots, dtype=np.float64)
    rows, cols = dots.shape[:2]

    edges = []
    for i in range(rows):
        for j in range(cols):
            if j + 1 < cols:
                edges.append(((i, j), (i, j + 1)))
            if i + 1 < rows:
                edges.append(((i, j), (i + 1, j)))

    edges_vertices = []
    edges_assignment = []
    edges_fold_angle = []
    for u, v in edges:
        edges_vertices.append([u[0] * cols + u[1], v[0] * cols + v[1]])
        on_boundary = (u[0] == v[0] and u[0] in (0, rows - 1)) or \
                      (u[1] == v[1] and u[1] in (0, cols - 1))
        if on_boundary:
            edges_assignment.append('B')
            edges_fold_angle.append(None)
            continue
        if crease_angles is None:
            edges_assignment.append('U')
            edges_fold_angle.append(None)
            continue

        angle_deg = np.rad2deg(_edge_fold_angle(crease_angles, u, v, rows, cols))
        if angle_deg > 0:
            status = 'V'
        elif angle_deg < 0:
            status = 'M'
        else:
            status = 'F'
        edges_assignment.append(status)
        edges_fold_angle.append(float(angle_deg))

    return {
        'file_spec': 1.1,
        'file_creator': 'miura-marching',
        'frame_classes': ['foldedForm'] if crease_angles is not None else ['creasePattern'],
        'vertices_coords': dots.reshape(-1, 3).tolist(),
        'faces_vertices': grid_faces(rows, cols),
        'edges_vertices': edges_vertices,
        'edges_assignment': edges_assignment,
        'edges_foldAngle': edges_fold_angle,
    }

def write_fold(filename, dots, crease_angles=None):
    filename = _with_extension(filename, '.fold')
    with open(filename, 'w') as f:
        json.dump(fold_dict(dots, crease_angles), f, indent=1)
    return filename
