import numpy as np
from collections import namedtuple
from enum import Enum

from miura_boundary import validate_boundary
from origami_geometry import direction_angle, rotate_in_plane

# Tolerances
MU_DENOMINATOR_TOL = 1e-12
MU_UNIT_TOL = 1e-7
DET_TOL = 1e-6
ANGLE_TOL = 1e-9

# ===================================================================
# 1. Incompatible Geometry
# ===================================================================

class FailureKind(Enum):
    NEGATIVE_CORNER_ANGLE = "negative corner beta"
    ANGLE_OUT_OF_RANGE = "angle out of range"
    SINGULAR_COMPATIBILITY_RATIO = "singular compatibility ratio"
    NEAR_DEGENERATE_VERTEX = "near-degenerate vertex"
    SINGULAR_PLANAR_GEOMETRY = "singular planar geometry"
    NON_POSITIVE_CREASE_LENGTH = "non-positive crease length"


class IncompatibleGeometryError(ValueError):
    """
    The boundary cannot be completed into a rigid-foldable quad mesh.
    Carries the grid cell (row, col) where the march stopped and a
    human-readable cause.
    """
    kind = None

    def __init__(self, cause, row=None, col=None):
        self.cause = cause
        self.row = row
        self.col = col
        super().__init__(self._message())

    def _message(self):
        if self.row is None:
            return self.cause
        label = self.kind.value if self.kind is not None else "incompatible geometry"
        return f"Incompatible geometry at [{self.row}, {self.col}] ({label}): {self.cause}"

    def locate(self, row, col):
        """Attaches the offending cell to an error raised by a cell-agnostic helper."""
        self.row, self.col = row, col
        self.args = (self._message(),)
        return self


class NegativeCornerAngle(IncompatibleGeometryError):
    kind = FailureKind.NEGATIVE_CORNER_ANGLE

class AngleOutOfRange(IncompatibleGeometryError):
    kind = FailureKind.ANGLE_OUT_OF_RANGE

class SingularCompatibilityRatio(IncompatibleGeometryError):
    kind = FailureKind.SINGULAR_COMPATIBILITY_RATIO

class NearDegenerateVertex(IncompatibleGeometryError):
    kind = FailureKind.NEAR_DEGENERATE_VERTEX

class SingularPlanarGeometry(IncompatibleGeometryError):
    kind = FailureKind.SINGULAR_PLANAR_GEOMETRY

class NonPositiveCreaseLength(IncompatibleGeometryError):
    kind = FailureKind.NON_POSITIVE_CREASE_LENGTH


class MarchResult(namedtuple('MarchResult', ['dots', 'alphas', 'betas', 'failure'])):
    """
    Outcome of a full march. Either the complete grid and angle arrays with
    failure=None, or failure set and no grid at all.
    """
    __slots__ = ()

    @property
    def ok(self):
        return self.failure is None

    def unwrap(self):
        if self.failure is not None:
            raise self.failure
        return self

# ===================================================================
# 2. Compatibility Ratios
# ===================================================================

def mu2(a, b, s):
    num = -s + np.cos(a) * np.cos(b) + np.sin(a) * np.sin(b)
    denom = np.cos(b) - s * np.cos(a)
    if abs(denom) < MU_DENOMINATOR_TOL:
        raise SingularCompatibilityRatio(
            f"denominator is too close to zero ({denom:.3e}); "
            f"check alpha ({a:.4f}) and beta ({b:.4f})"
        )
    return num / denom

def mu1(a, b, s):
    return mu2(a, np.pi - b, s)

def _in_angle_range(angle):
    return -ANGLE_TOL <= angle <= np.pi + ANGLE_TOL

# ===================================================================
# 3. Marching Solver
# ===================================================================

class MarchingSolver:
    """
    Synthesizes the interior crease grid of a generalized Miura-Ori from its
    horizontal and vertical boundary arms, one vertex at a time, left to
    right and bottom to top. Vertex (i, j) only depends on (i-1, j-1),
    (i, j-1) and (i-1, j), so the order is fixed.
    """

    def __init__(self, horizontal, vertical, verbose=False):
        self.rows, self.cols = validate_boundary(horizontal, vertical)
        self.horizontal = list(horizontal)
        self.vertical = list(vertical)
        self.verbose = verbose
        self.reset()

    def reset(self):
        """Seeds row 0 and column 0 from the boundary; interior cells are NaN."""
        self.dots = np.full((self.rows, self.cols, 3), np.nan)
        self.alphas = np.zeros((self.rows, self.cols))
        self.betas = np.zeros((self.rows, self.cols))

        for j in range(self.cols):
            self.dots[0, j] = self.horizontal[j].pos
        for i in range(self.rows - 1):
            self.dots[i + 1, 0] = self.vertical[i].pos

    def set_angles_from_boundary(self):
        h = self.horizontal
        v = self.vertical

        # Corner (0, 0)
        p = h[0].pos
        up_angle = direction_angle(p, v[0].pos)
        self.alphas[0, 0] = up_angle - direction_angle(p, h[1].pos)
        self.betas[0, 0] = h[0].ray_angle - up_angle

        if self.betas[0, 0] < 0:
            raise NegativeCornerAngle(f"beta is negative ({self.betas[0, 0]:.6f})", 0, 0)

        if self.verbose:
            print(f"Corner alpha: {self.alphas[0, 0]:.6f}, beta: {self.betas[0, 0]:.6f}")

        # Horizontal arm
        for j in range(1, self.cols):
            ray = h[j].ray_angle
            angle_left = np.mod(direction_angle(h[j].pos, h[j - 1].pos), 2 * np.pi)
            self.betas[0, j] = angle_left - ray

            if j < self.cols - 1:
                self.alphas[0, j] = ray - direction_angle(h[j].pos, h[j + 1].pos)
            else:
                self.alphas[0, j] = self.betas[0, j]

        # Vertical arm, opposite winding
        for i in range(1, self.rows):
            ray = v[i - 1].ray_angle
            below = self.dots[0, 0] if i == 1 else v[i - 2].pos
            angle_down = direction_angle(v[i - 1].pos, below)
            self.betas[i, 0] = np.pi - (ray - angle_down)

            if i < self.rows - 1:
                self.alphas[i, 0] = direction_angle(v[i - 1].pos, v[i].pos) - ray
            else:
                self.alphas[i, 0] = self.betas[i, 0]

        boundary_cells = [(0, j) for j in range(self.cols)] + [(i, 0) for i in range(1, self.rows)]
        for i, j in boundary_cells:
            for name, value in (("alpha", self.alphas[i, j]), ("beta", self.betas[i, j])):
                if not _in_angle_range(value):
                    raise AngleOutOfRange(f"boundary {name} {value:.6f} outside [0, pi]", i, j)

    def calc_next_vertex(self, i, j):
        p_A = self.dots[i - 1, j - 1]
        p_B = self.dots[i, j - 1]
        p_C = self.dots[i - 1, j]

        l_ac = np.linalg.norm(p_A - p_C)
        l_ab = np.linalg.norm(p_A - p_B)

        # Sector angles of the quad A-C-D-B at A, B and C
        alpha_a = self.alphas[i - 1, j - 1]
        alpha_b = np.pi - self.betas[i, j - 1]
        alpha_c = self.betas[i - 1, j]

        angles_sum = alpha_a + alpha_b + alpha_c
        det = np.sin(angles_sum)
        if abs(det) < DET_TOL:
            raise SingularPlanarGeometry(f"sin(angle sum) is {det:.3e}", i, j)

        l_cd = (-np.sin(alpha_b) * l_ab + np.sin(alpha_a + alpha_b) * l_ac) / det
        l_bd = (np.sin(alpha_a + alpha_c) * l_ab - np.sin(alpha_c) * l_ac) / det

        if l_cd <= 0 or l_bd <= 0:
            raise NonPositiveCreaseLength(f"l_cd = {l_cd:.6f}, l_bd = {l_bd:.6f}", i, j)

        vec_ca = (p_A - p_C) / l_ac
        vec_cd = rotate_in_plane(vec_ca, -alpha_c)

        p_D = p_C + l_cd * vec_cd
        self.dots[i, j] = p_D
        return p_D

    def calc_next_angle(self, i, j):
        # 1. Neighbor angles around the new vertex
        alpha_a = self.alphas[i - 1, j - 1]
        beta_a = self.betas[i - 1, j - 1]

        alpha_c = self.betas[i - 1, j]
        beta_c = self.alphas[i - 1, j]

        alpha_b = np.pi - self.betas[i, j - 1]
        beta_b = np.pi - self.alphas[i, j - 1]

        angles_sum = alpha_a + alpha_b + alpha_c

        # 2. Fourth sector angle closes the quad
        alpha_d = 2 * np.pi - angles_sum
        if not _in_angle_range(alpha_d):
            raise AngleOutOfRange(f"fourth sector angle {alpha_d:.6f} outside [0, pi]", i, j)
        alpha_d = min(max(alpha_d, 0.0), np.pi)

        # 3. Compatibility ratios, uniform Miura sign
        sigma_a = sigma_b = sigma_c = -1
        try:
            mu_a = mu1(alpha_a, beta_a, -sigma_a)
            mu_b = mu2(alpha_b, beta_b, sigma_b)
            mu_c = mu2(alpha_c, beta_c, sigma_c)
        except SingularCompatibilityRatio as e:
            raise e.locate(i, j)

        mu_abc = mu_a * mu_b * mu_c
        if abs(abs(mu_abc) - 1) < MU_UNIT_TOL:
            raise NearDegenerateVertex(f"|mu| is close to 1 ({mu_abc:.9f})", i, j)

        # 4. Companion angle of the fourth sector
        sigma_d = -1
        cos_sum = np.cos(angles_sum)
        mu_sq_plus_1 = mu_abc**2 + 1

        numerator = sigma_d * (2 * mu_abc - mu_sq_plus_1 * cos_sum)
        denominator = 2 * mu_abc * cos_sum - mu_sq_plus_1
        ratio = numerator / denominator
        if abs(ratio) > 1 + ANGLE_TOL:
            raise AngleOutOfRange(f"no real companion angle, cos(beta_d) = {ratio:.9f}", i, j)
        beta_d = np.arccos(np.clip(ratio, -1, 1))

        self.alphas[i, j] = np.pi - alpha_d
        self.betas[i, j] = np.pi - beta_d

    def march_steps(self):
        """
        Runs the construction lazily, yielding (i, j, position) after each new
        vertex so a caller can pace a progressive display. Errors propagate.
        """
        self.reset()
        self.set_angles_from_boundary()
        for i in range(1, self.rows):
            for j in range(1, self.cols):
                p_D = self.calc_next_vertex(i, j)
                self.calc_next_angle(i, j)
                yield i, j, p_D

    def march(self):
        """
        Builds the complete grid. Geometric failures are returned, not raised:
        the result then carries the error and no partial grid.
        """
        try:
            for _ in self.march_steps():
                pass
        except IncompatibleGeometryError as e:
            if self.verbose:
                print(f"Build failed at [{e.row}, {e.col}]: {e.cause}")
            return MarchResult(None, None, None, e)

        if self.verbose:
            print(f"Marching completed: {self.rows}x{self.cols} grid")
        return MarchResult(self.dots.copy(), self.alphas.copy(), self.betas.copy(), None)


def march_pattern(horizontal, vertical, verbose=False):
    return MarchingSolver(horizontal, vertical, verbose=verbose).march()
