import numpy as np
from numba import njit

from origami_geometry import rotate_points, sector_angle, center_dots

MAX_FOLD_ANGLE_DEG = 179.9
GAMMA_DENOMINATOR_TOL = 1e-12
EDGE_LENGTH_TOL = 1e-12

# Crease directions around a vertex: 1 = +col, 2 = +row, 3 = -col, 4 = -row
DIRECTION_OFFSETS = {
    1: (0, 1),
    2: (1, 0),
    3: (0, -1),
    4: (-1, 0),
}

# ===================================================================
# 1. Crease Angle Relations
# ===================================================================

@njit
def calc_gamma2(sigma, omega, alpha, beta):
    """
    Fold angle of the crease following a known one at a four-crease vertex.
    The acos argument is clamped: it only leaves [-1, 1] through rounding
    at exact symmetry points. When the neighbouring creases are collinear
    the relation carries no information and the crease stays flat.
    """
    ca, sa = np.cos(alpha), np.sin(alpha)
    cb, sb = np.cos(beta), np.sin(beta)

    nom = (-sigma + ca * cb) * np.cos(omega) + sa * sb
    deno = -sigma + ca * cb + sa * sb * np.cos(omega)
    if abs(deno) < GAMMA_DENOMINATOR_TOL:
        return 0.0
    ratio = nom / deno
    if ratio > 1.0:
        ratio = 1.0
    elif ratio < -1.0:
        ratio = -1.0

    x = (sigma * cb - ca) * omega
    sgn = 0.0
    if x > 0.0:
        sgn = 1.0
    elif x < 0.0:
        sgn = -1.0
    return sgn * np.arccos(ratio)

@njit
def calc_gamma1(sigma, omega, alpha, beta):
    return calc_gamma2(-sigma, omega, alpha, np.pi - beta)

@njit
def calc_angles_right(alpha, beta, sigma, gamma3):
    """(g1, g2, g3, g4) at a vertex, seeded by the crease coming from the left."""
    gamma1 = -sigma * gamma3
    gamma2 = calc_gamma2(sigma, gamma1, alpha, beta)
    gamma4 = sigma * gamma2
    return gamma1, gamma2, gamma3, gamma4

@njit
def calc_angles_up(alpha, beta, sigma, gamma4):
    """(g1, g2, g3, g4) at a vertex, seeded by the crease coming from below."""
    gamma2 = sigma * gamma4
    gamma1 = calc_gamma1(sigma, gamma2, alpha, beta)
    gamma3 = -sigma * gamma1
    return gamma1, gamma2, gamma3, gamma4

def clamp_fold_angle(degrees):
    """
    Converts a user activation angle to radians, capped just below 180 deg
    where the pattern would be flat again.
    """
    return np.deg2rad(min(float(degrees), MAX_FOLD_ANGLE_DEG))

# ===================================================================
# 2. Folding Solver
# ===================================================================

class FoldingSolver:
    def __init__(self, dots, sigmas=None, verbose=False):
        dots = np.array(dots, dtype=np.float64)
        if dots.ndim != 3 or dots.shape[2] != 3:
            raise ValueError(f"Expected a (rows, cols, 3) grid, got shape {dots.shape}")
        self.rows, self.cols = dots.shape[:2]
        if self.rows < 2 or self.cols < 2:
            raise ValueError(f"Grid must be at least 2x2, got {self.rows}x{self.cols}")
        if not np.all(np.isfinite(dots)):
            raise ValueError("Grid contains non-finite coordinates")
        row_edges = np.linalg.norm(np.diff(dots, axis=1), axis=-1)
        col_edges = np.linalg.norm(np.diff(dots, axis=0), axis=-1)
        if row_edges.min() < EDGE_LENGTH_TOL or col_edges.min() < EDGE_LENGTH_TOL:
            raise ValueError("Grid has a zero-length edge")

        # initial_dots stores the flat state (never changes)
        self.initial_dots = dots
        # dots stores the current folded state
        self.dots = dots.copy()
        self.gamma = 0.0
        self.verbose = verbose

        # Default to -1 for Miura-Ori
        if sigmas is None:
            self.sigmas = np.full((self.rows, self.cols), -1.0)
        else:
            sigmas = np.array(sigmas, dtype=np.float64)
            if sigmas.shape != (self.rows, self.cols):
                raise ValueError(f"Sigma grid shape {sigmas.shape} does not match grid {(self.rows, self.cols)}")
            if not np.all(np.abs(sigmas) == 1.0):
                raise ValueError("Sigma values must be +1 or -1")
            self.sigmas = sigmas

        self.internal_angles = self._calc_internal_angles()
        self.crease_angles = np.full((self.rows, self.cols, 4), np.nan)

    def _calc_internal_angles(self):
        """
        [alpha, beta] for every internal vertex of the flat grid:
        alpha between the +col and +row edges, beta between +row and -col.
        """
        angles = np.full((self.rows, self.cols, 2), np.nan)
        for i in range(1, self.rows - 1):
            for j in range(1, self.cols - 1):
                x0 = self.initial_dots[i, j]
                t1 = self.initial_dots[i, j + 1] - x0
                t2 = self.initial_dots[i + 1, j] - x0
                t3 = self.initial_dots[i, j - 1] - x0
                angles[i, j] = (sector_angle(t1, t2), sector_angle(t2, t3))
        return angles

    def warmup_numba_jit(self):
        """
        Compiles the numba kernels with dummy data so the first
        set_fold_angle call is not slowed down by compilation.
        """
        calc_angles_right(1.0, 1.0, -1.0, 0.0)
        calc_angles_up(1.0, 1.0, -1.0, 0.0)
        dummy = np.zeros((1, 1, 3))
        rotate_points(dummy, np.zeros(3), np.array([1.0, 0.0, 0.0]), 0.0)

    def set_fold_angle(self, gamma, center=False):
        """
        Folds the whole grid for activation angle gamma (radians) at the
        reference crease. Every call starts again from the flat state.
        The returned array is reused by the next call.
        """
        gamma = float(gamma)
        self.gamma = gamma

        # 1. Reset dots to the flat configuration
        self.dots[...] = self.initial_dots
        self.crease_angles.fill(np.nan)

        if self.verbose:
            print(f"Setting gamma to {gamma:.6f}")

        if self.rows < 3 or self.cols < 3:
            # No internal vertex, nothing can fold
            return self.dots

        i, j = 1, 1
        alpha, beta = self.internal_angles[i, j]
        g1, g2, g3, g4 = calc_angles_right(alpha, beta, self.sigmas[i, j], gamma)

        # Seed of the vertical crease for the next rows
        initial_gamma2 = g2
        current_gamma1 = gamma

        # 2. Fold the first (bottom) row
        i = 1
        for j in range(1, self.cols - 1):
            alpha, beta = self.internal_angles[i, j]
            current_gamma1, g2, g3, g4 = calc_angles_right(alpha, beta, self.sigmas[i, j], current_gamma1)
            self._rotate_crease(i, j, 4, g4, self.dots[:2, :j])

        current_gamma1 = gamma

        # 3. Fold the remaining grid row by row
        for i in range(1, self.rows - 1):
            for j in range(1, self.cols - 1):
                alpha, beta = self.internal_angles[i, j]
                current_gamma1, g2, g3, g4 = calc_angles_right(alpha, beta, self.sigmas[i, j], current_gamma1)
                self.crease_angles[i, j] = (current_gamma1, g2, g3, g4)
                self._rotate_crease(i, j, 2, -g2, self.dots[i + 1:i + 2, :j])

            self._rotate_crease(i, self.cols - 2, 1, current_gamma1, self.dots[:i + 1])

            if i == self.rows - 2:
                break

            # Angles one step up
            alpha, beta = self.internal_angles[i + 1, 1]
            g1, g2, g3, g4 = calc_angles_up(alpha, beta, self.sigmas[i + 1, 1], initial_gamma2)

            initial_gamma2 = g2
            current_gamma1 = g3

        if center:
            center_dots(self.dots)

        return self.dots

    def _rotate_crease(self, i0, j0, direction, angle, block):
        """
        Rotates `block` (a view into self.dots) about the crease leaving flat
        vertex (i0, j0) in `direction`. Axis and origin always come from the
        flat grid.
        """
        di, dj = DIRECTION_OFFSETS[direction]
        x0 = self.initial_dots[i0, j0]
        axis = self.initial_dots[i0 + di, j0 + dj] - x0
        axis = axis / np.linalg.norm(axis)
        rotate_points(block, x0, axis, float(angle))

# ===================================================================
# 3. Main
# ===================================================================

if __name__ == "__main__":
    import argparse

    from miura_boundary import generate_miura_boundary
    from marching_algorithm import march_pattern

    parser = argparse.ArgumentParser(description="March a Miura-Ori boundary and fold it.")
    parser.add_argument("--x-verts", type=int, default=5)
    parser.add_argument("--y-verts", type=int, default=4)
    parser.add_argument("--theta", type=float, default=60.0, help="Miura sector angle (deg)")
    parser.add_argument("--angle", type=float, default=90.0, help="Activation angle (deg)")
    parser.add_argument("--fold-out", default=None, help="Write the folded grid as a .fold file")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    horizontal, vertical = generate_miura_boundary(args.x_verts, args.y_verts, args.theta)
    result = march_pattern(horizontal, vertical, verbose=args.verbose)
    if not result.ok:
        print(f"Incompatible Geometry! {result.failure}")
        raise SystemExit(1)

    solver = FoldingSolver(result.dots, verbose=args.verbose)
    solver.warmup_numba_jit()
    folded = solver.set_fold_angle(clamp_fold_angle(args.angle))

    # Output Results
    print("\n" + "="*62)
    print(f"{'Vertex':<10} | {'g1 (deg)':<11} | {'g2 (deg)':<11} | {'g3 (deg)':<11} | {'g4 (deg)':<11}")
    print("-" * 62)
    for i in range(1, solver.rows - 1):
        for j in range(1, solver.cols - 1):
            g = np.rad2deg(solver.crease_angles[i, j])
            print(f"{f'{i},{j}':<10} | {g[0]:<11.4f} | {g[1]:<11.4f} | {g[2]:<11.4f} | {g[3]:<11.4f}")
    print("="*62)

    if args.fold_out:
        from fold_io import write_fold
        write_fold(args.fold_out, folded, solver.crease_angles)
        print(f"Folded grid written to {args.fold_out}")
