import numpy as np
import time
import matplotlib.pyplot as plt

from miura_boundary import generate_miura_boundary
from marching_algorithm import march_pattern
from rigid_folding import FoldingSolver, MAX_FOLD_ANGLE_DEG

# ===================================================================
# 1. Graph A: Crease Angles and Extent over the Activation Angle
# ===================================================================

def plot_fold_profile(x_verts=5, y_verts=4, theta=60, num_steps=90, show=True):
    """
    Graph A: sweeps the activation angle from flat to the 179.9 deg ceiling
    on a regular Miura-Ori.
    Left:  the four crease angles at vertex (1, 1)
    Right: bounding box extent of the folded grid (Miura contraction)
    """
    print("Generating Graph A: Fold Profile...")

    horizontal, vertical = generate_miura_boundary(x_verts, y_verts, theta)
    result = march_pattern(horizontal, vertical).unwrap()
    solver = FoldingSolver(result.dots)
    solver.warmup_numba_jit()

    gammas_deg = np.linspace(0, MAX_FOLD_ANGLE_DEG, num_steps)
    crease = np.zeros((num_steps, 4))
    extents = np.zeros((num_steps, 3))

    for k, g in enumerate(gammas_deg):
        folded = solver.set_fold_angle(np.deg2rad(g))
        pts = folded.reshape(-1, 3)
        extents[k] = pts.max(axis=0) - pts.min(axis=0)
        if solver.rows > 2 and solver.cols > 2:
            crease[k] = np.rad2deg(solver.crease_angles[1, 1])

    fig, (ax_l, ax_r) = plt.subplots(1, 2, figsize=(12, 5))

    for n in range(4):
        ax_l.plot(gammas_deg, crease[:, n], linewidth=2, label=f'$\\gamma_{n + 1}$')
    ax_l.set_xlabel('Activation angle (deg)', fontsize=12)
    ax_l.set_ylabel('Crease fold angle (deg)', fontsize=12)
    ax_l.set_title('Crease Angles at Vertex (1, 1)', fontsize=14, fontweight='bold')
    ax_l.legend(fontsize=11)
    ax_l.grid(True, alpha=0.3)

    for n, name in enumerate(['x', 'y', 'z']):
        ax_r.plot(gammas_deg, extents[:, n], linewidth=2, label=f'{name} extent')
    ax_r.set_xlabel('Activation angle (deg)', fontsize=12)
    ax_r.set_ylabel('Extent', fontsize=12)
    ax_r.set_title(f'{x_verts}x{y_verts} Miura-Ori, theta = {theta} deg', fontsize=14, fontweight='bold')
    ax_r.legend(fontsize=11)
    ax_r.grid(True, alpha=0.3)

    fig.tight_layout()
    if show:
        plt.show()

    return {
        'gammas_deg': gammas_deg,
        'crease_angles_deg': crease,
        'extents': extents,
        'figure': fig,
    }

# ===================================================================
# 2. Graph B: Scalability
# ===================================================================

def plot_fold_scalability(max_grid_size=20, theta=60, repeats=5, show=True):
    """
    Graph B: Scalability
    X-Axis: Number of grid vertices
    Y-Axis: Time (seconds) for one march and for one set_fold_angle call
    """
    print("Generating Graph B: Marching / Folding Scalability...")

    sizes = list(range(3, max_grid_size + 1))
    times_march = []
    times_fold = []
    vertices = []

    print(f"\n{'Grid':<10} | {'Vertices':<10} | {'March (s)':<12} | {'Fold (s)':<12}")
    print("-" * 54)

    for n in sizes:
        horizontal, vertical = generate_miura_boundary(n, n, theta)

        t0 = time.time()
        result = march_pattern(horizontal, vertical)
        t_march = time.time() - t0
        if not result.ok:
            print(f"Error at grid size {n}x{n}: {result.failure}")
            break

        solver = FoldingSolver(result.dots)
        solver.warmup_numba_jit()
        t0 = time.time()
        for _ in range(repeats):
            solver.set_fold_angle(np.deg2rad(90))
        t_fold = (time.time() - t0) / repeats

        times_march.append(t_march)
        times_fold.append(t_fold)
        vertices.append(solver.rows * solver.cols)
        print(f"{n}x{n:<8} | {vertices[-1]:<10} | {t_march:<12.5f} | {t_fold:<12.5f}")

    fig = plt.figure(figsize=(10, 6))
    plt.plot(vertices, times_march, 'b-o', label='Marching construction', linewidth=2, markersize=8)
    plt.plot(vertices, times_fold, 'r--x', label='set_fold_angle', linewidth=2, markersize=8)
    plt.xlabel('Grid vertices', fontsize=12)
    plt.ylabel('Time (seconds)', fontsize=12)
    plt.title(f'Scalability: n x n Miura-Ori, theta = {theta} deg', fontsize=14, fontweight='bold')
    plt.legend(fontsize=11)
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    if show:
        plt.show()

    return vertices, times_march, times_fold


if __name__ == "__main__":
    plot_fold_profile()
    plot_fold_scalability()
