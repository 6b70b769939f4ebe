import numpy as np
import pytest

from miura_boundary import BoundaryVertex, generate_miura_boundary
from marching_algorithm import (
    MarchingSolver, MarchResult, march_pattern, mu1, mu2,
    FailureKind, IncompatibleGeometryError, NegativeCornerAngle,
    AngleOutOfRange, SingularCompatibilityRatio, NearDegenerateVertex,
    SingularPlanarGeometry, NonPositiveCreaseLength,
)


@pytest.fixture
def miura_boundary():
    return generate_miura_boundary(5, 4, 60)


@pytest.fixture
def miura_solver(miura_boundary):
    solver = MarchingSolver(*miura_boundary)
    solver.set_angles_from_boundary()
    return solver


class TestBoundaryAngles:
    """Angles derived from the two boundary arms."""

    def test_grid_dimensions(self, miura_boundary):
        """rows = vertical count + 1, cols = horizontal count."""
        solver = MarchingSolver(*miura_boundary)
        assert (solver.rows, solver.cols) == (4, 5)
        assert solver.dots.shape == (4, 5, 3)

    def test_seeded_row_and_column(self, miura_boundary):
        """Row 0 and column 0 come straight from the boundary, interior is empty."""
        horizontal, vertical = miura_boundary
        solver = MarchingSolver(horizontal, vertical)
        for j, v in enumerate(horizontal):
            np.testing.assert_array_equal(solver.dots[0, j], v.pos)
        for i, v in enumerate(vertical):
            np.testing.assert_array_equal(solver.dots[i + 1, 0], v.pos)
        assert np.all(np.isnan(solver.dots[1:, 1:]))

    def test_corner_angles(self, miura_solver):
        """Regular Miura with 60 deg sector angle: both corner angles are 60 deg."""
        assert miura_solver.alphas[0, 0] == pytest.approx(np.pi / 3)
        assert miura_solver.betas[0, 0] == pytest.approx(np.pi / 3)

    def test_horizontal_arm_alternates(self, miura_solver):
        """Zigzag vertices alternate between 120 and 60 deg."""
        expected = np.deg2rad([120, 60, 120, 60])
        np.testing.assert_allclose(miura_solver.betas[0, 1:], expected, atol=1e-12)
        np.testing.assert_allclose(miura_solver.alphas[0, 1:], expected, atol=1e-12)

    def test_last_column_copies_beta(self, miura_solver):
        assert miura_solver.alphas[0, -1] == miura_solver.betas[0, -1]

    def test_vertical_arm(self, miura_solver):
        """Straight vertical arm with rays at 30 deg: 60 deg on both sides."""
        np.testing.assert_allclose(miura_solver.betas[1:, 0], np.pi / 3, atol=1e-12)
        np.testing.assert_allclose(miura_solver.alphas[1:, 0], np.pi / 3, atol=1e-12)
        assert miura_solver.alphas[-1, 0] == miura_solver.betas[-1, 0]


class TestMarch:
    """Full marching construction on valid boundaries."""

    def test_regular_miura_completes(self, miura_boundary):
        result = march_pattern(*miura_boundary)
        assert result.ok
        assert result.failure is None
        assert result.dots.shape == (4, 5, 3)
        assert np.all(np.isfinite(result.dots))

    def test_angles_in_range(self, miura_boundary):
        result = march_pattern(*miura_boundary)
        for angles in (result.alphas, result.betas):
            assert np.all(angles >= 0)
            assert np.all(angles <= np.pi)

    def test_regular_miura_rows_are_translates(self, miura_boundary):
        """Every row of a regular Miura is row 0 shifted by one vertical edge length."""
        result = march_pattern(*miura_boundary)
        for i in range(result.dots.shape[0]):
            np.testing.assert_allclose(result.dots[i], result.dots[0] + [0.0, i, 0.0], atol=1e-9)

    def test_regular_miura_rows_repeat_angles(self, miura_boundary):
        result = march_pattern(*miura_boundary)
        for i in range(result.alphas.shape[0]):
            np.testing.assert_allclose(result.alphas[i], result.alphas[0], atol=1e-9)
            np.testing.assert_allclose(result.betas[i], result.betas[0], atol=1e-9)

    def test_pattern_stays_in_plane(self, miura_boundary):
        result = march_pattern(*miura_boundary)
        np.testing.assert_array_equal(result.dots[..., 2], 0.0)

    def test_angle_sum_is_full_turn(self, miura_boundary):
        """alpha_a + alpha_b + alpha_c + alpha_d = 2 pi at every solved vertex."""
        result = march_pattern(*miura_boundary)
        alphas, betas = result.alphas, result.betas
        rows, cols = alphas.shape
        for i in range(1, rows):
            for j in range(1, cols):
                alpha_a = alphas[i - 1, j - 1]
                alpha_b = np.pi - betas[i, j - 1]
                alpha_c = betas[i - 1, j]
                alpha_d = np.pi - alphas[i, j]
                assert alpha_a + alpha_b + alpha_c + alpha_d == pytest.approx(2 * np.pi, abs=1e-12)

    def test_perturbed_boundary_completes(self):
        """A generalized (non-regular) boundary close to a Miura still marches."""
        horizontal, vertical = generate_miura_boundary(4, 3, 60)
        horizontal[2] = BoundaryVertex(horizontal[2].pos, horizontal[2].ray_angle - 0.02)
        vertical = [BoundaryVertex(v.pos, v.ray_angle + 0.03) for v in vertical]

        result = march_pattern(horizontal, vertical)
        assert result.ok
        assert np.all(np.isfinite(result.dots))
        assert np.all((result.alphas >= 0) & (result.alphas <= np.pi))
        assert np.all((result.betas >= 0) & (result.betas <= np.pi))

    def test_march_steps_order(self, miura_boundary):
        """Vertices are produced row by row, left to right."""
        solver = MarchingSolver(*miura_boundary)
        order = [(i, j) for i, j, _ in solver.march_steps()]
        assert order == [(i, j) for i in range(1, 4) for j in range(1, 5)]

    def test_march_steps_yield_positions(self, miura_boundary):
        solver = MarchingSolver(*miura_boundary)
        for i, j, p in solver.march_steps():
            np.testing.assert_array_equal(solver.dots[i, j], p)

    def test_march_is_repeatable(self, miura_boundary):
        solver = MarchingSolver(*miura_boundary)
        first = solver.march()
        second = solver.march()
        np.testing.assert_array_equal(first.dots, second.dots)

    def test_result_is_a_copy(self, miura_boundary):
        solver = MarchingSolver(*miura_boundary)
        result = solver.march()
        solver.reset()
        assert np.all(np.isfinite(result.dots))

    def test_verbose_output(self, miura_boundary, capsys):
        march_pattern(*miura_boundary, verbose=True)
        out = capsys.readouterr().out
        assert "Corner alpha" in out
        assert "Marching completed" in out


class TestMarchResult:
    """Outcome type returned by march()."""

    def test_unwrap_success(self, miura_boundary):
        result = march_pattern(*miura_boundary)
        assert result.unwrap() is result

    def test_unwrap_failure_raises(self):
        failure = NearDegenerateVertex("test", 2, 3)
        result = MarchResult(None, None, None, failure)
        assert not result.ok
        with pytest.raises(NearDegenerateVertex):
            result.unwrap()


class TestCompatibilityRatios:
    """mu1 / mu2 helpers."""

    def test_mu2_value(self):
        assert mu2(2 * np.pi / 3, 2 * np.pi / 3, -1) == pytest.approx(-2.0)

    def test_mu1_reflects_beta(self):
        assert mu1(np.pi / 3, np.pi / 3, 1) == pytest.approx(mu2(np.pi / 3, 2 * np.pi / 3, 1))
        assert mu1(np.pi / 3, np.pi / 3, 1) == pytest.approx(0.5)

    def test_mu2_singular(self):
        with pytest.raises(SingularCompatibilityRatio) as exc:
            mu2(np.pi / 2, np.pi / 2, 1)
        assert exc.value.row is None


class TestFailures:
    """Every failure kind, with its cell."""

    def test_negative_corner_angle(self, miura_boundary):
        """The corner fails before any interior vertex is computed."""
        horizontal, vertical = miura_boundary
        horizontal = [BoundaryVertex(horizontal[0].pos, 0.5)] + horizontal[1:]
        solver = MarchingSolver(horizontal, vertical)

        result = solver.march()
        assert not result.ok
        assert result.dots is None and result.alphas is None and result.betas is None
        assert isinstance(result.failure, NegativeCornerAngle)
        assert result.failure.kind is FailureKind.NEGATIVE_CORNER_ANGLE
        assert (result.failure.row, result.failure.col) == (0, 0)
        assert np.all(np.isnan(solver.dots[1:, 1:]))

        with pytest.raises(NegativeCornerAngle):
            result.unwrap()

    def test_negative_corner_raises_directly(self, miura_boundary):
        horizontal, vertical = miura_boundary
        horizontal = [BoundaryVertex(horizontal[0].pos, 0.5)] + horizontal[1:]
        solver = MarchingSolver(horizontal, vertical)
        with pytest.raises(NegativeCornerAngle):
            solver.set_angles_from_boundary()

    def test_boundary_angle_out_of_range(self, miura_boundary):
        """A ray pointing the wrong way makes beta exceed pi on the boundary."""
        horizontal, vertical = miura_boundary
        horizontal[1] = BoundaryVertex(horizontal[1].pos, 0.1)
        result = march_pattern(horizontal, vertical)
        assert isinstance(result.failure, AngleOutOfRange)
        assert (result.failure.row, result.failure.col) == (0, 1)

    def test_fourth_angle_out_of_range(self, miura_solver):
        miura_solver.alphas[0, 0] = 3.0
        with pytest.raises(AngleOutOfRange) as exc:
            miura_solver.calc_next_angle(1, 1)
        assert (exc.value.row, exc.value.col) == (1, 1)

    def test_fourth_angle_at_pi_within_tolerance(self, miura_solver):
        """alpha_d a rounding step above pi is accepted and clipped to pi."""
        s = miura_solver
        s.alphas[0, 0] = 1.0
        s.betas[1, 0] = 2.0
        s.betas[0, 1] = 1.0 - 1e-12
        s.calc_next_angle(1, 1)
        assert s.alphas[1, 1] == 0.0
        assert s.betas[1, 1] == pytest.approx(np.pi, abs=1e-6)

    def test_singular_ratio_on_rectangular_grid(self):
        """A right-angled vertex has no compatibility ratio."""
        horizontal, vertical = generate_miura_boundary(2, 2, 90)
        result = march_pattern(horizontal, vertical)
        assert isinstance(result.failure, SingularCompatibilityRatio)
        assert result.failure.kind is FailureKind.SINGULAR_COMPATIBILITY_RATIO
        assert (result.failure.row, result.failure.col) == (1, 1)
        assert "[1, 1]" in str(result.failure)

    def test_near_degenerate_vertex(self, miura_solver):
        """mu_abc = cos(y) / cos(x)^2 = 1 with x = 60 deg and cos(y) = 1/4."""
        x = np.pi / 3
        y = np.arccos(0.25)
        s = miura_solver
        s.alphas[0, 0] = s.betas[0, 0] = y
        s.betas[0, 1] = s.alphas[0, 1] = x
        s.betas[1, 0] = s.alphas[1, 0] = np.pi - x
        with pytest.raises(NearDegenerateVertex) as exc:
            s.calc_next_angle(1, 1)
        assert (exc.value.row, exc.value.col) == (1, 1)

    def test_singular_planar_geometry(self, miura_solver):
        s = miura_solver
        s.alphas[0, 0] = 2 * np.pi / 3
        s.betas[1, 0] = np.pi / 3
        s.betas[0, 1] = 2 * np.pi / 3
        with pytest.raises(SingularPlanarGeometry) as exc:
            s.calc_next_vertex(1, 1)
        assert (exc.value.row, exc.value.col) == (1, 1)

    def test_non_positive_crease_length(self, miura_solver):
        miura_solver.betas[0, 1] = np.deg2rad(20)
        with pytest.raises(NonPositiveCreaseLength) as exc:
            miura_solver.calc_next_vertex(1, 1)
        assert exc.value.kind is FailureKind.NON_POSITIVE_CREASE_LENGTH

    def test_errors_share_a_base(self):
        for cls in (NegativeCornerAngle, AngleOutOfRange, SingularCompatibilityRatio,
                    NearDegenerateVertex, SingularPlanarGeometry, NonPositiveCreaseLength):
            assert issubclass(cls, IncompatibleGeometryError)
            assert issubclass(cls, ValueError)

    def test_failure_is_deterministic(self, miura_boundary):
        horizontal, vertical = miura_boundary
        horizontal[1] = BoundaryVertex(horizontal[1].pos, 0.1)
        first = march_pattern(horizontal, vertical).failure
        second = march_pattern(horizontal, vertical).failure
        assert type(first) is type(second)
        assert (first.row, first.col, first.cause) == (second.row, second.col, second.cause)

    def test_verbose_failure_output(self, miura_boundary, capsys):
        horizontal, vertical = miura_boundary
        horizontal = [BoundaryVertex(horizontal[0].pos, 0.5)] + horizontal[1:]
        march_pattern(horizontal, vertical, verbose=True)
        assert "Build failed at [0, 0]" in capsys.readouterr().out


class TestValidation:
    """Invalid boundaries are rejected up front."""

    def test_too_few_horizontal(self):
        with pytest.raises(ValueError):
            MarchingSolver([BoundaryVertex((0, 0), 1.0)], [BoundaryVertex((0, 1), 1.0)])

    def test_no_vertical(self):
        h = [BoundaryVertex((0, 0), 1.0), BoundaryVertex((1, 0), 1.0)]
        with pytest.raises(ValueError):
            MarchingSolver(h, [])
