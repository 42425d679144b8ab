"""
Unit tests for surface voxelization, accumulation, centering and smoothing.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mesh_voxelizer import (
    DegenerateMeshError,
    EmptyMeshError,
    InvalidInputError,
    Material,
    Mesh,
    Voxel,
    VoxelAccumulator,
    center_voxels,
    smooth_voxels,
    voxelize_surface,
)
from mesh_voxelizer.color import ColorQuantizer, TextureSampler, hex_to_rgb, parse_color, rgb_to_hex
from mesh_voxelizer.config import VoxelizerConfig, clamp_resolution
from mesh_voxelizer.mesh import BoundingBox, compute_voxel_size
from mesh_voxelizer.sampler import SurfaceSampler, barycentric_samples
from mesh_voxelizer.smoothing import neighbor_counts
from mesh_voxelizer.voxelizer import grid_center, quantize_points


def make_cube(size: float = 1.0, color=(0.8, 0.2, 0.2)) -> Mesh:
    """Axis-aligned cube with its minimum corner at the origin."""
    vertices = np.array([
        [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
        [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
    ], dtype=np.float64) * size
    faces = np.array([
        [0, 1, 2], [0, 2, 3],
        [4, 6, 5], [4, 7, 6],
        [0, 4, 5], [0, 5, 1],
        [3, 2, 6], [3, 6, 7],
        [0, 3, 7], [0, 7, 4],
        [1, 5, 6], [1, 6, 2],
    ])
    return Mesh.from_arrays(vertices, faces, material=Material(color=color), name="cube")


def make_textured_quad() -> Mesh:
    """Unit quad in the XY plane with UVs equal to its XY coordinates."""
    vertices = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=np.float64)
    faces = np.array([[0, 1, 2], [0, 2, 3]])
    uv = vertices[:, :2].copy()
    # Top row red/green, bottom row blue/white
    texture = np.array([
        [[255, 0, 0], [0, 255, 0]],
        [[0, 0, 255], [255, 255, 255]],
    ], dtype=np.uint8)
    return Mesh.from_arrays(vertices, faces, uv=uv, material=Material(texture=texture))


class TestColor(unittest.TestCase):
    """Tests for color helpers and the texture sampler."""

    def setUp(self):
        self.texture = np.array([
            [[255, 0, 0], [0, 255, 0]],
            [[0, 0, 255], [255, 255, 255]],
        ], dtype=np.uint8)

    def test_hex_conversion(self):
        """Test hex <-> RGB conversion."""
        assert hex_to_rgb(0xFF0000) == (1.0, 0.0, 0.0)
        assert rgb_to_hex((0.8, 0.8, 0.8)) == "#cccccc"
        assert parse_color("#00ff00") == (0.0, 1.0, 0.0)
        assert parse_color([0, 0, 255, 255]) == (0.0, 0.0, 1.0)

    def test_v_is_flipped(self):
        """V = 1 addresses the top row of the image."""
        sampler = TextureSampler(self.texture)
        assert sampler.sample(0.0, 1.0) == (1.0, 0.0, 0.0)
        assert sampler.sample(0.0, 0.0) == (0.0, 0.0, 1.0)
        assert sampler.sample(0.99, 0.99) == (0.0, 1.0, 0.0)

    def test_uv_is_clamped(self):
        """Out-of-range coordinates clamp to the border."""
        sampler = TextureSampler(self.texture)
        assert sampler.sample(-1.0, 2.0) == (1.0, 0.0, 0.0)
        assert sampler.sample(5.0, -5.0) == (1.0, 1.0, 1.0)

    def test_batch_matches_single(self):
        """Batch lookup agrees with single lookups."""
        sampler = TextureSampler(self.texture)
        uvs = np.array([[0.0, 1.0], [0.0, 0.0], [0.99, 0.99], [5.0, -5.0]])
        batch = sampler.sample_batch(uvs)
        expected = np.array([sampler.sample(u, v) for u, v in uvs])
        assert batch.shape == (4, 3)
        assert np.allclose(batch, expected)

    def test_fallback_without_texture(self):
        """Without a texture every lookup returns the fallback color."""
        sampler = TextureSampler(None, 0x00FF00)
        assert not sampler.has_texture
        assert sampler.sample(0.3, 0.7) == (0.0, 1.0, 0.0)

        batch = sampler.sample_batch(None, count=3)
        assert batch.shape == (3, 3)
        assert np.allclose(batch, [[0.0, 1.0, 0.0]] * 3)

    def test_quantizer_limits_palette(self):
        """More colors than the palette allows are clustered."""
        rng = np.random.default_rng(0)
        colors = rng.integers(0, 256, size=(300, 3)).astype(np.uint8)
        palette, indices = ColorQuantizer(max_colors=16).quantize(colors)
        assert len(palette) <= 16
        assert len(indices) == 300
        assert indices.max() < len(palette)

    def test_quantizer_keeps_few_colors(self):
        """Few colors are returned exactly."""
        colors = np.array([[255, 0, 0], [0, 0, 255], [255, 0, 0]], dtype=np.uint8)
        palette, indices = ColorQuantizer().quantize(colors)
        assert len(palette) == 2
        assert indices[0] == indices[2]
        assert list(palette[indices[1]]) == [0, 0, 255]


class TestVoxelAccumulator(unittest.TestCase):
    """Tests for the sparse voxel accumulator."""

    def test_average(self):
        """Samples sharing a key are averaged."""
        acc = VoxelAccumulator()
        acc.add_samples(
            np.array([[0, 0, 0], [0, 0, 0], [1, 0, 0]]),
            np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0]])
        )
        assert len(acc) == 2
        assert acc.sample_count == 3

        voxels = {v.key: v.color for v in acc.finalize()}
        assert np.allclose(voxels[(0, 0, 0)], (0.5, 0.0, 0.5))
        assert np.allclose(voxels[(1, 0, 0)], (0.0, 1.0, 0.0))

    def test_order_independent(self):
        """The average does not depend on sample order."""
        keys = np.array([[0, 0, 0]] * 3)
        colors = np.array([[0.1, 0.2, 0.3], [0.9, 0.8, 0.7], [0.5, 0.5, 0.5]])

        forward = VoxelAccumulator()
        forward.add_samples(keys, colors)
        backward = VoxelAccumulator()
        for key, color in zip(keys[::-1], colors[::-1]):
            backward.add(tuple(key), color)

        assert np.allclose(forward.finalize()[0].color, backward.finalize()[0].color)

    def test_first_writer_wins(self):
        """add_first never overwrites a populated cell."""
        acc = VoxelAccumulator()
        added = acc.add_first(
            np.array([[0, 0, 0], [0, 0, 0]]),
            np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        )
        assert added == 1

        added = acc.add_first(
            np.array([[0, 0, 0], [2, 0, 0]]),
            np.array([[0.0, 0.0, 1.0], [0.0, 0.0, 1.0]])
        )
        assert added == 1
        assert (2, 0, 0) in acc

        voxels = {v.key: v.color for v in acc.finalize()}
        assert voxels[(0, 0, 0)] == (1.0, 0.0, 0.0)

    def test_quantize_points(self):
        """Points floor into cells relative to the origin."""
        keys = quantize_points(
            np.array([[0.0, 0.49, 0.5], [0.99, 1.0, -0.01]]),
            np.zeros(3),
            0.5
        )
        assert keys.tolist() == [[0, 0, 1], [1, 2, -1]]

    def test_quantize_snaps_boundaries(self):
        """Rounding noise on a cell boundary does not change the layer."""
        keys = quantize_points(
            np.array([[1.0 - 1e-12, -1e-12, 0.5 + 1e-13]]),
            np.zeros(3),
            0.5
        )
        assert keys.tolist() == [[2, 0, 1]]

    def test_quantize_clamps_to_extent(self):
        """Keys stay inside [0, floor(extent / voxel_size)]."""
        keys = quantize_points(
            np.array([[1.2, -0.3, 0.0], [0.3, 0.3, 0.3]]),
            np.zeros(3),
            0.5,
            extent=np.array([1.0, 1.0, 0.0])
        )
        assert keys.tolist() == [[2, 0, 0], [0, 0, 0]]


class TestCentering(unittest.TestCase):
    """Tests for the centering normalizer."""

    def test_center_voxels(self):
        """The bounding-box midpoint moves to the origin."""
        voxels = [Voxel(2, 2, 2, (1.0, 0.0, 0.0)), Voxel(5, 6, 8, (0.0, 1.0, 0.0))]
        centered = center_voxels(voxels)
        assert [v.key for v in centered] == [(-1, -2, -3), (2, 2, 3)]
        assert [v.color for v in centered] == [v.color for v in voxels]
        assert grid_center(centered) == (0, 0, 0)

    def test_idempotent(self):
        """Centering twice equals centering once."""
        rng = np.random.default_rng(3)
        voxels = [Voxel(int(x), int(y), int(z), (0.5, 0.5, 0.5))
                  for x, y, z in rng.integers(-10, 20, size=(50, 3))]
        once = center_voxels(voxels)
        assert center_voxels(once) == once

    def test_empty(self):
        """An empty list is returned unchanged."""
        assert center_voxels([]) == []


class TestSurfaceSampler(unittest.TestCase):
    """Tests for stochastic surface voxelization."""

    def test_barycentric_weights(self):
        """Weights are non-negative and sum to one."""
        weights = barycentric_samples(np.random.default_rng(0), 1000)
        assert weights.shape == (1000, 3)
        assert np.all(weights >= 0.0)
        assert np.allclose(weights.sum(axis=1), 1.0)

    def test_single_triangle(self):
        """A right triangle at voxel size 0.5 fills only z = 0 cells."""
        mesh = Mesh.from_arrays(
            [[0, 0, 0], [1, 0, 0], [0, 1, 0]], [[0, 1, 2]],
            material=Material(color=(1.0, 0.0, 0.0))
        )
        bbox = mesh.bounding_box()
        voxel_size = compute_voxel_size(bbox, 2)
        assert voxel_size == 0.5

        acc = SurfaceSampler(seed=0).sample(mesh, bbox, voxel_size)
        voxels = acc.finalize()
        assert len(voxels) > 0
        allowed = {(x, y, 0) for x in (0, 1) for y in (0, 1)}
        for voxel in voxels:
            assert voxel.key in allowed
            assert np.allclose(voxel.color, (1.0, 0.0, 0.0))

    def test_single_triangle_translated(self):
        """Moving the triangle off the origin keeps it in one z layer."""
        offset = np.array([0.1, 0.3, 0.7])
        mesh = Mesh.from_arrays(
            np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float64) + offset,
            [[0, 1, 2]],
            material=Material(color=(1.0, 0.0, 0.0))
        )
        bbox = mesh.bounding_box()
        voxel_size = compute_voxel_size(bbox, 2)

        for seed in range(5):
            acc = SurfaceSampler(seed=seed).sample(mesh, bbox, voxel_size)
            allowed = {(x, y, 0) for x in range(3) for y in range(3)}
            assert {v.key for v in acc.finalize()} <= allowed

        voxels = voxelize_surface(mesh, 8, seed=0)
        assert {v.z for v in voxels} == {0}

    def test_sample_counts(self):
        """Each triangle gets ceil(area / voxel_size^2) * K samples."""
        mesh = Mesh.from_arrays([[0, 0, 0], [1, 0, 0], [0, 1, 0]], [[0, 1, 2]])
        counts = SurfaceSampler(sampling_density=10).sample_counts(mesh, 0.5)
        assert counts.tolist() == [20]

    def test_textured_quad(self):
        """Cells take the color of the texels under them."""
        mesh = make_textured_quad()
        bbox = mesh.bounding_box()
        acc = SurfaceSampler(sampling_density=50, seed=1).sample(mesh, bbox, 0.5)
        voxels = {v.key: v.color for v in acc.finalize()}

        assert np.allclose(voxels[(0, 0, 0)], (0.0, 0.0, 1.0))
        assert np.allclose(voxels[(1, 1, 0)], (0.0, 1.0, 0.0))

    def test_uvs_without_texture_use_fallback(self):
        """UVs without a texture fall back to the material color."""
        mesh = make_textured_quad()
        mesh.material = Material(color=(0.0, 1.0, 1.0))
        voxels = voxelize_surface(mesh, 4, seed=0)
        assert all(np.allclose(v.color, (0.0, 1.0, 1.0)) for v in voxels)

    def test_deterministic(self):
        """A fixed seed reproduces the same voxels."""
        mesh = make_textured_quad()
        first = voxelize_surface(mesh, 8, seed=7)
        second = voxelize_surface(mesh, 8, seed=7)
        assert first == second

    def test_output_invariants(self):
        """Unique keys, colors in [0, 1] and a centered bounding box."""
        voxels = voxelize_surface(make_cube(2.0), 10, seed=4)
        keys = [v.key for v in voxels]
        assert len(keys) == len(set(keys))

        colors = np.array([v.color for v in voxels])
        assert np.all(colors >= 0.0) and np.all(colors <= 1.0)
        assert np.allclose(colors, (0.8, 0.2, 0.2))
        assert grid_center(voxels) == (0, 0, 0)

    def test_cube_is_hollow(self):
        """Only surface cells are populated."""
        voxels = voxelize_surface(make_cube(), 8, seed=2)
        lo = np.min([v.key for v in voxels], axis=0)
        hi = np.max([v.key for v in voxels], axis=0)
        inner = {(x, y, z) for x in range(lo[0] + 2, hi[0] - 1)
                 for y in range(lo[1] + 2, hi[1] - 1)
                 for z in range(lo[2] + 2, hi[2] - 1)}
        assert inner
        assert not inner & {v.key for v in voxels}

    def test_empty_mesh(self):
        """A mesh without triangles yields no voxels."""
        mesh = Mesh(np.empty((0, 3, 3)))
        assert voxelize_surface(mesh, 10, seed=0) == []

    def test_none_mesh(self):
        """A missing mesh is an error."""
        with self.assertRaises(EmptyMeshError):
            voxelize_surface(None, 10)

    def test_degenerate_mesh(self):
        """A zero-size bounding box is rejected."""
        mesh = Mesh(np.ones((1, 3, 3)))
        with self.assertRaises(DegenerateMeshError):
            voxelize_surface(mesh, 10)

    def test_invalid_resolution(self):
        """Resolutions are validated and clamped."""
        with self.assertRaises(InvalidInputError):
            voxelize_surface(make_cube(), 0)
        with self.assertRaises(InvalidInputError):
            clamp_resolution(2.5)
        assert clamp_resolution(500) == 200
        assert clamp_resolution(64, VoxelizerConfig(max_resolution=32)) == 32

    def test_bounding_box(self):
        """Bounding box and voxel size of a scaled cube."""
        bbox = make_cube(3.0).bounding_box()
        assert np.allclose(bbox.min, 0.0)
        assert np.allclose(bbox.max, 3.0)
        assert compute_voxel_size(bbox, 30) == 0.1

        with self.assertRaises(DegenerateMeshError):
            compute_voxel_size(BoundingBox(np.zeros(3), np.zeros(3)), 10)


class TestSmoothing(unittest.TestCase):
    """Tests for the morphological smoother."""

    @staticmethod
    def cube_shell(missing=()):
        voxels = []
        for x in range(3):
            for y in range(3):
                for z in range(3):
                    if (x, y, z) == (1, 1, 1) or (x, y, z) in missing:
                        continue
                    voxels.append(Voxel(x, y, z, (x / 2.0, y / 2.0, z / 2.0)))
        return voxels

    def test_zero_iterations(self):
        """Zero passes return the input unchanged."""
        voxels = self.cube_shell()
        assert smooth_voxels(voxels, 0) == voxels

    def test_negative_iterations(self):
        """Negative pass counts are rejected."""
        with self.assertRaises(InvalidInputError):
            smooth_voxels(self.cube_shell(), -1)

    def test_fills_missing_corner(self):
        """A missing corner with three populated neighbors is filled."""
        voxels = self.cube_shell(missing=[(0, 0, 0)])
        smoothed = smooth_voxels(voxels, 1)
        keys = [v.key for v in smoothed]

        assert (0, 0, 0) in keys
        assert len(keys) == len(set(keys))
        # The hollow center has six populated neighbors and is filled too
        expected = {(x, y, z) for x in range(3) for y in range(3) for z in range(3)}
        assert set(keys) == expected

        corner = next(v for v in smoothed if v.key == (0, 0, 0))
        proposers = {v.color for v in voxels if v.key in [(1, 0, 0), (0, 1, 0), (0, 0, 1)]}
        assert corner.color in proposers

    def test_removes_isolated(self):
        """Voxels with fewer than two neighbors are removed."""
        line = [Voxel(0, 0, 0, (1.0, 0.0, 0.0)),
                Voxel(1, 0, 0, (0.0, 1.0, 0.0)),
                Voxel(2, 0, 0, (0.0, 0.0, 1.0))]
        smoothed = smooth_voxels(line, 1)
        assert smoothed == [Voxel(1, 0, 0, (0.0, 1.0, 0.0))]

        assert smooth_voxels([Voxel(0, 0, 0, (1.0, 1.0, 1.0))], 1) == []

    def test_neighbor_counts(self):
        """Counts for voxels and for the empty cells around them."""
        coords = np.array([[0, 0, 0], [1, 0, 0], [2, 0, 0]])
        own, occupied, counts = neighbor_counts(coords)
        assert own.tolist() == [1, 2, 1]
        # Offset order is +x, -x, +y, -y, +z, -z
        assert occupied[1].tolist() == [True, True, False, False, False, False]
        assert counts[1, 2] == 1
        assert counts[0, 1] == 1

    def test_far_apart_voxels(self):
        """Widely separated voxels are handled without a dense grid."""
        far = [Voxel(0, 0, 0, (1.0, 0.0, 0.0)),
               Voxel(100000, 100000, 100000, (0.0, 1.0, 0.0))]
        assert smooth_voxels(far, 1) == []

        voxels = self.cube_shell(missing=[(0, 0, 0)])
        voxels.append(Voxel(-50000, 70000, 90000, (1.0, 1.0, 1.0)))
        smoothed = smooth_voxels(voxels, 1)
        expected = {(x, y, z) for x in range(3) for y in range(3) for z in range(3)}
        assert {v.key for v in smoothed} == expected

    def test_keeps_order(self):
        """Surviving voxels keep their input order."""
        voxels = self.cube_shell()[::-1]
        smoothed = smooth_voxels(voxels, 1)
        kept = [v for v in smoothed if v in voxels]
        assert kept == [v for v in voxels if v in kept]


if __name__ == "__main__":
    unittest.main(verbosity=2)
