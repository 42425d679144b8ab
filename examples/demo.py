#!/usr/bin/env python3
"""
Mesh Voxelizer Demo Script

This script demonstrates the full voxelization pipeline by:
1. Creating synthetic test meshes (no external files needed)
2. Voxelizing with surface sampling and six-view rendering
3. Comparing smoothing passes
4. Exporting to all supported formats

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import numpy as np
import time
import trimesh

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mesh_voxelizer import Material, Mesh, MeshVoxelizer, smooth_voxels
from mesh_voxelizer.ingestion import trimesh_to_mesh


def create_checker_panel(size: int = 64, squares: int = 8) -> Mesh:
    """
    Create a bent, UV-mapped panel with a checkerboard texture.

    Returns:
        Textured Mesh
    """
    cells = np.indices((size, size)).sum(axis=0) // (size // squares) % 2
    texture = np.zeros((size, size, 3), dtype=np.uint8)
    texture[cells == 0] = [230, 200, 40]
    texture[cells == 1] = [40, 60, 160]

    # 2 x 2 panel folded along x = 0
    vertices = np.array([
        [-1.0, 0.0, 0.5], [0.0, 0.0, 0.0], [1.0, 0.0, 0.5],
        [-1.0, 2.0, 0.5], [0.0, 2.0, 0.0], [1.0, 2.0, 0.5],
    ])
    uv = np.array([
        [0.0, 0.0], [0.5, 0.0], [1.0, 0.0],
        [0.0, 1.0], [0.5, 1.0], [1.0, 1.0],
    ])
    faces = np.array([[0, 1, 4], [0, 4, 3], [1, 2, 5], [1, 5, 4]])

    return Mesh.from_arrays(vertices, faces, uv=uv,
                            material=Material(texture=texture), name="checker")


def create_sphere() -> Mesh:
    """Create a flat-colored icosphere."""
    geometry = trimesh.creation.icosphere(subdivisions=3, radius=1.0)
    geometry.visual.face_colors = [100, 150, 220, 255]
    return trimesh_to_mesh(geometry, name="sphere")


def create_torus() -> Mesh:
    """Create a flat-colored torus."""
    geometry = trimesh.creation.torus(major_radius=1.0, minor_radius=0.3)
    geometry.visual.face_colors = [220, 120, 60, 255]
    return trimesh_to_mesh(geometry, name="torus")


def run_demo():
    """Run the complete demo."""
    print("=" * 60)
    print("Mesh Voxelizer - Demo")
    print("=" * 60)
    print()

    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    meshes = {
        "checker": create_checker_panel(),
        "sphere": create_sphere(),
        "torus": create_torus(),
    }

    total_start = time.time()

    for name, mesh in meshes.items():
        print(f"\n--- Processing: {name} ---")
        print(f"Triangles: {mesh.triangle_count}, textured: {mesh.material.has_texture}")

        voxelizer = MeshVoxelizer(resolution=32, seed=42)
        voxelizer.set_mesh(mesh)

        print("\nTesting methods:")
        for method in ("surface", "multiview"):
            start = time.time()
            voxelizer.voxelize(method=method)
            elapsed = time.time() - start

            info = voxelizer.preview()
            print(f"  {method}:")
            print(f"    Voxelization: {elapsed*1000:.1f}ms")
            print(f"    Voxel count: {info['voxel_count']}")
            print(f"    Grid size: {info.get('grid_size')}")
            print(f"    Unique colors: {info.get('unique_colors')}")

        # Smoothing comparison on the surface result
        voxelizer.voxelize(method="surface")
        raw = voxelizer.voxels
        print("\n  Smoothing:")
        for iterations in (1, 2, 3):
            start = time.time()
            smoothed = smooth_voxels(raw, iterations)
            elapsed = time.time() - start
            print(f"    {iterations} pass(es): {len(raw)} -> {len(smoothed)} voxels "
                  f"({elapsed*1000:.1f}ms)")

        print("\n  Exporting...")
        base_path = output_dir / name
        try:
            for path in voxelizer.export_all(base_path):
                print(f"    Saved: {path}")
        except Exception as e:
            print(f"    Export failed: {e}")

    total_time = time.time() - total_start
    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print(f"Output files in: {output_dir}")
    print("=" * 60)


if __name__ == "__main__":
    run_demo()
