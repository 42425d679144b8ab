"""
Command-Line Interface for Mesh Voxelizer

Usage:
    meshvox model.glb -o model --format json vox
    meshvox model.glb --resolution 64 --method multiview --smoothing 2
    meshvox model.obj --texture albedo.png --seed 7 -o out/model

"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
import time

from . import __version__
from .config import DEFAULT_CONFIG, VoxelizerConfig
from .generator import METHODS, MeshVoxelizer
from .logging_config import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="meshvox",
        description="Mesh Voxelizer - Convert textured 3D meshes to colored surface voxels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  meshvox model.glb -o model
      Voxelize at the default resolution and write model.json

  meshvox model.glb --resolution 64 --format json vox
      64 voxels along the longest axis, export JSON and MagicaVoxel

  meshvox model.glb --method multiview --smoothing 2
      Six-view rasterization followed by two smoothing passes

Methods:
  surface    - Random area-proportional sampling of triangles (default)
  multiview  - Orthographic color + depth captures from six directions
        """
    )

    parser.add_argument(
        "input",
        help="Input mesh file (.glb, .gltf or .obj)"
    )

    parser.add_argument(
        "-o", "--output",
        help="Output base path (default: input path without extension)"
    )

    parser.add_argument(
        "-f", "--format",
        nargs="+",
        choices=["json", "vox"],
        default=["json"],
        help="Output format(s) (default: json)"
    )

    parser.add_argument(
        "-r", "--resolution",
        type=int,
        default=DEFAULT_CONFIG.resolution,
        help=f"Voxels along the longest axis (default: {DEFAULT_CONFIG.resolution}, "
             f"max: {DEFAULT_CONFIG.max_resolution})"
    )

    parser.add_argument(
        "-m", "--method",
        choices=list(METHODS),
        default="surface",
        help="Voxelization method (default: surface)"
    )

    parser.add_argument(
        "-s", "--smoothing",
        type=int,
        default=0,
        help="Smoothing iterations (default: 0)"
    )

    parser.add_argument(
        "--density",
        type=int,
        default=DEFAULT_CONFIG.sampling_density,
        help=f"Surface sampling multiplier (default: {DEFAULT_CONFIG.sampling_density})"
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible surface sampling"
    )

    parser.add_argument(
        "--texture",
        help="Override the mesh texture with an image file"
    )

    parser.add_argument(
        "--whole-scene",
        action="store_true",
        help="Render every mesh in the file (multiview only)"
    )

    parser.add_argument(
        "--indent",
        type=int,
        help="Indentation for JSON output"
    )

    parser.add_argument(
        "--log-file",
        help="Also write log output to this file"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with statistics"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def process_single(args) -> int:
    """Voxelize a single mesh file."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    output_base = Path(args.output) if args.output else input_path.with_suffix("")

    if args.resolution > DEFAULT_CONFIG.max_resolution:
        print(f"Warning: resolution clamped to {DEFAULT_CONFIG.max_resolution}",
              file=sys.stderr)

    start_time = time.time()

    try:
        config = VoxelizerConfig(sampling_density=args.density)
        voxelizer = MeshVoxelizer(
            resolution=args.resolution,
            seed=args.seed,
            config=config
        )

        if args.verbose:
            print(f"Loading: {input_path}")

        if args.whole_scene and args.method == "multiview":
            voxelizer.load_scene(input_path)
        else:
            voxelizer.load_mesh(input_path)

        if args.texture:
            voxelizer.set_texture(args.texture)

        if args.verbose:
            print(f"Voxelizing with method: {args.method}")

        voxelizer.voxelize(method=args.method, smoothing_iterations=args.smoothing)

        if args.verbose:
            info = voxelizer.preview()
            print("\nVoxel Statistics:")
            print(f"  Triangles: {info.get('triangle_count', 0)}")
            print(f"  Voxels: {info.get('voxel_count', 0)}")
            print(f"  Grid size: {info.get('grid_size', (0, 0, 0))}")
            print(f"  Unique colors: {info.get('unique_colors', 0)}")

        if voxelizer.voxel_count == 0:
            print("Warning: no voxels were generated", file=sys.stderr)

        for fmt in args.format:
            if fmt == "json":
                output_path = output_base.with_suffix(".json")
                voxelizer.export_json(output_path, indent=args.indent)
            else:
                output_path = output_base.with_suffix(".vox")
                voxelizer.export_vox(output_path)
            if args.verbose:
                print(f"Exported: {output_path}")

        elapsed = time.time() - start_time
        if args.verbose:
            print(f"\nCompleted in {elapsed:.2f}s")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.INFO if args.verbose else logging.WARNING, args.log_file)
    return process_single(args)


if __name__ == "__main__":
    sys.exit(main())
