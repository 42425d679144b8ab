"""
Export modules for voxel lists.

Supported formats:
- MagicaVoxel (.vox) - Optimal for voxel editing
- JSON (.json) - Plain voxel records for web viewers and editors
"""

from .vox_exporter import VoxExporter, load_vox
from .json_exporter import JSONExporter, load_json

__all__ = ["VoxExporter", "JSONExporter", "load_vox", "load_json"]
