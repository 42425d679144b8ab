"""
JSON Voxel Exporter

Writes the voxel list as plain records:

    {
      "resolution": 30,
      "count": 2,
      "voxels": [
        {"x": 0, "y": -1, "z": 3, "color": [0.8, 0.8, 0.8], "hex": "#cccccc"},
        ...
      ]
    }
"""

import json
from pathlib import Path
from typing import List, Optional, Union

from ..color import rgb_to_hex
from ..errors import InvalidInputError
from ..voxelizer import Voxel


class JSONExporter:
    """Export voxels to a JSON document."""

    def __init__(self, indent: Optional[int] = None, precision: int = 6):
        """
        Args:
            indent: JSON indentation (compact when None)
            precision: Decimal places kept for color channels
        """
        self.indent = indent
        self.precision = precision

    def to_dict(self, voxels: List[Voxel], resolution: Optional[int] = None) -> dict:
        records = []
        for v in voxels:
            color = [round(float(c), self.precision) for c in v.color]
            records.append({
                "x": int(v.x), "y": int(v.y), "z": int(v.z),
                "color": color,
                "hex": rgb_to_hex(v.color),
            })
        return {"resolution": resolution, "count": len(records), "voxels": records}

    def export(
        self,
        voxels: List[Voxel],
        output_path: Union[str, Path],
        resolution: Optional[int] = None
    ):
        """
        Write voxels to ``output_path``.

        Args:
            voxels: Voxel list
            output_path: Output file path
            resolution: Resolution recorded in the document
        """
        output_path = Path(output_path)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(voxels, resolution), f, indent=self.indent)


def load_json(file_path: Union[str, Path]) -> List[Voxel]:
    """Read voxels written by JSONExporter."""
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    try:
        return [
            Voxel(int(r["x"]), int(r["y"]), int(r["z"]), tuple(float(c) for c in r["color"]))
            for r in data["voxels"]
        ]
    except (KeyError, TypeError) as e:
        raise InvalidInputError(f"Malformed voxel JSON: {e}") from e
