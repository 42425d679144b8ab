"""
MagicaVoxel .vox Format Exporter

The .vox format is a RIFF-style chunk-based binary format used by MagicaVoxel.
It stores voxels as sparse data with a 256-color palette.

File Structure:
- Header: "VOX " (4 bytes) + version (4 bytes, int32)
- MAIN chunk (container)
  - SIZE chunk: dimensions (x, y, z)
  - XYZI chunk: voxel data (x, y, z, color_index per voxel)
  - RGBA chunk: 256-color palette

Limitations:
- Palette index 0 is air, leaving 255 colors
- Maximum 256x256x256 dimensions per model
- Coordinates are uint8, so voxels are re-based to the minimum corner
"""

from pathlib import Path
from typing import List, Tuple, Union
import struct
import numpy as np

from ..color import ColorQuantizer, colors_to_uint8
from ..errors import InvalidInputError
from ..voxelizer import Voxel, voxels_to_arrays


VOX_MAGIC = b'VOX '
VOX_VERSION = 150
VOX_MAX_SIZE = 256


class VoxChunk:
    """Base class for VOX chunks."""

    def __init__(self, chunk_id: bytes):
        self.chunk_id = chunk_id
        self.content = b''
        self.children = b''

    def pack(self) -> bytes:
        return (
            self.chunk_id +
            struct.pack('<II', len(self.content), len(self.children)) +
            self.content +
            self.children
        )


class SizeChunk(VoxChunk):
    """SIZE chunk containing model dimensions."""

    def __init__(self, size_x: int, size_y: int, size_z: int):
        super().__init__(b'SIZE')
        self.content = struct.pack('<III', size_x, size_y, size_z)


class XYZIChunk(VoxChunk):
    """XYZI chunk containing voxel positions and color indices."""

    def __init__(self, coords: np.ndarray, color_indices: np.ndarray):
        super().__init__(b'XYZI')
        records = np.column_stack([coords, color_indices]).astype(np.uint8)
        self.content = struct.pack('<I', len(records)) + records.tobytes()


class RGBAChunk(VoxChunk):
    """RGBA chunk containing the 256-color palette."""

    def __init__(self, palette: np.ndarray):
        super().__init__(b'RGBA')
        # Entry i of the chunk is color index i + 1
        table = np.zeros((256, 4), dtype=np.uint8)
        table[:, 3] = 255
        n = min(len(palette), 255)
        table[:n, :3] = palette[:n, :3]
        self.content = table.tobytes()


class MainChunk(VoxChunk):
    """MAIN container chunk."""

    def __init__(self):
        super().__init__(b'MAIN')

    def add_child(self, chunk: VoxChunk):
        self.children += chunk.pack()


class VoxExporter:
    """
    Export voxel lists to MagicaVoxel .vox format.

    Usage:
        exporter = VoxExporter()
        exporter.export(voxels, "output.vox")
    """

    def __init__(self, y_up: bool = True):
        """
        Args:
            y_up: Input voxels are Y-up; convert to the Z-up .vox convention
        """
        self.y_up = y_up
        self._quantizer = ColorQuantizer(max_colors=255)

    def to_vox_coords(self, coords: np.ndarray) -> np.ndarray:
        """Axis conversion followed by re-basing to the minimum corner."""
        if self.y_up:
            coords = np.column_stack([coords[:, 0], -coords[:, 2], coords[:, 1]])
        return coords - coords.min(axis=0)

    def export(self, voxels: List[Voxel], output_path: Union[str, Path]):
        """
        Export voxels to a .vox file.

        Args:
            voxels: Voxel list
            output_path: Output file path
        """
        output_path = Path(output_path)

        coords, colors = voxels_to_arrays(voxels)
        if len(coords) == 0:
            raise InvalidInputError("Cannot export an empty voxel list")

        coords = self.to_vox_coords(coords)
        size = coords.max(axis=0) + 1
        if any(s > VOX_MAX_SIZE for s in size):
            raise InvalidInputError(
                f"VOX format limited to 256x256x256. Model size: {tuple(int(s) for s in size)}"
            )

        palette, indices = self._quantizer.quantize(colors_to_uint8(colors))
        # Index 0 is air in VOX
        color_indices = np.asarray(indices, dtype=np.int64) + 1

        main_chunk = MainChunk()
        main_chunk.add_child(SizeChunk(int(size[0]), int(size[1]), int(size[2])))
        main_chunk.add_child(XYZIChunk(coords, color_indices))
        main_chunk.add_child(RGBAChunk(palette))

        with open(output_path, 'wb') as f:
            f.write(VOX_MAGIC)
            f.write(struct.pack('<I', VOX_VERSION))
            f.write(main_chunk.pack())


def load_vox(file_path: Union[str, Path]) -> Tuple[Tuple[int, int, int], np.ndarray, np.ndarray]:
    """
    Load a .vox file.

    Args:
        file_path: Path to .vox file

    Returns:
        Tuple of (dimensions, voxels, palette) where:
        - dimensions: (x, y, z) size
        - voxels: Array of shape (N, 4) with (x, y, z, color_index)
        - palette: Array of shape (256, 4); row i is color index i + 1
    """
    with open(file_path, 'rb') as f:
        data = f.read()

    if data[:4] != VOX_MAGIC:
        raise InvalidInputError(f"Invalid VOX file: bad magic {data[:4]!r}")

    def read_chunk(offset: int):
        chunk_id = data[offset:offset + 4]
        content_size, children_size = struct.unpack('<II', data[offset + 4:offset + 12])
        content = data[offset + 12:offset + 12 + content_size]
        return chunk_id, content, children_size, offset + 12 + content_size

    main_id, _, main_children_size, offset = read_chunk(8)
    if main_id != b'MAIN':
        raise InvalidInputError("Expected MAIN chunk")

    dimensions = None
    voxels = np.zeros((0, 4), dtype=np.uint8)
    palette = np.zeros((256, 4), dtype=np.uint8)
    palette[:, 3] = 255

    end = offset + main_children_size
    while offset < end:
        chunk_id, content, children_size, offset = read_chunk(offset)
        if chunk_id == b'SIZE':
            dimensions = struct.unpack('<III', content[:12])
        elif chunk_id == b'XYZI':
            count = struct.unpack('<I', content[:4])[0]
            voxels = np.frombuffer(content[4:4 + count * 4], dtype=np.uint8).reshape(count, 4)
        elif chunk_id == b'RGBA':
            palette = np.frombuffer(content[:1024], dtype=np.uint8).reshape(256, 4).copy()
        offset += children_size

    return dimensions, voxels, palette
