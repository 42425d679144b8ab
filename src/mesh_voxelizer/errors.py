"""
Exception types raised by the voxelizer.

An empty result (no triangles, nothing rendered) is not an error; these
cover inputs the engine refuses to work with.
"""


class MeshVoxelizerError(Exception):
    """Base class for all voxelizer errors."""


class InvalidInputError(MeshVoxelizerError, ValueError):
    """Bad file, unsupported extension, oversized input or bad parameter."""


class EmptyMeshError(InvalidInputError):
    """No mesh was supplied, or the asset contains no mesh."""


class DegenerateMeshError(MeshVoxelizerError, ValueError):
    """The mesh has triangles but a zero-size bounding box."""


class BackendUnavailableError(MeshVoxelizerError, RuntimeError):
    """Multi-view rasterization was requested without a render backend."""
