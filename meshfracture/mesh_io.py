"""
Mesh File I/O

Loads source meshes (STL, OBJ, PLY) using trimesh and exports fragment
meshes back to disk.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass
import logging
import time

import trimesh

from meshfracture.fragment_data import FragmentData, MeshData

logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = {'.stl', '.obj', '.ply'}
EXPORT_FILE_TYPES = {'stl', 'obj', 'ply'}


@dataclass
class LoadResult:
    """Result of a mesh file loading operation."""
    fragment: Optional[FragmentData]
    mesh: Optional[trimesh.Trimesh]
    file_path: str
    file_name: str
    file_size_bytes: int
    success: bool
    error_message: Optional[str] = None
    load_time_ms: float = 0.0


class MeshLoader:
    """
    Mesh file loader for STL, OBJ and PLY files.

    Uses trimesh for parsing; the loaded mesh is converted to a
    FragmentData ready for slicing.
    """

    def __init__(self):
        self._last_result: Optional[LoadResult] = None

    @property
    def last_result(self) -> Optional[LoadResult]:
        """Get the result of the last load operation."""
        return self._last_result

    def is_valid_mesh_file(self, file_path: str) -> Tuple[bool, str]:
        """
        Check if a file looks like a loadable mesh file.

        Args:
            file_path: Path to the file to check

        Returns:
            Tuple of (is_valid, error_message)
        """
        path = Path(file_path)

        if not path.exists():
            return False, f"File does not exist: {file_path}"

        if not path.is_file():
            return False, f"Path is not a file: {file_path}"

        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            return False, (f"Unsupported file extension: {path.suffix}. "
                           f"Expected one of {', '.join(sorted(SUPPORTED_EXTENSIONS))}")

        if path.stat().st_size == 0:
            return False, "File is empty"

        return True, ""

    def load(self, file_path: str) -> LoadResult:
        """
        Load a mesh file.

        Args:
            file_path: Path to the mesh file

        Returns:
            LoadResult containing the fragment data or error information
        """
        start_time = time.perf_counter()

        path = Path(file_path)
        file_name = path.name

        is_valid, error_msg = self.is_valid_mesh_file(file_path)
        if not is_valid:
            logger.error(f"Cannot load {file_name}: {error_msg}")
            self._last_result = LoadResult(
                fragment=None,
                mesh=None,
                file_path=str(path.absolute()),
                file_name=file_name,
                file_size_bytes=0,
                success=False,
                error_message=error_msg
            )
            return self._last_result

        file_size = path.stat().st_size

        try:
            # force='mesh' concatenates scenes into a single Trimesh
            mesh = trimesh.load(str(path), force='mesh')

            if not isinstance(mesh, trimesh.Trimesh):
                raise ValueError(f"Expected Trimesh, got {type(mesh)}")
            if len(mesh.faces) == 0:
                raise ValueError("No triangles found in mesh file")

            fragment = FragmentData.from_trimesh(mesh)
            load_time = (time.perf_counter() - start_time) * 1000

            logger.info(f"Loaded {file_name}: {len(mesh.vertices):,} vertices, "
                        f"{len(mesh.faces):,} triangles in {load_time:.1f}ms")
            if not mesh.is_watertight:
                logger.warning(f"{file_name} is not watertight; cut faces may be incomplete")

            self._last_result = LoadResult(
                fragment=fragment,
                mesh=mesh,
                file_path=str(path.absolute()),
                file_name=file_name,
                file_size_bytes=file_size,
                success=True,
                load_time_ms=load_time
            )

        except Exception as e:
            load_time = (time.perf_counter() - start_time) * 1000
            logger.error(f"Failed to load {file_name}: {e}")
            self._last_result = LoadResult(
                fragment=None,
                mesh=None,
                file_path=str(path.absolute()),
                file_name=file_name,
                file_size_bytes=file_size,
                success=False,
                error_message=str(e),
                load_time_ms=load_time
            )

        return self._last_result


def load_mesh_file(file_path: str) -> LoadResult:
    """
    Convenience function to load a mesh file.

    Args:
        file_path: Path to the mesh file

    Returns:
        LoadResult containing the fragment data or error information
    """
    loader = MeshLoader()
    return loader.load(file_path)


def export_fragments(meshes: Sequence[MeshData],
                     folder: str,
                     file_type: str = 'stl',
                     prefix: str = 'fragment') -> List[Path]:
    """
    Write each mesh to its own file.

    Args:
        meshes: Meshes to export
        folder: Output folder (created if missing)
        file_type: 'stl', 'obj' or 'ply'
        prefix: File name prefix; files are named <prefix>_<index>.<file_type>

    Returns:
        Paths of the written files

    Raises:
        ValueError: If the file type is not supported
    """
    file_type = file_type.lower()
    if file_type not in EXPORT_FILE_TYPES:
        raise ValueError(f"Unsupported export file type: {file_type}")

    folder = Path(folder)
    folder.mkdir(parents=True, exist_ok=True)

    paths = []
    for i, mesh in enumerate(meshes):
        path = folder / f"{prefix}_{i:03d}.{file_type}"
        mesh.to_trimesh().export(str(path), file_type=file_type)
        paths.append(path)

    logger.info(f"Exported {len(paths)} meshes to {folder}")
    return paths
