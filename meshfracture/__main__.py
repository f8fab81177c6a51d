"""
Fracture a mesh file into fragments from the command line.

Usage:
    python -m meshfracture model.stl -n 20
    python -m meshfracture model.obj -n 8 --axes xz --seed 42 --format obj
    python -m meshfracture model.stl --options fracture.json --islands --output out/
"""

import argparse
import logging
import sys
from pathlib import Path

from meshfracture.fragmenter import fracture_mesh
from meshfracture.mesh_io import EXPORT_FILE_TYPES, export_fragments, load_mesh_file
from meshfracture.options import FractureOptions

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence noisy third-party loggers
    logging.getLogger('trimesh').setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meshfracture",
        description="Fracture a closed triangle mesh into fragments with random plane cuts.",
    )
    parser.add_argument(
        "input",
        help="Path to input mesh file (STL, OBJ, PLY)",
    )
    parser.add_argument(
        "-n", "--fragment-count", type=int, default=None,
        help="Number of fragments (default: 10, or the value from --options)",
    )
    parser.add_argument(
        "--axes", default=None,
        help="Axes the slice normals may use, e.g. 'xyz' or 'xz' (default: xyz)",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for reproducible fragments",
    )
    parser.add_argument(
        "--islands", action="store_true",
        help="Split fragments into their disconnected pieces",
    )
    parser.add_argument(
        "--output", default=None,
        help="Output directory (default: <input_dir>/<input_stem>_fragments/)",
    )
    parser.add_argument(
        "--format", default="stl", choices=sorted(EXPORT_FILE_TYPES),
        help="Export file format (default: stl)",
    )
    parser.add_argument(
        "--options", default=None,
        help="JSON file with fracture options; command line flags override it",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )
    return parser


def build_options(args: argparse.Namespace) -> FractureOptions:
    """Merge the options file (if any) with command line overrides."""
    options = FractureOptions.load(args.options) if args.options else FractureOptions()

    if args.fragment_count is not None:
        options.fragment_count = args.fragment_count
    if args.axes is not None:
        axes = args.axes.lower()
        options.x_axis = 'x' in axes
        options.y_axis = 'y' in axes
        options.z_axis = 'z' in axes
    if args.seed is not None:
        options.seed = args.seed
    if args.islands:
        options.detect_floating_fragments = True

    return options


def main(argv=None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    options = build_options(args)
    errors = options.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    result = load_mesh_file(args.input)
    if not result.success:
        logger.error(f"Could not load {args.input}: {result.error_message}")
        return 1

    input_path = Path(result.file_path)
    output_dir = Path(args.output) if args.output else input_path.parent / f"{input_path.stem}_fragments"

    fracture_result = fracture_mesh(result.fragment, options)
    paths = export_fragments(fracture_result.meshes, str(output_dir), args.format)

    print(f"\nResult: {fracture_result.mesh_count} meshes from "
          f"{fracture_result.source_triangle_count:,} source triangles "
          f"in {fracture_result.elapsed_time:.2f}s")
    for path, mesh in zip(paths, fracture_result.meshes):
        print(f"  {path.name}: {mesh.triangle_count:,} triangles")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)
