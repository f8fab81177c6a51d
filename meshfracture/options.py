"""
Fracture and slice options.

Settings for fracturing a mesh into fragments and for single plane slices,
with validation and JSON persistence.
"""

from dataclasses import dataclass
from pathlib import Path
import json


# Upper limit for the number of fragments
MAX_FRAGMENT_COUNT = 1024


def _texture_errors(texture_scale, texture_offset) -> list[str]:
    errors = []
    if len(texture_scale) != 2:
        errors.append(f"texture_scale must have 2 components, got {len(texture_scale)}")
    if len(texture_offset) != 2:
        errors.append(f"texture_offset must have 2 components, got {len(texture_offset)}")
    return errors


def _pair(values, name: str) -> tuple:
    values = tuple(float(v) for v in values)
    if len(values) != 2:
        raise ValueError(f"{name} must have 2 components, got {len(values)}")
    return values


@dataclass
class FractureOptions:
    """
    Options for fracturing a mesh.

    Attributes:
        fragment_count: Number of fragments to slice the mesh into (1-1024)
        x_axis: Allow slice planes with an X normal component
        y_axis: Allow slice planes with a Y normal component
        z_axis: Allow slice planes with a Z normal component
        detect_floating_fragments: Split each fragment into its connected
            pieces (only useful for non-convex meshes)
        texture_scale: Scale applied to cut face UVs
        texture_offset: Offset applied to cut face UVs
        seed: Seed for the random slice planes (None = non-deterministic)
    """
    fragment_count: int = 10

    # Slice plane orientation
    x_axis: bool = True
    y_axis: bool = True
    z_axis: bool = True

    detect_floating_fragments: bool = False

    # Cut face texturing
    texture_scale: tuple = (1.0, 1.0)
    texture_offset: tuple = (0.0, 0.0)

    seed: int | None = None

    def validate(self) -> list[str]:
        """
        Validate option values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not 1 <= self.fragment_count <= MAX_FRAGMENT_COUNT:
            errors.append(f"fragment_count must be between 1 and {MAX_FRAGMENT_COUNT}, got {self.fragment_count}")

        if not (self.x_axis or self.y_axis or self.z_axis):
            errors.append("At least one of x_axis, y_axis, z_axis must be enabled")

        errors.extend(_texture_errors(self.texture_scale, self.texture_offset))

        return errors

    @property
    def axes(self) -> tuple[bool, bool, bool]:
        """Enabled slice axes as (x, y, z)."""
        return (self.x_axis, self.y_axis, self.z_axis)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "fragment_count": self.fragment_count,
            "x_axis": self.x_axis,
            "y_axis": self.y_axis,
            "z_axis": self.z_axis,
            "detect_floating_fragments": self.detect_floating_fragments,
            "texture_scale": list(self.texture_scale),
            "texture_offset": list(self.texture_offset),
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FractureOptions":
        """Create from dictionary. Missing keys get their defaults."""
        return cls(
            fragment_count=int(data.get("fragment_count", 10)),
            x_axis=bool(data.get("x_axis", True)),
            y_axis=bool(data.get("y_axis", True)),
            z_axis=bool(data.get("z_axis", True)),
            detect_floating_fragments=bool(data.get("detect_floating_fragments", False)),
            texture_scale=_pair(data.get("texture_scale", (1.0, 1.0)), "texture_scale"),
            texture_offset=_pair(data.get("texture_offset", (0.0, 0.0)), "texture_offset"),
            seed=data.get("seed"),
        )

    def save(self, filepath: Path | str) -> None:
        """Save options to a JSON file."""
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: Path | str) -> "FractureOptions":
        """Load options from a JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            return cls()  # Defaults if file doesn't exist

        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class SliceOptions:
    """
    Options for slicing a mesh once along a given plane.

    Attributes:
        detect_floating_fragments: Split each half into its connected pieces
        texture_scale: Scale applied to cut face UVs
        texture_offset: Offset applied to cut face UVs
    """
    detect_floating_fragments: bool = False
    texture_scale: tuple = (1.0, 1.0)
    texture_offset: tuple = (0.0, 0.0)

    def validate(self) -> list[str]:
        """Validate option values. Returns a list of error messages."""
        return _texture_errors(self.texture_scale, self.texture_offset)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "detect_floating_fragments": self.detect_floating_fragments,
            "texture_scale": list(self.texture_scale),
            "texture_offset": list(self.texture_offset),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SliceOptions":
        """Create from dictionary."""
        return cls(
            detect_floating_fragments=bool(data.get("detect_floating_fragments", False)),
            texture_scale=_pair(data.get("texture_scale", (1.0, 1.0)), "texture_scale"),
            texture_offset=_pair(data.get("texture_offset", (0.0, 0.0)), "texture_offset"),
        )
