"""Playing field model."""

from .field import Field, FieldDimensions, Segment, load_field

__all__ = ["Field", "FieldDimensions", "Segment", "load_field"]
