"""Context-triggered piecewise fuzzy hashing and signature comparison."""

__version__ = "1.0.0"
__all__ = ["edit_distance", "primitives", "engine", "compare"]