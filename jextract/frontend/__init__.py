"""Frontend package - converts a Swift interface to the declaration model."""

from .parse import parse
