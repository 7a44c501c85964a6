"""Utility modules for QuickOrder."""

from quickorder.utils.security import PathTraversalError, validate_path_in_directory

__all__ = [
    "PathTraversalError",
    "validate_path_in_directory",
]
