"""Security utilities for path validation."""

from pathlib import Path


class PathTraversalError(Exception):
    """Raised when a path traversal attack is detected."""
    pass


def validate_path_in_directory(path: Path | str, allowed_dir: Path | str) -> Path:
    """
    Validate that a path is within an allowed directory.

    Args:
        path: The path to validate
        allowed_dir: The directory the path must be within

    Returns:
        The resolved path if valid

    Raises:
        PathTraversalError: If path is outside allowed directory
    """
    path = Path(path).resolve()
    allowed_dir = Path(allowed_dir).resolve()

    try:
        path.relative_to(allowed_dir)
        return path
    except ValueError:
        raise PathTraversalError(
            f"Path '{path}' is outside allowed directory '{allowed_dir}'"
        )
