"""
Tests for path validation used when serving media.
"""

import pytest

from quickorder.utils.security import PathTraversalError, validate_path_in_directory


class TestValidatePathInDirectory:
    def test_accepts_paths_inside(self, tmp_path):
        target = tmp_path / "products" / "a.png"
        assert validate_path_in_directory(target, tmp_path) == target.resolve()

    @pytest.mark.parametrize("name", ["..", "../secret.txt", "../../etc/passwd"])
    def test_rejects_traversal(self, tmp_path, name):
        directory = tmp_path / "media"
        directory.mkdir()

        with pytest.raises(PathTraversalError):
            validate_path_in_directory(directory / name, directory)
