"""Tests for manifest discovery."""

from core.discover import find_manifest


class TestFindManifest:
    """Test locating the nearest manifest."""

    def test_finds_manifest_in_start_directory(self, tmp_path):
        """Should return the manifest next to the start directory."""
        manifest = tmp_path / "package.json"
        manifest.write_text("{}")

        assert find_manifest(tmp_path) == manifest.resolve()

    def test_walks_up_parents(self, tmp_path):
        """Should find a manifest in a parent directory."""
        manifest = tmp_path / "package.json"
        manifest.write_text("{}")
        nested = tmp_path / "src" / "lib"
        nested.mkdir(parents=True)

        assert find_manifest(nested) == manifest.resolve()

    def test_prefers_package_json(self, tmp_path):
        """Should prefer package.json over bower.json in the same directory."""
        (tmp_path / "bower.json").write_text("{}")
        (tmp_path / "package.json").write_text("{}")

        assert find_manifest(tmp_path).name == "package.json"

    def test_finds_bower_json(self, tmp_path):
        """Should fall back to bower.json."""
        (tmp_path / "bower.json").write_text("{}")

        assert find_manifest(tmp_path).name == "bower.json"

    def test_nearest_wins(self, tmp_path):
        """Should stop at the closest directory holding a manifest."""
        (tmp_path / "package.json").write_text("{}")
        nested = tmp_path / "packages" / "app"
        nested.mkdir(parents=True)
        (nested / "bower.json").write_text("{}")

        assert find_manifest(nested) == (nested / "bower.json").resolve()

    def test_not_found(self, tmp_path):
        """Should return None when no manifest exists."""
        assert find_manifest(tmp_path, names=("does-not-exist.json",)) is None
