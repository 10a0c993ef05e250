"""Tests for run orchestration."""

import io
import json
from unittest.mock import AsyncMock, patch

import pytest

from core.check import UpdateChecker
from core.config import Options, OutputFormat, VersionTarget
from core.errors import ConfigurationError, InstalledPackagesError, ManifestNotFoundError
from core.exit_codes import ExitCode


def fake_registry(versions: dict) -> AsyncMock:
    async def get_version(name, target=VersionTarget.LATEST):
        return versions[name]

    registry = AsyncMock()
    registry.get_version.side_effect = get_version
    return registry


def fake_installed(local=None, global_=None) -> AsyncMock:
    installed = AsyncMock()
    installed.list_local.return_value = local if local is not None else {}
    installed.list_global.return_value = global_ if global_ is not None else {}
    return installed


def make_checker(options, registry, output, installed=None, cwd=None, stdin=None):
    console, _ = output
    return UpdateChecker(
        options,
        registry=registry,
        installed=installed or fake_installed(),
        console=console,
        cwd=cwd,
        stdin=stdin,
    )


class TestLocalRun:
    """Test checking a project manifest."""

    @pytest.mark.asyncio
    async def test_reports_upgrade_from_stdin(self, output):
        """Should print the upgrade line for a manifest read from stdin."""
        stdin = io.StringIO('{"dependencies": {"lodash": "^3.0.0"}}')
        installed = fake_installed()
        checker = make_checker(
            Options(manifest="-"), fake_registry({"lodash": "4.0.0"}), output, installed, stdin=stdin
        )

        exit_code = await checker.run()

        assert exit_code == ExitCode.SUCCESS
        lines = output[1].getvalue().splitlines()
        assert '"lodash" can be updated from ^3.0.0 to ^4.0.0 (Latest: 4.0.0)' in lines
        # no manifest on disk, so no installed lookup and no upgrade hint
        installed.list_local.assert_not_called()
        assert not any("Run with" in line for line in lines)

    @pytest.mark.asyncio
    async def test_reports_all_match(self, output):
        """Should print the all-match line when nothing is stale."""
        stdin = io.StringIO('{"dependencies": {"lodash": "^4.0.0"}}')
        checker = make_checker(
            Options(manifest="-"), fake_registry({"lodash": "4.0.0"}), output, stdin=stdin
        )

        assert await checker.run() == ExitCode.SUCCESS
        assert output[1].getvalue() == "\nAll dependencies match the latest package versions :)\n\n"

    @pytest.mark.asyncio
    async def test_discovers_manifest_and_hints(self, manifest_file, output):
        """Should use the nearest manifest, show installed versions and hint at -u."""
        registry = fake_registry({"express": "4.18.2", "lodash": "4.17.21", "jest": "30.0.0"})
        installed = fake_installed(local={"jest": "29.7.0"})
        checker = make_checker(Options(), registry, output, installed, cwd=manifest_file.parent)

        assert await checker.run() == ExitCode.SUCCESS

        text = output[1].getvalue()
        assert '"jest" can be updated from ^29.0.0 to ^30.0.0 (Installed: 29.7.0, Latest: 30.0.0)' in text
        assert "Run with '-u' to upgrade your package.json" in text
        assert "Using" not in text
        installed.list_local.assert_awaited_once_with(manifest_file.parent.resolve())
        # nothing written without --upgrade
        assert '"jest": "^29.0.0"' in manifest_file.read_text()

    @pytest.mark.asyncio
    async def test_notes_manifest_from_parent(self, manifest_file, output):
        """Should say which manifest is used when it lives above cwd."""
        nested = manifest_file.parent / "src"
        nested.mkdir()
        registry = fake_registry({"express": "4.18.2", "lodash": "4.17.21", "jest": "29.7.0"})
        checker = make_checker(Options(), registry, output, cwd=nested)

        await checker.run()

        assert "Using ../package.json" in output[1].getvalue()

    @pytest.mark.asyncio
    async def test_upgrade_writes_manifest(self, manifest_file, output, sample_package_json):
        """Should rewrite only the upgraded range when --upgrade is given."""
        registry = fake_registry({"express": "4.18.2", "lodash": "4.17.21", "jest": "30.0.0"})
        checker = make_checker(Options(upgrade=True), registry, output, cwd=manifest_file.parent)

        assert await checker.run() == ExitCode.SUCCESS

        assert manifest_file.read_text() == sample_package_json.replace(
            '"jest": "^29.0.0"', '"jest": "^30.0.0"'
        )
        assert f"{manifest_file.resolve()} upgraded" in output[1].getvalue()

    @pytest.mark.asyncio
    async def test_upgrade_all_moves_satisfied_ranges(self, manifest_file, output):
        """Should also raise ranges that already accept the latest version."""
        registry = fake_registry({"express": "4.19.0", "lodash": "4.17.21", "jest": "29.0.0"})
        checker = make_checker(Options(upgrade_all=True), registry, output, cwd=manifest_file.parent)

        await checker.run()

        data = json.loads(manifest_file.read_text())
        assert data["dependencies"] == {"express": "^4.19.0", "lodash": "~4.17.21"}
        assert '"express" satisfies current dependency' in output[1].getvalue()

    @pytest.mark.asyncio
    async def test_write_failure_after_report(self, manifest_file, output):
        """Should print the report before a failed write propagates."""
        registry = fake_registry({"express": "4.18.2", "lodash": "4.17.21", "jest": "30.0.0"})
        checker = make_checker(Options(upgrade=True), registry, output, cwd=manifest_file.parent)

        with patch("core.check.write_manifest_file", side_effect=PermissionError("read-only")):
            with pytest.raises(PermissionError):
                await checker.run()

        text = output[1].getvalue()
        assert '"jest" can be updated from ^29.0.0 to ^30.0.0' in text
        assert "upgraded" not in text

    @pytest.mark.asyncio
    async def test_upgrade_keeps_byte_order_mark(self, tmp_path, output):
        """Should round-trip a manifest that starts with a UTF-8 BOM."""
        path = tmp_path / "package.json"
        path.write_bytes(b'\xef\xbb\xbf{\r\n  "dependencies": {"lodash": "^3.0.0"}\r\n}\r\n')
        checker = make_checker(
            Options(upgrade=True), fake_registry({"lodash": "4.0.0"}), output, cwd=tmp_path
        )

        await checker.run()

        assert path.read_bytes() == b'\xef\xbb\xbf{\r\n  "dependencies": {"lodash": "^4.0.0"}\r\n}\r\n'

    @pytest.mark.asyncio
    async def test_explicit_manifest_path(self, tmp_path, output):
        """Should read the manifest given on the command line."""
        path = tmp_path / "bower.json"
        path.write_text('{"dependencies": {"jquery": "~2.1.0"}}')
        checker = make_checker(
            Options(manifest="bower.json"), fake_registry({"jquery": "3.7.1"}), output, cwd=tmp_path
        )

        await checker.run()

        text = output[1].getvalue()
        assert '"jquery" can be updated from ~2.1.0 to ~3.7.1' in text
        assert "Run with '-u' to upgrade your bower.json" in text

    @pytest.mark.asyncio
    async def test_missing_manifest(self, tmp_path, output):
        """Should raise ManifestNotFoundError for a missing explicit path."""
        registry = fake_registry({})
        checker = make_checker(Options(manifest="nope.json"), registry, output, cwd=tmp_path)

        with pytest.raises(ManifestNotFoundError):
            await checker.run()
        registry.get_version.assert_not_called()

    @pytest.mark.asyncio
    async def test_installed_failure_is_not_fatal(self, manifest_file, output):
        """Should drop the installed column when listing fails."""
        installed = fake_installed()
        installed.list_local.side_effect = InstalledPackagesError("boom")
        registry = fake_registry({"express": "4.18.2", "lodash": "4.17.21", "jest": "30.0.0"})
        checker = make_checker(Options(), registry, output, installed, cwd=manifest_file.parent)

        assert await checker.run() == ExitCode.SUCCESS
        assert "(Latest: 30.0.0)" in output[1].getvalue()

    @pytest.mark.asyncio
    async def test_error_level_two_fails_after_report(self, output):
        """Should print the same report and then signal failure."""
        manifest = '{"dependencies": {"lodash": "^3.0.0"}}'
        relaxed = make_checker(
            Options(manifest="-", error_level=0),
            fake_registry({"lodash": "4.0.0"}),
            output,
            stdin=io.StringIO(manifest),
        )
        assert await relaxed.run() == ExitCode.SUCCESS
        relaxed_output = output[1].getvalue()

        output[1].seek(0)
        output[1].truncate()
        strict = make_checker(
            Options(manifest="-", error_level=2),
            fake_registry({"lodash": "4.0.0"}),
            output,
            stdin=io.StringIO(manifest),
        )
        assert await strict.run() == ExitCode.OUTDATED
        assert output[1].getvalue() == relaxed_output

    @pytest.mark.asyncio
    async def test_error_level_two_without_upgrades(self, output):
        """Should succeed at error level 2 when nothing is stale."""
        checker = make_checker(
            Options(manifest="-", error_level=2),
            fake_registry({"lodash": "4.0.0"}),
            output,
            stdin=io.StringIO('{"dependencies": {"lodash": "^4.0.0"}}'),
        )
        assert await checker.run() == ExitCode.SUCCESS

    @pytest.mark.asyncio
    async def test_silent(self, output):
        """Should print nothing when silent."""
        checker = make_checker(
            Options(manifest="-", silent=True),
            fake_registry({"lodash": "4.0.0"}),
            output,
            stdin=io.StringIO('{"dependencies": {"lodash": "^3.0.0"}}'),
        )
        await checker.run()
        assert output[1].getvalue() == ""


class TestJsonOutput:
    """Test machine-readable output formats."""

    MANIFEST = '{"name": "x", "dependencies": {"lodash": "^3.0.0"}, "devDependencies": {"jest": "^29.0.0"}}'

    async def run_format(self, output_format, output):
        checker = make_checker(
            Options(manifest="-", output_format=output_format),
            fake_registry({"lodash": "4.0.0", "jest": "29.7.0"}),
            output,
            stdin=io.StringIO(self.MANIFEST),
        )
        await checker.run()
        return json.loads(output[1].getvalue())

    @pytest.mark.asyncio
    async def test_json_upgraded(self, output):
        """Should print only the upgraded ranges."""
        assert await self.run_format(OutputFormat.JSON_UPGRADED, output) == {"lodash": "^4.0.0"}

    @pytest.mark.asyncio
    async def test_json_all(self, output):
        """Should print the whole upgraded manifest."""
        data = await self.run_format(OutputFormat.JSON_ALL, output)
        assert data == {
            "name": "x",
            "dependencies": {"lodash": "^4.0.0"},
            "devDependencies": {"jest": "^29.0.0"},
        }

    @pytest.mark.asyncio
    async def test_json_deps(self, output):
        """Should print only the dependency fields of the upgraded manifest."""
        data = await self.run_format(OutputFormat.JSON_DEPS, output)
        assert data == {
            "dependencies": {"lodash": "^4.0.0"},
            "devDependencies": {"jest": "^29.0.0"},
        }

    @pytest.mark.asyncio
    async def test_json_with_upgrade_keeps_stdout_clean(self, manifest_file, output):
        """Should write the file without printing anything but JSON."""
        registry = fake_registry({"express": "4.18.2", "lodash": "4.17.21", "jest": "30.0.0"})
        checker = make_checker(
            Options(upgrade=True, output_format=OutputFormat.JSON_UPGRADED),
            registry,
            output,
            cwd=manifest_file.parent,
        )

        await checker.run()

        assert json.loads(output[1].getvalue()) == {"jest": "^30.0.0"}
        assert '"jest": "^30.0.0"' in manifest_file.read_text()


class TestGlobalRun:
    """Test checking globally installed packages."""

    @pytest.mark.asyncio
    async def test_reports_global_upgrades(self, output):
        """Should compare installed global versions with the registry."""
        installed = fake_installed(global_={"npm": "9.0.0", "yo": "4.3.1"})
        checker = make_checker(
            Options(global_=True), fake_registry({"npm": "10.2.0", "yo": "4.3.1"}), output, installed
        )

        assert await checker.run() == ExitCode.SUCCESS
        assert output[1].getvalue() == '\n"npm" can be updated from 9.0.0 to 10.2.0\n\n'

    @pytest.mark.asyncio
    async def test_global_up_to_date(self, output):
        """Should say all global packages are current."""
        installed = fake_installed(global_={"npm": "10.2.0"})
        checker = make_checker(Options(global_=True), fake_registry({"npm": "10.2.0"}), output, installed)

        await checker.run()
        assert "All global packages are up to date :)" in output[1].getvalue()

    @pytest.mark.asyncio
    async def test_global_error_level_two(self, output):
        """Should signal failure for outdated globals at error level 2."""
        installed = fake_installed(global_={"npm": "9.0.0"})
        checker = make_checker(
            Options(global_=True, error_level=2), fake_registry({"npm": "10.2.0"}), output, installed
        )
        assert await checker.run() == ExitCode.OUTDATED

    @pytest.mark.asyncio
    async def test_global_with_upgrade_aborts_before_lookup(self, output):
        """Should refuse to upgrade global packages before any lookup."""
        registry = fake_registry({})
        installed = fake_installed()
        checker = make_checker(Options(global_=True, upgrade=True), registry, output, installed)

        with pytest.raises(ConfigurationError):
            await checker.run()

        installed.list_global.assert_not_called()
        registry.get_version.assert_not_called()
