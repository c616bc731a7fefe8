"""Unit tests for environment provisioning."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.provision import (
    CheckoutError,
    DirectorySnapshotCheckout,
    EnvironmentProvisioner,
    ProvisionError,
    RustupToolchainInstaller,
    ToolchainInstallError,
    ToolchainInstaller,
    ToolchainSpec,
)
from src.workspace import CommandOutcome, CommandRunner, ExecutionContext


@pytest.fixture
def source(tmp_path):
    src = tmp_path / "source"
    (src / "src").mkdir(parents=True)
    (src / "src" / "main.rs").write_text("fn main() {}\n")
    (src / "Cargo.toml").write_text("[package]\nname = 'demo'\n")
    (src / "target" / "debug").mkdir(parents=True)
    (src / "target" / "debug" / "stale").write_text("old build")
    (src / ".git" / "refs" / "heads").mkdir(parents=True)
    (src / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (src / ".git" / "refs" / "heads" / "main").write_text("abc123\n")
    return src


def _fake_installer(version="rustc 1.80.0"):
    installer = MagicMock(spec=ToolchainInstaller)
    installer.install.return_value = version
    return installer


class TestToolchainSpec:
    def test_defaults(self):
        spec = ToolchainSpec()
        assert spec.channel == "stable"
        assert spec.profile == "minimal"
        assert spec.components == ("rustfmt", "clippy")
        assert spec.override is True

    def test_from_dict_accepts_comma_separated_components(self):
        spec = ToolchainSpec.from_dict({"channel": "nightly", "components": "rustfmt, miri"})
        assert spec.channel == "nightly"
        assert spec.profile == "minimal"
        assert spec.components == ("rustfmt", "miri")

    def test_roundtrip(self):
        spec = ToolchainSpec(channel="beta", components=("clippy",), override=False)
        assert ToolchainSpec.from_dict(spec.to_dict()) == spec


class TestDirectorySnapshotCheckout:
    def test_copies_tree_without_vcs_and_build_output(self, source, tmp_path):
        dest = tmp_path / "dest"
        dest.mkdir()
        DirectorySnapshotCheckout(source).checkout(dest)

        assert (dest / "src" / "main.rs").read_text() == "fn main() {}\n"
        assert (dest / "Cargo.toml").exists()
        assert not (dest / ".git").exists()
        assert not (dest / "target").exists()

    def test_nested_target_directory_is_copied(self, source, tmp_path):
        (source / "src" / "target").mkdir()
        (source / "src" / "target" / "mod.rs").write_text("pub fn aim() {}\n")
        (source / "docs" / ".git").mkdir(parents=True)
        (source / "docs" / ".git" / "keep").write_text("x")
        dest = tmp_path / "dest"
        dest.mkdir()
        DirectorySnapshotCheckout(source).checkout(dest)

        assert (dest / "src" / "target" / "mod.rs").read_text() == "pub fn aim() {}\n"
        assert (dest / "docs" / ".git" / "keep").exists()
        assert not (dest / "target").exists()

    def test_reads_revision_from_git_head(self, source, tmp_path, monkeypatch):
        monkeypatch.delenv("CI_REVISION", raising=False)
        dest = tmp_path / "dest"
        dest.mkdir()
        assert DirectorySnapshotCheckout(source).checkout(dest) == "abc123"

    def test_explicit_revision_wins(self, source, tmp_path):
        dest = tmp_path / "dest"
        dest.mkdir()
        assert DirectorySnapshotCheckout(source, revision="def456").checkout(dest) == "def456"

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(CheckoutError):
            DirectorySnapshotCheckout(tmp_path / "nope").checkout(tmp_path / "dest")


class TestRustupToolchainInstaller:
    def test_install_commands(self):
        commands = RustupToolchainInstaller.install_commands(ToolchainSpec())
        assert commands == [
            [
                "rustup", "toolchain", "install", "stable",
                "--profile", "minimal",
                "--component", "rustfmt",
                "--component", "clippy",
            ],
            ["rustup", "override", "set", "stable"],
        ]

    def test_no_override_command_when_disabled(self):
        commands = RustupToolchainInstaller.install_commands(ToolchainSpec(override=False))
        assert len(commands) == 1

    def test_install_returns_version(self, tmp_path):
        runner = MagicMock(spec=CommandRunner)
        runner.run.side_effect = [
            CommandOutcome(exit_code=0),
            CommandOutcome(exit_code=0),
            CommandOutcome(exit_code=0, output="rustc 1.80.0 (abc 2024-07-21)\n"),
        ]
        installer = RustupToolchainInstaller(runner=runner)
        version = installer.install(ToolchainSpec(), ExecutionContext(workspace=tmp_path))

        assert version == "rustc 1.80.0 (abc 2024-07-21)"
        assert runner.run.call_count == 3
        assert runner.run.call_args_list[2].args[0] == ["rustc", "--version"]

    def test_failed_command_raises(self, tmp_path):
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandOutcome(exit_code=1, output="network unreachable")
        installer = RustupToolchainInstaller(runner=runner)

        with pytest.raises(ToolchainInstallError) as exc_info:
            installer.install(ToolchainSpec(), ExecutionContext(workspace=tmp_path))
        assert exc_info.value.exit_code == 1
        assert exc_info.value.command[:2] == ["rustup", "toolchain"]


class TestEnvironmentProvisioner:
    def test_provision_builds_context(self, source, tmp_path):
        installer = _fake_installer()
        provisioner = EnvironmentProvisioner(
            checkout=DirectorySnapshotCheckout(source, revision="r1"),
            installer=installer,
            workspace_root=tmp_path / "runs",
            step_env={"CARGO_HOME": "{workspace}/.cargo"},
            base_env={"PATH": "/usr/bin"},
        )
        context = provisioner.provision()

        assert context.workspace.parent == tmp_path / "runs"
        assert (context.workspace / "src" / "main.rs").exists()
        assert context.revision == "r1"
        assert context.toolchain_version == "rustc 1.80.0"
        assert context.env == {
            "PATH": "/usr/bin",
            "CARGO_HOME": f"{context.workspace}/.cargo",
        }
        installer.install.assert_called_once_with(ToolchainSpec(), context)

    def test_each_run_gets_a_fresh_workspace(self, source, tmp_path):
        provisioner = EnvironmentProvisioner(
            checkout=DirectorySnapshotCheckout(source),
            installer=_fake_installer(),
            workspace_root=tmp_path / "runs",
        )
        first = provisioner.provision()
        second = provisioner.provision()
        assert first.workspace != second.workspace

    def test_checkout_failure_is_provision_error(self, tmp_path):
        installer = _fake_installer()
        provisioner = EnvironmentProvisioner(
            checkout=DirectorySnapshotCheckout(tmp_path / "missing"),
            installer=installer,
            workspace_root=tmp_path / "runs",
        )
        with pytest.raises(ProvisionError):
            provisioner.provision()
        installer.install.assert_not_called()
        assert list((tmp_path / "runs").iterdir()) == []

    def test_install_failure_is_provision_error(self, source, tmp_path):
        installer = MagicMock(spec=ToolchainInstaller)
        installer.install.side_effect = ToolchainInstallError(["rustup"], 1)
        provisioner = EnvironmentProvisioner(
            checkout=DirectorySnapshotCheckout(source),
            installer=installer,
            workspace_root=tmp_path / "runs",
        )
        with pytest.raises(ProvisionError):
            provisioner.provision()
        assert list((tmp_path / "runs").iterdir()) == []

    def test_cleanup_removes_workspace(self, source, tmp_path):
        provisioner = EnvironmentProvisioner(
            checkout=DirectorySnapshotCheckout(source),
            installer=_fake_installer(),
            workspace_root=tmp_path / "runs",
        )
        context = provisioner.provision()
        provisioner.cleanup(context)
        assert not context.workspace.exists()

    def test_cleanup_leaves_foreign_workspace(self, tmp_path):
        provisioner = EnvironmentProvisioner(checkout=MagicMock())
        context = ExecutionContext(workspace=tmp_path)
        provisioner.cleanup(context)
        assert tmp_path.exists()
