"""EnvironmentProvisioner - builds a clean execution context for a run."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from src.workspace import ExecutionContext

from .checkout import SourceCheckout
from .exceptions import CheckoutError, ProvisionError
from .models import ToolchainSpec
from .toolchain import RustupToolchainInstaller, ToolchainInstaller

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "ci-run-"


class EnvironmentProvisioner:
    """Produces an isolated workspace snapshot with a toolchain installed.

    Side effects are confined to a freshly created workspace directory.
    Any checkout or installation failure surfaces as ProvisionError.

    Example:
        provisioner = EnvironmentProvisioner(
            checkout=DirectorySnapshotCheckout(Path(".")),
            toolchain=ToolchainSpec(),
        )
        context = provisioner.provision()
    """

    def __init__(
        self,
        checkout: SourceCheckout,
        toolchain: Optional[ToolchainSpec] = None,
        installer: Optional[ToolchainInstaller] = None,
        workspace_root: Optional[Path] = None,
        step_env: Optional[Mapping[str, str]] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """Initialize the provisioner.

        Args:
            checkout: Provider of the source snapshot.
            toolchain: Toolchain to install. Defaults to stable/minimal
                with rustfmt and clippy.
            installer: Toolchain installer. Defaults to rustup.
            workspace_root: Directory in which run workspaces are created.
                Defaults to the system temp directory.
            step_env: Extra environment for commands. Values may reference
                the workspace path as ``{workspace}``.
            base_env: Environment the context inherits. Defaults to os.environ.
        """
        self._checkout = checkout
        self._toolchain = toolchain or ToolchainSpec()
        self._installer = installer
        self._workspace_root = Path(workspace_root) if workspace_root else None
        self._step_env = dict(step_env or {})
        self._base_env = base_env

    def _get_installer(self) -> ToolchainInstaller:
        if self._installer is None:
            self._installer = RustupToolchainInstaller()
        return self._installer

    def _create_workspace(self) -> Path:
        try:
            if self._workspace_root is not None:
                self._workspace_root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self._workspace_root))
        except OSError as e:
            raise CheckoutError(str(self._workspace_root or "<tmp>"), str(e)) from e

    def _build_env(self, workspace: Path) -> dict[str, str]:
        env = dict(os.environ if self._base_env is None else self._base_env)
        for key, value in self._step_env.items():
            env[key] = value.format(workspace=workspace)
        return env

    def provision(self) -> ExecutionContext:
        """Build the execution context for one run.

        Returns:
            ExecutionContext with the source snapshot and toolchain in place.

        Raises:
            ProvisionError: If the snapshot or toolchain installation fails.
        """
        workspace = self._create_workspace()
        context = ExecutionContext(
            workspace=workspace,
            env=self._build_env(workspace),
            ephemeral=True,
        )
        logger.info("Provisioning workspace %s", workspace)

        try:
            context.revision = self._checkout.checkout(workspace)
            context.toolchain_version = self._get_installer().install(self._toolchain, context)
        except ProvisionError:
            self.cleanup(context)
            raise
        except OSError as e:
            self.cleanup(context)
            raise ProvisionError(f"Provisioning failed: {e}") from e

        return context

    def cleanup(self, context: ExecutionContext) -> None:
        """Remove a workspace this provisioner created."""
        if not context.ephemeral:
            return
        shutil.rmtree(context.workspace, ignore_errors=True)
        logger.debug("Removed workspace %s", context.workspace)
