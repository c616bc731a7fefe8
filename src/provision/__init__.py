"""Environment provisioning for pipeline runs.

Produces a clean, isolated ExecutionContext: a snapshot of the source
tree plus an installed toolchain. Any failure here is fatal to the run.

Public API:
    - EnvironmentProvisioner: Builds the execution context
    - ToolchainSpec: Declared toolchain channel, profile and components
    - SourceCheckout / DirectorySnapshotCheckout: Source snapshot providers
    - ToolchainInstaller / RustupToolchainInstaller: Toolchain installers
    - ProvisionError: Base exception for provisioning failures
    - CheckoutError: Source snapshot failed
    - ToolchainInstallError: Toolchain installation failed
"""

from .checkout import DirectorySnapshotCheckout, SourceCheckout
from .exceptions import CheckoutError, ProvisionError, ToolchainInstallError
from .models import ToolchainSpec
from .provisioner import EnvironmentProvisioner
from .toolchain import RustupToolchainInstaller, ToolchainInstaller

__all__ = [
    "EnvironmentProvisioner",
    "ToolchainSpec",
    "SourceCheckout",
    "DirectorySnapshotCheckout",
    "ToolchainInstaller",
    "RustupToolchainInstaller",
    "ProvisionError",
    "CheckoutError",
    "ToolchainInstallError",
]
