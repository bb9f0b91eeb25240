"""Pipeline stages: build on the host, stage and transfer, install on the target."""

from kdeploy.stages.builder import KernelBuilder, BuildResult
from kdeploy.stages.stager import KernelStager, StagePlan
from kdeploy.stages.installer import KernelInstaller, InstallResult
from kdeploy.stages.swap import DirectorySwap, SwapState

__all__ = [
    "KernelBuilder",
    "BuildResult",
    "KernelStager",
    "StagePlan",
    "KernelInstaller",
    "InstallResult",
    "DirectorySwap",
    "SwapState",
]
