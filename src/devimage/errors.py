"""Provisioning error taxonomy.

Every error carries the phase it was raised in so a failed build can report
which step broke. ``CleanupWarning`` is the only non-fatal member: it is
recorded on the build result instead of being raised.
"""

from typing import List, Optional


class ProvisioningError(Exception):
    """Base class for provisioning failures."""

    phase = "provision"
    fatal = True

    def __init__(self, message: str, cause: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"[{self.phase}] {self.message}: {self.cause}"
        return f"[{self.phase}] {self.message}"


class BaseImageUnavailable(ProvisioningError):
    """Base image reference could not be resolved or fetched."""

    phase = "resolve"

    def __init__(self, reference: str, cause: Optional[str] = None):
        super().__init__(f"Base image {reference!r} is unavailable", cause)
        self.reference = reference


class ConfigWriteFailed(ProvisioningError):
    """Pre-seed answers could not be written to the answer store."""

    phase = "preseed"


class PackageInstallFailed(ProvisioningError):
    """Index refresh or package installation failed."""

    phase = "install"

    def __init__(self, packages: List[str], cause: Optional[str] = None, refresh: bool = False):
        if refresh:
            message = "Package index refresh failed"
        else:
            message = f"Failed to install {', '.join(packages) or 'packages'}"
        super().__init__(message, cause)
        self.packages = list(packages)
        self.refresh = refresh

    @property
    def package(self) -> Optional[str]:
        """First package blamed for the failure."""
        return self.packages[0] if self.packages else None


class ImageCommitFailed(ProvisioningError):
    """The image-build engine could not commit the working container."""

    phase = "commit"


class CleanupWarning(ProvisioningError):
    """A cleanup step failed; the image is still usable."""

    phase = "cleanup"
    fatal = False

    def __init__(self, step: str, cause: Optional[str] = None):
        super().__init__(f"Cleanup step {step!r} failed", cause)
        self.step = step


class SpecNotFound(Exception):
    """No provisioning spec with the requested name or path."""
