"""Build result."""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from devimage.errors import CleanupWarning, ProvisioningError


@dataclass
class ProvisionResult:
    """Outcome of one provisioning run."""
    spec_name: str
    status: Literal["pending", "success", "failed"] = "pending"
    image_id: Optional[str] = None
    phases: List[str] = field(default_factory=list)
    warnings: List[CleanupWarning] = field(default_factory=list)
    error: Optional[ProvisioningError] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == "success"

    @property
    def failed_phase(self) -> Optional[str]:
        return self.error.phase if self.error else None

    def raise_for_status(self) -> None:
        """Re-raise the fatal error of a failed run."""
        if self.error is not None:
            raise self.error


@dataclass
class PlanStep:
    """One command a build would run."""
    phase: str
    command: List[str] = field(default_factory=list)
    detail: Optional[str] = None
