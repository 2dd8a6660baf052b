"""Provider interfaces for the provisioning collaborators."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from devimage.models.spec import PreseedAnswer
from devimage.utils.process import CommandResult

if TYPE_CHECKING:
    from devimage.providers.registry import ProviderRegistry


class ProviderStatus(Enum):
    """Provider resource status."""
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"
    ERROR = "error"


class BuildTarget(ABC):
    """Filesystem under construction, able to run commands inside itself."""

    reference: str = ""

    @abstractmethod
    async def exec(
        self,
        argv: List[str],
        input_text: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Run argv inside the target, raising CalledProcessError on failure."""
        pass


class BaseProvider(ABC):
    """Base provider interface that all providers must implement."""

    @abstractmethod
    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize the provider with configuration."""
        pass


class ImageProvider(BaseProvider):
    """Base-image resolver and image-build engine."""

    @abstractmethod
    async def status(self, reference: str) -> ProviderStatus:
        """Check whether an image reference is available locally."""
        pass

    @abstractmethod
    async def resolve(self, reference: str) -> BuildTarget:
        """Fetch a base image and open a working target on top of it."""
        pass

    @abstractmethod
    async def commit(self, target: BuildTarget, tag: Optional[str] = None) -> str:
        """Commit the target's filesystem and return the image id."""
        pass

    @abstractmethod
    async def release(self, target: BuildTarget) -> None:
        """Dispose of the working target."""
        pass


class AnswerStore(BaseProvider):
    """Configuration database consulted by interactive package installers."""

    @abstractmethod
    def write_command(self) -> List[str]:
        """Command recording answers inside the target, empty when none runs."""
        pass

    def describe(self, answers: Iterable[PreseedAnswer]) -> str:
        """Human-readable form of answers as the store records them."""
        return "\n".join(answer.selection_line() for answer in answers)

    @abstractmethod
    async def write(self, target: BuildTarget, answers: Iterable[PreseedAnswer]) -> None:
        """Record answers so later installs do not prompt."""
        pass

    @abstractmethod
    async def selections(self, target: BuildTarget) -> Dict[Tuple[str, str], str]:
        """Answers known to the store keyed by (package, question)."""
        pass


class PackageManager(BaseProvider):
    """Package manager operating inside a build target."""

    @abstractmethod
    def update_command(self) -> List[str]:
        """Command refreshing the package index."""
        pass

    @abstractmethod
    def install_command(self, packages: List[str]) -> List[str]:
        """Command installing the packages in one invocation."""
        pass

    @abstractmethod
    def cleanup_command(self, directive: str) -> List[str]:
        """Command implementing a cleanup directive."""
        pass

    @abstractmethod
    async def update_index(self, target: BuildTarget) -> None:
        """Refresh the package index."""
        pass

    @abstractmethod
    async def install(self, target: BuildTarget, packages: List[str], answers: AnswerStore) -> None:
        """Install packages, consulting the answer store for pre-seeded answers."""
        pass

    @abstractmethod
    async def run_cleanup(self, target: BuildTarget, directive: str) -> None:
        """Run one cleanup directive."""
        pass
