"""In-memory answer store."""

from typing import Dict, Iterable, List, Tuple

from devimage.models.spec import PreseedAnswer
from devimage.providers.base import AnswerStore, BuildTarget


class InMemoryAnswerStore(AnswerStore):
    """Answer store keeping selections in a dict.

    Substitutable for the debconf store wherever the package manager consults
    answers without a real database behind it, e.g. planning and tests.
    """

    def __init__(self):
        self.answers: Dict[Tuple[str, str], str] = {}

    async def initialize(self, config, registry) -> None:
        pass

    def write_command(self) -> List[str]:
        return []

    async def write(self, target: BuildTarget, answers: Iterable[PreseedAnswer]) -> None:
        for answer in answers:
            self.answers[(answer.package, answer.question)] = answer.value

    async def selections(self, target: BuildTarget) -> Dict[Tuple[str, str], str]:
        return dict(self.answers)
