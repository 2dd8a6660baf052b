"""Debconf-backed answer store."""

import logging
import subprocess
from typing import Dict, Iterable, List, Tuple, TYPE_CHECKING

from devimage.errors import ConfigWriteFailed
from devimage.models.spec import PreseedAnswer
from devimage.providers.base import AnswerStore, BuildTarget
from devimage.utils.process import describe_timeout

if TYPE_CHECKING:
    from devimage.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

DEBCONF_DATABASE = "/var/cache/debconf/config.dat"


def parse_config_dat(content: str) -> Dict[Tuple[str, str], str]:
    """Parse debconf's config.dat into {(package, question): value}."""
    answers = {}
    for stanza in content.split("\n\n"):
        fields = {}
        for line in stanza.splitlines():
            key, sep, value = line.partition(":")
            if sep and not line.startswith(" "):
                fields[key.strip()] = value.strip()

        name = fields.get("Name")
        if not name or "/" not in name or "Value" not in fields:
            continue
        package, _, question = name.partition("/")
        answers[(package, question)] = fields["Value"]
    return answers


class DebconfAnswerStore(AnswerStore):
    """Answer store writing to the target's debconf database."""

    def __init__(self):
        """Initialize debconf store."""
        self.database = DEBCONF_DATABASE

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration."""
        pass

    def write_command(self) -> List[str]:
        return ["debconf-set-selections"]

    def describe(self, answers: Iterable[PreseedAnswer]) -> str:
        """Selection lines as debconf-set-selections reads them."""
        return "\n".join(answer.selection_line() for answer in answers)

    async def write(self, target: BuildTarget, answers: Iterable[PreseedAnswer]) -> None:
        """Feed answers to debconf-set-selections."""
        answers = list(answers)
        if not answers:
            return

        try:
            await target.exec(self.write_command(), input_text=self.describe(answers) + "\n")
        except subprocess.CalledProcessError as e:
            raise ConfigWriteFailed(
                f"Failed to write {len(answers)} pre-seed answers",
                (e.stderr or "").strip() or None,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ConfigWriteFailed(
                f"Failed to write {len(answers)} pre-seed answers",
                describe_timeout(e),
            ) from e
        except OSError as e:
            raise ConfigWriteFailed("Answer database is not writable", str(e)) from e

        for answer in answers:
            logger.debug(f"Pre-seeded {answer.key}={answer.value}")

    async def selections(self, target: BuildTarget) -> Dict[Tuple[str, str], str]:
        """Read back the answers stored in the debconf database."""
        try:
            result = await target.exec(["cat", self.database])
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Could not read {self.database}: {e}")
            return {}
        return parse_config_dat(result.stdout)
