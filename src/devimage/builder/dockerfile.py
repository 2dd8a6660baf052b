"""Render provisioning specs as Dockerfiles."""

import shlex
from typing import List, Optional

from devimage.models.config import DevImageConfig
from devimage.models.spec import ProvisioningSpec
from devimage.providers.apt import AptProvider
from devimage.utils.templates import render_template


DOCKERFILE_TEMPLATE = """\
# Generated by devimage from spec {{ name }}
FROM {{ base_image }}
ARG DEBIAN_FRONTEND=noninteractive
{% if preseed %}

RUN {{ preseed | join(separator) }}
{% endif %}

RUN {{ commands | join(separator) }}
"""

SEPARATOR = " && \\\n    "


def _shell_command(argv: List[str], shell: str) -> str:
    """Format argv for a RUN line, unwrapping ``sh -c`` scripts."""
    if len(argv) == 3 and argv[0] == shell and argv[1] == "-c":
        return argv[2]
    return shlex.join(argv)


def render_dockerfile(spec: ProvisioningSpec, config: Optional[DevImageConfig] = None) -> str:
    """Render spec as a Dockerfile running the same commands as a build."""
    config = config or DevImageConfig()
    apt = AptProvider()
    apt.shell = config.engine.shell

    preseed = [
        f"echo {shlex.quote(answer.selection_line())} | debconf-set-selections"
        for answer in spec.preseed
    ]

    commands = [apt.update_command()]
    if spec.packages:
        commands.append(apt.install_command(spec.packages))
    commands.extend(apt.cleanup_command(directive) for directive in spec.cleanup)

    return render_template(
        DOCKERFILE_TEMPLATE,
        name=spec.name,
        base_image=spec.base_image,
        preseed=preseed,
        commands=[_shell_command(argv, config.engine.shell) for argv in commands],
        separator=SEPARATOR,
    )
