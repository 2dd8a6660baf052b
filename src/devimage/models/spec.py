"""Provisioning specification models."""

import re
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field, validator


PACKAGE_NAME = re.compile(r"^[a-z0-9][a-z0-9+.\-]+(:[a-z0-9\-]+)?(=[A-Za-z0-9.+~:\-]+)?$")

CleanupDirective = Literal["clean-cache", "remove-index-lists", "autoremove"]

DEFAULT_CLEANUP: List[str] = ["clean-cache", "remove-index-lists"]


def base_package_name(name: str) -> str:
    """Strip architecture and version qualifiers from a package name."""
    return re.split(r"[:=]", name, maxsplit=1)[0]


class PreseedAnswer(BaseModel):
    """A debconf answer supplied ahead of installation."""
    package: str = Field(..., description="Package owning the question")
    question: str = Field(..., description="Question key, without the package prefix")
    type: Literal[
        "boolean", "string", "select", "multiselect",
        "note", "text", "password", "title",
    ] = Field(default="string")
    value: Union[bool, int, str] = Field(...)

    class Config:
        """Pydantic config."""
        extra = "forbid"
        frozen = True

    @validator("question")
    def strip_package_prefix(cls, v, values):
        """Accept both ``autosave_v4`` and ``iptables-persistent/autosave_v4``."""
        package = values.get("package")
        if package and v.startswith(f"{package}/"):
            v = v[len(package) + 1:]
        if not v or " " in v:
            raise ValueError(f"Invalid question key: {v!r}")
        return v

    @validator("value")
    def normalise_value(cls, v):
        """Render values the way debconf expects them."""
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    @property
    def key(self) -> str:
        """Fully qualified debconf question name."""
        return f"{self.package}/{self.question}"

    def selection_line(self) -> str:
        """Line accepted by ``debconf-set-selections``."""
        return f"{self.package} {self.key} {self.type} {self.value}"


class ProvisioningSpec(BaseModel):
    """Declarative description of a development image."""
    name: str = Field(..., description="Spec name")
    base_image: str = Field(..., description="Base image reference")
    preseed: List[PreseedAnswer] = Field(default_factory=list)
    packages: List[str] = Field(default_factory=list)
    cleanup: List[CleanupDirective] = Field(default_factory=lambda: list(DEFAULT_CLEANUP))
    tag: Optional[str] = Field(None, description="Reference to commit the final image under")

    class Config:
        """Pydantic config."""
        extra = "forbid"
        frozen = True

    @validator("base_image")
    def validate_base_image(cls, v):
        """Base image reference must be non-empty."""
        v = v.strip()
        if not v or " " in v:
            raise ValueError("base_image must be a non-empty image reference")
        return v

    @validator("packages")
    def validate_packages(cls, v):
        """Validate package names and drop duplicates, keeping order."""
        seen = []
        for name in v:
            name = name.strip()
            if not PACKAGE_NAME.match(name):
                raise ValueError(f"Invalid package name: {name!r}")
            if name not in seen:
                seen.append(name)
        return seen

    def orphan_preseeds(self) -> List[PreseedAnswer]:
        """Pre-seed answers for packages this spec does not install."""
        installed = {base_package_name(p) for p in self.packages}
        return [answer for answer in self.preseed if answer.package not in installed]
