"""Configuration loading."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from pydantic import ValidationError

from devimage.errors import SpecNotFound
from devimage.models.config import DevImageConfig
from devimage.models.spec import ProvisioningSpec
from devimage.utils.templates import merge_dicts


logger = logging.getLogger(__name__)

SPEC_FIELDS = {"base_image", "extends", "preseed", "packages", "cleanup", "tag"}


class ConfigManager:
    """Loads the main configuration and provisioning specs."""

    def __init__(self, config_dir: Path):
        """Initialize configuration manager."""
        self.config_dir = Path(config_dir)
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.config: DevImageConfig = DevImageConfig()
        self.specs: Dict[str, ProvisioningSpec] = {}
        self.errors: Dict[str, str] = {}
        self._raw_specs: Dict[str, Dict[str, Any]] = {}

    async def load(self):
        """Load all configuration files."""
        logger.info(f"Loading configuration from {self.config_dir}")

        await self._load_main_config()
        await self._load_specs()

        logger.info(f"Loaded {len(self.specs)} specs")

    async def _load_main_config(self):
        """Load main configuration file."""
        config_file = self.config_dir / "config.yaml"
        if not config_file.exists():
            logger.debug(f"No main config at {config_file}, using defaults")
            self.config = DevImageConfig()
            return

        try:
            data = await self._read_yaml(config_file)
            self.config = DevImageConfig(**(data or {}))
            logger.debug(f"Loaded main config: {config_file}")
        except ValidationError as e:
            logger.error(f"Invalid main config: {e}")
            raise

    async def _load_specs(self):
        """Load provisioning specs from the specs directory."""
        specs_dir = self.config_dir / "specs"
        self.specs.clear()
        self.errors.clear()
        self._raw_specs.clear()

        if not specs_dir.exists():
            logger.warning(f"Specs directory not found: {specs_dir}")
            return

        for yaml_file in sorted(specs_dir.glob("*.yaml")):
            try:
                data = await self._read_yaml(yaml_file)
                for name, spec in (data or {}).items():
                    if name in self._raw_specs:
                        logger.warning(f"Spec {name} redefined in {yaml_file}")
                    self._raw_specs[name] = dict(spec)
                logger.debug(f"Loaded specs from {yaml_file}")
            except Exception as e:
                logger.error(f"Error loading {yaml_file}: {e}")
                self.errors[str(yaml_file)] = str(e)

        for name in self._raw_specs:
            try:
                self.specs[name] = self._build_spec(name, self._resolve_extends(name, []))
            except (ValidationError, ValueError) as e:
                logger.error(f"Invalid spec {name}: {e}")
                self.errors[name] = str(e)

    def _resolve_extends(self, name: str, chain: List[str]) -> Dict[str, Any]:
        """Deep-merge a spec over the spec it extends."""
        if name in chain:
            raise ValueError(f"Circular extends: {' -> '.join(chain + [name])}")
        if name not in self._raw_specs:
            raise ValueError(f"Unknown spec in extends: {name}")

        data = dict(self._raw_specs[name])
        parent = data.pop("extends", None)
        if parent is None:
            return data
        return merge_dicts(self._resolve_extends(parent, chain + [name]), data)

    @staticmethod
    def _build_spec(name: str, data: Dict[str, Any]) -> ProvisioningSpec:
        data = dict(data)
        data.pop("extends", None)
        data.pop("name", None)
        return ProvisioningSpec(name=name, **data)

    async def load_spec_file(self, path: Path) -> Dict[str, ProvisioningSpec]:
        """Load specs from a standalone YAML file.

        A file holding a single spec body is named after the file; otherwise
        each top-level key names a spec. ``extends`` may refer to specs loaded
        from the configuration directory.
        """
        path = Path(path)
        data = await self._read_yaml(path)
        if not data:
            return {}

        if SPEC_FIELDS & set(data):
            data = {path.stem: data}

        specs = {}
        for name, spec in data.items():
            self._raw_specs[name] = dict(spec)
            specs[name] = self._build_spec(name, self._resolve_extends(name, []))
        return specs

    async def resolve_spec(self, reference: str) -> ProvisioningSpec:
        """Find a spec by name or by path to a YAML file."""
        path = Path(reference)
        if path.suffix in (".yaml", ".yml") and path.is_file():
            specs = await self.load_spec_file(path)
            if len(specs) != 1:
                raise SpecNotFound(f"{reference} defines {len(specs)} specs, expected one")
            return next(iter(specs.values()))

        spec = self.get_spec(reference)
        if spec is None:
            if reference in self.errors:
                raise SpecNotFound(f"Spec {reference} is invalid: {self.errors[reference]}")
            raise SpecNotFound(f"Spec {reference} not found in {self.config_dir / 'specs'}")
        return spec

    async def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse YAML file."""
        content = await asyncio.to_thread(file_path.read_text)
        return self.yaml.load(content)

    def get_spec(self, name: str) -> Optional[ProvisioningSpec]:
        """Get provisioning spec by name."""
        return self.specs.get(name)
