"""Configuration models."""

from typing import Dict, Optional
from pydantic import BaseModel, Field, validator


class ProvisionerConfig(BaseModel):
    """Provisioner configuration."""
    log_level: str = Field(default="INFO")
    config_dir: str = Field(default="./configs")
    command_timeout: int = Field(default=600, ge=30)

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class ProxyConfig(BaseModel):
    """Proxy configuration."""
    http_proxy: Optional[str] = None
    https_proxy: Optional[str] = None
    no_proxy: str = Field(default="localhost,127.0.0.1")

    def environment(self) -> Dict[str, str]:
        """Proxy settings as environment variables."""
        env = {}
        if self.http_proxy:
            env["http_proxy"] = self.http_proxy
        if self.https_proxy:
            env["https_proxy"] = self.https_proxy
        if env:
            env["no_proxy"] = self.no_proxy
        return env


class EngineConfig(BaseModel):
    """Image-build engine configuration."""
    binary: str = Field(default="docker")
    keep_container: bool = Field(default=False)
    shell: str = Field(default="/bin/sh")


class DevImageConfig(BaseModel):
    """Main configuration model."""
    provisioner: ProvisionerConfig = Field(default_factory=ProvisionerConfig)
    proxy: Optional[ProxyConfig] = None
    engine: EngineConfig = Field(default_factory=EngineConfig)

    class Config:
        """Pydantic config."""
        extra = "ignore"
