"""Configuration models for the TestLink reporter."""

from collections.abc import Mapping
from typing import TypeVar
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

DEFAULT_RPC_PATH = "/lib/api/xmlrpc/v1/xmlrpc.php"
DEFAULT_DRAIN_TIMEOUT = 300.0

ConfigT = TypeVar("ConfigT", bound="ConnectionConfig")


class ConfigurationError(ValueError):
    """Raised when reporter options are missing or contradictory."""


class ConnectionConfig(BaseModel):
    """TestLink server endpoint and credentials."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str = Field(..., alias="URL", description="TestLink server URL")
    api_key: str = Field(..., alias="apiKey", description="TestLink API key")
    rpc_path: str = Field(
        default=DEFAULT_RPC_PATH,
        description="XML-RPC path used when the URL does not carry one",
    )

    @model_validator(mode="after")
    def _check_connection(self) -> "ConnectionConfig":
        if not self.url:
            raise ValueError("URL must not be empty")
        if not self.api_key:
            raise ValueError("apiKey must not be empty")
        if urlsplit(self.url).scheme not in {"http", "https"}:
            raise ValueError(f"URL must use http or https: {self.url}")
        return self

    @classmethod
    def from_options(cls: type[ConfigT], options: Mapping[str, object]) -> ConfigT:
        """Validate reporter options, dropping unset values.

        Raises:
            ConfigurationError: If a required option is missing or invalid

        """
        values = {key: value for key, value in options.items() if value is not None}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid TestLink reporter options: {e}") from e

    @property
    def secure(self) -> bool:
        return urlsplit(self.url).scheme == "https"

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname or ""

    @property
    def port(self) -> int:
        return urlsplit(self.url).port or (443 if self.secure else 80)

    @property
    def endpoint(self) -> str:
        """Full XML-RPC endpoint derived from the URL."""
        parts = urlsplit(self.url)
        path = parts.path.rstrip("/") or self.rpc_path
        return f"{parts.scheme}://{parts.netloc}{path}"


class ReporterConfig(ConnectionConfig):
    """Connection and provisioning parameters for a reporting run."""

    testplanid: int | None = Field(
        default=None, description="Existing test plan to report into"
    )
    buildid: int | None = Field(
        default=None, description="Existing build of the test plan"
    )
    prefix: str | None = Field(
        default=None, description="Project prefix used to provision a new plan"
    )
    drain_timeout: float = Field(
        default=DEFAULT_DRAIN_TIMEOUT,
        alias="drainTimeout",
        gt=0,
        description="Seconds to wait for queued reports when the run ends",
    )

    @model_validator(mode="after")
    def _check_plan_or_prefix(self) -> "ReporterConfig":
        has_plan = self.testplanid is not None and self.buildid is not None
        if not has_plan and not self.prefix:
            raise ValueError(
                "Either both testplanid and buildid or a prefix must be provided"
            )
        return self

    @property
    def auto_provision(self) -> bool:
        """Whether a plan and build have to be created on run start."""
        return self.testplanid is None or self.buildid is None
