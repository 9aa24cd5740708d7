"""
Configuration data models for dataview.

These models define the structure of .dataview.json and
~/.config/dataview/config.json files, with validation and type safety
via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RemoteConfig(BaseModel):
    """
    Remote endpoint settings used by the HTTP source.

    Retries apply to transient failures only (5xx, timeouts, connection
    errors).
    """

    base_url: str = Field(
        default="http://localhost:8000",
        description="Root URL of the REST API serving the collections",
    )
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retry attempts for transient failures",
    )
    base_delay: float = Field(
        default=1.0,
        gt=0.0,
        description="Initial backoff delay in seconds (doubles per retry)",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Static headers sent with every request",
    )
    auth_header: str | None = Field(
        default=None,
        description="Header carrying the API key (e.g. 'Authorization')",
    )
    auth_env_var: str | None = Field(
        default=None,
        description="Environment variable holding the API key",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip trailing slashes."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got '{v}'")
        return v.rstrip("/")


class DataSetConfig(BaseModel):
    """
    Data set behaviour.

    With ``buffer`` on, mutations stay local until saved; with it off,
    every add/update/remove is written to the remote source immediately.
    """

    buffer: bool = Field(
        default=True,
        description="Buffer mutations locally until saved",
    )
    key_field: str = Field(
        default="id",
        min_length=1,
        description="Field holding the entity key",
    )


class QueryConfig(BaseModel):
    """Defaults for queries created without explicit parameters."""

    page_size: int = Field(
        default=0,
        description="Default page size; zero or negative disables paging",
    )


class DataViewConfig(BaseModel):
    """
    Root configuration model.

    Example:
        >>> config = DataViewConfig()
        >>> config.dataset.buffer
        True
        >>> config.remote.max_retries
        3
    """

    model_config = ConfigDict(extra="ignore")

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    dataset: DataSetConfig = Field(default_factory=DataSetConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
