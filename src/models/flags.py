"""Feature flag registry models."""

from pydantic import BaseModel, ConfigDict, Field


class Flag(BaseModel):
    """One entry of a feature flag registry file."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    key: str
    state: str = "enabled"
    description: str | None = None
    last_modified: str | None = Field(None, alias="lastModified")
    created_at: str | None = Field(None, alias="createdAt")
    tags: list[str] | None = None
    owner: str | None = None
