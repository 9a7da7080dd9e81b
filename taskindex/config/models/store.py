"""Task store configuration models."""

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """Index, search and pagination behaviour of the task store."""

    page_size: int = Field(
        default=50,
        gt=0,
        le=500,
        description="Records requested per remote page",
    )
    search_debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Delay after the last keystroke before a search runs",
    )
    min_token_length: int = Field(
        default=3,
        ge=1,
        description="Tokens shorter than this are not indexed or searched",
    )
    reset_scope_on_section_change: bool = Field(
        default=True,
        description="Reset the pagination scope of a newly selected section",
    )
    placeholder_prefix: str = Field(
        default="task",
        min_length=1,
        description="Prefix of client-generated placeholder ids",
    )


class EventsConfig(BaseModel):
    """Event bus configuration."""

    history_size: int = Field(
        default=100,
        ge=0,
        description="Number of emitted events kept for inspection",
    )
