from pydantic import BaseModel, Field, field_validator
from typing import Literal


class ConversionConfig(BaseModel):
    max_depth: int = Field(default=100, ge=1, le=1000)
    allowed_schemes: list[str] = ["http", "https", "mailto", "tel"]
    source_hosts: list[str] = ["notion.so", "www.notion.so"]
    empty_placeholder: str = "&nbsp;"


class MediaRule(BaseModel):
    pattern: str
    action: Literal["must_copy", "link_through"]


class MediaConfig(BaseModel):
    default_action: Literal["must_copy", "link_through"] = "link_through"
    expiring_patterns: list[str] = [
        "s3.us-west-2.amazonaws.com/secure.notion-static.com",
        "s3-us-west-2.amazonaws.com/secure.notion-static.com",
        "prod-files-secure.s3.us-west-2.amazonaws.com",
        "file.notion.so",
    ]
    policies: list[MediaRule] = [
        MediaRule(pattern="images.unsplash.com", action="link_through"),
        MediaRule(pattern="giphy.com", action="link_through"),
    ]
    assets_dir: str = ".blocksync/assets"
    download_timeout: int = 30


class RegistryConfig(BaseModel):
    db_path: str = ".blocksync/registry.db"


class OutputConfig(BaseModel):
    base_dir: str = ".blocksync/site"
    base_url: str = "/"
    create_index: bool = True


class HierarchyConfig(BaseModel):
    max_depth: int = 5

    @field_validator("max_depth", mode="before")
    @classmethod
    def _clamp_depth(cls, v: object) -> int:
        return max(1, min(10, int(v)))


class SyncConfig(BaseModel):
    max_workers: int = Field(default=4, ge=1)


class BlocksyncConfig(BaseModel):
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    hierarchy: HierarchyConfig = Field(default_factory=HierarchyConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
