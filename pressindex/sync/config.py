"""
Sync Configuration Schema.

Defines the YAML configuration that drives change-driven syncs and bulk
reindex runs: which index to write to, which document types are indexable,
how documents are split into records, and which CMS sites are read.
"""

import yaml
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlparse
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..config import DEFAULT_CONTENT_LIMIT, DEFAULT_HEADING_LEVEL, DEFAULT_PAGE_SIZE, DEFAULT_PUBLISHABLE_STATUSES
from .error_tracker import ConfigurationError


HEADING_LEVELS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')


class SplitterConfig(BaseModel):
    """Configuration for the HTML content splitter."""
    content_limit: int = Field(default=DEFAULT_CONTENT_LIMIT, gt=0, description="Maximum characters per record")
    heading_level: str = Field(default=DEFAULT_HEADING_LEVEL, description="Heading tag that opens a new record")
    transliterate: bool = Field(default=False, description="Transliterate content to ASCII")

    @field_validator('heading_level')
    @classmethod
    def validate_heading_level(cls, v):
        v = v.lower()
        if v not in HEADING_LEVELS:
            raise ValueError(f"heading_level must be one of {', '.join(HEADING_LEVELS)}")
        return v


class SiteConfig(BaseModel):
    """A CMS site whose documents are indexed."""
    id: Optional[str] = Field(None, description="Site identifier, prefixed to record keys when set")
    base_url: str = Field(..., description="Site root URL (the REST API lives under /wp-json)")
    enabled: bool = Field(default=True, description="Whether this site is included in reindex runs")

    @field_validator('base_url')
    @classmethod
    def validate_url(cls, v):
        result = urlparse(v)
        if not all([result.scheme, result.netloc]):
            raise ValueError('Invalid URL format')
        return v.rstrip('/')


class SyncConfig(BaseModel):
    """Main configuration for index synchronization."""
    version: str = Field(default="1.0.0", description="Configuration version")
    name: str = Field(..., description="Configuration name")
    description: Optional[str] = Field(None, description="Configuration description")

    index_name: str = Field(..., description="Target search index")
    indexable_types: List[str] = Field(default_factory=list, description="Document types that may be indexed")
    publishable_statuses: List[str] = Field(default_factory=lambda: list(DEFAULT_PUBLISHABLE_STATUSES), description="Statuses whose documents are written to the index")

    splitter: SplitterConfig = Field(default_factory=SplitterConfig, description="Content splitter settings")

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, description="Documents per reindex page")
    max_assembly_workers: int = Field(default=1, ge=1, description="Threads used to assemble records within a page")
    sync_on_change: bool = Field(default=True, description="React to change notifications")

    sites: List[SiteConfig] = Field(..., min_length=1, description="CMS sites")

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(None, description="Log file path")

    @field_validator('index_name')
    @classmethod
    def validate_index_name(cls, v):
        if not v or not v.strip():
            raise ValueError('index_name must not be empty')
        return v.strip()

    @model_validator(mode='after')
    def validate_unique_sites(self):
        ids = [site.id for site in self.sites]
        if len(ids) != len(set(ids)):
            raise ValueError('site ids must be unique')
        return self

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SyncConfig':
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}",
                                     recovery_suggestion="Pass --config or create sync_config.yaml")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}")

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode='json')

        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)

    def get_site(self, site_id: Optional[str]) -> Optional[SiteConfig]:
        """Get site configuration by ID."""
        for site in self.sites:
            if site.id == site_id:
                return site
        return None

    def get_enabled_sites(self) -> List[SiteConfig]:
        return [site for site in self.sites if site.enabled]


def create_example_config() -> SyncConfig:
    """Create an example configuration."""
    return SyncConfig(
        name="Example Sync Configuration",
        description="Posts and pages of a single site",
        index_name="site_content",
        indexable_types=["post", "page"],
        sites=[SiteConfig(base_url="https://example.com")],
    )


if __name__ == "__main__":
    config = create_example_config()
    config.to_yaml("sync_config.yaml")
