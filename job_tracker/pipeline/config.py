"""Configuration classes for the scan pipeline."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from ..models import DEFAULT_CLASSIFICATION_THRESHOLD, DEFAULT_JOB_LABELS


@dataclass
class OAuthConfig:
    """OAuth client settings required before any mailbox access."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None

    def missing(self) -> List[str]:
        """Return the environment names of unset settings."""
        names = {
            "GOOGLE_CLIENT_ID": self.client_id,
            "GOOGLE_CLIENT_SECRET": self.client_secret,
            "GOOGLE_REDIRECT_URI": self.redirect_uri,
        }
        return [name for name, value in names.items() if not value]


@dataclass
class FetchConfig:
    """Configuration for listing and detail retrieval."""

    query_prefix: str = "category:primary"
    page_size: int = 100
    max_pages: int = 500
    detail_batch_size: int = 10
    batch_delay: float = 0.5


@dataclass
class NormalizeConfig:
    """Configuration for body normalization."""

    mime_types: List[str] = field(default_factory=lambda: ["text/html"])


@dataclass
class ClassifyConfig:
    """Defaults for classification when a request leaves them out."""

    threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD
    job_labels: List[str] = field(default_factory=lambda: list(DEFAULT_JOB_LABELS))
    rules_file: Optional[str] = None


@dataclass
class StoreConfig:
    """Configuration for the application store."""

    database_path: Optional[str] = None


@dataclass
class MonitoringConfig:
    """Configuration for logging."""

    log_level: str = "INFO"


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""

    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    normalize: NormalizeConfig = field(default_factory=NormalizeConfig)
    classify: ClassifyConfig = field(default_factory=ClassifyConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "PipelineConfig":
        """Load configuration from YAML file.

        OAuth settings missing from the file are taken from the environment.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        pipeline_data = data.get("pipeline", {}) or {}

        oauth_config = OAuthConfig(**pipeline_data.get("oauth", {}))
        env_oauth = OAuthConfig(
            client_id=os.getenv("GOOGLE_CLIENT_ID"),
            client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
            redirect_uri=os.getenv("GOOGLE_REDIRECT_URI"),
        )
        oauth_config.client_id = oauth_config.client_id or env_oauth.client_id
        oauth_config.client_secret = oauth_config.client_secret or env_oauth.client_secret
        oauth_config.redirect_uri = oauth_config.redirect_uri or env_oauth.redirect_uri

        return cls(
            oauth=oauth_config,
            fetch=FetchConfig(**pipeline_data.get("fetch", {})),
            normalize=NormalizeConfig(**pipeline_data.get("normalize", {})),
            classify=ClassifyConfig(**pipeline_data.get("classify", {})),
            store=StoreConfig(**pipeline_data.get("store", {})),
            monitoring=MonitoringConfig(**pipeline_data.get("monitoring", {})),
        )

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create configuration from environment variables and defaults."""
        config = cls()

        config.oauth.client_id = os.getenv("GOOGLE_CLIENT_ID")
        config.oauth.client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
        config.oauth.redirect_uri = os.getenv("GOOGLE_REDIRECT_URI")

        if os.getenv("DETAIL_BATCH_SIZE"):
            config.fetch.detail_batch_size = int(os.getenv("DETAIL_BATCH_SIZE"))

        if os.getenv("BATCH_DELAY"):
            config.fetch.batch_delay = float(os.getenv("BATCH_DELAY"))

        if os.getenv("CLASSIFICATION_RULES_FILE"):
            config.classify.rules_file = os.getenv("CLASSIFICATION_RULES_FILE")

        if os.getenv("DATABASE_FILE"):
            config.store.database_path = os.getenv("DATABASE_FILE")

        if os.getenv("LOG_LEVEL"):
            config.monitoring.log_level = os.getenv("LOG_LEVEL")

        return config

    def to_yaml(self, path: str):
        """Save configuration to YAML file. OAuth secrets are never written."""
        data = {
            "pipeline": {
                "fetch": {
                    "query_prefix": self.fetch.query_prefix,
                    "page_size": self.fetch.page_size,
                    "max_pages": self.fetch.max_pages,
                    "detail_batch_size": self.fetch.detail_batch_size,
                    "batch_delay": self.fetch.batch_delay,
                },
                "normalize": {
                    "mime_types": self.normalize.mime_types,
                },
                "classify": {
                    "threshold": self.classify.threshold,
                    "job_labels": self.classify.job_labels,
                    "rules_file": self.classify.rules_file,
                },
                "store": {
                    "database_path": self.store.database_path,
                },
                "monitoring": {
                    "log_level": self.monitoring.log_level,
                },
            }
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
