"""Where the existsInCIS flag gets persisted."""

from .metadata_store import LoggingMetadataStore, ManagementApiMetadataStore, MetadataStore

__all__ = ["LoggingMetadataStore", "ManagementApiMetadataStore", "MetadataStore"]
