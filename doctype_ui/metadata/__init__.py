from doctype_ui.metadata.base import InMemoryMetadataSource, MetadataSource
from doctype_ui.metadata.files import FileMetadataSource
from doctype_ui.metadata.frappe_client import FrappeMetadataClient, metadata_source_from_settings

__all__ = [
    "FileMetadataSource",
    "FrappeMetadataClient",
    "InMemoryMetadataSource",
    "MetadataSource",
    "metadata_source_from_settings",
]
