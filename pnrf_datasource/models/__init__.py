from .catalog import (
    CatalogRegistration,
    CatalogResource,
    ChannelKey,
    Representation,
    ResourceCatalog,
    format_sample_period,
    parse_sample_period,
)
from .requests import ReadRequest
from .settings import SourceSettings, load_settings

__all__ = [
    "CatalogRegistration",
    "CatalogResource",
    "ChannelKey",
    "Representation",
    "ResourceCatalog",
    "format_sample_period",
    "parse_sample_period",
    "ReadRequest",
    "SourceSettings",
    "load_settings",
]
