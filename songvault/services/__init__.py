"""Clients for the external analysis service and payload downloads."""

from .analysis import SongMetadata, SonotellerClient, parse_analysis
from .payload import PayloadFetcher, filename_from_url

__all__ = [
    'SongMetadata',
    'SonotellerClient',
    'parse_analysis',
    'PayloadFetcher',
    'filename_from_url'
]
