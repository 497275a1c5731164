"""
Batch processors built on the song pipeline

- `renamer`: rename, deduplicate and move downloads per source profile
- `converter`: FLAC to AIFF conversion of the collection
- `analysis`: artist frequency over the collection
- `playlists`: M3U joiner rewriting and missing-track checks
"""

from .renamer import (
    SourceProfile,
    RenameResult,
    MusicRenamer,
    process_downloaded,
    process_bandcamp,
    process_beatport,
    process_itunes,
)
from .converter import ConversionResult, convert_flacs, find_flacs
from .analysis import ArtistCount, analyze_collection, count_artists, write_csv
from .playlists import rewrite_m3u_joiners, fix_playlists, read_playlist, find_missing_tracks

__all__ = [
    'SourceProfile',
    'RenameResult',
    'MusicRenamer',
    'process_downloaded',
    'process_bandcamp',
    'process_beatport',
    'process_itunes',
    'ConversionResult',
    'convert_flacs',
    'find_flacs',
    'ArtistCount',
    'analyze_collection',
    'count_artists',
    'write_csv',
    'rewrite_m3u_joiners',
    'fix_playlists',
    'read_playlist',
    'find_missing_tracks',
]
