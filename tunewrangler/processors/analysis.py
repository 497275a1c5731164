"""
Collection artist analysis

Counts how many collection tracks each artist appears on. Collaborations
("A x B") count for every artist involved; names are compared lower-cased.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..songs.models import SourceVariant, new_song
from ..utils.helpers import DEFAULT_IGNORED_FILES, list_processable_files
from ..utils.logger import get_logger, log_performance


logger = get_logger(__name__)

MUSIC_EXTENSIONS = ('.mp3', '.wav', '.flac', '.m4a', '.aiff', '.aac', '.ogg')


@dataclass
class ArtistCount:
    """Number of collection tracks an artist appears on"""
    artist: str
    count: int


def count_artists(songs: Iterable) -> Dict[str, int]:
    """
    Count artist appearances over parsed songs

    Args:
        songs: Songs with their artist field parsed

    Returns:
        Dictionary of lower-cased artist name to track count
    """
    counts: Dict[str, int] = {}
    for song in songs:
        for artist in song.split_artist():
            name = artist.lower().strip()
            if name:
                counts[name] = counts.get(name, 0) + 1
    return counts


def write_csv(path: Union[str, Path], results: List[ArtistCount]) -> Path:
    """Write analysis results as an "Artist,Count" CSV file"""
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f, quoting=csv.QUOTE_NONNUMERIC)
        writer.writerow(['Artist', 'Count'])
        for entry in results:
            writer.writerow([entry.artist, entry.count])

    return path


@log_performance
def analyze_collection(
    directory: Union[str, Path],
    min_count: int = 3,
    csv_path: Optional[Union[str, Path]] = None,
    ignored_files: Iterable[str] = DEFAULT_IGNORED_FILES,
    min_rating: int = 0
) -> List[ArtistCount]:
    """
    Rank the artists of a collection folder by track count

    Args:
        directory: Collection folder (not recursive)
        min_count: Minimum number of tracks for an artist to be listed
        csv_path: Optional CSV output file
        ignored_files: Exact file names to skip
        min_rating: Only count rating-suffixed tracks ("Artist - Album - Title - 5.mp3")
            rated at least this much; 0 counts every track

    Returns:
        Artists with at least min_count tracks, most tracks first

    Raises:
        FilePathError: If the folder does not exist
    """
    directory = str(Path(directory).expanduser())
    logger.info(f"Starting collection analysis: {directory}")

    variant = SourceVariant.FORMATTED if min_rating > 0 else SourceVariant.LOCALLY_NAMED
    songs = [
        new_song(name, directory, variant)
        for name in list_processable_files(directory, ignored_files)
        if Path(name).suffix.lower() in MUSIC_EXTENSIONS
    ]
    logger.info(f"Found {len(songs)} music files")

    if min_rating > 0:
        songs = [song for song in songs if song.rating >= min_rating]
        logger.info(f"{len(songs)} tracks rated {min_rating} or higher")

    counts = count_artists(songs)
    results = sorted(
        (ArtistCount(artist, count) for artist, count in counts.items() if count >= min_count),
        key=lambda entry: entry.count,
        reverse=True
    )

    if csv_path:
        written = write_csv(csv_path, results)
        logger.info(f"Results saved to {written}")

    return results
