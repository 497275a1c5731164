"""
Audio tag reading and writing with mutagen

Tag-sourced processors (Beatport, iTunes) build their songs from embedded tags
instead of the filename, and renamed songs get their parsed fields written
back. This module gives both a single interface across formats:

    MP3        ID3v2 frames (TIT2, TPE1, TALB, TPE2)
    AIFF       ID3v2 frames inside the IFF container
    FLAC       Vorbis comments (TITLE, ARTIST, ALBUM, ALBUMARTIST)
    M4A/MP4    iTunes atoms (©nam, ©ART, ©alb, aART)

Every reader returns the same dictionary keys: title, artist, album and
album_artist, with "" for missing values.
"""

from pathlib import Path
from typing import Dict, Optional, Union

import mutagen
from mutagen.aiff import AIFF
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError, TALB, TIT2, TPE1, TPE2
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4

from ..config.settings import get_settings
from ..songs.models import Song
from ..utils.exceptions import MetadataError, UnsupportedFormatError
from ..utils.helpers import retry_on_failure
from ..utils.logger import get_logger


TAG_KEYS = ('title', 'artist', 'album', 'album_artist')

ID3_FRAMES = {
    'title': TIT2,
    'artist': TPE1,
    'album': TALB,
    'album_artist': TPE2,
}

VORBIS_FIELDS = {
    'title': 'TITLE',
    'artist': 'ARTIST',
    'album': 'ALBUM',
    'album_artist': 'ALBUMARTIST',
}

MP4_ATOMS = {
    'title': '\xa9nam',
    'artist': '\xa9ART',
    'album': '\xa9alb',
    'album_artist': 'aART',
}

SUPPORTED_EXTENSIONS = ('.mp3', '.aiff', '.aif', '.flac', '.m4a', '.mp4')


class TagManager:
    """
    Format-aware tag reader and writer

    Reading failures are reported as None, writing failures as False, so batch
    processors can log and continue with the next file.
    """

    def __init__(self):
        """Initialize the tag manager from the conversion settings"""
        self.settings = get_settings()
        self.logger = get_logger(__name__)
        self.id3_version = self.settings.conversion.id3_version

    def read_tags(self, file_path: Union[str, Path]) -> Optional[Dict[str, str]]:
        """
        Read title, artist, album and album artist from an audio file

        Args:
            file_path: Audio file to read

        Returns:
            Dictionary with the TAG_KEYS, or None when the file is missing,
            unsupported or unreadable
        """
        path = Path(file_path)
        if not path.exists():
            return None

        extension = path.suffix.lower()
        try:
            if extension == '.mp3':
                return self._read_id3(MP3(str(path), ID3=ID3).tags)
            elif extension in ('.aiff', '.aif'):
                return self._read_id3(AIFF(str(path)).tags)
            elif extension == '.flac':
                return self._read_vorbis(FLAC(str(path)))
            elif extension in ('.m4a', '.mp4'):
                return self._read_mp4(MP4(str(path)))
            else:
                self.logger.debug(f"Unsupported tag format: {path.name}")
                return None

        except mutagen.MutagenError as e:
            self.logger.error(f"Failed to read tags from {path.name}: {e}")
            return None

    def _read_id3(self, tags) -> Dict[str, str]:
        result = {}
        for key, frame in ID3_FRAMES.items():
            value = tags.get(frame.__name__) if tags else None
            result[key] = str(value.text[0]) if value and value.text else ''
        return result

    def _read_vorbis(self, audio: FLAC) -> Dict[str, str]:
        return {key: audio.get(name, [''])[0] for key, name in VORBIS_FIELDS.items()}

    def _read_mp4(self, audio: MP4) -> Dict[str, str]:
        return {
            key: str(audio.get(atom, [''])[0]) if audio.get(atom) else ''
            for key, atom in MP4_ATOMS.items()
        }

    def write_tags(self, file_path: Union[str, Path], title: str, artist: str, album: str) -> bool:
        """
        Write title, artist and album to an audio file

        The artist is also written as album artist so DJ software groups
        collaborations under the same name.

        Args:
            file_path: Audio file to tag
            title: Title tag
            artist: Artist and album artist tag
            album: Album tag

        Returns:
            True if the tags were saved
        """
        path = Path(file_path)
        tags = {'title': title, 'artist': artist, 'album': album, 'album_artist': artist}

        try:
            self._save_tags(path, tags)
            self.logger.debug(f"Tags written: {path.name}")
            return True

        except (mutagen.MutagenError, MetadataError, UnsupportedFormatError, OSError) as e:
            self.logger.error(f"Failed to write tags to {path.name}: {e}")
            return False

    @retry_on_failure(max_attempts=2, delay=0.5, exceptions=(mutagen.MutagenError,))
    def _save_tags(self, path: Path, tags: Dict[str, str]) -> None:
        extension = path.suffix.lower()

        if extension in ('.mp3', '.aiff', '.aif'):
            try:
                id3 = ID3(str(path))
            except ID3NoHeaderError:
                id3 = ID3()
            for key, frame in ID3_FRAMES.items():
                id3.delall(frame.__name__)
                id3.add(frame(encoding=3, text=tags[key]))
            id3.save(str(path), v2_version=self.id3_version)

        elif extension == '.flac':
            audio = FLAC(str(path))
            for key, name in VORBIS_FIELDS.items():
                audio[name] = tags[key]
            audio.save()

        elif extension in ('.m4a', '.mp4'):
            audio = MP4(str(path))
            for key, atom in MP4_ATOMS.items():
                audio[atom] = [tags[key]]
            audio.save()

        else:
            raise UnsupportedFormatError(f"Unsupported tag format: {path.suffix}", details={'path': str(path)})

    def merge_tags(self, song: Song) -> Dict[str, str]:
        """
        Overlay a song's parsed fields on the tags already in its file

        Args:
            song: Song whose full_filename is read

        Returns:
            Existing tags with title, artist, album and album_artist replaced
        """
        existing = self.read_tags(song.full_filename) or {}
        song.tags = {
            'title': song.title,
            'artist': song.artist,
            'album': song.album,
            'album_artist': song.artist,
        }
        return {**existing, **song.tags}


# Global tag manager instance for singleton pattern
_tag_manager: Optional[TagManager] = None


def get_tag_manager() -> TagManager:
    """
    Get the global tag manager instance

    Returns:
        Global TagManager instance
    """
    global _tag_manager
    if not _tag_manager:
        _tag_manager = TagManager()
    return _tag_manager
