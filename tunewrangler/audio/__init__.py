"""
Audio package: tags and ffmpeg transfers

- `TagManager` / `get_tag_manager()`: read and write title, artist, album and
  album artist tags across MP3, AIFF, FLAC and M4A with mutagen
- `AudioProcessor` / `get_audio_processor()`: retag MP3s with a stream copy,
  convert everything else to AIFF at its source bit depth, bounded by a shared
  process semaphore

Both are thin collaborators of the song pipeline: they only consume Song
fields (full_filename, final_filename, title, artist, album) and never parse
filenames themselves.
"""

from .metadata import TagManager, get_tag_manager, SUPPORTED_EXTENSIONS
from .processor import AudioProcessor, get_audio_processor, get_process_semaphore

__all__ = [
    'TagManager',
    'get_tag_manager',
    'SUPPORTED_EXTENSIONS',
    'AudioProcessor',
    'get_audio_processor',
    'get_process_semaphore',
]
