"""
TuneWrangler: music library curation from messy download filenames
A command-line toolkit that turns inconsistent downloaded filenames into a clean,
deduplicated "Artist - Album - Title" collection.

## Project Overview

Tracks arrive from Bandcamp, Beatport, iTunes, SoundCloud and YouTube with every
naming convention imaginable: "Album - Artist - Title", "Artist - Topic",
"(Someone Remix)", "(feat. Someone)", promo tags like "[NCS Release]" and
stylized Unicode. TuneWrangler parses those names into structured fields, runs
them through an ordered chain of normalization rules, checks the result against
the existing collection and then renames, retags and converts the files.

## Core Architecture

**Song Pipeline (`tunewrangler/songs/`)**
- `models`: the Song entity, the filename tokenizer and the per-source extraction table
- `unicode`: ASCII folding and the legacy glyph/phrase tables
- `rules`: the ordered normalization rule chain
- `duplicates`: case-insensitive duplicate detection and the session cache
- `naming`: final filename composition and joiner helpers

The pipeline is pure: no I/O, no configuration lookups, no threads.

**Audio Collaborators (`tunewrangler/audio/`)**
- Tag reading and writing through mutagen
- AIFF conversion and MP3 retagging through ffmpeg, bounded by a semaphore

**Processors (`tunewrangler/processors/`)**
- Batch renaming for downloaded, Bandcamp, Beatport and iTunes folders
- FLAC to AIFF conversion, collection artist analysis, M3U joiner rewriting

**Configuration and Utilities (`tunewrangler/config/`, `tunewrangler/utils/`)**
- YAML + .env settings with TUNEWRANGLER_*_PATH overrides
- Colored console logging with rotating file logs and tqdm progress bars
- Exception hierarchy shared by every layer

### Quick Start
```bash
pip install -e .

# Preview how downloaded files would be renamed (nothing is touched)
tunewrangler rename-music

# Rename, retag and move them into the rename folder
tunewrangler rename-music --move
```
"""

__version__ = "1.0.0"

__author__ = "TuneWrangler Team"

__description__ = "Parse, normalize, deduplicate and rename downloaded music files"

__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
