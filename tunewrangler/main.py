"""
TuneWrangler command line

Commands:
- rename-music, rename-bandcamp, rename-beatport, rename-itunes: rename one
  download source into the rename folder
- convert: FLAC to AIFF inside the collection
- analyze: artist counts over the collection
- playlist: playlist display names and missing playlist tracks
- validate, config show: configuration checks

Commands that change files only report what they would do until --move is
given.
"""

import sys
import click
import functools
from pathlib import Path

from . import __version__
from .config.settings import get_settings, reload_settings
from .processors.renamer import MusicRenamer, SourceProfile
from .processors.converter import convert_flacs
from .processors.analysis import analyze_collection
from .processors.playlists import fix_playlists, find_missing_tracks
from .songs.duplicates import MusicCache
from .utils.logger import configure_from_settings, get_logger, get_current_log_file
from .utils.validation import validate_directory, validate_min_count


configure_from_settings()
logger = get_logger(__name__)

BANNER = """
  _____                __        __                    _
 |_   _|   _ _ __   ___\\ \\      / / __ __ _ _ __   __ _| | ___ _ __
   | || | | | '_ \\ / _ \\\\ \\ /\\ / / '__/ _` | '_ \\ / _` | |/ _ \\ '__|
   | || |_| | | | |  __/ \\ V  V /| | | (_| | | | | (_| | |  __/ |
   |_| \\__,_|_| |_|\\___|  \\_/\\_/ |_|  \\__,_|_| |_|\\__, |_|\\___|_|
                                                  |___/
"""


def print_banner():
    click.echo(click.style(BANNER, fg='green', bold=True))
    click.echo("Rename, deduplicate and convert your music downloads\n")


def handle_error(func):
    """
    Turn exceptions from a command into a red message and an exit code

    Ctrl+C exits with 130, anything else is logged and exits with 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\nInterrupted", fg='yellow'))
            sys.exit(130)
        except Exception as e:
            logger.error(f"{func.__name__} failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    TuneWrangler - Clean up music downloads for a DJ collection

    Renames downloaded files into the canonical "Artist - Album - Title"
    form, skips tracks already in the collection and moves the rest,
    converting lossless files to AIFF on the way.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"TuneWrangler v{__version__}")
        return

    if config:
        reload_settings(config)
        configure_from_settings()
        click.echo(f"Using config file {config}")

    if verbose:
        ctx.obj['verbose'] = True
        logger.debug("Verbose output requested")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


def _run_rename(profile: SourceProfile, move: bool, no_clear: bool, ignore_dupes: bool) -> None:
    """Run one rename profile and print its summary"""
    renamer = MusicRenamer.from_settings(
        profile,
        move=move,
        clear_backup=False if no_clear else None,
        ignore_duplicates=ignore_dupes
    )

    if not move:
        click.echo(click.style("Dry run: pass --move to back up and move files", fg='yellow'))

    result = renamer.run()

    click.echo(f"\n{result.summary}")
    if result.errors:
        click.echo(click.style(f"{len(result.errors)} files failed to transfer:", fg='red'))
        for name in result.errors:
            click.echo(f"   • {name}")


# Rename commands - one per download source
@cli.command('rename-music')
@click.option('--move', is_flag=True, help='Back up and move renamed files')
@click.option('--no-clear', is_flag=True, help='Keep the backup folder and source files')
@click.option('--ignore-dupes', is_flag=True, help='Skip duplicate detection')
@handle_error
def rename_music(move, no_clear, ignore_dupes):
    """
    Rename loose downloads (YouTube, SoundCloud and similar rips)

    Filenames are cleaned of channel tags, remix and featured credits are
    moved into the artist field and the result is checked against the
    collection before moving.
    """
    _run_rename(SourceProfile.DOWNLOADED, move, no_clear, ignore_dupes)


@cli.command('rename-bandcamp')
@click.option('--move', is_flag=True, help='Back up and move renamed files')
@click.option('--no-clear', is_flag=True, help='Keep the backup folder and source files')
@click.option('--ignore-dupes', is_flag=True, help='Skip duplicate detection')
@handle_error
def rename_bandcamp(move, no_clear, ignore_dupes):
    """Rename Bandcamp downloads ("Artist - Album - 01 Title")"""
    _run_rename(SourceProfile.BANDCAMP, move, no_clear, ignore_dupes)


@cli.command('rename-beatport')
@click.option('--move', is_flag=True, help='Back up and move renamed files')
@click.option('--no-clear', is_flag=True, help='Keep the backup folder and source files')
@click.option('--ignore-dupes', is_flag=True, help='Skip duplicate detection')
@handle_error
def rename_beatport(move, no_clear, ignore_dupes):
    """Rename Beatport purchases from their embedded tags"""
    _run_rename(SourceProfile.BEATPORT, move, no_clear, ignore_dupes)


@cli.command('rename-itunes')
@click.option('--move', is_flag=True, help='Back up and move renamed files')
@click.option('--no-clear', is_flag=True, help='Keep the backup folder and source files')
@handle_error
def rename_itunes(move, no_clear):
    """Rename iTunes purchases (nested artist/album folders) from their tags"""
    _run_rename(SourceProfile.ITUNES, move, no_clear, ignore_dupes=False)


# Collection maintenance commands
@cli.command()
@click.option('--move', is_flag=True, help='Back up and convert the FLAC files')
@click.option('--source', type=click.Path(), help='Folder to scan (defaults to the collection)')
@handle_error
def convert(move, source):
    """
    Convert FLAC files of the collection to AIFF

    The converted files keep their bit depth and get tags written from their
    filenames. Without --move the files that would be converted are listed.
    """
    settings = get_settings()
    source_dir = Path(source).expanduser() if source else settings.get_path('dj_music')

    is_valid, error = validate_directory(str(source_dir))
    if not is_valid:
        click.echo(click.style(f"Error: {error}", fg='red'), err=True)
        sys.exit(1)

    result = convert_flacs(
        source_dir,
        source_dir,
        workers=settings.conversion.flac_workers,
        backup_dir=settings.get_path('backup') if move else None,
        dry_run=not move
    )

    click.echo(f"\n{result.summary}")
    for name in result.failed:
        click.echo(click.style(f"   • {name}", fg='red'))


@cli.command()
@click.option('--directory', '-d', type=click.Path(), help='Collection folder (defaults to the DJ collection)')
@click.option('--min-count', type=int, help='Minimum number of tracks per artist')
@click.option('--csv', 'csv_path', type=click.Path(), help='Write the results to a CSV file')
@click.option('--min-rating', type=int, default=0, help='Only count tracks rated at least this much ("... - Title - 5.mp3")')
@handle_error
def analyze(directory, min_count, csv_path, min_rating):
    """
    List the artists with the most tracks in the collection

    Collaborations count for every artist involved.
    """
    settings = get_settings()
    directory = Path(directory).expanduser() if directory else settings.get_path('dj_music')
    min_count = settings.analysis.min_count if min_count is None else min_count
    csv_path = csv_path or settings.analysis.csv_output or None

    for is_valid, error in (validate_directory(str(directory)), validate_min_count(min_count)):
        if not is_valid:
            click.echo(click.style(f"Error: {error}", fg='red'), err=True)
            sys.exit(1)

    results = analyze_collection(directory, min_count=min_count, csv_path=csv_path, min_rating=min_rating)

    if not results:
        click.echo(f"No artists with at least {min_count} tracks")
        return

    click.echo(f"Artists with at least {min_count} tracks:\n")
    for entry in results:
        click.echo(f"   {entry.count:>4}  {entry.artist}")

    if csv_path:
        click.echo(f"\nResults saved to {Path(csv_path).expanduser()}")


@cli.command()
@click.option('--directory', '-d', type=click.Path(), help='Playlist folder (defaults to the playlist backups)')
@click.option('--missing', is_flag=True, help='List imported playlist tracks missing from the collection')
@handle_error
def playlist(directory, missing):
    """
    Rewrite " x " joiners in playlist display names to " & "

    With --missing, playlists in the import folder are checked against the
    collection instead and the tracks that are not in it are listed.
    """
    settings = get_settings()

    if missing:
        import_dir = Path(directory).expanduser() if directory else settings.get_path('dj_playlist_import')
        cache = MusicCache.from_directory(str(settings.get_path('dj_music')), settings.processing.ignored_files)

        for path in sorted(import_dir.glob('*.m3u*')):
            tracks = find_missing_tracks(path, cache)
            click.echo(f"{path.name}: {len(tracks)} missing")
            for song in tracks:
                click.echo(f"   • {song.artist} - {song.title}")
        return

    playlist_dir = Path(directory).expanduser() if directory else settings.get_path('dj_playlists')
    changed = fix_playlists(playlist_dir)

    click.echo(f"Updated {len(changed)} playlists")
    for name in changed:
        click.echo(f"   • {name}")


# Diagnostics
@cli.command()
@handle_error
def validate():
    """
    Validate configuration and library folders

    Checks configuration values, every configured folder and the
    logging setup, and lists the problems found.
    """
    click.echo("Checking TuneWrangler setup...\n")

    settings = get_settings()
    issues = []

    if settings.validate():
        click.echo("Configuration: OK")
    else:
        issues.append("Configuration values are invalid")

    paths_ok, path_errors = settings.validate_paths()
    if paths_ok:
        click.echo("Library folders: OK")
    else:
        click.echo(f"Library folders: {len(path_errors)} missing")
        issues.extend(path_errors)

    is_valid, error = validate_directory(str(settings.get_path('rename')))
    if not is_valid:
        issues.append(f"Rename target: {error}")

    current_log = get_current_log_file()
    if current_log:
        click.echo(f"Logging: {current_log}")
    else:
        click.echo("Logging: Console only")

    if issues:
        click.echo(f"\nFound {len(issues)} issues:")
        for issue in issues:
            click.echo(f"   • {issue}")
        sys.exit(1)

    click.echo("\nAll systems operational!")


# Configuration
@cli.group()
def config():
    """Inspect the loaded configuration"""


@config.command()
@handle_error
def show():
    """Print the resolved library folders and processing options"""
    settings = get_settings()

    click.echo("Resolved configuration:\n")

    click.echo("Paths:")
    for name in settings.paths.__dict__:
        click.echo(f"   {name}: {settings.get_path(name)}")

    click.echo("\nProcessing:")
    click.echo(f"   Skip extensions: {', '.join(settings.processing.skip_extensions)}")
    click.echo(f"   Title exclusions: {', '.join(settings.processing.title_exclusions)}")
    click.echo(f"   Remix keywords: {', '.join(settings.processing.remix_keywords)}")
    click.echo(f"   Clear backup: {settings.processing.clear_backup}")

    click.echo("\nConversion:")
    click.echo(f"   Max processes: {settings.conversion.max_concurrent_processes}")
    click.echo(f"   FLAC workers: {settings.conversion.flac_workers}")
    click.echo(f"   ID3 version: 2.{settings.conversion.id3_version}")


if __name__ == '__main__':
    cli()
