"""
TuneWrangler settings

Settings come from three places, later ones winning:

1. dataclass defaults below
2. the first YAML file found (see CONFIG_SEARCH_PATHS)
3. TUNEWRANGLER_* environment variables, also read from a .env file

Sections:
- paths: library folders (downloads, collection, rename target, backup)
- processing: skipped entries and bracket exclusions for the filename cleanup
- conversion: ffmpeg concurrency, ID3 version and timeouts
- analysis: artist count threshold and CSV output
- logging: level, log file and console output

Only processors and the CLI read settings. The song pipeline receives plain
values, so it can be tested without a config file.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import asdict, dataclass, field, fields
from dotenv import load_dotenv

from ..utils.exceptions import ConfigurationError

# .env values become regular environment variables
load_dotenv()


TRANSFER_ROOT = "~/Music/TransferMusic"
DJ_ROOT = "~/Music/DJ"
CONFIG_FILE_NAME = "config.yaml"


@dataclass
class PathsConfig:
    """
    Library folder locations

    Each attribute is a folder name understood by Settings.get_path(). Trailing
    separators are not required; processors join paths with pathlib.
    """
    music: str = "~/Music/Library"
    downloads: str = "~/Downloads"
    transfer: str = TRANSFER_ROOT
    downloaded: str = f"{TRANSFER_ROOT}/Downloaded"
    bandcamp: str = f"{TRANSFER_ROOT}/Downloaded/bandcamp"
    beatport: str = f"{TRANSFER_ROOT}/Downloaded/beatport"
    itunes: str = f"{TRANSFER_ROOT}/Downloaded/itunes/Music"
    youtube: str = f"{TRANSFER_ROOT}/Youtube"
    rename: str = f"{TRANSFER_ROOT}/Renamed"
    backup: str = f"{TRANSFER_ROOT}/bak"
    dj_music: str = f"{DJ_ROOT}/Collection"
    dj_playlists: str = f"{DJ_ROOT}/Playlist Backups"
    dj_playlist_import: str = f"{DJ_ROOT}/Playlist Backups/Import"


@dataclass
class ProcessingConfig:
    """
    Filename processing configuration

    Controls which directory entries are processed and how the bracket
    truncation in the final cleanup step treats each field. An empty
    exclusion list means the field is always truncated at its first bracket.
    """
    skip_extensions: List[str] = field(default_factory=lambda: [".m3u", ".zip"])
    ignored_files: List[str] = field(default_factory=lambda: [".DS_Store", ".spotdl-cache"])
    title_exclusions: List[str] = field(
        default_factory=lambda: ["VIP", "WIP", "CLIP", "INSTRUMENTAL", "EXTENDED"]
    )
    artist_exclusions: List[str] = field(default_factory=list)
    album_exclusions: List[str] = field(default_factory=list)
    remix_keywords: List[str] = field(
        default_factory=lambda: ["REMIX", "REFIX", "FLIP", "EDIT", "BOOTLEG", "REBOOT"]
    )
    clear_backup: bool = True


@dataclass
class ConversionConfig:
    """
    Audio conversion configuration

    Non-MP3 files are converted to a lossless target (AIFF) and MP3 files are
    retagged without re-encoding. The process limit bounds concurrent ffmpeg
    invocations across all threads.
    """
    max_concurrent_processes: int = 10
    flac_workers: int = 4
    id3_version: int = 3
    timeout: int = 300
    lossless_target: str = "aiff"


@dataclass
class AnalysisConfig:
    """Collection analysis configuration"""
    min_count: int = 3
    csv_output: str = ""


@dataclass
class LoggingConfig:
    """
    Log file and console output

    An empty file disables file logging; a relative file name is placed in
    the config directory.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True



class Settings:
    """
    Loaded configuration, one dataclass per section

    Constructing a Settings reads the first config file found, applies the
    environment overrides and makes sure ~/.tunewrangler exists. Library
    folders are never created; validate_paths() reports missing ones.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: Explicit config file, searched before the default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".tunewrangler"

        self.paths = PathsConfig()
        self.processing = ProcessingConfig()
        self.conversion = ConversionConfig()
        self.analysis = AnalysisConfig()
        self.logging = LoggingConfig()

        self._apply_config(self._read_config_file())
        self._load_environment_variables()
        self._create_config_directory()

    def _sections(self) -> Dict[str, Any]:
        return {
            'paths': self.paths,
            'processing': self.processing,
            'conversion': self.conversion,
            'analysis': self.analysis,
            'logging': self.logging,
        }

    def _candidate_files(self) -> List[Path]:
        candidates = [
            self.config_dir / CONFIG_FILE_NAME,
            Path("config") / CONFIG_FILE_NAME,
            Path(CONFIG_FILE_NAME),
        ]
        if self.config_path:
            candidates.insert(0, Path(self.config_path))
        return candidates

    def _read_config_file(self) -> Dict[str, Any]:
        """
        Read the first existing config file

        An unreadable or malformed file is reported and the next candidate is
        tried, so a broken user config falls back to the project one.

        Returns:
            Parsed YAML mapping, empty when no file was found
        """
        for candidate in self._candidate_files():
            if not candidate.exists():
                continue
            try:
                with open(candidate, 'r', encoding='utf-8') as config_file:
                    return yaml.safe_load(config_file) or {}
            except (OSError, yaml.YAMLError) as e:
                print(f"Warning: could not read config {candidate}: {e}")
        return {}

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Copy known keys of known sections onto the dataclasses

        Unknown sections and keys are ignored so an older config file keeps
        working after options are removed.

        Args:
            config_data: Parsed config file, section name -> mapping
        """
        sections = self._sections()

        for section_name, values in config_data.items():
            section = sections.get(section_name)
            if section is None or not isinstance(values, dict):
                continue
            for key, value in values.items():
                if hasattr(section, key):
                    setattr(section, key, value)

    def _load_environment_variables(self) -> None:
        """
        Apply TUNEWRANGLER_* overrides

        Every PathsConfig attribute maps to TUNEWRANGLER_<NAME>_PATH with the
        underscores removed from the name, e.g. dj_music -> TUNEWRANGLER_DJMUSIC_PATH.
        """
        overrides = [(env_var_for_path(f.name), self.paths, f.name) for f in fields(PathsConfig)]
        overrides.append(('TUNEWRANGLER_LOG_LEVEL', self.logging, 'level'))
        overrides.append(('TUNEWRANGLER_LOG_FILE', self.logging, 'file'))

        for env_var, section, attribute in overrides:
            value = os.getenv(env_var)
            if value:
                setattr(section, attribute, value)

    def _create_config_directory(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Warning: could not create {self.config_dir}: {e}")

    def get_path(self, name: str) -> Path:
        """
        Resolve a library folder

        Args:
            name: Folder name, one of the PathsConfig attributes

        Returns:
            Folder path with ~ expanded

        Raises:
            ConfigurationError: If the folder name is unknown
        """
        if name not in {f.name for f in fields(PathsConfig)}:
            raise ConfigurationError(f"Unknown folder type: {name}", details={'folder': name})
        return Path(getattr(self.paths, name)).expanduser()

    def get_config_directory(self) -> Path:
        """Directory holding the user config file and relative log files"""
        return self.config_dir.expanduser()

    def save_config(self, path: Optional[str] = None) -> None:
        """
        Write every section to a YAML file

        Args:
            path: Target file, defaults to ~/.tunewrangler/config.yaml

        Raises:
            ConfigurationError: If the file cannot be written
        """
        target = Path(path) if path else self.get_config_directory() / CONFIG_FILE_NAME
        config_data = {name: asdict(section) for name, section in self._sections().items()}

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as config_file:
                yaml.dump(config_data, config_file, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save config to {target}: {e}") from e

    def validate(self) -> bool:
        """
        Check the non-path values

        Library paths depend on the machine and are checked by validate_paths().
        Problems are printed, one per line.

        Returns:
            True when every value is usable
        """
        errors = []

        if self.conversion.max_concurrent_processes < 1:
            errors.append(f"Invalid max_concurrent_processes: {self.conversion.max_concurrent_processes}")

        if self.conversion.flac_workers < 1:
            errors.append(f"Invalid flac_workers: {self.conversion.flac_workers}")

        if self.conversion.id3_version not in (3, 4):
            errors.append(f"Invalid id3_version: {self.conversion.id3_version}")

        if self.analysis.min_count < 1:
            errors.append(f"Invalid analysis min_count: {self.analysis.min_count}")

        errors.extend(
            f"Skip extension must start with a dot: {extension}"
            for extension in self.processing.skip_extensions
            if not extension.startswith('.')
        )

        for error in errors:
            print(f"Config error: {error}")

        return not errors

    def validate_paths(self) -> Tuple[bool, List[str]]:
        """
        Check that every configured library folder exists

        Returns:
            Tuple of (all_valid, error_messages)
        """
        errors = []
        for path_field in fields(PathsConfig):
            path = self.get_path(path_field.name)
            try:
                if not path.is_dir():
                    errors.append(f"{path_field.name}: {path} does not exist or is not a directory")
            except OSError as e:
                errors.append(f"{path_field.name}: {path} is not accessible ({e})")

        return not errors, errors

    def __str__(self) -> str:
        summary = ", ".join([
            f"Downloaded: {self.paths.downloaded}",
            f"Collection: {self.paths.dj_music}",
            f"Rename: {self.paths.rename}",
            f"Processes: {self.conversion.max_concurrent_processes}",
        ])
        return f"Settings({summary})"


def env_var_for_path(name: str) -> str:
    """Environment variable that overrides the given PathsConfig attribute"""
    return f"TUNEWRANGLER_{name.replace('_', '').upper()}_PATH"


# Shared instance, replaced by reload_settings()
settings = Settings()


def get_settings() -> Settings:
    """Return the shared Settings instance"""
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Replace the shared Settings instance

    Used by the CLI when --config is given.

    Args:
        config_path: Config file to load first

    Returns:
        The new shared instance
    """
    global settings
    settings = Settings(config_path)
    return settings
