"""
Package-level defaults.

Used when a SettingsTracker or FileDataStore is created without explicit
collaborators. Resolution order for the storage directory:
explicit set_default_storage_dir() > $STATETRACKER_HOME > platform data dir.
"""
import os
import sys
from pathlib import Path
from typing import Optional, Type, Union

from statetracker.serializers import PickleSerializer, Serializer

STORAGE_DIR_ENV_VAR = 'STATETRACKER_HOME'
DEFAULT_APPLICATION_NAME = 'statetracker'

_application_name: str = DEFAULT_APPLICATION_NAME
_storage_dir: Optional[Path] = None
_serializer_type: Type[Serializer] = PickleSerializer


def set_application_name(name: str) -> None:
    """Set the folder name used under the platform data directory."""
    global _application_name
    _application_name = name


def get_application_name() -> str:
    return _application_name


def set_default_storage_dir(path: Optional[Union[str, os.PathLike]]) -> None:
    """Set the directory FileDataStore uses by default. None restores lookup."""
    global _storage_dir
    _storage_dir = Path(path) if path is not None else None


def get_default_storage_dir() -> Path:
    """Get the directory FileDataStore uses when none is given."""
    if _storage_dir is not None:
        return _storage_dir

    env_dir = os.environ.get(STORAGE_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir)

    return _platform_data_dir() / _application_name


def _platform_data_dir() -> Path:
    if sys.platform == 'win32':
        appdata = os.environ.get('APPDATA')
        if appdata:
            return Path(appdata)
    xdg = os.environ.get('XDG_DATA_HOME')
    if xdg:
        return Path(xdg)
    return Path.home() / '.local' / 'share'


def set_default_serializer_type(serializer_type: Type[Serializer]) -> None:
    """Set the serializer class instantiated by trackers built without one."""
    global _serializer_type
    _serializer_type = serializer_type


def get_default_serializer_type() -> Type[Serializer]:
    return _serializer_type


def reset_config() -> None:
    """Restore all defaults. For testing only."""
    global _application_name, _storage_dir, _serializer_type
    _application_name = DEFAULT_APPLICATION_NAME
    _storage_dir = None
    _serializer_type = PickleSerializer
