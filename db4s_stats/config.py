"""Job settings, read from a TOML file with pydantic-settings."""

# Standard libraries
from datetime import date, datetime
import os
from pathlib import Path
import tomllib

# Installed packages
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, TomlConfigSettingsSource

from .errors import ConfigError

DEFAULT_CONFIG_FILE = os.path.join("~", ".db4s", "daily_stats_gen.toml")
DEFAULT_DB = "db4s_stats.db"

# First day with data for the user and download statistics
DEFAULT_EPOCH = date(2018, 8, 9)

# Command line flag -> (section, key)
OVERRIDES = {
    "db": ("database", "path"),
    "catalog": ("stats", "catalog"),
    "incremental": ("stats", "incremental"),
    "verbose": ("stats", "verbose"),
    "users_epoch": ("stats", "users_epoch"),
    "downloads_epoch": ("stats", "downloads_epoch"),
}


class DatabaseSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: Path = Path(DEFAULT_DB)

    @field_validator("path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()


class StatsSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    incremental: StrictBool = False
    verbose: StrictBool = False
    users_epoch: date = DEFAULT_EPOCH
    downloads_epoch: date = DEFAULT_EPOCH
    # Download catalog JSON, the bundled one when unset
    catalog: Path | None = None

    @field_validator("catalog")
    @classmethod
    def _expand_catalog(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None


class Settings(BaseSettings):
    """
    Settings come from keyword arguments (the command line) first, then
    from the TOML file named by `toml_file`.
    """

    model_config = SettingsConfigDict(extra="forbid")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        return init_settings, TomlConfigSettingsSource(settings_cls)

    def epoch(self, kind: str) -> datetime:
        "Epoch of a report family as a datetime at midnight."
        d = self.stats.users_epoch if kind == 'users' else self.stats.downloads_epoch
        return datetime(d.year, d.month, d.day)


def config_path(filename=None):
    """
    Return (path, required).  A file named on the command line or in
    CONFIG_FILE has to exist, the default location is optional.
    """
    if filename:
        return filename, True
    if os.environ.get("CONFIG_FILE"):
        return os.environ["CONFIG_FILE"], True
    return os.path.expanduser(DEFAULT_CONFIG_FILE), False


def load_settings(filename=None, **overrides) -> Settings:
    """
    Build the settings from the config file and command line overrides.
    Overrides left at None don't replace file values.
    """
    path, required = config_path(filename)
    if required and not os.path.exists(path):
        raise ConfigError("Config file {} not found".format(path))

    class FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=path)

    values = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key in OVERRIDES:
            section, name = OVERRIDES[key]
            values.setdefault(section, {})[name] = value
        else:
            values[key] = value

    try:
        return FileSettings(**values)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("Couldn't parse {}: {}".format(path, e)) from e
    except ValidationError as e:
        raise ConfigError("Bad settings in {}: {}".format(path, e)) from e
