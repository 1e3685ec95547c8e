"""Converter configuration loaded from a TOML file."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from shared.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_NAME = "xlsx2sql.toml"

DUPLICATE_SUFFIX = "suffix"
DUPLICATE_FAIL = "fail"

DEFAULT_TEMPLATE = """\
# xlsx2sql configuration. Relative paths are resolved against this file.

[paths]
input_dir = "xlsx"
schema_dir = "SQLTable"
data_dir = "SQLData"
log_dir = "log"

[conversion]
# workers = 4            # defaults to the number of CPUs
batch_size = 1000
# sheet = "Sheet1"       # defaults to the active sheet
duplicate_columns = "suffix"   # or "fail"

[database]
username = ""
password = ""
database = ""
hostname = "localhost"
port = 3306
# socket = "/var/run/mysqld/mysqld.sock"
"""


class ConfigError(ValueError):
    """Configuration is missing, malformed or incomplete."""


@dataclass
class DatabaseConfig:
    """MySQL / MariaDB connection settings."""

    username: str = ""
    password: str = ""
    database: str = ""
    hostname: str = "localhost"
    port: int = 3306
    socket: Optional[str] = None

    def missing(self) -> List[str]:
        """Names of required settings that are empty."""
        return [name for name in ("username", "database", "hostname") if not getattr(self, name)]

    def validate(self) -> None:
        """
        Raises:
            ConfigError: If credentials are incomplete
        """
        missing = self.missing()
        if missing:
            raise ConfigError(f"Database settings missing: {', '.join(missing)}")


@dataclass
class ConverterConfig:
    """
    Directories and conversion settings for one pipeline run.

    Attributes:
        input_dir: Directory scanned (non-recursively) for workbooks
        schema_dir: Output directory for CREATE TABLE scripts
        data_dir: Output directory for INSERT and quarantine scripts
        log_dir: Directory of the read, error and run logs
        workers: Maximum concurrent conversions (None = CPU count)
        batch_size: Rows per INSERT statement
        sheet: Worksheet to convert (None = active sheet)
        duplicate_columns: "suffix" or "fail" on identifier collisions
        database: Connection settings for loading the scripts
    """

    input_dir: Path = Path("xlsx")
    schema_dir: Path = Path("SQLTable")
    data_dir: Path = Path("SQLData")
    log_dir: Path = Path("log")
    workers: Optional[int] = None
    batch_size: int = 1000
    sheet: Optional[str] = None
    duplicate_columns: str = DUPLICATE_SUFFIX
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def max_workers(self) -> int:
        """Effective pool size."""
        return self.workers or os.cpu_count() or 1

    @classmethod
    def rooted_at(cls, base_dir: Path, **overrides: Any) -> "ConverterConfig":
        """Default layout under an explicit base directory."""
        base_dir = Path(base_dir)
        config = cls(
            input_dir=base_dir / "xlsx",
            schema_dir=base_dir / "SQLTable",
            data_dir=base_dir / "SQLData",
            log_dir=base_dir / "log",
        )
        for key, value in overrides.items():
            setattr(config, key, value)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Raises:
            ConfigError: If a setting is out of range
        """
        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"workers must be positive, got {self.workers}")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.duplicate_columns not in (DUPLICATE_SUFFIX, DUPLICATE_FAIL):
            raise ConfigError(
                f"duplicate_columns must be '{DUPLICATE_SUFFIX}' or '{DUPLICATE_FAIL}', "
                f"got {self.duplicate_columns!r}"
            )


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def load_config(path: Path) -> ConverterConfig:
    """
    Load configuration from a TOML file.

    Args:
        path: Config file path

    Returns:
        ConverterConfig with paths resolved against the file's directory

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is malformed or a value is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info(f"Loading config from {path}")

    try:
        data = toml.load(path)
    except toml.TomlDecodeError as e:
        raise ConfigError(f"Failed to parse {path}: {e}")

    base_dir = path.resolve().parent
    paths = _section(data, "paths")
    conversion = _section(data, "conversion")
    database = _section(data, "database")

    defaults = ConverterConfig()

    def resolve(key: str, default: Path) -> Path:
        return base_dir / Path(paths.get(key, default))

    try:
        db = DatabaseConfig(
            username=str(database.get("username", "")),
            password=str(database.get("password", "")),
            database=str(database.get("database", "")),
            hostname=str(database.get("hostname", "localhost")),
            port=int(database.get("port", 3306)),
            socket=database.get("socket") or None,
        )
        workers = conversion.get("workers")
        config = ConverterConfig(
            input_dir=resolve("input_dir", defaults.input_dir),
            schema_dir=resolve("schema_dir", defaults.schema_dir),
            data_dir=resolve("data_dir", defaults.data_dir),
            log_dir=resolve("log_dir", defaults.log_dir),
            workers=int(workers) if workers is not None else None,
            batch_size=int(conversion.get("batch_size", defaults.batch_size)),
            sheet=conversion.get("sheet") or None,
            duplicate_columns=str(conversion.get("duplicate_columns", defaults.duplicate_columns)),
            database=db,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in {path}: {e}")

    config.validate()
    return config


def write_default_config(path: Path, overwrite: bool = False) -> Path:
    """
    Write a config template.

    Args:
        path: Destination file
        overwrite: Replace an existing file

    Returns:
        The written path

    Raises:
        FileExistsError: If the file exists and overwrite is False
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Config file already exists: {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(DEFAULT_TEMPLATE)

    logger.info(f"Wrote config template to {path}")
    return path
