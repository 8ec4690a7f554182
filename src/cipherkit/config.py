"""YAML configuration for the command line tools.

Example ``cipherkit.yml``::

    scheme: aes-256-gcm
    chunk_size: 65536
    auth_data: "volume-7"
    log_level: INFO
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from cipherkit.exceptions import ConfigError
from cipherkit.schemes.registry import SCHEMES
from cipherkit.streams.sources import DEFAULT_CHUNK_SIZE

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s: %(message)s"


@dataclass(frozen=True)
class CipherKitConfig:
    """
    Settings shared by the cipherkit commands.

    Attributes:
        scheme (str): Registry name of the scheme to use.
        chunk_size (int): Bytes read per copy step while streaming.
        auth_data (str): Associated data authenticated by aes-256-gcm.
        log_level (str): Name of the logging level.
    """
    scheme: str = "aes-256-gcm"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    auth_data: str = ""
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.scheme not in SCHEMES:
            raise ConfigError(f"Unknown scheme {self.scheme!r}")
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be a positive integer, got {self.chunk_size!r}")
        if not isinstance(self.auth_data, str):
            raise ConfigError("auth_data must be a string")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log_level {self.log_level!r}")

    def scheme_options(self) -> Dict[str, Any]:
        return {"chunk_size": self.chunk_size, "auth_data": self.auth_data.encode("utf-8")}


def load_config(path: Optional[str] = None) -> CipherKitConfig:
    """
    Load configuration from a YAML file.

    Args:
        path (Optional[str]): Path to the YAML file. None gives the defaults.

    Returns:
        CipherKitConfig: Parsed and validated settings.

    Raises:
        ConfigError: If the file is missing, is not valid YAML or holds invalid values.
    """
    if path is None:
        return CipherKitConfig()
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Missing config file: {p}")
    try:
        data = yaml.safe_load(p.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"{p} is not valid YAML: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{p} must contain a mapping")

    known = {f.name for f in fields(CipherKitConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {p}: {unknown}")
    LOGGER.debug("Loaded config from %s", p)
    return CipherKitConfig(**data)


def configure_logging(verbose: int = 0, config: Optional[CipherKitConfig] = None) -> int:
    """Set up root logging from a ``-v`` count, falling back to the config level."""
    if verbose >= 2:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    elif config is not None:
        log_level = logging.getLevelName(config.log_level.upper())
    else:
        log_level = logging.WARNING
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    return log_level
