"""
Configuration Module for GHContribLens

This module provides the configuration settings used throughout the collection
pipeline. Configuration is built exactly once at start-up from defaults, an
optional INI file and the process environment, then passed down explicitly
through constructors.

Key components:
- Configuration: typed settings shared by every component
- DEFAULT_CONFIG: default values for every setting
- ConfigLoader / load_config: configuration loading and validation
- create_sample_config / create_sample_env: templates for users
"""

import configparser
import os
from pathlib import Path
from typing import Mapping, Optional, TypedDict

from contriblens.console import console, logger
from contriblens.errors import ConfigurationError


class Configuration(TypedDict):
    """Settings of one collection run, built once and passed down through constructors"""
    GITHUB_TOKEN: str
    GITHUB_ORG: str
    DATA_DIRECTORY: str
    DISABLE_SLEEP: bool
    MAX_PARALLEL_WORKERS: int
    STANDARD_DELAY: float  # Seconds between REST pages
    SEARCH_DELAY: float  # Seconds between search pages
    CONNECT_TIMEOUT: float
    READ_TIMEOUT: float
    MAX_RETRIES: int  # Retries on connection failures, not on HTTP errors
    RETRY_BACKOFF: float  # Linear: backoff, 2 * backoff, 3 * backoff ...
    ENRICH_COMMIT_STATS: bool
    LOG_DIR: str


DEFAULT_CONFIG: Configuration = {
    "GITHUB_TOKEN": "",
    "GITHUB_ORG": "WTTJ",
    "DATA_DIRECTORY": "./data",
    "DISABLE_SLEEP": False,
    "MAX_PARALLEL_WORKERS": 4,
    "STANDARD_DELAY": 0.1,
    "SEARCH_DELAY": 1.0,
    "CONNECT_TIMEOUT": 30.0,
    "READ_TIMEOUT": 120.0,
    "MAX_RETRIES": 3,
    "RETRY_BACKOFF": 2.0,
    "ENRICH_COMMIT_STATS": True,
    "LOG_DIR": "logs",
}

MISSING_TOKEN_MESSAGE = """GITHUB_TOKEN environment variable is required.

To set up:
1. Create a GitHub Personal Access Token at https://github.com/settings/tokens
2. Grant 'repo' and 'read:org' scopes
3. Set the token: export GITHUB_TOKEN="your_token_here"
4. Or create a .env file with: GITHUB_TOKEN=your_token_here"""

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _parse_workers(value: str) -> int:
    try:
        workers = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"MAX_PARALLEL_WORKERS must be an integer, got '{value}'") from None
    if workers < 1:
        raise ConfigurationError(f"MAX_PARALLEL_WORKERS must be at least 1, got {workers}")
    return workers


class ConfigLoader:
    """
    Class responsible for building a Configuration from an INI file and the environment.
    The environment always wins over values read from the file.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ
        self.logger = logger

    def load(self, config_file: Optional[str] = None) -> Configuration:
        """
        Load and validate configuration.

        Args:
            config_file: Optional path to an INI configuration file

        Returns:
            Configuration: Validated settings

        Raises:
            ConfigurationError: If the token is missing or a value is invalid
        """
        config: Configuration = DEFAULT_CONFIG.copy()

        if config_file:
            self._load_file(config_file, config)

        self._process_environment(config)
        self._validate(config)

        Path(config["DATA_DIRECTORY"]).mkdir(parents=True, exist_ok=True)
        return config

    def _load_file(self, config_file: str, config: Configuration) -> None:
        """Read an INI file, ignoring it with a warning when it is unreadable"""
        cp = configparser.ConfigParser()
        try:
            read_files = cp.read(config_file)
        except configparser.Error as e:
            self.logger.warning(f"Error loading configuration from {config_file}: {e}")
            return

        if not read_files:
            self.logger.warning(f"Configuration file {config_file} not found, using defaults")
            return

        self._process_github_settings(cp, config)
        self._process_collection_settings(cp, config)
        self._process_rate_limit_settings(cp, config)
        self.logger.info(f"Configuration loaded from {config_file}")

    @staticmethod
    def _process_github_settings(cp: configparser.ConfigParser, config: Configuration) -> None:
        """Process GitHub related settings from config parser"""
        if "github" in cp:
            if "token" in cp["github"]:
                config["GITHUB_TOKEN"] = cp["github"]["token"].strip()
            if "organization" in cp["github"]:
                config["GITHUB_ORG"] = cp["github"]["organization"].strip()

    @staticmethod
    def _process_collection_settings(cp: configparser.ConfigParser, config: Configuration) -> None:
        """Process collection related settings from config parser"""
        if "collection" in cp:
            section = cp["collection"]
            if "data_directory" in section:
                config["DATA_DIRECTORY"] = section["data_directory"]
            if "max_parallel_workers" in section:
                config["MAX_PARALLEL_WORKERS"] = _parse_workers(section["max_parallel_workers"])
            if "enrich_commit_stats" in section:
                config["ENRICH_COMMIT_STATS"] = section.getboolean("enrich_commit_stats")

    @staticmethod
    def _process_rate_limit_settings(cp: configparser.ConfigParser, config: Configuration) -> None:
        """Process rate limit related settings from config parser"""
        if "rate_limits" in cp:
            section = cp["rate_limits"]
            if "standard_delay" in section:
                config["STANDARD_DELAY"] = section.getfloat("standard_delay")
            if "search_delay" in section:
                config["SEARCH_DELAY"] = section.getfloat("search_delay")
            if "disable_sleep" in section:
                config["DISABLE_SLEEP"] = section.getboolean("disable_sleep")

    def _process_environment(self, config: Configuration) -> None:
        """Override settings with environment variables"""
        env = self.environ
        if env.get("GITHUB_TOKEN"):
            config["GITHUB_TOKEN"] = env["GITHUB_TOKEN"].strip()
        if env.get("GITHUB_ORG"):
            config["GITHUB_ORG"] = env["GITHUB_ORG"].strip()
        if env.get("DATA_DIRECTORY"):
            config["DATA_DIRECTORY"] = env["DATA_DIRECTORY"]
        if "DISABLE_SLEEP" in env:
            config["DISABLE_SLEEP"] = _parse_bool(env["DISABLE_SLEEP"])
        if env.get("MAX_PARALLEL_WORKERS"):
            config["MAX_PARALLEL_WORKERS"] = _parse_workers(env["MAX_PARALLEL_WORKERS"])
        if env.get("LOG_DIR"):
            config["LOG_DIR"] = env["LOG_DIR"]

    @staticmethod
    def _validate(config: Configuration) -> None:
        if not config["GITHUB_TOKEN"]:
            raise ConfigurationError(MISSING_TOKEN_MESSAGE)
        if not config["GITHUB_ORG"]:
            raise ConfigurationError("GITHUB_ORG must not be empty")


def load_config(environ: Optional[Mapping[str, str]] = None,
                config_file: Optional[str] = None) -> Configuration:
    """
    Build the run configuration from defaults, an optional INI file and the environment.

    Args:
        environ: Mapping to read variables from (defaults to os.environ)
        config_file: Optional path to an INI configuration file

    Returns:
        Configuration: Validated configuration
    """
    return ConfigLoader(environ).load(config_file)


def create_sample_config() -> None:
    """Write config.ini.sample with every INI key at its default, unless it already exists"""
    config_file = 'config.ini.sample'

    if os.path.exists(config_file):
        return

    config = configparser.ConfigParser()
    config['github'] = {
        'token': 'your_github_token_here',
        'organization': DEFAULT_CONFIG["GITHUB_ORG"],
    }
    config['collection'] = {
        'data_directory': DEFAULT_CONFIG["DATA_DIRECTORY"],
        'max_parallel_workers': str(DEFAULT_CONFIG["MAX_PARALLEL_WORKERS"]),
        'enrich_commit_stats': 'true',
    }
    config['rate_limits'] = {
        'standard_delay': str(DEFAULT_CONFIG["STANDARD_DELAY"]),
        'search_delay': str(DEFAULT_CONFIG["SEARCH_DELAY"]),
        'disable_sleep': 'false',
    }

    with open(config_file, "w", encoding="utf-8") as f:
        config.write(f)

    console.print(f"[success]Wrote {config_file}; copy it to config.ini and pass it with --config[/success]")


def create_sample_env() -> None:
    """Write .env.sample listing the environment variables read at start-up, unless it already exists"""
    env_file = '.env.sample'

    if os.path.exists(env_file):
        return

    env_content = """# GitHub Authentication
GITHUB_TOKEN=your_github_token_here

# Organization whose repositories are searched
GITHUB_ORG=WTTJ

# Where contributions.json snapshots are written
DATA_DIRECTORY=./data

# Collection tuning
MAX_PARALLEL_WORKERS=4
DISABLE_SLEEP=false
"""

    with open(env_file, 'w') as f:
        f.write(env_content)

    console.print(f"[success]Wrote {env_file}; copy it to .env and fill in GITHUB_TOKEN[/success]")
