"""Configuration directory resolution.

Everything gtcli persists lives in one directory:
    credentials.json  - OAuth client credentials (clientId, clientSecret)
    accounts.json     - Per-account OAuth tokens

The directory defaults to ~/.gtcli and can be overridden with the
GTCLI_HOME environment variable or the --config-dir CLI option. It is
resolved once at the CLI entry point and passed explicitly to the
storage layer.
"""

import os
from pathlib import Path

CONFIG_DIR_ENV = "GTCLI_HOME"
DEFAULT_CONFIG_DIR = Path.home() / ".gtcli"

CREDENTIALS_FILENAME = "credentials.json"
ACCOUNTS_FILENAME = "accounts.json"


def resolve_config_dir(explicit: str | Path | None = None) -> Path:
    """Resolve the configuration directory.

    Args:
        explicit: Directory given on the command line, if any.

    Returns:
        The explicit directory, else $GTCLI_HOME, else ~/.gtcli.
    """
    if explicit:
        return Path(explicit).expanduser()

    env_dir = os.environ.get(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()

    return DEFAULT_CONFIG_DIR


def get_config_status(config_dir: Path) -> dict:
    """Get status of the configuration directory.

    Returns:
        Dictionary with paths and which files exist.
    """
    credentials_file = config_dir / CREDENTIALS_FILENAME
    accounts_file = config_dir / ACCOUNTS_FILENAME
    return {
        "config_dir": str(config_dir),
        "exists": config_dir.is_dir(),
        "credentials": credentials_file.exists(),
        "accounts": accounts_file.exists(),
    }
