"""Environment variable loading utilities.

Provides .env file loading using python-dotenv. The library never loads a
.env file on import; entrypoints (the CLI, the test suite) call `load_env()`
explicitly before building a `ClientConfig` from the environment.

The module searches for .env files in this order:
1. Current working directory
2. Project root (detected by pyproject.toml or .git)

Environment variables already set in the shell take precedence over .env values
(standard python-dotenv behavior with override=False).
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv as _load_dotenv

from xiangxinai.common.logging import get_logger

logger = get_logger(__name__)

# Track if we've already loaded to avoid duplicate loads
_env_loaded = False


def find_project_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the project root by looking for pyproject.toml.

    Args:
        start_path: Starting directory for search. Defaults to current working directory.

    Returns:
        Path to project root, or None if not found.
    """
    current = start_path or Path.cwd()

    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
        if (parent / ".git").exists():
            return parent

    return None


def find_env_file(filename: str = ".env") -> Optional[Path]:
    """Find .env file in the current directory or the project root."""
    cwd_env = Path.cwd() / filename
    if cwd_env.exists():
        return cwd_env

    project_root = find_project_root()
    if project_root:
        root_env = project_root / filename
        if root_env.exists():
            return root_env

    return None


def load_env(env_file: Optional[str] = None, override: bool = False) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Path to .env file. If None, searches standard locations.
        override: If True, .env values override existing environment variables.

    Returns:
        True if .env file was found and loaded, False otherwise.
    """
    global _env_loaded

    dotenv_path = Path(env_file) if env_file else find_env_file()

    if dotenv_path is None or not dotenv_path.exists():
        logger.debug("env_file_missing", extra={"event": "env_file_missing"})
        return False

    logger.debug("env_file_loaded", extra={"event": "env_file_loaded", "path": str(dotenv_path)})
    _load_dotenv(dotenv_path=dotenv_path, override=override)
    _env_loaded = True

    return True


def is_loaded() -> bool:
    """Check if .env has been loaded."""
    return _env_loaded
