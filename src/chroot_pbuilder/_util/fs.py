from pathlib import Path

from ..core.errors import FilesystemError


def ensure_dir(path: Path, mode: int = 0o755) -> None:
    """Create a directory (and parents) if it doesn't exist."""
    try:
        path.mkdir(mode=mode, parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Error creating directory {path}: {e}") from e
    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")


def remove_file(path: Path) -> None:
    """Delete a single file, reporting failures as FilesystemError."""
    try:
        path.unlink()
    except OSError as e:
        raise FilesystemError(f"Error removing existing baseTgz: {e}") from e


def path_exists(path: Path) -> bool:
    """Return True if *path* exists; stat failures other than ENOENT raise."""
    try:
        path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as e:
        raise FilesystemError(f"Error checking {path}: {e}") from e
    return True
