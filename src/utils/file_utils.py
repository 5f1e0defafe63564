from pathlib import Path

from src.utils.exceptions import PathOutsideRootError


def ensure_dir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def resolve_within(root: str | Path, relative: str) -> Path:
    """Join *relative* onto *root* and refuse anything that lands outside it."""
    base = Path(root).resolve()
    target = (base / relative.lstrip("/")).resolve()
    if target != base and base not in target.parents:
        raise PathOutsideRootError(relative)
    return target
