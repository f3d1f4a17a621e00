"""
Resource path resolution for development checkouts and frozen bundles.

Bundled files (the default config, the sample catalog) are looked up
relative to the project root, or relative to the PyInstaller extraction
directory when running as a packaged executable.
"""
from __future__ import annotations

import sys
from pathlib import Path


def project_root() -> Path:
    if is_frozen():
        # PyInstaller extracts bundled data to sys._MEIPASS
        return Path(sys._MEIPASS)  # type: ignore[attr-defined]
    # This file lives in RecipeFinder/
    return Path(__file__).resolve().parent.parent


def get_resource_path(relative_path: str) -> Path:
    """
    Absolute path to a bundled resource.

    Parameters
    ----------
    relative_path : str
        Path relative to the project root (e.g. "Catalog/recipe.json")

    Returns
    -------
    Path

    Examples
    --------
    >>> catalog = get_resource_path("Catalog/recipe.json")
    """
    return project_root() / relative_path


def is_frozen() -> bool:
    return getattr(sys, "frozen", False)
