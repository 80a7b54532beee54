"""JoinMe - offline-first cached repositories for events, groups and series."""

__version__ = "1.0.0"
__author__ = "JoinMe Team"
__description__ = "Offline-first cached repository layer for JoinMe events, groups and series"

__all__ = [
    "__author__",
    "__description__",
    "__version__",
]
