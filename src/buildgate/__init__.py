"""Build, test, package and clean orchestration for Unreal Engine projects."""

from buildgate._meta import __version__, logger

__all__ = ["__version__", "logger"]
