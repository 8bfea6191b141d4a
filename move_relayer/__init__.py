"""Gas-sponsoring relay service for smart-contract wallet moves."""

from importlib import metadata


def __getattr__(name: str) -> str:
    """Expose the package version via ``move_relayer.__version__``."""
    if name == "__version__":
        try:
            return metadata.version("move-relayer")
        except metadata.PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)


__all__ = ["__version__"]
