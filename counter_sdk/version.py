"""Package version (PEP 440). Keep in sync with `pyproject.toml`."""

__version__ = "0.1.0"

__all__ = ["__version__"]
