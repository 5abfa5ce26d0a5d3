"""Index library checkout CSV exports by id and year and serve lookups over named pipes."""

__version__ = "0.1.0"
__all__ = ["__version__"]