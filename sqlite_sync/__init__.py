"""Mirror SQLite amalgamation releases to the npm registry."""

__version__ = "0.1.0"
