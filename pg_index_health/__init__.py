"""pg-index-health: PostgreSQL cluster checks for index and schema anti-patterns."""

__version__ = "0.1.0"
