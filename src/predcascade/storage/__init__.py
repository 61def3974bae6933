"""DuckDB persistence for instance state and the message log."""
