"""HTTP API for quoting trades."""
