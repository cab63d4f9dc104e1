"""HTTP API for the command sender."""
