"""Team roster registration: player records, jersey checks and roster views."""

__version__ = "0.3.0"
