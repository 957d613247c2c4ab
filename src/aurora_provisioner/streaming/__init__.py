"""Database activity stream start/stop with completion polling."""
