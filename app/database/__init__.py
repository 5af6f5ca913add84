"""Database models and repositories for the help location directory."""
