"""Management CLI for hierarchy storage."""
