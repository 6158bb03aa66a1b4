"""Core building blocks: settings, database foundations and exceptions."""
