"""Infrastructure adapters: database, logging, metrics and tracing."""
