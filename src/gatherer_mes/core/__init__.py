"""Cross-cutting concerns: settings, logging and the error taxonomy."""
