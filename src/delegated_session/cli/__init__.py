"""Command-line interface for delegated-session."""
