"""Auto-discount CLI."""
