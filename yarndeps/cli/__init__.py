"""Command implementations of the yarndeps CLI."""
