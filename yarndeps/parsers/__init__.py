"""Package manager parsers for yarndeps."""
