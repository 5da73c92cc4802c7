"""Service layer: the rules behind every project command."""
