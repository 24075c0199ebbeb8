"""Grid and table detection for captured terminal text."""
