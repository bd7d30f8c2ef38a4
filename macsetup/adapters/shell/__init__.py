"""Shell execution — the subprocess runner behind every package manager."""
