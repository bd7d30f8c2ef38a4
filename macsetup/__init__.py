"""macsetup — declarative, idempotent workstation bootstrap for macOS."""

__version__ = "0.1.0"
