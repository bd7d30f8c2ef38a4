"""Language toolchain adapters."""
