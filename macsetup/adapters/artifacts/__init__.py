"""File and directory artifact adapters."""
