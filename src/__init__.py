"""Display player runtime."""
