"""Oracle request relay."""
