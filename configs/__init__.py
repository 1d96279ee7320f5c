"""Session and field configuration."""
