"""Static definitions shared across the application."""
