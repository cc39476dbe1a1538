"""Core models and errors for Apply Desk."""
