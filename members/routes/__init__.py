"""HTTP routes for the members application."""
