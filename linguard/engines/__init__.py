"""Classification engines."""
