"""Process-level plumbing: configuration and logging."""
