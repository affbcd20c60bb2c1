"""Built-in commands that are not tied to a platform."""
