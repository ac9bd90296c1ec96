"""Domain apps of the session booking service."""
