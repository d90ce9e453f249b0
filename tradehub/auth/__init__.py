"""Session helpers for routes that need an authenticated caller."""
