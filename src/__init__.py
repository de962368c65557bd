"""keygate - activation code service."""
