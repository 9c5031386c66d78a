"""Authentication: roles, tokens and the per-request session context."""
