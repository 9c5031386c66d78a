"""User accounts, profiles and login."""
