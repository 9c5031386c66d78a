"""Enrollment gate and access requests for private courses."""
