"""Enrollments, lesson completion and course progress."""
