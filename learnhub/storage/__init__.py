"""File storage on Firebase."""
