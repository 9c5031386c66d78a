"""Student and admin dashboard metrics derived from progress records."""
