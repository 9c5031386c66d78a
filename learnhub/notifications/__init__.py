"""In-app notifications sent by admins and by the access workflow."""
