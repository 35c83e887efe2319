"""Feature slices of the back-office service."""
