"""In-app and email notifications for clients and partners."""
