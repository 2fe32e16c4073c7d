"""Collaborators: config store, credentials, calendars, mail and the service container."""
