"""Food Tracker HTTP API."""
