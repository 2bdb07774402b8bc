"""
Food Tracker Backend - Expiry Reminder Service

This package contains the server side of the Food Tracker app:
- Expiry notification scheduler (threshold, daily countdown and weekly digest reminders)
- Push delivery over Firebase Cloud Messaging
- Async SQLAlchemy store for users, products and notification history
- FastAPI operational endpoints (manual check, status, manual send, device tokens)
"""

__version__ = "1.0.0"
