"""Notification events and the dispatcher that persists them."""
