"""
Model package for users, chats and messages.

Models import the SQLAlchemy database instance from ``app`` directly;
tables are created by ``flask custom generate_data`` or on startup of
``main.py``.
"""

__all__ = []
