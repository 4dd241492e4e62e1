"""User accounts with experience levels and daily streaks, stored with SQLAlchemy and served with Flask."""

__version__ = "0.1.0"