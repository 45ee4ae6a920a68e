"""
Application configuration, read from the environment when the app is built.
"""

import os


def _flag(value):
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    def __init__(self, **overrides):
        self.STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "memory").lower()
        self.SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URI", "sqlite:///:memory:")
        self.SEED_MENU = _flag(os.environ.get("SEED_MENU", "1"))
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
        self.PORT = int(os.environ.get("PORT", 5000))

        for key, value in overrides.items():
            setattr(self, key, value)

    def as_dict(self):
        """Upper-case settings only, the shape Flask's config.from_mapping wants."""
        return {key: getattr(self, key) for key in dir(self) if key.isupper()}
