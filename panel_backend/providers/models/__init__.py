# providers/models/__init__.py

from .provider import Provider

__all__ = ["Provider"]
