# stockroom/__init__.py
from stockroom.main import Backoffice, create_backoffice

__version__ = "1.0.0"

__all__ = ["Backoffice", "create_backoffice"]
