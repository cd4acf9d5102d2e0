from .base import Base
from .clients import Client
from .documents import Document

__all__ = [
    "Base",
    "Client",
    "Document",
]
