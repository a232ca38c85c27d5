"""
Clients for remote collaborator services.
"""
from .client import CONVERT_FORMATS, RemoteServiceClient

__all__ = ["CONVERT_FORMATS", "RemoteServiceClient"]
