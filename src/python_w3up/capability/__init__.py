from .space import SpaceClient
from .store import StoreClient
from .upload import UploadClient

__all__ = ["SpaceClient", "StoreClient", "UploadClient"]
