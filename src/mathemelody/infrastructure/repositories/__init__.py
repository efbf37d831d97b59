from .compositions import GALLERY_SORTS, CompositionRepository
from .users import UserRepository

__all__ = ["GALLERY_SORTS", "CompositionRepository", "UserRepository"]
