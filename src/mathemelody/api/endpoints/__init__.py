from . import auth, comments, compositions, health

__all__ = ["auth", "comments", "compositions", "health"]
