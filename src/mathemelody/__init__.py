"""
Mathemelody - equation grids played as music.
"""

__version__ = "1.0.0"


# Lazy imports so the CLI and playback engine do not pull in the web stack
def __getattr__(name):
    """Lazy import for the heavier entry points."""
    if name == "PlaybackEngine":
        from .playback.engine import PlaybackEngine

        return PlaybackEngine
    elif name == "create_app":
        from .api.app import create_app

        return create_app
    elif name == "MathemelodyClient":
        from .client import MathemelodyClient

        return MathemelodyClient
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["PlaybackEngine", "create_app", "MathemelodyClient"]
