from .app import create_app, build_queue

__all__ = ["create_app", "build_queue"]
