from .session import SessionFactory, build_session_factory, init_db

__all__ = ["SessionFactory", "build_session_factory", "init_db"]
