from .routes import api, init_routes

__all__ = ["api", "init_routes"]
