from src.api.webhook import create_app, router

__all__ = ["create_app", "router"]
