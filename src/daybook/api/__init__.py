from .app import create_app
from .tools import register_tools

__all__ = ["create_app", "register_tools"]
