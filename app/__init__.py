"""CampusFlow REST API."""

__version__ = '1.0.0'
__all__ = ['app', '__version__']


def __getattr__(name: str):
    if name == 'app':
        from .main import app as fastapi_app

        return fastapi_app
    raise AttributeError(name)
