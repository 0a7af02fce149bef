__all__ = ['__version__']
from ._version import __version__
del _version  # remove to avoid confusion with __version__
