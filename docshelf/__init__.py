from .config import Config, load_config
from .library import Library

__version__ = "0.1.0"

__all__ = ["Config", "Library", "load_config", "__version__"]
