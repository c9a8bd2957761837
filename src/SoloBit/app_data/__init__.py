from .config_utils import get_configuration, load_configuration

__all__ = ['get_configuration', 'load_configuration']
