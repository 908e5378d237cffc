__version__ = '0.1.0'
short_version = '0.1.0'
