__project__ = "checkplease"
__version__ = "0.1.0"
