"""appshell: install and remove plugins in a generated Electron app shell project."""

__version__ = "0.1.0"
