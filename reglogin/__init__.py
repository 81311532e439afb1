"""reglogin — verify registry credentials and store them in the system keyring."""

__version__ = "0.1.0"
