"""decotv: deploy DecoTV on a VPS and bind it to a domain behind Nginx."""

__version__ = "0.3.0"
