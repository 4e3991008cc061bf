"""AccessGate: deterministic access-request authorization behind a chat front end."""

__version__ = "0.1.0"
