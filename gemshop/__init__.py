"""gemshop: document-grounded AI assistants ("Gems") over uploaded files."""

__version__ = "0.1.0"
