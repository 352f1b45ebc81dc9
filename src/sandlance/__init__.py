"""Sand lance spatial prior for the GOA Atlantis box model."""

__version__ = "0.1.0"
