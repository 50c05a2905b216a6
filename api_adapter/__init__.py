"""Edge API adapter: CORS-aware reverse proxy with response normalization."""

__version__ = "0.1.0"
