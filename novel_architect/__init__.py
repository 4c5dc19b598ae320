"""Novel Architect: web-novel planning with suggestion-driven revision."""

__version__ = "0.1.0"
