"""DevDash: a personal developer dashboard (snippets, idea map, study notes)."""

__version__ = "0.1.0"
