"""careerpilot: vacancy scoring, outcome feedback and offer negotiation."""

__version__ = "0.3.0"
