"""Monitor a JSON notice feed for keyword matches and alert by e-mail and Server Chan push."""

__version__ = "1.0.0"