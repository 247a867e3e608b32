"""DNS request router: pattern-matched handlers, racing upstreams, zone aliases."""

__version__ = "0.1.0"
