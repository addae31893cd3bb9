"""poolctl — billing, pricing-change and consumption-automation engine for pool service clients."""

__version__ = "0.4.0"
