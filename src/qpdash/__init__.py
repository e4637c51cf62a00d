"""Trading dashboard client: Angel broker linking and trading-engine gating."""

__version__ = "0.1.0"
