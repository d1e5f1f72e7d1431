"""negpath — negative-path mutation engine for an order-fulfillment protocol."""

__version__ = "0.1.0"
