"""scanboard: backend for the stock-screening dashboard."""
