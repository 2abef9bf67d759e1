"""Adapters binding domain ports to the outside world."""
