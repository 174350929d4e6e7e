"""Request relay and upstream response normalization."""
