"""Field mapping model, key resolution and mapping application."""
