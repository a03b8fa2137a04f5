"""Image relay: stage an uploaded image, forward it to Telegram, return its public URL."""

__version__ = "1.0.0"
