"""Sentiment analysis proxy for the Azure AI Language service."""

__version__ = "1.0.0"
