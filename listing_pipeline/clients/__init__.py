"""Client singletons for external API interactions."""
from listing_pipeline.clients.abr_client import AbrClient
from listing_pipeline.clients.openai_client import OpenAIClient

__all__ = ["AbrClient", "OpenAIClient"]
