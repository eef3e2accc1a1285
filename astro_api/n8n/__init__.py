"""
n8n Webhook Relay

Forwards application events to the n8n workflow and keeps recent callbacks.
"""

from astro_api.n8n.router import router as n8n_router

__all__ = ["n8n_router"]
