# =============================================================================
# Application Entry Points
# =============================================================================
# Thin transport adapters that parse events and call the provisioning engine.
# =============================================================================

from network_worker.app.inbound_handler import inbound_handler

__all__ = [
    "inbound_handler",
]
