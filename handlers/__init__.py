# =============================================================================
# Network Handlers Package
# =============================================================================
#
# ARCHITECTURE:
#   handlers/
#   ├── __init__.py          # This file
#   ├── base.py              # Environment configuration, logging, helpers
#   ├── ec2.py               # EC2 capability object + per-request factory
#   └── network.py           # create / delete / update / get handlers
#
# Handlers register themselves with the engine on import:
#       from network_worker.runtime.dispatch import register
#
#       @register(NetworkAction.CREATE)
#       def handle_create(request, deps):
#           ...
#
# The engine imports handlers.network lazily on first dispatch, so this
# package keeps no eager imports.
# =============================================================================
