# =============================================================================
# Runtime Package - Message Processing Core
# =============================================================================
# envelope.py     ProvisioningRequest, NetworkAction
# parse_event.py  Lambda events -> (subject, body)
# dispatch.py     decode -> validate -> handler -> .done / .error
# deps.py         bus handle and EC2 client factory
# bus.py          MessageBus, SnsMessageBus, RecordingBus
# errors.py       error taxonomy
#
# Import the submodules directly; handlers.ec2 depends on errors.py, so this
# package keeps no eager imports.
# =============================================================================
