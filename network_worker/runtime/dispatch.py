# =============================================================================
# Provisioning Engine
# =============================================================================
# Single entry point for one bus message:
#   raw message -> decode -> validate -> action handler -> .done / .error
# Exactly one reply is published per message and no exception escapes.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from network_worker.runtime.deps import Deps
from network_worker.runtime.envelope import NetworkAction, ProvisioningRequest
from network_worker.runtime.errors import (
    DecodeError,
    ProvisioningError,
    UnrecognizedActionError,
)

logger = logging.getLogger(__name__)

HandlerFunc = Callable[[ProvisioningRequest, Deps], None]

OUTCOME_DONE = "done"
OUTCOME_ERROR = "error"
OUTCOME_DECODE_ERROR = "decode_error"

# =============================================================================
# HANDLER REGISTRY
# =============================================================================
_HANDLERS: Dict[NetworkAction, HandlerFunc] = {}


def register(action: NetworkAction):
    """
    Decorator to register the handler for an action.

    Usage:
        @register(NetworkAction.CREATE)
        def handle_create(request: ProvisioningRequest, deps: Deps) -> None:
            ...
    """
    def decorator(func: HandlerFunc) -> HandlerFunc:
        _HANDLERS[action] = func
        return func
    return decorator


def get_handler(action: Optional[NetworkAction]) -> Optional[HandlerFunc]:
    _ensure_handlers_loaded()
    if action is None:
        return None
    return _HANDLERS.get(action)


_handlers_loaded = False


def _ensure_handlers_loaded() -> None:
    global _handlers_loaded
    if _handlers_loaded:
        return
    import handlers.network  # noqa: F401  registers the action handlers
    _handlers_loaded = True


# =============================================================================
# DISPATCH
# =============================================================================

@dataclass
class ProcessResult:
    subject: str
    outcome: str
    request_id: str = ""
    error: Optional[str] = None
    delivered: bool = True

    @property
    def ok(self) -> bool:
        return self.outcome == OUTCOME_DONE


def dispatch(request: ProvisioningRequest, deps: Deps) -> None:
    """Run the handler named by the request's action. Raises on failure."""
    handler = get_handler(request.action)
    if handler is None:
        raise UnrecognizedActionError(request.subject)

    logger.info(
        f"Dispatching action={request.action.value} subject={request.subject} "
        f"uuid={request.uuid} vpc={request.vpc_id}"
    )
    handler(request, deps)


def process_message(subject: str, body: bytes, deps: Deps) -> ProcessResult:
    """
    Process one raw bus message end to end.

    Decode failures republish the raw body to <subject>.error. Validation and
    handler failures publish the envelope with error_message set. Success
    publishes the mutated envelope to <subject>.done.
    """
    request = ProvisioningRequest.new(subject, body)

    try:
        request.decode()
    except DecodeError as e:
        logger.warning(f"Could not decode message on {subject}: {e}")
        delivered = _publish(request.publish_raw_error, deps)
        return ProcessResult(
            subject=subject,
            outcome=OUTCOME_DECODE_ERROR,
            error=str(e),
            delivered=delivered,
        )

    try:
        request.validate()
        dispatch(request, deps)
    except ProvisioningError as e:
        return _fail(request, e, deps)
    except Exception as e:
        logger.exception(f"Handler error for {subject}: {e}")
        return _fail(request, e, deps)

    delivered = _publish(request.complete, deps)
    return ProcessResult(
        subject=subject,
        outcome=OUTCOME_DONE,
        request_id=request.uuid,
        delivered=delivered,
    )


def _fail(request: ProvisioningRequest, err: Exception, deps: Deps) -> ProcessResult:
    delivered = _publish(lambda bus: request.fail(err, bus), deps)
    return ProcessResult(
        subject=request.subject,
        outcome=OUTCOME_ERROR,
        request_id=request.uuid,
        error=request.error_message,
        delivered=delivered,
    )


def _publish(send: Callable, deps: Deps) -> bool:
    # a reply that cannot be delivered is logged, never raised to the worker
    try:
        send(deps.bus)
    except Exception as e:
        logger.exception(f"Failed to publish reply: {e}")
        return False
    return True
