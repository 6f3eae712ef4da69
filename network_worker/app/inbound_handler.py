# =============================================================================
# Inbound Event Handler
# =============================================================================
# Entry point for SNS/SQS bus messages. Each message is an independent unit
# of work; a batch is processed on a thread pool and one failing message
# never affects the others.
# =============================================================================

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from network_worker.runtime.deps import Deps, create_deps
from network_worker.runtime.dispatch import (
    OUTCOME_DONE,
    OUTCOME_ERROR,
    ProcessResult,
    process_message,
)
from network_worker.runtime.envelope import DONE_SUFFIX, ERROR_SUFFIX
from network_worker.runtime.parse_event import InboundMessage, parse_event

logger = logging.getLogger(__name__)


def is_subscribed(subject: str, deps: Deps) -> bool:
    """Replies are never consumed, even if a filter policy lets them through."""
    if not subject or subject.endswith(DONE_SUFFIX) or subject.endswith(ERROR_SUFFIX):
        return False
    return subject in deps.subjects


def inbound_handler(event: Dict[str, Any], context: Any, deps: Optional[Deps] = None) -> Dict[str, Any]:
    """
    Bus entry point (SNS/SQS).

    Args:
        event: SNS/SQS event with Records[] or a direct {"subject", "body"} invoke
        context: Lambda context
        deps: injected dependencies, built from the environment when omitted

    Returns:
        Processing summary
    """
    messages, source = parse_event(event)

    results = {
        "processed": 0,
        "done": 0,
        "errors": 0,
        "skipped": 0,
        "undelivered": 0,
    }

    if deps is None:
        deps = create_deps()

    accepted: List[InboundMessage] = []
    for message in messages:
        if is_subscribed(message.subject, deps):
            accepted.append(message)
        else:
            logger.info(f"Skipping message {message.message_id} on subject {message.subject!r}")
            results["skipped"] += 1

    if not accepted:
        return {"statusCode": 200, "source": source, **results}

    workers = min(deps.max_concurrency, len(accepted))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="network-worker") as pool:
        outcomes = list(pool.map(lambda m: _process(m, deps), accepted))

    for outcome in outcomes:
        results["processed"] += 1
        if outcome.outcome == OUTCOME_DONE:
            results["done"] += 1
        else:
            results["errors"] += 1
        if not outcome.delivered:
            results["undelivered"] += 1

    logger.info(f"Batch finished: {results}")
    return {"statusCode": 200, "source": source, **results}


def _process(message: InboundMessage, deps: Deps) -> ProcessResult:
    try:
        result = process_message(message.subject, message.body, deps)
    except Exception as e:
        # process_message publishes its own failures; this only guards the pool
        logger.exception(f"Error processing message {message.message_id}: {e}")
        return ProcessResult(
            subject=message.subject,
            outcome=OUTCOME_ERROR,
            error=str(e) or type(e).__name__,
            delivered=False,
        )

    if result.ok:
        logger.info(f"{message.subject} done uuid={result.request_id}")
    else:
        logger.info(f"{message.subject} failed uuid={result.request_id}: {result.error}")
    return result
