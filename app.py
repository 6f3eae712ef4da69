import logging
from typing import Any, Dict

from handlers.base import configure_logging, jdump, subscribed_subjects
from network_worker.app.inbound_handler import inbound_handler

# ---------- Logger ----------
logger = logging.getLogger()
configure_logging()

# Subscriptions are infrastructure (SNS topic -> SQS queue -> this function).
# The worker itself only acts on these subjects.
for _subject in subscribed_subjects():
    logger.info(f"listening for {_subject}")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.debug("RAW_EVENT=%s", jdump(event))
    return inbound_handler(event, context)
