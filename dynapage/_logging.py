import hashlib
import json
import logging
from typing import Any

# Create the library logger
logger = logging.getLogger("dynapage")

# Add NullHandler to prevent "No handlers could be found" warnings
# if the application doesn't configure logging.
logger.addHandler(logging.NullHandler())


def redact_token(token: Any) -> str:
    """
    Redacts a continuation token or query input for logging.

    Tokens often embed primary keys (e.g. a DynamoDB LastEvaluatedKey), so
    only a short hash is logged. Equal tokens produce equal hashes, which
    keeps consecutive requests correlatable.
    """
    try:
        if isinstance(token, str):
            raw = token
        else:
            raw = json.dumps(token, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:8]
    except (TypeError, ValueError):
        return "<redaction_failed>"
