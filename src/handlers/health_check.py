"""Lightweight health check handler."""

import os
import json
from datetime import datetime, timezone

from handlers.runtime import get_profile_service


def lambda_handler(event, context):
    """Return 200 plus profile cache counters to verify the container is alive."""
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "status": "ok",
                "environment": os.environ.get("ENVIRONMENT", "dev"),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "cache": get_profile_service().cache_stats(),
            }
        ),
    }
