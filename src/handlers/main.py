"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

One Lambda keeps one warm profile cache shared by every route.
"""

from typing import Callable, Dict, Tuple
import json

from . import health_check, customer_profile


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler while keeping shared setup (logging, error handling) centralized.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path}"

    # Prefix match; more specific prefixes first.
    route_table: Tuple[Tuple[str, Callable], ...] = (
        ("GET /health", health_check.lambda_handler),
        ("GET /cache/stats", customer_profile.stats_handler),
        ("POST /customers/prefetch", customer_profile.prefetch_handler),
        ("GET /customers/", customer_profile.lambda_handler),
        ("DELETE /customers/", customer_profile.invalidate_handler),
        ("PATCH /customers/", customer_profile.update_contact_handler),
    )

    for prefix, handler in route_table:
        if route_key.startswith(prefix):
            return handler(event, context)

    return _response(404, {"message": "Route not found", "route": route_key})
