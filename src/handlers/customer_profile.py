"""Handlers for /customers/{email}/... and /cache/stats."""

import json
from typing import Dict, Optional
from urllib.parse import unquote

from pydantic import ValidationError as PydanticValidationError

from handlers.runtime import get_profile_service, run_async
from models.customer import ContactUpdate
from models.response import ProfileStatus
from utils.error_handling import AppError, ValidationError, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _response(status: int, body) -> Dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": body if isinstance(body, str) else json.dumps(body),
    }


def _email_from_event(event) -> Optional[str]:
    """Path parameter when the route declares one, else parse /customers/{email}/..."""
    path_params = event.get("pathParameters") or {}
    email = path_params.get("email")
    if not email:
        path = event.get("requestContext", {}).get("http", {}).get("path", "")
        parts = [p for p in path.split("/") if p]
        if len(parts) >= 2 and parts[0] == "customers":
            email = parts[1]
    return unquote(email) if email else None


def lambda_handler(event, context):
    """GET /customers/{email}/profile[?refresh=true]."""
    email = _email_from_event(event)
    if not email:
        return _response(400, {"message": "customer email is required"})

    query_params = event.get("queryStringParameters") or {}
    force_refresh = str(query_params.get("refresh", "false")).lower() == "true"

    try:
        result = run_async(get_profile_service().get_profile(email, force_refresh=force_refresh))
    except AppError as exc:
        return to_response(exc)

    if result.status == ProfileStatus.FAILED:
        return _response(404, {"message": "Customer profile not found", "error": result.error})

    logger.info(
        "Customer profile served",
        extra={"identity": email, "from_cache": result.from_cache, "status": result.status.value},
    )
    return _response(200, result.model_dump_json())


def invalidate_handler(event, context):
    """DELETE /customers/{email}/cache."""
    email = _email_from_event(event)
    if not email:
        return _response(400, {"message": "customer email is required"})
    try:
        removed = get_profile_service().invalidate(email)
    except AppError as exc:
        return to_response(exc)
    return _response(200, {"invalidated": removed})


def update_contact_handler(event, context):
    """PATCH /customers/{email}/contact."""
    email = _email_from_event(event)
    if not email:
        return _response(400, {"message": "customer email is required"})
    try:
        update = ContactUpdate.model_validate(json.loads(event.get("body") or "{}"))
        result = run_async(get_profile_service().update_contact(email, update))
    except (PydanticValidationError, json.JSONDecodeError) as exc:
        return to_response(ValidationError(str(exc)))
    except AppError as exc:
        return to_response(exc)

    if result.profile is None:
        return _response(404, {"message": "Customer profile not found", "error": result.error})
    return _response(200, result.model_dump_json())


def prefetch_handler(event, context):
    """POST /customers/prefetch with {"emails": [...]}."""
    try:
        payload = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        return _response(400, {"message": "Invalid JSON body"})
    emails = payload.get("emails")
    if not isinstance(emails, list) or not all(isinstance(e, str) for e in emails):
        return _response(400, {"message": "emails must be a list of strings"})

    summary = run_async(get_profile_service().prefetch(emails))
    return _response(200, summary)


def stats_handler(event, context):
    """GET /cache/stats."""
    service = get_profile_service()
    return _response(
        200,
        {
            "stats": service.cache_stats(),
            "cached_identities": service.cached_identities(),
            "pending_refreshes": service.pending_refreshes,
        },
    )
