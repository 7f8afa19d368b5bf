"""API Gateway proxy events in, proxy responses out.

``dispatch`` is the handler boundary: it answers CORS preflight,
authenticates the caller, routes by method and turns errors into the
``{"error": message}`` envelope.
"""

import base64
import json
import logging

from registration import clients
from registration.auth import authenticate, require_admin
from registration.errors import BackendError, MethodNotAllowedError, RegistrationError, ValidationError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Content-Type": "application/json",
}


class Request:
    def __init__(self, method, path="", headers=None, query=None, body="", base64_encoded=False):
        self.method = method.upper()
        self.path = path
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.query = query or {}
        self.body = body or ""
        self.base64_encoded = base64_encoded

    @classmethod
    def from_event(cls, event):
        # REST API (v1) events carry httpMethod, HTTP API (v2) events requestContext.http
        method = (event.get("requestContext") or {}).get("http", {}).get("method") or event.get("httpMethod", "")
        return cls(
            method=method,
            path=event.get("rawPath") or event.get("path", ""),
            headers=event.get("headers"),
            query=event.get("queryStringParameters"),
            body=event.get("body"),
            base64_encoded=bool(event.get("isBase64Encoded")),
        )

    def text(self):
        """The body as a string, decoding base64 bodies."""
        if not self.base64_encoded:
            return self.body
        try:
            return base64.b64decode(self.body, validate=True).decode("utf-8")
        except ValueError as exc:
            raise ValidationError("Invalid request body") from exc

    def json(self):
        text = self.text()
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise ValidationError("Invalid JSON body") from exc
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    def param(self, name):
        value = self.query.get(name)
        return value.strip() if isinstance(value, str) and value.strip() else None


def response(status_code, body, headers=None):
    return {
        "statusCode": status_code,
        "headers": {**CORS_HEADERS, **(headers or {})},
        "body": json.dumps(body, default=str),
    }


def error_response(status_code, message):
    return response(status_code, {"error": message})


def file_response(export):
    return {
        "statusCode": 200,
        "headers": {
            **CORS_HEADERS,
            "Content-Type": export.content_type,
            "Content-Disposition": f'attachment; filename="{export.filename}"',
        },
        "body": export.body,
    }


def dispatch(event, routes, admin=False):
    """Run the route registered for the request method.

    Routes are called as ``route(request, identity)`` and return a proxy
    response dict.
    """
    request = Request.from_event(event)
    if request.method == "OPTIONS":
        return {"statusCode": 200, "headers": dict(CORS_HEADERS), "body": ""}

    try:
        identity = authenticate(request.headers, clients.get_verifier())
        if admin:
            require_admin(identity, clients.get_config().admin_emails)
        route = routes.get(request.method)
        if route is None:
            raise MethodNotAllowedError(request.method)
        return route(request, identity)
    except BackendError as exc:
        logger.error("%s %s failed: %s", request.method, request.path, exc.message, exc_info=exc)
        return error_response(exc.status_code, exc.public_message)
    except RegistrationError as exc:
        return error_response(exc.status_code, exc.message)
    except Exception:
        logger.exception("Unhandled error in %s %s", request.method, request.path)
        return error_response(500, "Internal server error")
