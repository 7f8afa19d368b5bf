"""Admin API - GET /api/admin/export?type=&format=

type: teams | pilots | staff | all (default teams)
format: csv | json (default csv; ignored for type=all, always JSON)

CSV is served as an attachment with a UTF-8 BOM so spreadsheets open it
with the right encoding.
"""

import logging
import os

from registration import clients
from registration.export import build_export
from registration.http import dispatch, file_response

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def export(request, identity):
    kind = request.param("type") or "teams"
    fmt = request.param("format") or "csv"
    result = build_export(
        clients.get_store(),
        kind=kind,
        fmt=fmt,
        prefix=clients.get_config().export_filename_prefix,
    )
    logger.info("Export %s (%s) generated for %s", kind, fmt, identity.user_id)
    return file_response(result)


ROUTES = {"GET": export}


def lambda_handler(event, context):
    return dispatch(event, ROUTES, admin=True)
