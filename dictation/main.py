"""
Cloud Function entrypoints for the dictation pipeline.

This module exposes two functions:

* ``gcs_event`` – a background function triggered by Cloud Storage events.
  It inspects the bucket and object name to decide whether the upload is a
  new recording or a batch recognition result.
* ``sign_url`` – an HTTP function that returns a short-lived signed URL for
  a transcript, so a client app can download it without credentials.

The same handlers are mounted on a Flask ``app`` (``GET /sign`` and
``POST /events``) for local runs and manual reprocessing.

Configuration comes from environment variables; see :mod:`dictation.config`.
A missing required variable fails the first invocation before any object
is touched.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, request

from . import tasks
from .config import load_settings

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(message)s")

app = Flask(__name__)

_runtime: Optional[tasks.Runtime] = None


def get_runtime() -> tasks.Runtime:
    """Build the process-wide clients on first use."""
    global _runtime
    if _runtime is None:
        _runtime = tasks.build_runtime(load_settings())
    return _runtime


def gcs_event(event: Dict[str, Any], context: Any) -> None:
    """Background function triggered by Cloud Storage.

    The event contains the ``bucket`` and ``name`` of the uploaded object,
    plus ``contentType``, ``size`` and ``generation``.
    """
    bucket = event.get("bucket")
    name = event.get("name")
    logger.info(json.dumps({"event": "gcs_trigger", "bucket": bucket, "file": name}))
    if not bucket or not name:
        logger.warning("Received event with missing bucket or name: %s", event)
        return
    runtime = get_runtime()
    settings = runtime.settings
    if bucket == settings.transcripts_bucket and name.lower().endswith(".json"):
        tasks.process_result_upload(runtime, event)
    elif bucket == settings.uploads_bucket:
        tasks.process_audio_upload(runtime, event)
    else:
        logger.info("Unhandled upload %s/%s", bucket, name)


def sign_url(req):
    """HTTP function: ``GET ?name=<object>`` -> ``{"url": ...}``."""
    name = req.args.get("name")
    if not name:
        return {"error": "missing ?name="}, 400
    runtime = get_runtime()
    transcripts = runtime.transcripts
    try:
        if not transcripts.exists(name):
            return {"error": "not-found"}, 404
        url = transcripts.signed_read_url(name, runtime.settings.signed_url_ttl_seconds)
    except Exception:
        logger.exception("Error signing %s", name)
        return {"error": "signing-failed"}, 500
    logger.info(json.dumps({"event": "signed", "file": name}))
    return {"url": url}, 200


@app.route("/sign", methods=["GET"])
def sign_route():
    return sign_url(request)


@app.route("/events", methods=["POST"])
def events_route():
    """Replay a storage event given as a JSON body with ``bucket`` and ``name``."""
    data = request.get_json(silent=True) or {}
    if not data.get("bucket") or not data.get("name"):
        return "Missing 'bucket' or 'name' in request", 400
    gcs_event(data, context=None)
    return "OK", 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
