"""
FastAPI application answering validating and mutating admission requests for
MyApp objects
"""

# Standard
from typing import Dict, Optional
import base64
import time

# Third Party
from fastapi import FastAPI, Request, Response
import pydantic
import uvicorn

# First Party
import alog

# Local
from .. import admission, config
from ..metrics import (
    WEBHOOK_ALLOWED,
    WEBHOOK_DENIED,
    WEBHOOK_ERROR,
    WEBHOOK_MUTATE,
    WEBHOOK_VALIDATE,
    MetricsSinkBase,
    NoOpMetrics,
    PrometheusMetrics,
)
from .models import (
    JSON_PATCH_TYPE,
    AdmissionResponse,
    AdmissionReview,
    AdmissionReviewResponse,
    AdmissionStatus,
)

log = alog.use_channel("WEBHK")

DENY_CODE = 400

# Log levels understood by uvicorn
_UVICORN_LEVELS = ["critical", "error", "warning", "info", "debug", "trace"]


class _RequestError(Exception):
    """The body could not be turned into a request with an object"""

    def __init__(self, message: str, uid: str = ""):
        super().__init__(message)
        self.uid = uid


## App #########################################################################


def make_webhook_app(
    metrics: Optional[MetricsSinkBase] = None,
    controller_name: Optional[str] = None,
    default_resources: Optional[Dict[str, str]] = None,
) -> FastAPI:
    """Create the webhook application

    Args:
        metrics:  Optional[MetricsSinkBase]
            Sink receiving one count and duration per request
        controller_name:  Optional[str]
            Value of the managed-by label forced by /mutate
        default_resources:  Optional[Dict[str, str]]
            Resources filled in by /mutate

    Returns:
        app:  FastAPI
            The configured application
    """
    metrics = metrics or NoOpMetrics()
    app = FastAPI(title="MyApp admission webhook", version=config.operator_version)

    @app.post("/validate")
    async def validate(request: Request) -> dict:
        start = time.time()
        try:
            uid, obj = await _parse_request(request)
            verdict = admission.validate(obj)
            if verdict.allowed:
                response = AdmissionResponse(uid=uid, allowed=True)
                result = WEBHOOK_ALLOWED
            else:
                response, result = _deny(uid, verdict.reason), WEBHOOK_DENIED
        except _RequestError as err:
            response, result = _deny(err.uid, str(err)), WEBHOOK_ERROR
        metrics.webhook_request(WEBHOOK_VALIDATE, result, time.time() - start)
        return _review(response)

    @app.post("/mutate")
    async def mutate(request: Request) -> dict:
        start = time.time()
        try:
            uid, obj = await _parse_request(request)
            try:
                operations = admission.mutate(
                    obj,
                    controller_name=controller_name,
                    default_resources=default_resources,
                )
            except ValueError as err:
                log.warning("Cannot mutate admission request %s: %s", uid, err)
                raise _RequestError(str(err), uid=uid) from err
            patch = base64.b64encode(
                admission.serialize_patch(operations).encode("utf-8")
            ).decode("utf-8")
            response = AdmissionResponse(
                uid=uid, allowed=True, patchType=JSON_PATCH_TYPE, patch=patch
            )
            result = WEBHOOK_ALLOWED
        except _RequestError as err:
            response, result = _deny(err.uid, str(err)), WEBHOOK_ERROR
        metrics.webhook_request(WEBHOOK_MUTATE, result, time.time() - start)
        return _review(response)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy", "version": config.operator_version}

    if isinstance(metrics, PrometheusMetrics):

        @app.get("/metrics")
        async def prometheus_metrics() -> Response:
            body, content_type = metrics.render()
            return Response(content=body, media_type=content_type)

    return app


def run_webhook_server(
    app: FastAPI,
    host: Optional[str] = None,
    port: Optional[int] = None,
    tls_cert_file: Optional[str] = None,
    tls_key_file: Optional[str] = None,
):
    """Serve the webhook application until the process is stopped. TLS is
    enabled when both a cert and a key file are given.
    """
    host = host or config.webhook.host
    port = port or config.webhook.port
    tls_cert_file = tls_cert_file or config.webhook.tls_cert_file or None
    tls_key_file = tls_key_file or config.webhook.tls_key_file or None
    log.info(
        "Serving admission webhook on %s:%s (tls: %s)",
        host,
        port,
        bool(tls_cert_file and tls_key_file),
    )
    uvicorn.run(
        app,
        host=host,
        port=port,
        ssl_certfile=tls_cert_file if tls_key_file else None,
        ssl_keyfile=tls_key_file if tls_cert_file else None,
        log_level=config.log_level if config.log_level in _UVICORN_LEVELS else "info",
    )


## Implementation Details ######################################################


async def _parse_request(request: Request):
    """Parse the review envelope and pull out the uid and the object

    Raises:
        _RequestError: the body is not a review or carries no object
    """
    try:
        review = AdmissionReview.model_validate(await request.json())
    except (ValueError, pydantic.ValidationError) as err:
        log.warning("Received an invalid admission request: %s", err)
        raise _RequestError(f"Invalid request: {err}") from err

    uid = review.request.uid
    if review.request.object is None:
        log.warning("Admission request %s has no object", uid)
        raise _RequestError("No object in request", uid=uid)
    log.debug2("Admission request %s for %s", uid, review.request.name)
    return uid, review.request.object


def _deny(uid: str, message: str) -> AdmissionResponse:
    return AdmissionResponse(
        uid=uid,
        allowed=False,
        status=AdmissionStatus(code=DENY_CODE, message=message),
    )


def _review(response: AdmissionResponse) -> dict:
    return AdmissionReviewResponse(response=response).model_dump(exclude_none=True)
