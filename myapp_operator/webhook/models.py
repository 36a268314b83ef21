"""
Pydantic models of the admission.k8s.io/v1 AdmissionReview envelope. Only the
fields the webhook reads or writes are declared; everything else is kept.
"""

# Standard
from typing import Any, Dict, Optional

# Third Party
from pydantic import BaseModel, ConfigDict, Field

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"
JSON_PATCH_TYPE = "JSONPatch"


class AdmissionRequest(BaseModel):
    """The request section of an AdmissionReview"""

    model_config = ConfigDict(extra="allow")

    uid: str
    operation: Optional[str] = None
    namespace: Optional[str] = None
    name: Optional[str] = None
    object: Optional[Dict[str, Any]] = None
    oldObject: Optional[Dict[str, Any]] = None


class AdmissionReview(BaseModel):
    """An incoming AdmissionReview"""

    model_config = ConfigDict(extra="allow")

    apiVersion: str = ADMISSION_API_VERSION
    kind: str = ADMISSION_KIND
    request: AdmissionRequest


class AdmissionStatus(BaseModel):
    code: int
    message: str


class AdmissionResponse(BaseModel):
    """The verdict for a single request"""

    uid: str = ""
    allowed: bool
    status: Optional[AdmissionStatus] = None
    patchType: Optional[str] = None
    patch: Optional[str] = Field(
        default=None, description="Base64 encoded RFC 6902 JSON patch"
    )


class AdmissionReviewResponse(BaseModel):
    """The AdmissionReview sent back to the api server"""

    apiVersion: str = ADMISSION_API_VERSION
    kind: str = ADMISSION_KIND
    response: AdmissionResponse
