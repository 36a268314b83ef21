"""
The admission webhook serves the admission pipeline over HTTP
"""

# Local
from .models import AdmissionResponse, AdmissionReview, AdmissionReviewResponse
from .server import make_webhook_app, run_webhook_server
