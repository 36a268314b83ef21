"""
Shared module to hold constant values for the operator
"""

# Identity of the MyApp custom resource
GROUP = "example.com"
VERSION = "v1"
KIND = "MyApp"
PLURAL = "myapps"
SINGULAR = "myapp"
SHORT_NAMES = ["ma"]
API_VERSION = f"{GROUP}/{VERSION}"

# The finalizer token owned by this controller
FINALIZER = f"{PLURAL}.{GROUP}/finalizer"

# Label keys placed on managed objects
APP_LABEL = "app"
MANAGED_BY_LABEL = "managed-by"

# Label forced onto every MyApp by the mutating webhook
ADMISSION_MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"

# Child resource identity
DEPLOYMENT_API_VERSION = "apps/v1"
DEPLOYMENT_KIND = "Deployment"
DEPLOYMENT_SUFFIX = "deployment"
SERVICE_API_VERSION = "v1"
SERVICE_KIND = "Service"
SERVICE_SUFFIX = "service"

# The single container and port exposed by the workload
CONTAINER_NAME = "app"
CONTAINER_PORT_NAME = "http"
SERVICE_PORT = 80

# Condition values
READY_CONDITION = "Ready"
RECONCILE_SUCCESS_REASON = "ReconcileSuccess"
RECONCILE_SUCCESS_MESSAGE = "Resource reconciled successfully"
VALIDATION_FAILED_REASON = "ValidationFailed"

# Error kinds used as metric labels
STORE_ERROR = "store_error"
VALIDATION_ERROR = "validation_error"
FINALIZER_ERROR = "finalizer_error"
UNEXPECTED_ERROR = "unexpected_error"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."
