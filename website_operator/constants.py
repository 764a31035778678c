"""
Shared module to hold constant values for the library
"""

# The parent resource that drives every reconciliation
WEBSITE_KIND = "Website"
WEBSITE_API_VERSION = "kubecon.bmutziu.me/v1beta1"

# Name of the spec field holding the image tag on the parent resource
IMAGE_TAG_FIELD = "imageTag"

# Ownership labels attached to every child resource
WEBSITE_LABEL_NAME = "website"
TYPE_LABEL_NAME = "type"

# Child resource kinds
DEPLOYMENT_KIND = "Deployment"
DEPLOYMENT_API_VERSION = "apps/v1"
SERVICE_KIND = "Service"
SERVICE_API_VERSION = "v1"

# Fixed shape of the child resources. These are part of the contract with the
# cluster and are intentionally not part of the library config.
IMAGE_REPOSITORY = "abangser/todo-local-storage"
DEPLOYMENT_REPLICAS = 2
CONTAINER_NAME = "nginx"
CONTAINER_PORT = 80
SERVICE_PORT = 80
SERVICE_NODE_PORT = 31000
SERVICE_TYPE = "NodePort"

# Default namespace if none given
DEFAULT_NAMESPACE = "default"
