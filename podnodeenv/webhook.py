"""
AdmissionReview webhook.

Serves the mutating and validating admission endpoints for the plugin
chain, plus liveness and readiness probes.
"""

import base64
import copy
import json
import logging
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import labelselector
from .admission import Attributes, Operation, pod_from_object
from .config import MUTATE_PATH, VALIDATE_PATH
from .errors import AdmissionError, Forbidden

logger = logging.getLogger(__name__)

ADMISSION_API_VERSION = "admission.k8s.io/v1"


class GroupVersionResource(BaseModel):
    group: str = ""
    version: str = ""
    resource: str


class PodMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    generateName: Optional[str] = None


class PodSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    nodeSelector: Optional[Dict[str, str]] = None


class PodObject(BaseModel):
    """Shape a pod payload must have before the plugin sees it."""
    model_config = ConfigDict(extra="allow")

    kind: str
    metadata: PodMetadata = Field(default_factory=PodMetadata)
    spec: PodSpec = Field(default_factory=PodSpec)


class AdmissionRequest(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    uid: str
    resource: GroupVersionResource
    sub_resource: Optional[str] = Field(default=None, alias="subResource")
    namespace: Optional[str] = None
    name: Optional[str] = None
    operation: str = Operation.CREATE
    object: Optional[Dict[str, Any]] = None

    @field_validator("object")
    @classmethod
    def _pod_shape(cls, value):
        if value is not None and value.get("kind") == "Pod":
            try:
                PodObject.model_validate(value)
            except ValidationError as e:
                raise ValueError(f"malformed Pod object: {e}") from e
        return value


class AdmissionReview(BaseModel):
    model_config = ConfigDict(extra="allow")

    apiVersion: str = ADMISSION_API_VERSION
    kind: str = "AdmissionReview"
    request: AdmissionRequest


def review_to_attributes(body: AdmissionReview) -> Attributes:
    """Build admission Attributes from a validated AdmissionReview."""
    request = body.request
    return Attributes(
        resource=request.resource.resource,
        group=request.resource.group,
        version=request.resource.version,
        subresource=request.sub_resource or "",
        namespace=request.namespace or "",
        name=request.name or "",
        operation=request.operation,
        object=request.object,
    )


def node_selector_patch(node_selector: Dict[str, str]) -> str:
    """Base64 JSONPatch replacing the whole pod node selector."""
    patch = [{"op": "add", "path": "/spec/nodeSelector", "value": node_selector}]
    return base64.b64encode(json.dumps(patch).encode("utf-8")).decode("ascii")


def build_response(
    body: AdmissionReview,
    allowed: bool = True,
    code: int = 200,
    reason: str = "",
    message: str = "",
    patch: Optional[str] = None
) -> Dict[str, Any]:
    """Build the AdmissionReview response, echoing the request's apiVersion."""
    response: Dict[str, Any] = {"uid": body.request.uid, "allowed": allowed}
    if not allowed:
        response["status"] = {"code": code, "reason": reason, "message": message}
    if patch is not None:
        response["patchType"] = "JSONPatch"
        response["patch"] = patch
    return {
        "apiVersion": body.apiVersion,
        "kind": "AdmissionReview",
        "response": response,
    }


def review(plugins, body: AdmissionReview, mutating: bool) -> Dict[str, Any]:
    """
    Run an AdmissionReview through the plugin chain.

    Args:
        plugins: ChainedPlugins (or any object with admit/validate)
        body: Validated AdmissionReview
        mutating: True for the mutating phase

    Returns:
        AdmissionReview response
    """
    attributes = review_to_attributes(body)
    before = pod_from_object(copy.deepcopy(attributes.object))

    try:
        if mutating:
            plugins.admit(attributes)
        else:
            plugins.validate(attributes)
    except Forbidden as e:
        return build_response(body, allowed=False, code=e.code, reason=e.reason, message=str(e))
    except AdmissionError as e:
        logger.error(f"Admission of {attributes.namespace}/{attributes.name} failed: {e}")
        return build_response(body, allowed=False, code=500, reason="InternalError", message=str(e))

    patch = None
    if mutating and before is not None:
        after = pod_from_object(attributes.object)
        if not labelselector.equals(after.node_selector, before.node_selector):
            patch = node_selector_patch(after.node_selector)

    return build_response(body, patch=patch)


def create_app(plugins, namespace_cache) -> FastAPI:
    """Create the webhook application around a plugin chain and namespace cache."""
    app = FastAPI(title="Pod Node Environment admission webhook")
    app.state.plugins = plugins
    app.state.namespace_cache = namespace_cache

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz(request: Request):
        if request.app.state.namespace_cache.running():
            return {"status": "ready"}
        return JSONResponse(status_code=503, content={"status": "namespace cache not synced"})

    @app.post(MUTATE_PATH)
    def mutate(body: AdmissionReview, request: Request) -> Dict[str, Any]:
        return review(request.app.state.plugins, body, mutating=True)

    @app.post(VALIDATE_PATH)
    def validate(body: AdmissionReview, request: Request) -> Dict[str, Any]:
        return review(request.app.state.plugins, body, mutating=False)

    return app


def create_server(
    app: FastAPI,
    host: str,
    port: int,
    certfile: Optional[str] = None,
    keyfile: Optional[str] = None
) -> uvicorn.Server:
    """Create a uvicorn server for the app, serving TLS when a certificate is given."""
    if certfile and keyfile:
        logger.info(f"Serving admission webhook with TLS on {host}:{port}")
    else:
        logger.info(f"Serving admission webhook without TLS on {host}:{port}")

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        ssl_certfile=certfile if certfile and keyfile else None,
        ssl_keyfile=keyfile if certfile and keyfile else None,
        log_config=None,
    )
    return uvicorn.Server(server_config)
