"""Admission plugin merging namespace node selectors into pods."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from kubernetes import client

from . import labelselector
from .config import PLUGIN_NAME
from .errors import ConfigurationError, Forbidden, NamespaceNotFound
from .resolver import NamespacePolicyResolver

logger = logging.getLogger(__name__)

POD_RESOURCE = "pods"
CONFLICT_MESSAGE = "pod node label selector conflicts with its project node label selector"
NOT_EXTENDED_MESSAGE = "pod node label selector does not extend project node label selector"


class Operation:
    """Admission operations."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


@dataclass
class Attributes:
    """A single admission request as seen by the plugin."""
    resource: str
    namespace: str
    object: Any = None
    operation: str = Operation.CREATE
    subresource: str = ""
    group: str = ""
    version: str = "v1"
    name: str = ""

    @property
    def group_resource(self) -> str:
        """Resource qualified by its API group, e.g. "pods" or "deployments.apps"."""
        if self.group:
            return f"{self.resource}.{self.group}"
        return self.resource


@dataclass
class PodPlacement:
    """The placement-relevant view of a pod, for V1Pod or raw dict payloads."""
    name: str
    node_selector: Dict[str, str]
    obj: Any = field(repr=False, default=None)

    def replace_node_selector(self, node_selector: Dict[str, str]) -> None:
        """Replace the pod's node selector as a whole."""
        new_selector = dict(node_selector)
        if isinstance(self.obj, client.V1Pod):
            self.obj.spec.node_selector = new_selector
        else:
            spec = self.obj.setdefault("spec", {})
            spec["nodeSelector"] = new_selector
        self.node_selector = dict(new_selector)


def pod_from_object(obj: Any) -> Optional[PodPlacement]:
    """Narrow an admission payload to a PodPlacement, or None if it is not a pod."""
    if isinstance(obj, client.V1Pod):
        if obj.spec is None:
            return None
        name = obj.metadata.name if obj.metadata else ""
        return PodPlacement(
            name=name or "",
            node_selector=dict(obj.spec.node_selector or {}),
            obj=obj
        )

    if isinstance(obj, dict) and obj.get("kind") == "Pod":
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        return PodPlacement(
            name=metadata.get("name") or metadata.get("generateName") or "",
            node_selector=dict(spec.get("nodeSelector") or {}),
            obj=obj
        )

    return None


@dataclass
class AdmissionOutcome:
    """Result of an admission decision."""
    ALLOW = "allow"
    MUTATE = "mutate"
    DENY = "deny"

    kind: str
    node_selector: Optional[Dict[str, str]] = None
    error: Optional[Forbidden] = None

    @classmethod
    def allow(cls) -> "AdmissionOutcome":
        return cls(kind=cls.ALLOW)

    @classmethod
    def mutate(cls, node_selector: Dict[str, str]) -> "AdmissionOutcome":
        return cls(kind=cls.MUTATE, node_selector=dict(node_selector))

    @classmethod
    def deny(cls, error: Forbidden) -> "AdmissionOutcome":
        return cls(kind=cls.DENY, error=error)

    @property
    def allowed(self) -> bool:
        return self.kind != self.DENY


class PodNodeEnvironment:
    """
    Enforces that pods carry their namespace's node selector.

    Runs as both a mutating plugin (admit) and a validating plugin
    (validate). The validating pass catches selectors changed by mutating
    plugins that ran after this one.
    """

    def __init__(self):
        self.cache = None
        self.client = None
        self.resolver: Optional[NamespacePolicyResolver] = None

    def handles(self, operation: str) -> bool:
        """Only pod creation is checked."""
        return operation == Operation.CREATE

    def set_namespace_cache(self, cache) -> None:
        self.cache = cache
        self.resolver = NamespacePolicyResolver(cache)

    def set_kube_client(self, kube_client) -> None:
        self.client = kube_client

    def validate_initialization(self) -> None:
        """
        Check that the plugin has been configured.

        Raises:
            ConfigurationError: no namespace cache was injected
        """
        if self.cache is None:
            raise ConfigurationError("project node environment plugin needs a namespace cache")

    def decide(self, attributes: Attributes, mutation_allowed: bool) -> AdmissionOutcome:
        """
        Decide on a request without modifying it.

        Raises:
            SelectorResolutionError: the namespace node selector is invalid
            ConfigurationError: the plugin has no namespace cache
        """
        if attributes.group or attributes.resource != POD_RESOURCE:
            return AdmissionOutcome.allow()
        if attributes.subresource:
            # only pods proper, not their subresources
            return AdmissionOutcome.allow()

        pod = pod_from_object(attributes.object)
        if pod is None:
            return AdmissionOutcome.allow()

        self.validate_initialization()
        resource = attributes.group_resource
        name = pod.name or attributes.name

        if not self.resolver.ready():
            logger.warning(
                f"Namespace cache not ready, admitting pod {attributes.namespace}/{name} unchecked"
            )
            return AdmissionOutcome.allow()

        try:
            policy = self.resolver.resolve(attributes.namespace)
        except NamespaceNotFound as e:
            logger.info(f"Denying pod {attributes.namespace}/{name}: {e}")
            return AdmissionOutcome.deny(Forbidden(resource, name, e))

        if policy.opt_out:
            return AdmissionOutcome.allow()

        project_selector = policy.node_selector
        pod_selector = pod.node_selector

        if labelselector.conflicts(project_selector, pod_selector):
            logger.info(
                f"Denying pod {attributes.namespace}/{name}: selector "
                f"{labelselector.to_string(pod_selector)!r} conflicts with "
                f"{labelselector.to_string(project_selector)!r}"
            )
            return AdmissionOutcome.deny(Forbidden(resource, name, CONFLICT_MESSAGE))

        merged = labelselector.merge(project_selector, pod_selector)

        if not mutation_allowed:
            # no conflict, so a size difference means pod_selector lacks project keys
            if len(merged) != len(pod_selector):
                logger.info(
                    f"Denying pod {attributes.namespace}/{name}: selector "
                    f"{labelselector.to_string(pod_selector)!r} does not extend "
                    f"{labelselector.to_string(project_selector)!r}"
                )
                return AdmissionOutcome.deny(Forbidden(resource, name, NOT_EXTENDED_MESSAGE))
            return AdmissionOutcome.allow()

        logger.debug(
            f"Pod {attributes.namespace}/{name} node selector set to "
            f"{labelselector.to_string(merged)!r}"
        )
        return AdmissionOutcome.mutate(merged)

    def _admit(self, attributes: Attributes, mutation_allowed: bool) -> AdmissionOutcome:
        if not self.handles(attributes.operation):
            return AdmissionOutcome.allow()

        outcome = self.decide(attributes, mutation_allowed)
        if outcome.kind == AdmissionOutcome.DENY:
            raise outcome.error
        if outcome.kind == AdmissionOutcome.MUTATE:
            pod_from_object(attributes.object).replace_node_selector(outcome.node_selector)
        return outcome

    def admit(self, attributes: Attributes) -> AdmissionOutcome:
        """
        Mutating entry point. Writes the merged node selector into the pod.

        Raises:
            Forbidden: the pod is rejected
        """
        return self._admit(attributes, mutation_allowed=True)

    def validate(self, attributes: Attributes) -> AdmissionOutcome:
        """
        Validating entry point. Never modifies the pod.

        Raises:
            Forbidden: the pod is rejected
        """
        return self._admit(attributes, mutation_allowed=False)


def new_pod_node_environment(config=None) -> PodNodeEnvironment:
    """Plugin factory. The plugin takes no configuration."""
    return PodNodeEnvironment()


def register(plugins) -> None:
    """Register the plugin with a Plugins registry."""
    plugins.register(PLUGIN_NAME, new_pod_node_environment)
