"""Admission plugin registry, capabilities and initialization."""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class MutationInterface(Protocol):
    def admit(self, attributes) -> Any: ...


@runtime_checkable
class ValidationInterface(Protocol):
    def validate(self, attributes) -> Any: ...


@runtime_checkable
class WantsNamespaceCache(Protocol):
    def set_namespace_cache(self, cache) -> None: ...


@runtime_checkable
class WantsKubeClient(Protocol):
    def set_kube_client(self, kube_client) -> None: ...


@runtime_checkable
class InitializationValidator(Protocol):
    def validate_initialization(self) -> None: ...


class PluginInitializer:
    """Injects shared collaborators into plugins that ask for them."""

    def __init__(self, namespace_cache=None, kube_client=None):
        self.namespace_cache = namespace_cache
        self.kube_client = kube_client

    def initialize(self, plugin) -> None:
        if isinstance(plugin, WantsNamespaceCache) and self.namespace_cache is not None:
            plugin.set_namespace_cache(self.namespace_cache)
        if isinstance(plugin, WantsKubeClient) and self.kube_client is not None:
            plugin.set_kube_client(self.kube_client)


class ChainedPlugins:
    """Runs admit over all mutating plugins and validate over all validating ones."""

    def __init__(self, plugins: List[Any]):
        self.plugins = list(plugins)

    def admit(self, attributes) -> None:
        for plugin in self.plugins:
            if isinstance(plugin, MutationInterface):
                plugin.admit(attributes)

    def validate(self, attributes) -> None:
        for plugin in self.plugins:
            if isinstance(plugin, ValidationInterface):
                plugin.validate(attributes)


class Plugins:
    """Registry of admission plugin factories keyed by name."""

    def __init__(self):
        self._factories: Dict[str, Callable] = {}

    def register(self, name: str, factory: Callable) -> None:
        """
        Register a plugin factory.

        Raises:
            ValueError: a plugin with this name is already registered
        """
        if name in self._factories:
            raise ValueError(f"admission plugin {name!r} was registered twice")
        self._factories[name] = factory
        logger.debug(f"Registered admission plugin {name}")

    def registered(self) -> List[str]:
        return sorted(self._factories)

    def new_from_plugins(
        self,
        names: List[str],
        initializer: Optional[PluginInitializer] = None
    ) -> ChainedPlugins:
        """
        Instantiate, initialize and validate the named plugins.

        Raises:
            KeyError: a name is not registered
            ConfigurationError: a plugin is missing a collaborator
        """
        plugins = []
        for name in names:
            if name not in self._factories:
                raise KeyError(f"unknown admission plugin {name!r}")
            plugin = self._factories[name](None)
            if initializer is not None:
                initializer.initialize(plugin)
            if isinstance(plugin, InitializationValidator):
                plugin.validate_initialization()
            logger.info(f"Loaded admission plugin {name}")
            plugins.append(plugin)
        return ChainedPlugins(plugins)
