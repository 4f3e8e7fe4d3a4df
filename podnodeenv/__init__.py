"""
Pod Node Environment admission plugin.

Merges namespace default node selectors into pods and rejects pods whose
node selector conflicts with their namespace.
"""

from .admission import AdmissionOutcome, Attributes, PodNodeEnvironment, register
from .namespace_cache import NamespaceCache
from .plugins import PluginInitializer, Plugins
from .resolver import NamespacePolicy, NamespacePolicyResolver

__all__ = [
    'AdmissionOutcome',
    'Attributes',
    'NamespaceCache',
    'NamespacePolicy',
    'NamespacePolicyResolver',
    'PluginInitializer',
    'Plugins',
    'PodNodeEnvironment',
    'register',
]
