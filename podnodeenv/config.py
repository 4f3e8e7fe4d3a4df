"""Configuration settings for the Pod Node Environment admission plugin."""

# Plugin registration name
PLUGIN_NAME = "scheduling.openshift.io/OriginPodNodeEnvironment"

# Namespace annotation that opts the namespace out of this plugin.
# Shared with the scheduler, must match exactly.
KUBE_PROJECT_NODE_SELECTOR = "scheduler.alpha.kubernetes.io/node-selector"

# Namespace annotation holding the project default node selector
PROJECT_NODE_SELECTOR = "openshift.io/node-selector"

# Cluster wide default node selector, used when a namespace has none
DEFAULT_NODE_SELECTOR = ""

# Watch settings
WATCH_TIMEOUT_SECONDS = 300
WATCH_RETRY_SECONDS = 5

# Webhook server settings
WEBHOOK_HOST = "0.0.0.0"
WEBHOOK_PORT = 8443
MUTATE_PATH = "/mutate"
VALIDATE_PATH = "/validate"
