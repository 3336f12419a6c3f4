"""Constants for nebi."""

# Workspace files
MANIFEST_FILE = "pixi.toml"
LOCK_FILE = "pixi.lock"

# Local state (inside the data / config directories)
APP_NAME = "nebi"
STORE_FILE = "nebi.db"
CREDENTIALS_FILE = "credentials.json"
GLOBAL_WORKSPACES_DIR = "workspaces"
STORE_SCHEMA_VERSION = 1

# Environment overrides
ENV_DATA_DIR = "NEBI_DATA_DIR"
ENV_CONFIG_DIR = "NEBI_CONFIG_DIR"
ENV_SERVER = "NEBI_SERVER"
ENV_TOKEN = "NEBI_TOKEN"

# Server API
API_PREFIX = "/api/v1"
PACKAGE_MANAGER = "pixi"
LATEST_TAG = "latest"
SERVER_TIMEOUT = 30.0

# Workspace readiness polling (seconds)
READY_TIMEOUT = 60.0
READY_POLL_INTERVAL = 0.5
STATUS_READY = "ready"
STATUS_FAILED = ("failed", "error")

# OCI media types for published workspaces
OCI_MANIFEST_MEDIA_TYPE = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_PIXI_TOML = "application/vnd.pixi.toml.v1+toml"
MEDIA_TYPE_PIXI_LOCK = "application/vnd.pixi.lock.v1+yaml"
MEDIA_TYPE_PIXI_CONFIG = "application/vnd.pixi.config.v1+toml"
OCI_TITLE_ANNOTATION = "org.opencontainers.image.title"
OCI_TIMEOUT = 10.0

# Content-addressed tags
HASH_PREFIX = "sha-"
CONTENT_TAG_LENGTH = 12

# Store lock wait (seconds)
STORE_LOCK_TIMEOUT = 30
