"""Sync pixi workspaces with a nebi server and OCI registries."""

__version__ = "0.1.0"
